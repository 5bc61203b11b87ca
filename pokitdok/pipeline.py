from __future__ import annotations

import asyncio
import logging
import os
from typing import IO, Any, Mapping

import httpx

from . import oauth2
from .constants import DEFAULT_BASE_URL, LOGGER, USER_AGENT
from .errors import (
    ApplicationError,
    AuthenticationError,
    RefreshError,
    TransportError,
)
from .http import decode_body, is_auth_failure
from .models import ReplayOrder, RequestDescriptor, RetryQueueEntry, Session


class AuthenticatedPipeline:
    """Sends requests on behalf of a Session and recovers from stale tokens.

    A request answered with 401 (or a 400 without the ``meta`` envelope) is
    parked on the session's retry queue. The first such failure starts a
    client-credentials refresh; failures arriving while it runs only join the
    queue, so a burst of expired requests costs a single token call. Once the
    token is in place every parked request is sent again, by default most
    recently failed first.

    Each logical request owns one ``asyncio.Future``; it travels through the
    queue with the request and is resolved exactly once.
    """

    def __init__(
        self,
        session: Session,
        client: httpx.AsyncClient,
        *,
        base_url: str = DEFAULT_BASE_URL,
        replay_order: ReplayOrder = ReplayOrder.LIFO,
        max_auth_retries: int | None = None,
        fetch_token_fn=oauth2.fetch_client_credentials_token,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_auth_retries is not None and max_auth_retries < 0:
            raise ValueError("max_auth_retries must be zero or positive.")
        self.session = session
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.replay_order = ReplayOrder(replay_order)
        self.max_auth_retries = max_auth_retries
        self._fetch_token_fn = fetch_token_fn
        self._logger = logger or LOGGER
        self._tasks: set[asyncio.Task] = set()

    # -- request shaping -------------------------------------------------------

    def build_url(self, descriptor: RequestDescriptor) -> str:
        return f"{self.base_url}/api/{self.session.api_version}{descriptor.path}"

    def build_headers(self) -> dict[str, str]:
        # No token yet: send an empty credential and let the platform reject it.
        token = self.session.access_token or ""
        return {
            "Authorization": f"Bearer {token}".rstrip(),
            "User-Agent": USER_AGENT,
        }

    # -- public surface --------------------------------------------------------

    async def dispatch(self, descriptor: RequestDescriptor) -> Any:
        completion = asyncio.get_running_loop().create_future()
        await self._attempt(RetryQueueEntry(descriptor=descriptor, completion=completion))
        return await completion

    async def dispatch_file(
        self,
        path: str,
        source: IO[bytes] | bytes,
        *,
        filename: str | None = None,
        field_name: str = "file",
        content_type: str = "application/octet-stream",
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        # Buffered up front so the upload can be replayed after a refresh.
        content = source if isinstance(source, (bytes, bytearray)) else source.read()
        if isinstance(content, str):
            content = content.encode("utf-8")
        if filename is None:
            filename = os.path.basename(getattr(source, "name", "") or "") or "upload"

        descriptor = RequestDescriptor(
            path=path,
            method="POST",
            form_data=data,
            files={field_name: (filename, bytes(content), content_type)},
        )
        return await self.dispatch(descriptor)

    def refresh_and_retry(self, entry: RetryQueueEntry) -> None:
        session = self.session
        session.retry_queue.append(entry)
        if session.refresh_in_flight:
            self._logger.info(
                "Token refresh in flight; queued %s %s (%s waiting)",
                entry.descriptor.method,
                entry.descriptor.path,
                len(session.retry_queue),
            )
            return

        # Check and set happen without a suspension point in between.
        session.refresh_in_flight = True
        self._spawn(self._refresh())

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        queued = self.session.retry_queue
        self.session.retry_queue = []
        self.session.refresh_in_flight = False
        for entry in queued:
            entry.completion.cancel()

    # -- internals -------------------------------------------------------------

    async def _attempt(self, entry: RetryQueueEntry) -> None:
        if entry.completion.done():
            return
        descriptor = entry.descriptor
        try:
            response = await self.client.request(
                descriptor.method,
                self.build_url(descriptor),
                headers=self.build_headers(),
                params=descriptor.query_params(),
                json=descriptor.json,
                data=dict(descriptor.form_data) if descriptor.form_data else None,
                files=dict(descriptor.files) if descriptor.files else None,
            )
        except httpx.TransportError as error:
            self._logger.warning(
                "PokitDok transport error %s %s: %r", descriptor.method, descriptor.path, error
            )
            self._fail(
                entry,
                TransportError(str(error) or error.__class__.__name__),
            )
            return

        body = decode_body(response.text)

        if is_auth_failure(response.status_code, body):
            entry.auth_attempts += 1
            if self.max_auth_retries is not None and entry.auth_attempts > self.max_auth_retries:
                self._fail(
                    entry,
                    AuthenticationError(
                        f"Authentication still failing after {self.max_auth_retries} token refreshes.",
                        body=body,
                        response=response,
                    ),
                )
                return
            self.refresh_and_retry(entry)
            return

        if response.status_code != 200:
            self._fail(entry, ApplicationError(body, response))
            return

        self._resolve(entry, body)

    async def _refresh(self) -> None:
        session = self.session
        self._logger.info("Refreshing PokitDok access token for client %s", session.client_id)
        try:
            token = await self._fetch_token_fn(
                session.client_id,
                session.client_secret,
                base_url=self.base_url,
                client=self.client,
            )
        except oauth2.TokenRequestError as error:
            self._fail_queue(
                f"Token refresh failed: {error}", body=error.body, response=error.response
            )
            return
        except httpx.TransportError as error:
            self._fail_queue(f"Token refresh failed: {error!r}")
            return
        except Exception as error:
            self._logger.exception("Unexpected error while refreshing the access token")
            self._fail_queue(f"Token refresh failed: {error!r}")
            return
        finally:
            session.refresh_in_flight = False

        session.access_token = token.access_token
        self._logger.info(
            "PokitDok access token refreshed; replaying %s requests", len(session.retry_queue)
        )
        self._replay_queue()

    def _replay_queue(self) -> None:
        queue = self.session.retry_queue
        while queue:
            entry = queue.pop() if self.replay_order is ReplayOrder.LIFO else queue.pop(0)
            self._spawn(self._replay(entry))

    async def _replay(self, entry: RetryQueueEntry) -> None:
        try:
            await self._attempt(entry)
        except asyncio.CancelledError:
            entry.completion.cancel()
            raise
        except Exception as error:
            self._fail(entry, error)

    def _fail_queue(self, message: str, *, body=None, response: httpx.Response | None = None) -> None:
        entries = self.session.retry_queue
        self.session.retry_queue = []
        self._logger.warning("%s (failing %s queued requests)", message, len(entries))
        for entry in entries:
            self._fail(entry, RefreshError(message, body=body, response=response))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    def _resolve(entry: RetryQueueEntry, data: Any) -> None:
        if not entry.completion.done():
            entry.completion.set_result(data)

    @staticmethod
    def _fail(entry: RetryQueueEntry, error: BaseException) -> None:
        if not entry.completion.done():
            entry.completion.set_exception(error)
