from __future__ import annotations

import os
from pathlib import Path
from typing import IO, Any, Mapping

import httpx

from .constants import DEFAULT_API_VERSION, DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from .env import (
    get_env_float,
    get_env_int,
    load_env,
    normalize_base_url,
    setup_logging,
    validate_env,
)
from .http import build_http_client
from .models import ReplayOrder, RequestDescriptor, Session
from .pipeline import AuthenticatedPipeline


class PokitDok:
    """Connection to the PokitDok platform.

    Every resource method is a thin shortcut over ``api_request``; the
    pipeline underneath takes care of fetching and refreshing the access
    token, so a fresh connection simply starts issuing calls.

        async with PokitDok(client_id, client_secret) as pokitdok:
            payers = await pokitdok.payers()
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        version: str = DEFAULT_API_VERSION,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        replay_order: ReplayOrder | str = ReplayOrder.LIFO,
        max_auth_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
        debug: bool = False,
    ) -> None:
        self.session = Session(
            client_id=client_id,
            client_secret=client_secret,
            api_version=version or DEFAULT_API_VERSION,
        )
        self._own_client = http_client is None
        self.http_client = http_client or build_http_client(
            timeout=timeout,
            transport=transport,
            debug=debug,
        )
        self.pipeline = AuthenticatedPipeline(
            self.session,
            self.http_client,
            base_url=base_url,
            replay_order=ReplayOrder(replay_order),
            max_auth_retries=max_auth_retries,
        )

    @classmethod
    def from_env(
        cls,
        env_path: str | Path | None = None,
        **overrides: Any,
    ) -> "PokitDok":
        load_env(env_path)
        debug_enabled = setup_logging()
        validate_env()

        replay_order = os.getenv("POKITDOK_REPLAY_ORDER", ReplayOrder.LIFO.value).strip().lower()
        if replay_order not in {order.value for order in ReplayOrder}:
            raise RuntimeError("POKITDOK_REPLAY_ORDER must be 'lifo' or 'fifo'.")

        base_url = os.getenv("POKITDOK_BASE_URL", "").strip()
        options: dict[str, Any] = {
            "version": os.getenv("POKITDOK_API_VERSION", DEFAULT_API_VERSION).strip()
            or DEFAULT_API_VERSION,
            "base_url": normalize_base_url(base_url, source="POKITDOK_BASE_URL")
            if base_url
            else DEFAULT_BASE_URL,
            "timeout": get_env_float("POKITDOK_TIMEOUT", DEFAULT_TIMEOUT),
            "max_auth_retries": get_env_int("POKITDOK_MAX_AUTH_RETRIES", None),
            "replay_order": ReplayOrder(replay_order),
            "debug": debug_enabled,
        }
        options.update(overrides)
        return cls(
            os.getenv("POKITDOK_CLIENT_ID", "").strip(),
            os.getenv("POKITDOK_CLIENT_SECRET", "").strip(),
            **options,
        )

    async def __aenter__(self) -> "PokitDok":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.pipeline.aclose()
        if self._own_client:
            await self.http_client.aclose()

    @property
    def access_token(self) -> str | None:
        return self.session.access_token

    # -- generic requests ------------------------------------------------------

    async def api_request(
        self,
        path: str,
        method: str = "GET",
        *,
        query: Mapping[str, Any] | None = None,
        json: Any = None,
        form_data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Issue a request against ``/api/{version}{path}`` and return the decoded body."""
        return await self.pipeline.dispatch(
            RequestDescriptor(
                path=path,
                method=method,
                query=query,
                json=json,
                form_data=form_data,
            )
        )

    async def api_file_request(
        self,
        path: str,
        source: IO[bytes] | bytes,
        *,
        filename: str | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        """POST ``source`` as a multipart upload under the ``file`` field."""
        return await self.pipeline.dispatch_file(path, source, filename=filename, data=data)

    # -- resources -------------------------------------------------------------

    async def activities(
        self,
        activity_id: str | None = None,
        transition: str | None = None,
        **params: Any,
    ) -> Any:
        """List activities, fetch one by id, or move one through a transition.

        ``transition`` is one of ``pause``, ``cancel`` or ``resume`` and is
        only applied together with ``activity_id``.
        """
        return await self.api_request(
            f"/activities/{activity_id or ''}",
            "PUT" if activity_id and transition else "GET",
            query=None if activity_id else params,
            json={"transition": transition} if transition else None,
        )

    async def authorizations(self, payload: Mapping[str, Any]) -> Any:
        return await self.api_request("/authorizations/", "POST", json=dict(payload))

    async def cash_prices(self, **params: Any) -> Any:
        """Cash prices for a CPT code in a zip code (``cpt_code``, ``zip_code``)."""
        return await self.api_request("/prices/cash", query=params)

    async def claims(self, payload: Mapping[str, Any]) -> Any:
        return await self.api_request("/claims/", "POST", json=dict(payload))

    async def claim_status(self, payload: Mapping[str, Any]) -> Any:
        return await self.api_request("/claims/status", "POST", json=dict(payload))

    async def claims_convert(self, x12_file_path: str | Path) -> Any:
        """Convert an X12 837 file into a claims request, mapping ICD-9 codes to ICD-10."""
        path = Path(x12_file_path)
        with path.open("rb") as handle:
            return await self.api_file_request("/claims/convert", handle, filename=path.name)

    async def eligibility(self, payload: Mapping[str, Any]) -> Any:
        return await self.api_request("/eligibility/", "POST", json=dict(payload))

    async def enrollment(self, payload: Mapping[str, Any]) -> Any:
        return await self.api_request("/enrollment/", "POST", json=dict(payload))

    async def files(
        self,
        source: IO[bytes] | bytes,
        filename: str | None = None,
        trading_partner_id: str | None = None,
    ) -> Any:
        """Submit a raw X12 file for processing."""
        data = {"trading_partner_id": trading_partner_id} if trading_partner_id else None
        return await self.api_file_request("/files/", source, filename=filename, data=data)

    async def insurance_prices(self, **params: Any) -> Any:
        return await self.api_request("/prices/insurance", query=params)

    async def payers(self) -> Any:
        return await self.api_request("/payers/")

    async def plans(self, **params: Any) -> Any:
        return await self.api_request("/plans/", query=params)

    async def providers(self, npi: str | None = None, **params: Any) -> Any:
        return await self.api_request(
            f"/providers/{npi or ''}",
            query=None if npi else params,
        )

    async def referrals(self, payload: Mapping[str, Any]) -> Any:
        return await self.api_request("/referrals/", "POST", json=dict(payload))

    async def trading_partners(self, trading_partner_id: str | None = None) -> Any:
        return await self.api_request(f"/tradingpartners/{trading_partner_id or ''}")
