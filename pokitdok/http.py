from __future__ import annotations

import json
from typing import Any

import httpx

from .constants import DEFAULT_TIMEOUT, LOGGER


def decode_body(text: str) -> Any:
    """Parse payloads that look like a JSON object, pass anything else through."""
    if not text.startswith("{"):
        return text
    try:
        return json.loads(text)
    except ValueError:
        return text


def truncate(text: str, limit: int = 1000) -> str:
    if len(text) > limit:
        return text[:limit] + "...<truncated>"
    return text


def has_meta(body: Any) -> bool:
    # An empty object or list still counts as an envelope.
    if not isinstance(body, dict) or "meta" not in body:
        return False
    meta = body["meta"]
    return meta is not None and meta is not False and meta != 0 and meta != ""


def is_auth_failure(status_code: int, body: Any) -> bool:
    # A 400 without the metadata envelope is how the platform reports a bad token.
    return status_code == 401 or (status_code == 400 and not has_meta(body))


async def log_request(request: httpx.Request) -> None:
    LOGGER.info("PokitDok API request %s %s", request.method, request.url)


async def log_response(response: httpx.Response) -> None:
    LOGGER.info(
        "PokitDok API response %s %s -> %s",
        response.request.method,
        response.request.url,
        response.status_code,
    )
    if response.status_code >= 400:
        body = await response.aread()
        text = body.decode("utf-8", errors="replace")
        LOGGER.warning("PokitDok API error body: %s", truncate(text))


def build_http_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
    debug: bool = False,
) -> httpx.AsyncClient:
    event_hooks: dict[str, list] = {"request": [], "response": []}
    if debug:
        event_hooks["request"].append(log_request)
        event_hooks["response"].append(log_response)

    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        event_hooks=event_hooks,
    )
