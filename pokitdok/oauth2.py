from __future__ import annotations

import base64
import time
from dataclasses import dataclass

import httpx

from .constants import DEFAULT_BASE_URL, TOKEN_PATH, USER_AGENT
from .errors import _ResponseError
from .http import decode_body, truncate


class TokenRequestError(_ResponseError):
    """The token endpoint call failed or returned an unusable payload."""


@dataclass
class TokenResponse:
    access_token: str
    token_type: str
    expires_in: int | None
    expires_at: float | None

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenResponse":
        if not isinstance(payload, dict):
            raise TokenRequestError("Token response must be a JSON object.")

        access_token = payload.get("access_token")
        token_type = payload.get("token_type", "bearer")
        expires_in = payload.get("expires_in")

        if not isinstance(access_token, str) or not access_token:
            raise TokenRequestError("Token response missing access_token.")
        if expires_in is not None and not isinstance(expires_in, int):
            raise TokenRequestError("Token response expires_in must be an integer.")

        return cls(
            access_token=access_token,
            token_type=token_type,
            expires_in=expires_in,
            expires_at=time.time() + expires_in if expires_in is not None else None,
        )


def build_basic_auth_header(client_id: str, client_secret: str) -> str:
    credentials = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(credentials).decode("ascii")


def token_url(base_url: str = DEFAULT_BASE_URL) -> str:
    return base_url.rstrip("/") + TOKEN_PATH


async def fetch_client_credentials_token(
    client_id: str,
    client_secret: str,
    *,
    base_url: str = DEFAULT_BASE_URL,
    client: httpx.AsyncClient | None = None,
) -> TokenResponse:
    """Run the OAuth2 client-credentials grant against the platform.

    Any answer other than a 200 raises ``TokenRequestError`` carrying the
    decoded body and the response. Transport failures propagate as
    ``httpx.TransportError``.
    """
    own_client = client is None
    http_client = client or httpx.AsyncClient()

    try:
        response = await http_client.post(
            token_url(base_url),
            headers={
                "Authorization": build_basic_auth_header(client_id, client_secret),
                "User-Agent": USER_AGENT,
            },
            data={"grant_type": "client_credentials"},
        )
    finally:
        if own_client:
            await http_client.aclose()

    if response.status_code != 200:
        raise TokenRequestError(
            f"Token request failed with status {response.status_code}: {truncate(response.text)}",
            body=decode_body(response.text),
            response=response,
        )

    try:
        payload = response.json()
    except ValueError as error:
        raise TokenRequestError(
            "Token response is not valid JSON.", body=response.text, response=response
        ) from error
    return TokenResponse.from_payload(payload)
