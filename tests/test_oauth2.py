import time

import httpx
import pytest

from pokitdok.errors import PokitDokError
from pokitdok.oauth2 import (
    TokenRequestError,
    TokenResponse,
    build_basic_auth_header,
    fetch_client_credentials_token,
    token_url,
)

TOKEN_URL = "https://platform.pokitdok.com/oauth2/token"


def test_basic_auth_header() -> None:
    assert build_basic_auth_header("id", "secret") == "Basic aWQ6c2VjcmV0"


def test_token_url_strips_trailing_slash() -> None:
    assert token_url("https://platform.pokitdok.com/") == TOKEN_URL


@pytest.mark.asyncio
async def test_fetch_token_success(httpx_mock) -> None:
    httpx_mock.add_response(
        url=TOKEN_URL,
        method="POST",
        json={"access_token": "access-1", "token_type": "bearer", "expires_in": 3600},
    )

    token = await fetch_client_credentials_token("id", "secret")

    assert token.access_token == "access-1"
    assert token.token_type == "bearer"
    assert token.expires_in == 3600
    assert token.expires_at > time.time()

    request = httpx_mock.get_request()
    assert request.headers["authorization"] == "Basic aWQ6c2VjcmV0"
    assert request.headers["user-agent"].startswith("pokitdok-python@")
    assert request.content == b"grant_type=client_credentials"


@pytest.mark.asyncio
async def test_fetch_token_with_shared_client(httpx_mock) -> None:
    httpx_mock.add_response(url="https://sandbox.example.test/oauth2/token", json={"access_token": "a"})

    async with httpx.AsyncClient() as client:
        token = await fetch_client_credentials_token(
            "id", "secret", base_url="https://sandbox.example.test", client=client
        )
        assert client.is_closed is False

    assert token.access_token == "a"
    assert token.expires_at is None


@pytest.mark.asyncio
async def test_fetch_token_rejected(httpx_mock) -> None:
    httpx_mock.add_response(
        url=TOKEN_URL,
        method="POST",
        status_code=401,
        json={"error": "invalid_client"},
    )

    with pytest.raises(TokenRequestError, match="Token request failed") as excinfo:
        await fetch_client_credentials_token("id", "bad-secret")

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == {"error": "invalid_client"}


@pytest.mark.asyncio
async def test_fetch_token_invalid_json(httpx_mock) -> None:
    httpx_mock.add_response(url=TOKEN_URL, method="POST", text="not json")

    with pytest.raises(TokenRequestError, match="not valid JSON"):
        await fetch_client_credentials_token("id", "secret")


def test_token_payload_requires_access_token() -> None:
    with pytest.raises(TokenRequestError, match="missing access_token"):
        TokenResponse.from_payload({"token_type": "bearer"})


def test_token_payload_rejects_bad_expiry() -> None:
    with pytest.raises(TokenRequestError, match="expires_in"):
        TokenResponse.from_payload({"access_token": "a", "expires_in": "soon"})


@pytest.mark.asyncio
async def test_fetch_token_error_message_is_truncated(httpx_mock) -> None:
    httpx_mock.add_response(url=TOKEN_URL, method="POST", status_code=503, text="e" * 5000)

    with pytest.raises(TokenRequestError) as excinfo:
        await fetch_client_credentials_token("id", "secret")

    assert isinstance(excinfo.value, PokitDokError)
    assert str(excinfo.value).endswith("...<truncated>")
    assert len(str(excinfo.value)) < 1100
    assert excinfo.value.body == "e" * 5000
