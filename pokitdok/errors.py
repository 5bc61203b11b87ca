from __future__ import annotations

from typing import Any

import httpx


def friendly_error_message(status_code: int) -> str:
    if status_code == 401:
        return "Authentication failed. The PokitDok access token was rejected."
    if status_code == 403:
        return "You don't have permission to perform this action."
    if status_code == 404:
        return "The requested resource was not found on PokitDok."
    if status_code == 429:
        return "Rate limit exceeded. Please try again later."
    if status_code >= 500:
        return "PokitDok API is experiencing issues. Please try again later."
    return f"PokitDok API request failed with status {status_code}."


class PokitDokError(RuntimeError):
    """Base class for every error surfaced by the client."""


class TransportError(PokitDokError):
    """The request never produced a response (DNS, connect, timeout...)."""


class _ResponseError(PokitDokError):
    def __init__(
        self,
        message: str,
        *,
        body: Any = None,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.body = body
        self.response = response
        self.status_code = response.status_code if response is not None else None


class ApplicationError(_ResponseError):
    """Any non-200 answer that is not an authentication failure.

    ``body`` is the payload exactly as the platform sent it (parsed when it
    is a JSON object) and ``response`` the raw ``httpx.Response``.
    """

    def __init__(self, body: Any, response: httpx.Response) -> None:
        super().__init__(
            friendly_error_message(response.status_code),
            body=body,
            response=response,
        )


class AuthenticationError(_ResponseError):
    """A request kept failing authentication after the allowed refreshes."""


class RefreshError(_ResponseError):
    """The token endpoint did not hand out a new access token."""
