from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .constants import DEFAULT_API_VERSION, HTTP_METHODS


class ReplayOrder(str, Enum):
    LIFO = "lifo"
    FIFO = "fifo"


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if mapping is None:
        return None
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class RequestDescriptor:
    path: str
    method: str = "GET"
    query: Mapping[str, Any] | None = None
    json: Any = None
    form_data: Mapping[str, Any] | None = None
    files: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path:
            raise ValueError("RequestDescriptor.path must be a non-empty string.")
        method = (self.method or "GET").upper()
        if method.lower() not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "query", _freeze(self.query))
        object.__setattr__(self, "form_data", _freeze(self.form_data))
        object.__setattr__(self, "files", _freeze(self.files))

    def query_params(self) -> dict[str, Any] | None:
        if not self.query:
            return None
        return {key: value for key, value in self.query.items() if value is not None}


@dataclass
class RetryQueueEntry:
    descriptor: RequestDescriptor
    completion: asyncio.Future
    auth_attempts: int = 0


@dataclass
class Session:
    client_id: str
    client_secret: str
    api_version: str = DEFAULT_API_VERSION
    access_token: str | None = None
    refresh_in_flight: bool = False
    retry_queue: list[RetryQueueEntry] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"Session(client_id={self.client_id!r}, api_version={self.api_version!r}, "
            f"has_token={self.access_token is not None}, "
            f"refresh_in_flight={self.refresh_in_flight}, queued={len(self.retry_queue)})"
        )
