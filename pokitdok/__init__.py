from .client import PokitDok
from .constants import APP_VERSION, LOGGER
from .errors import (
    ApplicationError,
    AuthenticationError,
    PokitDokError,
    RefreshError,
    TransportError,
)
from .models import ReplayOrder, RequestDescriptor, RetryQueueEntry, Session
from .pipeline import AuthenticatedPipeline

__version__ = APP_VERSION

__all__ = [
    "APP_VERSION",
    "LOGGER",
    "ApplicationError",
    "AuthenticatedPipeline",
    "AuthenticationError",
    "PokitDok",
    "PokitDokError",
    "RefreshError",
    "ReplayOrder",
    "RequestDescriptor",
    "RetryQueueEntry",
    "Session",
    "TransportError",
]
