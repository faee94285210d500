"""Live travel-time providers."""

from .base import (
    EtaProvider,
    EtaProviderError,
    NoRouteError,
    ProviderResponseError,
    ProviderTimeoutError,
    TravelEstimate,
)
from .factory import get_provider

__all__ = [
    "EtaProvider",
    "EtaProviderError",
    "NoRouteError",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "TravelEstimate",
    "get_provider",
]
