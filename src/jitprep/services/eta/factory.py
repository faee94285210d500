"""Factory for ETA providers based on configuration."""

from __future__ import annotations

from typing import Any

from ...config import settings
from .base import EtaProvider
from .google_client import GoogleDistanceMatrixClient
from .osrm_client import OSRMClient


def get_provider(name: str | None = None, **kwargs: Any) -> EtaProvider:
    match name or settings.eta_provider:
        case "google":
            return GoogleDistanceMatrixClient(**kwargs)
        case "osrm":
            return OSRMClient(**kwargs)
        case other:
            raise ValueError(f"Unknown ETA provider '{other}'.")
