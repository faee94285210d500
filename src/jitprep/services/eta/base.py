"""Provider-independent contract for live travel-time lookups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class EtaProviderError(Exception):
    """Base class for provider failures. Always transient from the engine's view."""


class ProviderTimeoutError(EtaProviderError):
    """The provider did not answer within the configured timeout."""


class ProviderResponseError(EtaProviderError):
    """The provider answered with an error status or a malformed body."""


class NoRouteError(EtaProviderError):
    """The provider could not find a route between the two points."""


@dataclass(frozen=True, slots=True)
class TravelEstimate:
    duration_seconds: float
    traffic_aware: bool
    source: str


class EtaProvider(Protocol):
    """Anything that can answer "how long from origin to destination, right now"."""

    def travel_time(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
    ) -> TravelEstimate:
        """Return the live travel duration between two (lat, lng) points.

        Raises:
            EtaProviderError: on timeout, malformed response, or missing route.
        """
        ...

    def check_health(self) -> bool:
        ...
