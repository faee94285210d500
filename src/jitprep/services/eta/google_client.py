"""HTTP client for the Google Maps Distance Matrix API."""

from __future__ import annotations

import logging
import time

import httpx

from ...config import settings
from .base import (
    EtaProviderError,
    NoRouteError,
    ProviderResponseError,
    ProviderTimeoutError,
    TravelEstimate,
)

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_PATH = "/maps/api/distancematrix/json"


class GoogleDistanceMatrixClient:
    """Traffic-aware single origin/destination lookups.

    ``departure_time=now`` makes Google include ``duration_in_traffic`` when it
    has live data; otherwise the free-flow ``duration`` is used.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        mode: str = "driving",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = (base_url or settings.google_maps_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        self.mode = mode
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self._transport)

    def _request(self, params: dict) -> dict:
        url = f"{self.base_url}{DISTANCE_MATRIX_PATH}"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    return response.json()
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderTimeoutError(f"Distance Matrix timed out after {self.timeout}s") from e
                    logger.debug(f"Distance Matrix timeout, retrying (attempt {attempt}/{self.max_retries})")
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.HTTPStatusError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderResponseError(
                            f"Distance Matrix returned HTTP {e.response.status_code}"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.HTTPError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderResponseError(f"Distance Matrix request failed: {e}") from e
                    time.sleep(self.backoff_seconds * attempt)
                except ValueError as e:
                    raise ProviderResponseError("Distance Matrix returned a non-JSON body") from e
        finally:
            client.close()

    def travel_time(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
    ) -> TravelEstimate:
        params = {
            "origins": f"{origin[0]},{origin[1]}",
            "destinations": f"{destination[0]},{destination[1]}",
            "mode": self.mode,
            "departure_time": "now",
            "key": self.api_key,
        }
        data = self._request(params)
        return parse_distance_matrix(data)

    def check_health(self) -> bool:
        """Issue a minimal lookup; any provider failure means unhealthy."""
        try:
            self.travel_time((52.517037, 13.388860), (52.496891, 13.385983))
            return True
        except EtaProviderError:
            return False


def parse_distance_matrix(data: dict) -> TravelEstimate:
    """Extract the single-element duration from a Distance Matrix response."""
    status = data.get("status") if isinstance(data, dict) else None
    if status != "OK":
        message = data.get("error_message", status) if isinstance(data, dict) else "invalid body"
        raise ProviderResponseError(f"Distance Matrix status {status}: {message}")
    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise ProviderResponseError("Distance Matrix response missing rows/elements.") from e

    element_status = element.get("status")
    if element_status in ("NOT_FOUND", "ZERO_RESULTS"):
        raise NoRouteError(f"No route available ({element_status}).")
    if element_status != "OK":
        raise ProviderResponseError(f"Distance Matrix element status {element_status}")

    in_traffic = element.get("duration_in_traffic")
    try:
        if in_traffic and in_traffic.get("value") is not None:
            return TravelEstimate(float(in_traffic["value"]), traffic_aware=True, source="google")
        return TravelEstimate(float(element["duration"]["value"]), traffic_aware=False, source="google")
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderResponseError("Distance Matrix element missing duration.") from e
