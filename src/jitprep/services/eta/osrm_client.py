"""HTTP client for interacting with OSRM services."""

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


class OSRMClient:
    """Free-flow travel times from an OSRM ``/route`` endpoint.

    OSRM has no live traffic, so every estimate is reported with
    ``traffic_aware=False``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.base_url = self.base_url.rstrip("/")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout),
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
            transport=self._transport,
        )

    def travel_time(
        self,
        origin: tuple[float, float],
        destination: tuple[float, float],
    ) -> TravelEstimate:
        # OSRM route endpoint expects coordinates as "lon,lat;lon,lat"
        coordinate_str = ";".join(f"{lng},{lat}" for lat, lng in (origin, destination))
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"
        params = {"overview": "false", "steps": "false"}

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    break
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request timed out after {self.max_retries + 1} attempt(s): {e}")
                        raise ProviderTimeoutError(f"OSRM timed out after {self.timeout}s") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except httpx.HTTPStatusError as e:
                    # OSRM answers unroutable pairs with 400 and a JSON body
                    if e.response.status_code == 400:
                        data = _safe_json(e.response)
                        if data.get("code") in ("NoRoute", "NoSegment"):
                            raise NoRouteError(data.get("message", "No route found")) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderResponseError(f"OSRM returned HTTP {e.response.status_code}") from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.HTTPError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderResponseError(
                            f"Failed to connect to OSRM service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    raise ProviderResponseError("OSRM returned a non-JSON body") from e
        finally:
            client.close()

        return parse_route(data)

    def check_health(self) -> bool:
        try:
            self.travel_time((52.517037, 13.388860), (52.496891, 13.385983))
            return True
        except EtaProviderError:
            return False


def _safe_json(response: httpx.Response) -> dict:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def parse_route(data: dict) -> TravelEstimate:
    code = data.get("code") if isinstance(data, dict) else None
    if code in ("NoRoute", "NoSegment"):
        raise NoRouteError(data.get("message", "No route found"))
    if code != "Ok":
        message = data.get("message", "Unknown OSRM route error") if isinstance(data, dict) else "invalid body"
        raise ProviderResponseError(f"OSRM route request failed: {message}")
    try:
        duration = data["routes"][0]["duration"]
        return TravelEstimate(float(duration), traffic_aware=False, source="osrm")
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ProviderResponseError("OSRM response missing route duration.") from e
