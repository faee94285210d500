"""Position-update decision engine.

Turns one position sample into at most one provider call, a slack
computation, and either the one-shot ``TRACKING -> PREPARING`` trigger or an
``eta_update`` notification. The engine keeps no state of its own; the only
serialization points are the repository's conditional writers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from ...config import Settings, settings
from ...models.domain import InvalidPositionError, Order, Position, as_utc, utcnow
from ...persistence.orders import OrderRepository
from ...schemas.tracking import EtaUpdateEvent, PrepStartedEvent
from ..eta.base import EtaProvider, EtaProviderError, TravelEstimate
from ..geospatial import estimate_travel_seconds, haversine_m
from ..notifications import NotificationChannel

logger = logging.getLogger(__name__)

PREP_STARTED = "prep_started"
ETA_UPDATE = "eta_update"


class DecisionOutcome(str, Enum):
    INVALID_POSITION = "invalid_position"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    PREFILTERED = "prefiltered"
    THROTTLED = "throttled"
    PROVIDER_FAILED = "provider_failed"
    TRIGGERED = "triggered"
    TRIGGERED_UNNOTIFIED = "triggered_unnotified"
    RACE_LOST = "race_lost"
    ETA_UPDATED = "eta_updated"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class EngineTunables:
    cooldown: timedelta = timedelta(seconds=60)
    slack_buffer_minutes: int = 1
    prefilter_max_speed_kmh: float | None = None
    degraded_eta_on_failure: bool = False
    fallback_speed_kmh: float = 40.0

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "EngineTunables":
        config = config or settings
        return cls(
            cooldown=timedelta(seconds=config.throttle_cooldown_seconds),
            slack_buffer_minutes=config.slack_buffer_minutes,
            prefilter_max_speed_kmh=config.prefilter_max_speed_kmh,
            degraded_eta_on_failure=config.degraded_eta_on_failure,
            fallback_speed_kmh=config.fallback_speed_kmh,
        )


def eta_minutes_from_seconds(duration_seconds: float) -> int:
    """Whole minutes, rounding halves up (270 s is 5 minutes, not 4)."""
    return math.floor(duration_seconds / 60.0 + 0.5)


def prep_started_message(eta_minutes: int, estimate: TravelEstimate) -> str:
    if estimate.traffic_aware:
        return f"Start cooking! Traffic-adjusted ETA: {eta_minutes} min."
    return f"Start cooking! ETA: {eta_minutes} min."


class DecisionEngine:
    def __init__(
        self,
        repository: OrderRepository,
        provider: EtaProvider,
        channel: NotificationChannel,
        tunables: EngineTunables | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repository = repository
        self.provider = provider
        self.channel = channel
        self.tunables = tunables or EngineTunables()
        self.clock = clock

    def process_update(
        self,
        order_id: str,
        position: Position | tuple[float, float],
        received_at: datetime | None = None,
    ) -> DecisionOutcome:
        """Handle one position sample. Never raises."""
        try:
            if not isinstance(position, Position):
                position = Position(*position)
        except (InvalidPositionError, TypeError) as e:
            logger.warning(f"Rejected position for order {order_id}: {e}")
            return DecisionOutcome.INVALID_POSITION

        if received_at is None:
            received_at = self.clock()
        elif received_at.tzinfo is None:
            logger.debug(f"Order {order_id}: naive sample timestamp {received_at.isoformat()} taken as UTC")
        try:
            return self._process(order_id, position, as_utc(received_at))
        except Exception:
            logger.exception(f"Unexpected error while processing position for order {order_id}")
            return DecisionOutcome.ERROR

    def _process(self, order_id: str, position: Position, received_at: datetime) -> DecisionOutcome:
        order = self.repository.get(order_id)
        if order is None:
            logger.debug(f"Ignoring sample for unknown order {order_id}")
            return DecisionOutcome.NOT_FOUND
        if not order.is_tracking:
            logger.debug(f"Ignoring sample for order {order_id} in status {order.status.value}")
            return DecisionOutcome.INACTIVE

        if self._too_far_to_matter(order, position):
            logger.debug(f"Order {order_id}: sample too far from shop to trigger, provider call skipped")
            return DecisionOutcome.PREFILTERED

        if not self.repository.claim_throttle_slot(order_id, received_at, self.tunables.cooldown):
            logger.debug(f"Order {order_id}: throttled, cooldown not elapsed")
            return DecisionOutcome.THROTTLED

        # The slot is consumed from here on; a failing provider waits a full cooldown.
        origin = (position.lat, position.lng)
        destination = (order.shop_location.lat, order.shop_location.lng)
        try:
            estimate = self.provider.travel_time(origin, destination)
        except EtaProviderError as e:
            logger.warning(f"ETA provider failed for order {order_id}, skipping this update: {e}")
            if self.tunables.degraded_eta_on_failure:
                self._publish_degraded_estimate(order, position)
            return DecisionOutcome.PROVIDER_FAILED

        eta_minutes = eta_minutes_from_seconds(estimate.duration_seconds)
        slack = eta_minutes - order.prep_time
        logger.info(
            f"Order {order_id}: {estimate.source} ETA {eta_minutes} min | prep {order.prep_time} min | slack {slack} min"
        )

        if slack <= self.tunables.slack_buffer_minutes:
            if not self.repository.trigger_preparing(order_id):
                logger.debug(f"Order {order_id}: preparation already triggered by a concurrent sample")
                return DecisionOutcome.RACE_LOST
            event = PrepStartedEvent(order_id=order_id, message=prep_started_message(eta_minutes, estimate))
            try:
                self.channel.publish(order_id, PREP_STARTED, event.model_dump(by_alias=True))
            except Exception:
                logger.exception(
                    f"Order {order_id} moved to PREPARING but the prep_started notification was not delivered"
                )
                return DecisionOutcome.TRIGGERED_UNNOTIFIED
            logger.info(f"Order {order_id}: preparation triggered (ETA {eta_minutes} min)")
            return DecisionOutcome.TRIGGERED

        event = EtaUpdateEvent(order_id=order_id, eta=eta_minutes, slack=slack)
        self.channel.publish(order_id, ETA_UPDATE, event.model_dump(by_alias=True))
        return DecisionOutcome.ETA_UPDATED

    def _too_far_to_matter(self, order: Order, position: Position) -> bool:
        """True when even a straight-line trip at the cap speed leaves slack above the buffer."""
        max_speed = self.tunables.prefilter_max_speed_kmh
        if max_speed is None:
            return False
        distance = haversine_m(position.lat, position.lng, order.shop_location.lat, order.shop_location.lng)
        lower_bound = eta_minutes_from_seconds(estimate_travel_seconds(distance, max_speed))
        return lower_bound - order.prep_time > self.tunables.slack_buffer_minutes

    def _publish_degraded_estimate(self, order: Order, position: Position) -> None:
        distance = haversine_m(position.lat, position.lng, order.shop_location.lat, order.shop_location.lng)
        eta_minutes = eta_minutes_from_seconds(estimate_travel_seconds(distance, self.tunables.fallback_speed_kmh))
        event = EtaUpdateEvent(
            order_id=order.id,
            eta=eta_minutes,
            slack=eta_minutes - order.prep_time,
            degraded=True,
        )
        self.channel.publish(order.id, ETA_UPDATE, event.model_dump(by_alias=True))
