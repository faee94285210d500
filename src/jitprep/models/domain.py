"""Domain models for tracked orders and position samples."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class InvalidOrderError(ValueError):
    """Raised when an order would violate one of its invariants."""


class InvalidPositionError(ValueError):
    """Raised for coordinates outside the valid latitude/longitude range."""


class StatusTransitionError(ValueError):
    """Raised when a status change would move an order backwards or skip the engine."""


class OrderStatus(str, Enum):
    TRACKING = "TRACKING"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = (
    OrderStatus.TRACKING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.COMPLETED,
)


def can_advance(current: OrderStatus, target: OrderStatus) -> bool:
    """Return whether ``target`` is strictly ahead of ``current``."""
    return target.rank > current.rank


def validate_coordinates(lat: float, lng: float) -> None:
    """Raise ``InvalidPositionError`` unless the pair is a finite, in-range coordinate."""
    try:
        lat_value = float(lat)
        lng_value = float(lng)
    except (TypeError, ValueError) as exc:
        raise InvalidPositionError(f"Coordinates must be numeric, got ({lat!r}, {lng!r})") from exc
    if not (math.isfinite(lat_value) and math.isfinite(lng_value)):
        raise InvalidPositionError(f"Coordinates must be finite, got ({lat}, {lng})")
    if not -90.0 <= lat_value <= 90.0:
        raise InvalidPositionError(f"Latitude {lat} is outside [-90, 90]")
    if not -180.0 <= lng_value <= 180.0:
        raise InvalidPositionError(f"Longitude {lng} is outside [-180, 180]")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime; naive values are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class Position:
    """A single position report from the traveling party."""

    lat: float
    lng: float
    speed: Optional[float] = None

    def __post_init__(self) -> None:
        validate_coordinates(self.lat, self.lng)


@dataclass(frozen=True, slots=True)
class ShopLocation:
    """The stationary destination where the order is cooked and collected."""

    lat: float
    lng: float
    address: Optional[str] = None

    def __post_init__(self) -> None:
        validate_coordinates(self.lat, self.lng)


@dataclass(frozen=True, slots=True)
class Order:
    """Snapshot of a tracked order.

    Instances are immutable; repositories hand out fresh snapshots after every
    conditional write so callers never mutate shared state directly.
    """

    id: str
    customer_name: str
    shop_location: ShopLocation
    prep_time: int
    status: OrderStatus = OrderStatus.TRACKING
    last_provider_check: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidOrderError("Order id is required.")
        if not self.customer_name or not self.customer_name.strip():
            raise InvalidOrderError("Customer name is required.")
        if isinstance(self.prep_time, bool) or not isinstance(self.prep_time, int) or self.prep_time <= 0:
            raise InvalidOrderError(f"Prep time must be a positive whole number of minutes, got {self.prep_time!r}")
        if not isinstance(self.status, OrderStatus):
            object.__setattr__(self, "status", OrderStatus(self.status))
        if self.last_provider_check is not None:
            object.__setattr__(self, "last_provider_check", as_utc(self.last_provider_check))
        object.__setattr__(self, "created_at", as_utc(self.created_at))

    @property
    def is_tracking(self) -> bool:
        return self.status is OrderStatus.TRACKING
