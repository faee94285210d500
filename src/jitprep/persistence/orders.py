"""Order persistence with atomic conditional writers.

The two writers the decision engine relies on, ``claim_throttle_slot`` and
``trigger_preparing``, are compare-and-set operations: each is a single
all-or-nothing update, so concurrent samples for the same order can never both
win.
"""

from __future__ import annotations

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import (
    Order,
    OrderStatus,
    ShopLocation,
    StatusTransitionError,
    as_utc,
    can_advance,
    utcnow,
)

logger = logging.getLogger(__name__)

# Statuses the kitchen/pickup side may set. PREPARING belongs to the engine.
KITCHEN_STATUSES = frozenset({OrderStatus.READY, OrderStatus.COMPLETED})


class OrderNotFoundError(LookupError):
    """Raised by writers that require an existing order."""


def _check_kitchen_transition(order: Order, target: OrderStatus) -> None:
    if target not in KITCHEN_STATUSES:
        raise StatusTransitionError(f"Status {target.value} cannot be set manually.")
    if order.status is OrderStatus.TRACKING:
        raise StatusTransitionError("Order is still tracking; preparation has not started.")
    if not can_advance(order.status, target):
        raise StatusTransitionError(
            f"Cannot move order {order.id} from {order.status.value} to {target.value}."
        )


def _slot_available(order: Order, now: datetime, cooldown: timedelta) -> bool:
    if not order.is_tracking:
        return False
    return order.last_provider_check is None or as_utc(now) - order.last_provider_check >= cooldown


class OrderRepository(ABC):
    """Storage contract for orders."""

    @abstractmethod
    def get(self, order_id: str) -> Order | None:
        raise NotImplementedError

    @abstractmethod
    def create(self, customer_name: str, shop_location: ShopLocation, prep_time: int) -> Order:
        raise NotImplementedError

    @abstractmethod
    def claim_throttle_slot(self, order_id: str, now: datetime, cooldown: timedelta) -> bool:
        """Set ``last_provider_check = now`` iff the order is tracking and its cooldown elapsed."""
        raise NotImplementedError

    @abstractmethod
    def trigger_preparing(self, order_id: str) -> bool:
        """Move TRACKING to PREPARING. Returns False if another caller already did."""
        raise NotImplementedError

    @abstractmethod
    def advance_status(self, order_id: str, target: OrderStatus) -> Order:
        """Apply a forward-only kitchen/pickup transition (READY, COMPLETED)."""
        raise NotImplementedError

    def check_health(self) -> bool:
        return True


class InMemoryOrderRepository(OrderRepository):
    """Process-local store. Each conditional writer runs in one critical section."""

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._lock = threading.Lock()

    def add(self, order: Order) -> Order:
        with self._lock:
            self._orders[order.id] = order
        return order

    def get(self, order_id: str) -> Order | None:
        with self._lock:
            return self._orders.get(order_id)

    def create(self, customer_name: str, shop_location: ShopLocation, prep_time: int) -> Order:
        order = Order(
            id=uuid.uuid4().hex,
            customer_name=customer_name,
            shop_location=shop_location,
            prep_time=prep_time,
        )
        return self.add(order)

    def claim_throttle_slot(self, order_id: str, now: datetime, cooldown: timedelta) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None or not _slot_available(order, now, cooldown):
                return False
            self._orders[order_id] = replace(order, last_provider_check=now)
            return True

    def trigger_preparing(self, order_id: str) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None or not order.is_tracking:
                return False
            self._orders[order_id] = replace(order, status=OrderStatus.PREPARING)
            return True

    def advance_status(self, order_id: str, target: OrderStatus) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError(order_id)
            _check_kitchen_transition(order, target)
            updated = replace(order, status=target)
            self._orders[order_id] = updated
            return updated


def _to_timestamp(value: datetime) -> str:
    """Render a datetime as a UTC ISO string safe for PostgREST filters."""
    return as_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    return as_utc(parsed)


def row_to_order(row: dict) -> Order:
    return Order(
        id=str(row["id"]),
        customer_name=row["customer_name"],
        shop_location=ShopLocation(
            lat=float(row["shop_lat"]),
            lng=float(row["shop_lng"]),
            address=row.get("shop_address"),
        ),
        prep_time=int(row["prep_time"]),
        status=OrderStatus(row["status"]),
        last_provider_check=_parse_timestamp(row.get("last_provider_check")),
        created_at=_parse_timestamp(row.get("created_at")) or utcnow(),
    )


def order_to_row(order: Order) -> dict:
    return {
        "id": order.id,
        "customer_name": order.customer_name,
        "shop_lat": order.shop_location.lat,
        "shop_lng": order.shop_location.lng,
        "shop_address": order.shop_location.address,
        "prep_time": order.prep_time,
        "status": order.status.value,
        "last_provider_check": _to_timestamp(order.last_provider_check) if order.last_provider_check else None,
        "created_at": _to_timestamp(order.created_at),
    }


class SupabaseOrderRepository(OrderRepository):
    """Orders stored in a Supabase (PostgREST) table.

    Conditional writers are single filtered ``UPDATE`` statements; PostgreSQL
    evaluates the filter and the write under one row lock, and the returned
    rows tell us whether this caller won.
    """

    def __init__(self, client: Any, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.orders_table

    def _query(self):
        return self.client.table(self.table)

    def get(self, order_id: str) -> Order | None:
        response = self._query().select("*").eq("id", order_id).limit(1).execute()
        rows = response.data or []
        if not rows:
            return None
        return row_to_order(rows[0])

    def create(self, customer_name: str, shop_location: ShopLocation, prep_time: int) -> Order:
        order = Order(
            id=uuid.uuid4().hex,
            customer_name=customer_name,
            shop_location=shop_location,
            prep_time=prep_time,
        )
        response = self._query().insert(order_to_row(order)).execute()
        rows = response.data or []
        return row_to_order(rows[0]) if rows else order

    def claim_throttle_slot(self, order_id: str, now: datetime, cooldown: timedelta) -> bool:
        threshold = _to_timestamp(now - cooldown)
        response = (
            self._query()
            .update({"last_provider_check": _to_timestamp(now)})
            .eq("id", order_id)
            .eq("status", OrderStatus.TRACKING.value)
            .or_(f"last_provider_check.is.null,last_provider_check.lte.{threshold}")
            .execute()
        )
        return bool(response.data)

    def trigger_preparing(self, order_id: str) -> bool:
        response = (
            self._query()
            .update({"status": OrderStatus.PREPARING.value})
            .eq("id", order_id)
            .eq("status", OrderStatus.TRACKING.value)
            .execute()
        )
        return bool(response.data)

    def advance_status(self, order_id: str, target: OrderStatus) -> Order:
        order = self.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        _check_kitchen_transition(order, target)
        response = (
            self._query()
            .update({"status": target.value})
            .eq("id", order_id)
            .eq("status", order.status.value)
            .execute()
        )
        rows = response.data or []
        if not rows:
            raise StatusTransitionError(f"Order {order_id} changed status concurrently; retry.")
        return row_to_order(rows[0])

    def check_health(self) -> bool:
        try:
            self._query().select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.warning(f"Orders table check failed: {e}")
            return False


def get_order_repository() -> OrderRepository:
    """Return the Supabase repository when configured, otherwise an in-memory store."""
    client = get_supabase_client()
    if client is None:
        logger.info("Supabase not configured - orders are kept in memory only")
        return InMemoryOrderRepository()
    return SupabaseOrderRepository(client)
