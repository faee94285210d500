from datetime import datetime, timedelta, timezone

import pytest

from jitprep.models.domain import (
    InvalidOrderError,
    InvalidPositionError,
    Order,
    OrderStatus,
    Position,
    ShopLocation,
    as_utc,
    can_advance,
)
from jitprep.services.geospatial import EARTH_RADIUS_M, estimate_travel_seconds, haversine_m

SHOP = ShopLocation(lat=21.5, lng=39.2)


@pytest.mark.parametrize("prep_time", [0, -5, 2.5, True])
def test_order_requires_positive_whole_prep_time(prep_time):
    with pytest.raises(InvalidOrderError):
        Order(id="o1", customer_name="Sam", shop_location=SHOP, prep_time=prep_time)


def test_order_requires_customer_name():
    with pytest.raises(InvalidOrderError):
        Order(id="o1", customer_name="  ", shop_location=SHOP, prep_time=5)


def test_order_coerces_status_strings():
    order = Order(id="o1", customer_name="Sam", shop_location=SHOP, prep_time=5, status="PREPARING")
    assert order.status is OrderStatus.PREPARING
    assert not order.is_tracking


def test_order_timestamps_are_kept_in_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    order = Order(
        id="o1",
        customer_name="Sam",
        shop_location=SHOP,
        prep_time=5,
        last_provider_check=naive,
        created_at=datetime(2026, 1, 1, 15, 0, tzinfo=timezone(timedelta(hours=3))),
    )

    assert order.last_provider_check == naive.replace(tzinfo=timezone.utc)
    assert order.last_provider_check.tzinfo is timezone.utc
    assert order.created_at == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(naive) - order.created_at == timedelta(0)


@pytest.mark.parametrize("coords", [(91.0, 0.0), (-90.5, 0.0), (0.0, 180.5), (float("inf"), 0.0), ("north", 1.0)])
def test_out_of_range_coordinates_are_rejected(coords):
    with pytest.raises(InvalidPositionError):
        Position(*coords)
    with pytest.raises(InvalidPositionError):
        ShopLocation(*coords)


def test_status_only_moves_forward():
    assert can_advance(OrderStatus.TRACKING, OrderStatus.PREPARING)
    assert can_advance(OrderStatus.PREPARING, OrderStatus.COMPLETED)
    assert not can_advance(OrderStatus.READY, OrderStatus.PREPARING)
    assert not can_advance(OrderStatus.READY, OrderStatus.READY)


def test_haversine_one_degree_of_latitude():
    expected = EARTH_RADIUS_M * 3.141592653589793 / 180
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-9)
    assert haversine_m(21.5, 39.2, 21.5, 39.2) == 0.0


def test_estimate_travel_seconds_at_constant_speed():
    assert estimate_travel_seconds(1000.0, 36.0) == pytest.approx(100.0)
    with pytest.raises(ValueError):
        estimate_travel_seconds(1000.0, 0.0)
