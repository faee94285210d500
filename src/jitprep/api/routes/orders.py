"""Order endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...models.domain import OrderStatus, Position, ShopLocation, StatusTransitionError
from ...persistence.orders import OrderNotFoundError, OrderRepository
from ...schemas.orders import OrderCreateRequest, OrderResponse, StatusChangeRequest
from ...schemas.tracking import LocationSample, ProcessResult
from ...services.engine import DecisionEngine
from ..dependencies import get_engine, get_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@router.post("/create", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreateRequest,
    repository: OrderRepository = Depends(get_repository),
) -> OrderResponse:
    try:
        order = repository.create(
            customer_name=payload.customer_name,
            shop_location=ShopLocation(
                lat=payload.shop_location.lat,
                lng=payload.shop_location.lng,
                address=payload.shop_location.address,
            ),
            prep_time=payload.prep_time,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logger.info(f"Created order {order.id} for {order.customer_name} (prep {order.prep_time} min)")
    return OrderResponse.from_domain(order)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, repository: OrderRepository = Depends(get_repository)) -> OrderResponse:
    order = repository.get(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order {order_id} not found")
    return OrderResponse.from_domain(order)


@router.post("/{order_id}/location", response_model=ProcessResult, status_code=status.HTTP_202_ACCEPTED)
def update_location(
    order_id: str,
    payload: LocationSample,
    engine: DecisionEngine = Depends(get_engine),
) -> ProcessResult:
    """HTTP ingress for ``update_location``; equivalent to the WebSocket frame."""
    outcome = engine.process_update(order_id, Position(payload.latitude, payload.longitude, payload.speed))
    return ProcessResult(order_id=order_id, outcome=outcome.value)


@router.post("/{order_id}/status", response_model=OrderResponse)
def change_status(
    order_id: str,
    payload: StatusChangeRequest,
    repository: OrderRepository = Depends(get_repository),
) -> OrderResponse:
    """Kitchen/pickup transitions after preparation has started."""
    try:
        order = repository.advance_status(order_id, OrderStatus(payload.status))
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order {order_id} not found") from exc
    except StatusTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    logger.info(f"Order {order_id} moved to {order.status.value}")
    return OrderResponse.from_domain(order)
