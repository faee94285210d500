"""Order request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import Order


class ShopLocationModel(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False)
    lng: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False)
    address: Optional[str] = None


class OrderCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_name: str = Field(..., alias="customerName", min_length=1)
    shop_location: ShopLocationModel = Field(..., alias="shopLocation")
    prep_time: int = Field(..., alias="prepTime", gt=0, description="Minutes the kitchen needs.")


class StatusChangeRequest(BaseModel):
    status: Literal["READY", "COMPLETED"]


class OrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer_name: str = Field(..., alias="customerName")
    shop_location: ShopLocationModel = Field(..., alias="shopLocation")
    prep_time: int = Field(..., alias="prepTime")
    status: str
    last_provider_check: Optional[datetime] = Field(default=None, alias="lastProviderCheck")
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_domain(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            customer_name=order.customer_name,
            shop_location=ShopLocationModel(
                lat=order.shop_location.lat,
                lng=order.shop_location.lng,
                address=order.shop_location.address,
            ),
            prep_time=order.prep_time,
            status=order.status.value,
            last_provider_check=order.last_provider_check,
            created_at=order.created_at,
        )
