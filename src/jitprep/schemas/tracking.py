"""Position ingress and notification egress schemas."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class LocationUpdate(BaseModel):
    """``update_location`` payload sent by the traveling party."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    order_id: str = Field(..., alias="orderId", min_length=1)
    latitude: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False)
    speed: Optional[float] = Field(default=None, description="Meters per second, as reported by the device.")


class LocationSample(BaseModel):
    """Body for the HTTP ingress, where the order id comes from the path."""

    latitude: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False)
    speed: Optional[float] = None


class SocketMessage(BaseModel):
    event: Literal["update_location"]
    data: dict


class PrepStartedEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId")
    message: str


class EtaUpdateEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId")
    eta: int = Field(..., description="Minutes until arrival at the shop.")
    slack: int = Field(..., description="ETA minus prep time, in minutes.")
    degraded: bool = Field(default=False, description="True when estimated without the routing provider.")


class ProcessResult(BaseModel):
    order_id: str
    outcome: str
