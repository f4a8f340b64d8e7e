"""
Entities shared by every layer: users, orders (with embedded items), ratings,
and the closed enumerations their fields are validated against.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    CUSTOMER = "customer"
    DELIVERY = "delivery"
    BUSINESS = "business"


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PICKED_UP = "picked_up"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class GarmentKind(str, Enum):
    SHIRT = "shirt"
    PANTS = "pants"
    DRESS = "dress"
    SUIT = "suit"
    COAT = "coat"
    BEDDING = "bedding"
    CURTAINS = "curtains"


class Actor(BaseModel):
    """Authenticated caller, as handed over by the auth collaborator."""
    model_config = ConfigDict(frozen=True)

    id: int
    role: Role


class User(BaseModel):
    id: int | None = None
    username: str
    password_hash: str = Field(default="", exclude=True)
    role: Role
    name: str
    phone: str
    address: str | None = None
    rating: float = Field(default=5, ge=1, le=5)


class UserDraft(BaseModel):
    """Account opened by a pressing operator. The hash comes from the auth layer."""
    username: str = Field(..., min_length=1)
    password_hash: str = Field(..., min_length=1)
    role: Role
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str | None = None


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: GarmentKind
    quantity: int = Field(..., ge=1)
    unit_price: int = Field(..., ge=0, description="Price per piece in cents")


class OrderDraft(BaseModel):
    """What a customer submits. Any client-side price is accepted but ignored."""
    business_id: int
    items: list[OrderItem] = Field(..., min_length=1)
    pickup_address: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    pickup_time: datetime
    delivery_time: datetime
    price: Any = None  # client-side estimate, never used

    @field_validator("pickup_time", "delivery_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # naive timestamps from clients are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Order(BaseModel):
    id: int | None = None
    customer_id: int
    business_id: int
    delivery_id: int | None = None
    status: OrderStatus = OrderStatus.PENDING
    items: list[OrderItem] = Field(..., min_length=1)
    pickup_address: str
    delivery_address: str
    pickup_time: datetime
    delivery_time: datetime
    price: int = Field(..., ge=0)
    created_at: datetime


class RatingDraft(BaseModel):
    to_user_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None
    from_user_id: int | None = None  # ignored, the rater is always the actor


class Rating(BaseModel):
    id: int | None = None
    order_id: int
    from_user_id: int
    to_user_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = None


def compute_price(items: list[OrderItem]) -> int:
    return sum(i.unit_price * i.quantity for i in items)
