import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from laundry_orders import redis_client
from laundry_orders.deps import get_actor, get_lifecycle
from laundry_orders.errors import PersistenceError
from laundry_orders.lifecycle import OrderLifecycle
from laundry_orders.models import Actor, Order, Rating

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


class StatusChangeBody(BaseModel):
    status: str = Field(..., description="Target order status")


class DeliveryAssignmentBody(BaseModel):
    delivery_id: int = Field(..., description="Courier (delivery user) to assign")


@router.post("", status_code=201, response_model=Order)
async def create_order(
    payload: dict[str, Any] = Body(...),
    idempotency_key: str | None = Header(default=None),
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    """
    Place an order as the calling customer. With an Idempotency-Key header,
    a replayed request returns the order created by the first one (200).
    """
    if idempotency_key is None:
        return await lifecycle.create_order(actor, payload)

    key = redis_client.idempotency_key(actor.id, idempotency_key)
    existing = await redis_client.claim_idempotency_key(key)
    if existing == redis_client.IN_FLIGHT:
        return JSONResponse(
            status_code=409,
            content={"error": "conflict", "message": "request with this key is in progress"},
        )
    if existing is not None:
        order = await lifecycle.get_order(actor, int(existing))
        return JSONResponse(status_code=200, content=order.model_dump(mode="json"))

    try:
        order = await lifecycle.create_order(actor, payload)
    except Exception:
        await _release_quietly(key)
        raise
    try:
        await redis_client.remember_order(key, order.id)
    except PersistenceError:
        # the order exists; a retry with this key creates a second one
        logger.warning("Order %s created but key %s not recorded", order.id, key)
        await _release_quietly(key)
    return order


async def _release_quietly(key: str) -> None:
    try:
        await redis_client.release_idempotency_key(key)
    except PersistenceError:
        logger.warning("Idempotency key %s left in flight until it expires", key)


@router.get("", response_model=list[Order])
async def list_orders(
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_orders(actor)


@router.get("/{order_id}", response_model=Order)
async def get_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.get_order(actor, order_id)


@router.patch("/{order_id}/status", response_model=Order)
async def update_order_status(
    order_id: int,
    body: StatusChangeBody,
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    """409 means another update won the race: re-read the order and retry."""
    return await lifecycle.update_order_status(actor, order_id, body.status)


@router.patch("/{order_id}/delivery", response_model=Order)
async def assign_delivery(
    order_id: int,
    body: DeliveryAssignmentBody,
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.assign_delivery(actor, order_id, body.delivery_id)


@router.post("/{order_id}/ratings", status_code=201, response_model=Rating)
async def rate_order(
    order_id: int,
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.rate_order(actor, order_id, payload)
