from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from laundry_orders.deps import get_actor, get_lifecycle
from laundry_orders.lifecycle import OrderLifecycle
from laundry_orders.models import Actor, Rating, User

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", status_code=201, response_model=User)
async def create_user(
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    """Operator onboards a courier, customer or another pressing account."""
    return await lifecycle.create_user(actor, payload)


@router.get("/businesses", response_model=list[User])
async def list_businesses(
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_businesses(actor)


@router.get("", response_model=list[User])
async def list_users(
    role: str = Query(..., description="customer | delivery | business"),
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    """Operator-only user directory."""
    return await lifecycle.list_users_by_role(actor, role)


@router.get("/{user_id}/ratings", response_model=list[Rating])
async def list_ratings(
    user_id: int,
    actor: Actor = Depends(get_actor),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.list_ratings_for_user(actor, user_id)
