"""
Request dependencies: the actor handed over by the authentication layer and
the lifecycle engine built at startup.
"""
from fastapi import Header, HTTPException, Request

from laundry_orders.lifecycle import OrderLifecycle
from laundry_orders.models import Actor, Role


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    if x_actor_id is None or x_actor_role is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        actor_id = int(x_actor_id)
        role = Role(x_actor_role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Actor(id=actor_id, role=role)


def get_lifecycle(request: Request) -> OrderLifecycle:
    return request.app.state.lifecycle
