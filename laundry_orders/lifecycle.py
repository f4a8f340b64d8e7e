"""
Order lifecycle engine: create, read, transition, assign and rate orders on
behalf of an authenticated actor.

Every operation checks the actor against laundry_orders.authz and, for status
changes, the transition table in laundry_orders.order_state before anything
is written. Orders an actor may not read are reported as NotFoundError so
that their existence does not leak.
"""
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, TypeVar

import pydantic

from laundry_orders import authz
from laundry_orders.errors import (
    ConflictError,
    ForbiddenError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from laundry_orders.metrics import (
    order_status_transitions_total,
    order_transitions_rejected_total,
    order_update_conflicts_total,
    orders_created_total,
    ratings_submitted_total,
)
from laundry_orders.models import (
    Actor,
    Order,
    OrderDraft,
    OrderStatus,
    Rating,
    RatingDraft,
    Role,
    User,
    UserDraft,
    compute_price,
)
from laundry_orders.order_state import is_terminal, is_valid_transition
from laundry_orders.repository import OrderRepository

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)


def parse(model: type[M], payload: M | Mapping[str, Any]) -> M:
    """Validate a raw payload into `model`, reporting problems as ValidationError."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"invalid {model.__name__}",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


def parse_status(value: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"unknown order status {value!r}")


def parse_role(value: Role | str) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"unknown role {value!r}")


class OrderLifecycle:
    def __init__(self, repo: OrderRepository, clock=None):
        self.repo = repo
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def create_order(self, actor: Actor, draft: OrderDraft | Mapping[str, Any]) -> Order:
        authz.require_create(actor)
        draft = parse(OrderDraft, draft)
        if draft.pickup_time > draft.delivery_time:
            raise ValidationError("delivery_time must not be before pickup_time")

        business = await self.repo.load_user(draft.business_id)
        if business is None or business.role != Role.BUSINESS:
            raise NotFoundError(f"business {draft.business_id} not found")

        order = Order(
            customer_id=actor.id,
            business_id=business.id,
            delivery_id=None,
            status=OrderStatus.PENDING,
            items=list(draft.items),
            pickup_address=draft.pickup_address,
            delivery_address=draft.delivery_address,
            pickup_time=draft.pickup_time,
            delivery_time=draft.delivery_time,
            price=compute_price(draft.items),
            created_at=self._clock(),
        )
        order = await self.repo.insert_order(order)
        orders_created_total.inc()
        logger.info(
            "Order %s created by customer %s for business %s (price=%d)",
            order.id, actor.id, business.id, order.price,
        )
        return order

    async def list_orders(self, actor: Actor) -> list[Order]:
        orders = authz.visible_orders(actor, await self.repo.load_all_orders())
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def get_order(self, actor: Actor, order_id: int) -> Order:
        order = await self.repo.load_order(order_id)
        if order is None or not authz.can_read(actor, order):
            raise NotFoundError(f"order {order_id} not found")
        return order

    async def update_order_status(
        self, actor: Actor, order_id: int, new_status: OrderStatus | str
    ) -> Order:
        new_status = parse_status(new_status)
        order = await self.get_order(actor, order_id)

        if not is_valid_transition(order.status, new_status):
            order_transitions_rejected_total.labels(
                current_status=order.status.value,
                attempted_status=new_status.value,
            ).inc()
            logger.warning(
                "Rejected transition for order %s: %s -> %s (actor %s %s)",
                order.id, order.status.value, new_status.value, actor.role.value, actor.id,
            )
            raise IllegalTransitionError(order.status, new_status)

        authz.require_write(actor, order)

        try:
            updated = await self.repo.save_order(
                order.model_copy(update={"status": new_status}),
                expected_prior_status=order.status,
            )
        except ConflictError:
            order_update_conflicts_total.inc()
            logger.warning(
                "Order %s changed concurrently while moving %s -> %s",
                order.id, order.status.value, new_status.value,
            )
            raise

        order_status_transitions_total.labels(
            from_status=order.status.value, to_status=new_status.value
        ).inc()
        logger.info(
            "Order %s: %s -> %s by %s %s",
            order.id, order.status.value, new_status.value, actor.role.value, actor.id,
        )
        return updated

    async def assign_delivery(self, actor: Actor, order_id: int, delivery_id: int) -> Order:
        order = await self.get_order(actor, order_id)
        authz.require_write(actor, order)
        if is_terminal(order.status):
            raise ValidationError(f"order {order.id} is already {order.status.value}")

        courier = await self.repo.load_user(delivery_id)
        if courier is None or courier.role != Role.DELIVERY:
            raise NotFoundError(f"delivery user {delivery_id} not found")

        updated = await self.repo.assign_delivery(order.id, courier.id)
        logger.info("Order %s assigned to courier %s", order.id, courier.id)
        return updated

    async def rate_order(
        self, actor: Actor, order_id: int, rating: RatingDraft | Mapping[str, Any]
    ) -> Rating:
        rating = parse(RatingDraft, rating)
        order = await self.repo.load_order(order_id)
        if order is None:
            raise NotFoundError(f"order {order_id} not found")

        parties = {order.customer_id, order.business_id, order.delivery_id} - {None}
        if actor.id not in parties:
            raise ForbiddenError(f"user {actor.id} is not part of order {order.id}")
        if rating.to_user_id not in parties or rating.to_user_id == actor.id:
            raise ValidationError("rated user must be another party of the order")
        if not is_terminal(order.status):
            raise ValidationError(f"order {order.id} is still {order.status.value}")

        stored = await self.repo.insert_rating(Rating(
            order_id=order.id,
            from_user_id=actor.id,
            to_user_id=rating.to_user_id,
            rating=rating.rating,
            comment=rating.comment,
        ))
        ratings_submitted_total.inc()
        logger.info(
            "Rating %s on order %s: %s -> %s (%d/5)",
            stored.id, order.id, actor.id, rating.to_user_id, rating.rating,
        )
        return stored

    async def create_user(self, actor: Actor, draft: UserDraft | Mapping[str, Any]) -> User:
        authz.require_role(actor, Role.BUSINESS)
        draft = parse(UserDraft, draft)
        user = await self.repo.insert_user(User(**draft.model_dump()))
        logger.info("User %s (%s) created by business %s", user.id, user.role.value, actor.id)
        return user

    async def list_businesses(self, actor: Actor) -> list[User]:
        return await self.repo.load_users_by_role(Role.BUSINESS)

    async def list_users_by_role(self, actor: Actor, role: Role | str) -> list[User]:
        authz.require_role(actor, Role.BUSINESS)
        return await self.repo.load_users_by_role(parse_role(role))

    async def list_ratings_for_user(self, actor: Actor, user_id: int) -> list[Rating]:
        if await self.repo.load_user(user_id) is None:
            raise NotFoundError(f"user {user_id} not found")
        return await self.repo.load_ratings_for_user(user_id)
