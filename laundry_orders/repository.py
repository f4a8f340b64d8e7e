"""
Storage interface used by the lifecycle engine, plus the in-process
implementation used for development and tests. The Postgres implementation
lives in laundry_orders.db.
"""
from abc import ABC, abstractmethod

from laundry_orders.errors import ConflictError, NotFoundError
from laundry_orders.models import Order, OrderStatus, Rating, Role, User
from laundry_orders.order_state import is_terminal


class OrderRepository(ABC):
    @abstractmethod
    async def load_order(self, order_id: int) -> Order | None:
        ...

    @abstractmethod
    async def load_all_orders(self) -> list[Order]:
        ...

    @abstractmethod
    async def insert_order(self, order: Order) -> Order:
        """Store a new order and return it with its id assigned."""

    @abstractmethod
    async def save_order(
        self, order: Order, expected_prior_status: OrderStatus | None = None
    ) -> Order:
        """
        Write order.status back. When expected_prior_status is given the write
        only happens if the stored status still equals it; otherwise ConflictError.
        """

    @abstractmethod
    async def assign_delivery(self, order_id: int, delivery_id: int) -> Order:
        """Set delivery_id if still unset and the order is open; ConflictError otherwise."""

    @abstractmethod
    async def load_user(self, user_id: int) -> User | None:
        ...

    @abstractmethod
    async def load_users_by_role(self, role: Role) -> list[User]:
        ...

    @abstractmethod
    async def insert_user(self, user: User) -> User:
        ...

    @abstractmethod
    async def insert_rating(self, rating: Rating) -> Rating:
        ...

    @abstractmethod
    async def load_ratings_for_user(self, user_id: int) -> list[Rating]:
        """Ratings received by user_id."""


class InMemoryRepository(OrderRepository):
    """
    Dict-backed store. Each check-and-write below runs without awaiting in
    between, so on a single event loop the conditional updates are atomic.
    """

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._orders: dict[int, Order] = {}
        self._ratings: dict[int, Rating] = {}
        self._next_id = 1

    def _allocate_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    async def load_order(self, order_id: int) -> Order | None:
        return self._orders.get(order_id)

    async def load_all_orders(self) -> list[Order]:
        return list(self._orders.values())

    async def insert_order(self, order: Order) -> Order:
        stored = order.model_copy(update={"id": self._allocate_id()})
        self._orders[stored.id] = stored
        return stored

    async def save_order(
        self, order: Order, expected_prior_status: OrderStatus | None = None
    ) -> Order:
        current = self._orders.get(order.id)
        if current is None:
            raise NotFoundError(f"order {order.id} not found")
        if expected_prior_status is not None and current.status != expected_prior_status:
            raise ConflictError(
                f"order {order.id} is {current.status.value}, expected {expected_prior_status.value}"
            )
        stored = current.model_copy(update={"status": order.status})
        self._orders[order.id] = stored
        return stored

    async def assign_delivery(self, order_id: int, delivery_id: int) -> Order:
        current = self._orders.get(order_id)
        if current is None:
            raise NotFoundError(f"order {order_id} not found")
        if current.delivery_id is not None:
            raise ConflictError(f"order {order_id} already has a courier")
        if is_terminal(current.status):
            raise ConflictError(f"order {order_id} is already {current.status.value}")
        stored = current.model_copy(update={"delivery_id": delivery_id})
        self._orders[order_id] = stored
        return stored

    async def load_user(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    async def load_users_by_role(self, role: Role) -> list[User]:
        return [u for u in self._users.values() if u.role == role]

    async def insert_user(self, user: User) -> User:
        if any(u.username == user.username for u in self._users.values()):
            raise ConflictError(f"username {user.username!r} is taken")
        stored = user.model_copy(update={"id": self._allocate_id()})
        self._users[stored.id] = stored
        return stored

    async def insert_rating(self, rating: Rating) -> Rating:
        stored = rating.model_copy(update={"id": self._allocate_id()})
        self._ratings[stored.id] = stored
        return stored

    async def load_ratings_for_user(self, user_id: int) -> list[Rating]:
        return [r for r in self._ratings.values() if r.to_user_id == user_id]
