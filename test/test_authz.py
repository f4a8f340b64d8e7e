import pytest

from laundry_orders import authz
from laundry_orders.config import settings
from laundry_orders.errors import ForbiddenError
from laundry_orders.models import Actor, Role

from _helper import stored_order

CUSTOMER = Actor(id=1, role=Role.CUSTOMER)
BUSINESS = Actor(id=2, role=Role.BUSINESS)
OTHER_BUSINESS = Actor(id=3, role=Role.BUSINESS)
COURIER = Actor(id=4, role=Role.DELIVERY)


def test_business_reads_and_writes_any_order():
    order = stored_order(customer_id=10, business_id=OTHER_BUSINESS.id)
    assert authz.can_read(BUSINESS, order)
    assert authz.can_write(BUSINESS, order)


def test_business_scoping(monkeypatch):
    monkeypatch.setattr(settings, "business_scoped_orders", True)
    order = stored_order(customer_id=10, business_id=OTHER_BUSINESS.id)
    assert not authz.can_read(BUSINESS, order)
    assert authz.can_write(OTHER_BUSINESS, order)


def test_customer_reads_only_own_and_never_writes():
    own = stored_order(customer_id=CUSTOMER.id, business_id=BUSINESS.id)
    other = stored_order(customer_id=99, business_id=BUSINESS.id)
    assert authz.can_read(CUSTOMER, own)
    assert not authz.can_read(CUSTOMER, other)
    assert not authz.can_write(CUSTOMER, own)
    with pytest.raises(ForbiddenError):
        authz.require_write(CUSTOMER, own)


def test_courier_reads_only_assigned():
    unassigned = stored_order(customer_id=CUSTOMER.id, business_id=BUSINESS.id)
    assigned = stored_order(customer_id=CUSTOMER.id, business_id=BUSINESS.id, delivery_id=COURIER.id)
    assert not authz.can_read(COURIER, unassigned)
    assert authz.can_read(COURIER, assigned)
    assert not authz.can_write(COURIER, assigned)


def test_only_customers_create():
    assert authz.can_create(CUSTOMER)
    for actor in (BUSINESS, COURIER):
        with pytest.raises(ForbiddenError):
            authz.require_create(actor)


def test_visible_orders_keeps_input_order():
    a = stored_order(customer_id=CUSTOMER.id, business_id=BUSINESS.id, price=1)
    b = stored_order(customer_id=99, business_id=BUSINESS.id, price=2)
    c = stored_order(customer_id=CUSTOMER.id, business_id=BUSINESS.id, price=3)
    assert authz.visible_orders(CUSTOMER, [a, b, c]) == [a, c]
