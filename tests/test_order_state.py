import pytest

from orders.models import Order, OrderStatus
from orders.state import OrderStateError, can_be_claimed, can_transition, claim_order, transition_order

from conftest import NOW


def test_happy_path_lifecycle_stamps_delivery():
    order = Order(id="o1", restaurant_id="r1")

    for status in (
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.PICKED_UP,
        OrderStatus.DELIVERED,
    ):
        transition_order(order, status, at=NOW)

    assert order.status == OrderStatus.DELIVERED
    assert order.delivered_at == NOW
    assert order.updated_at == NOW
    assert order.is_terminal


def test_cancel_allowed_from_any_non_terminal_state():
    for status in (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.READY, OrderStatus.PICKED_UP):
        assert can_transition(status, OrderStatus.CANCELLED)

    assert not can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED)
    assert not can_transition(OrderStatus.CANCELLED, OrderStatus.PENDING)


def test_skipping_a_step_is_rejected():
    order = Order(id="o1", restaurant_id="r1", status=OrderStatus.PENDING)

    with pytest.raises(OrderStateError):
        transition_order(order, OrderStatus.READY)

    # untouched on failure
    assert order.status == OrderStatus.PENDING


def test_claim_only_confirmed_orders_without_rider():
    order = Order(id="o1", restaurant_id="r1", status=OrderStatus.CONFIRMED)
    assert can_be_claimed(order)

    claim_order(order, "rider_1", at=NOW)

    # kitchen status is untouched, the rider is recorded
    assert order.status == OrderStatus.CONFIRMED
    assert order.rider_id == "rider_1"
    assert order.rider_assigned_at == NOW
    assert not can_be_claimed(order)

    with pytest.raises(OrderStateError):
        claim_order(order, "rider_2", at=NOW)


def test_pending_order_cannot_be_claimed():
    order = Order(id="o1", restaurant_id="r1", status=OrderStatus.PENDING)

    with pytest.raises(OrderStateError):
        claim_order(order, "rider_1")
