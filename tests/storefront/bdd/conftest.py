"""Shared BDD fixtures and step definitions for storefront scenarios."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when
from storefront.errors import InsufficientStock, InvalidTransitionError
from storefront.stock.stock import ProductStock


@pytest.fixture()
def error():
    """Container for the failure raised by the last When step."""
    return {"exc": None}


def _place(workflow, address, product_id, units, size, payment_method):
    return workflow.place_order(
        "user-001",
        address,
        payment_method,
        items=[{"product_id": product_id, "size": size, "quantity": units}],
    ).order


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a product priced {price:g} with {units:d} units in size "{size}"'),
    target_fixture="product_id",
)
def _(register_product, price, units, size):
    return register_product(base_price=float(price), stock={size: units})


@given(
    parsers.cfparse('the customer ordered {units:d} units in size "{size}" paying "{payment_method}"'),
    target_fixture="order",
)
def _(workflow, address, product_id, units, size, payment_method):
    return _place(workflow, address, product_id, units, size, payment_method)


@given("the order was delivered", target_fixture="order")
def _(workflow, order):
    return workflow.advance_status(order.id, "Delivered")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse('the customer orders {units:d} units in size "{size}" paying "{payment_method}"'),
    target_fixture="order",
)
def _(workflow, address, product_id, units, size, payment_method, error):
    try:
        return _place(workflow, address, product_id, units, size, payment_method)
    except ValidationError as exc:
        error["exc"] = exc
        return None


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order amount is {amount:g}"))
def _(order, amount):
    assert order.amount == pytest.approx(amount)


@then(parsers.cfparse('the order status is "{status}"'))
def _(workflow, order, status):
    assert workflow.get_order(order.id).status == status


@then(parsers.cfparse('{units:d} units remain in size "{size}"'))
def _(product_id, units, size):
    stock = current_domain.repository_for(ProductStock).get(product_id)
    assert stock.quantity_of(size) == units


@then("the order is rejected for insufficient stock")
def _(error):
    assert isinstance(error["exc"], InsufficientStock)


@then("the order is rejected as an invalid transition")
def _(error):
    assert isinstance(error["exc"], InvalidTransitionError), f"Got {error['exc']!r}"
