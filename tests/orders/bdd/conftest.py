"""Shared BDD fixtures and step definitions for the Orders domain."""

import re
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from orders.errors import OrderingError
from orders.order.access import Caller
from orders.order.lifecycle import OrderStatus
from orders.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then, when

_ITEM = re.compile(r'(\d+) of "([^"]+)"')


def _line_items(text):
    return [(product_ref, int(quantity)) for quantity, product_ref in _ITEM.findall(text)]


@pytest.fixture()
def outcome():
    """What the last When step produced: placed orders and any captured error."""
    return {"orders": [], "error": None}


def _latest(outcome):
    return current_domain.repository_for(Order).get(outcome["orders"][-1].id)


def _attempt(outcome, action):
    outcome["error"] = None
    try:
        return action()
    except OrderingError as exc:
        outcome["error"] = exc
        return None


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalogue lists "{product_ref}" as "{name}" at {price}'))
@when(parsers.cfparse('the catalogue lists "{product_ref}" as "{name}" at {price}'))
def catalogue_lists(catalog, product_ref, name, price):
    catalog.put(product_ref, name, Decimal(price))


@given(parsers.cfparse("today is {day}"))
def today_is(clock, day):
    clock.now = datetime.strptime(day, "%Y-%m-%d").replace(hour=9, tzinfo=UTC)


@given(parsers.cfparse('"{owner_id}" has ordered {items}'))
def has_ordered(service, outcome, owner_id, items):
    outcome["orders"].append(service.create_order(owner_id, _line_items(items), "addr-001", "card"))


@given(parsers.cfparse('an operator has set the status to "{status}"'))
def status_was_set(service, outcome, status):
    service.set_status(outcome["orders"][-1].id, status)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{owner_id}" orders {items}'))
def places_order(service, outcome, owner_id, items):
    order = _attempt(outcome, lambda: service.create_order(owner_id, _line_items(items), "addr-001", "card"))
    if order is not None:
        outcome["orders"].append(order)


@when(parsers.cfparse('"{owner_id}" tries to order {items}'))
def tries_to_order(service, outcome, owner_id, items):
    _attempt(outcome, lambda: service.create_order(owner_id, _line_items(items), "addr-001", "card"))


@when(parsers.cfparse('an operator sets the status to "{status}"'))
def sets_status(service, outcome, status):
    _attempt(outcome, lambda: service.set_status(outcome["orders"][-1].id, status))


@when(parsers.cfparse('"{caller_id}" cancels the order'))
def cancels_order(service, outcome, caller_id):
    _attempt(outcome, lambda: service.cancel_own_order(outcome["orders"][-1].id, Caller(caller_id)))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order total is {total}"))
def order_total_is(outcome, total):
    assert _latest(outcome).total.value == Decimal(total)


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(outcome, status):
    assert _latest(outcome).current_status == OrderStatus(status)


@then(parsers.cfparse('the order numbers issued are "{numbers}"'))
def order_numbers_are(outcome, numbers):
    assert [order.order_number for order in outcome["orders"]] == numbers.split(", ")


@then(parsers.cfparse('the first line item is "{name}" at {price}'))
def first_line_item_is(outcome, name, price):
    item = _latest(outcome).items_in_order[0]
    assert item.product_name_snapshot == name
    assert item.unit_price.value == Decimal(price)


@then(parsers.cfparse('the request fails with "{kind}"'))
def request_fails(outcome, kind):
    assert outcome["error"] is not None, "Expected the request to fail"
    assert outcome["error"].kind.value == kind


@then("the request succeeds")
def request_succeeds(outcome):
    assert outcome["error"] is None, f"Unexpected failure: {outcome['error']!r}"


@then("no orders exist")
def no_orders_exist():
    assert current_domain.repository_for(Order)._dao.query.all().total == 0
