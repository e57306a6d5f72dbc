from datetime import UTC, datetime
from decimal import Decimal

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def orders_bed():
    from orders.domain import orders

    bed = DomainFixture(orders)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session", autouse=True)
def setup_db(orders_bed):
    from orders.domain import orders
    from orders.utils.db import drop_db, setup_db

    setup_db(orders)

    yield

    drop_db(orders)


@pytest.fixture(autouse=True)
def _ctx(orders_bed):
    with orders_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()

        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture()
def clock():
    return FrozenClock(datetime(2024, 1, 15, 10, 30, tzinfo=UTC))


@pytest.fixture()
def catalog():
    from orders.catalog import InMemoryCatalog

    return InMemoryCatalog(
        {
            "prod-widget": ("Widget", Decimal("19.99")),
            "prod-gadget": ("Gadget", Decimal("5.01")),
            "prod-gizmo": ("Gizmo", Decimal("0.10")),
        }
    )


@pytest.fixture()
def service(catalog, clock):
    from orders.order.service import OrderService

    return OrderService(catalog, clock=clock)


@pytest.fixture()
def owner():
    from orders.order.access import Caller

    return Caller("user-alice")


@pytest.fixture()
def stranger():
    from orders.order.access import Caller

    return Caller("user-bob")


@pytest.fixture()
def admin():
    from orders.order.access import Caller

    return Caller("admin-carol", privileged=True)


@pytest.fixture()
def place_order(service, owner):
    """Place an order for ``owner`` with the given ``(product_ref, quantity)`` pairs."""

    def _place(*items, owner_id=None):
        return service.create_order(
            owner_id or owner.caller_id,
            list(items) or [("prod-widget", 1)],
            "addr-001",
            "card",
        )

    return _place
