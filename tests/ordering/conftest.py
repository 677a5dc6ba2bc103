import json
from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture()
def catalogue():
    """Two restaurants, their variants, a lunch menu and a saved address.

    rest-1 (owner-1): var-jollof 1000, var-chicken 1500, var-chicken-large 2000
                      (unavailable), var-juice 300
    rest-2 (owner-2): var-pizza 4000
    """
    from protean import current_domain

    from ordering.projections.addresses import DeliveryAddress
    from ordering.projections.menus import Menu
    from ordering.projections.restaurants import Restaurant
    from ordering.projections.variants import ProductVariant

    restaurants = current_domain.repository_for(Restaurant)
    restaurants.add(Restaurant(restaurant_id="rest-1", name="Chez Mama", owner_id="owner-1"))
    restaurants.add(Restaurant(restaurant_id="rest-2", name="Pizza Nova", owner_id="owner-2"))

    variants = current_domain.repository_for(ProductVariant)
    for variant in (
        ProductVariant(variant_id="var-jollof", product_id="prod-jollof", restaurant_id="rest-1", price=1000.0),
        ProductVariant(
            variant_id="var-chicken",
            product_id="prod-chicken",
            restaurant_id="rest-1",
            label="Regular",
            price=1500.0,
        ),
        ProductVariant(
            variant_id="var-chicken-large",
            product_id="prod-chicken",
            restaurant_id="rest-1",
            label="Large",
            price=2000.0,
            is_available=False,
            position=1,
        ),
        ProductVariant(variant_id="var-juice", product_id="prod-juice", restaurant_id="rest-1", price=300.0),
        ProductVariant(variant_id="var-pizza", product_id="prod-pizza", restaurant_id="rest-2", price=4000.0),
    ):
        variants.add(variant)

    now = datetime.now(UTC)
    menus = current_domain.repository_for(Menu)
    menus.add(
        Menu(
            menu_id="menu-lunch",
            restaurant_id="rest-1",
            name="Lunch deal",
            price=2500.0,
            product_ids=json.dumps(["prod-jollof", "prod-juice"]),
            starts_at=now - timedelta(hours=1),
            ends_at=now + timedelta(hours=1),
        )
    )
    menus.add(
        Menu(
            menu_id="menu-breakfast",
            restaurant_id="rest-1",
            name="Breakfast",
            product_ids=json.dumps(["prod-juice"]),
            starts_at=now - timedelta(hours=5),
            ends_at=now - timedelta(hours=2),
        )
    )

    current_domain.repository_for(DeliveryAddress).add(
        DeliveryAddress(address_id="addr-1", user_id="user-1", street="12 Rue Malanda", city="Brazzaville", country="CG")
    )
    current_domain.repository_for(DeliveryAddress).add(
        DeliveryAddress(address_id="addr-2", user_id="user-2", street="4 Av. Foch", city="Pointe-Noire", country="CG")
    )


@pytest.fixture()
def fake_gateway():
    from payments.gateway import set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    gateway = FakeGateway()
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def recorded_notifications():
    """Every notification the bus emits during the test, in order."""
    from notifications.bus import EVENT_NAMES, get_bus

    received = []
    bus = get_bus()
    for name in EVENT_NAMES:
        bus.subscribe(name, received.append)
    return received
