import pytest

from notifications.bus import DomainNotification
from notifications.channel import PUSH, get_channel
from notifications.devices import get_device_store


@pytest.fixture()
def push():
    return get_channel(PUSH)


@pytest.fixture()
def devices():
    store = get_device_store()
    store.register("buyer-1", "buyer-phone")
    store.register("buyer-1", "buyer-tablet")
    store.register("owner-1", "owner-phone")
    return store


@pytest.fixture()
def make_notification():
    def _make(name, **payload):
        defaults = {"order_id": "0f8e2a1c-5d6b-4a7e-9c3f-1b2d3e4f5a6b", "user_id": "buyer-1", "restaurant_owner_id": "owner-1"}
        return DomainNotification(name=name, payload={**defaults, **payload})

    return _make
