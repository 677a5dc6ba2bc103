import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Select the config overlay and make sure the fake adapters are in play
    regardless of the developer's shell environment.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.pop("PAYMENT_GATEWAY", None)


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically reset process-wide adapters after every test"""
    yield

    from notifications.bus import reset_bus
    from notifications.channel import reset_channels
    from notifications.devices import reset_device_store
    from notifications.stream import reset_stream_registry
    from ordering.order.fees import reset_fee_source
    from payments.gateway import reset_gateway

    reset_gateway()
    reset_bus()
    reset_channels()
    reset_device_store()
    reset_stream_registry()
    reset_fee_source()
