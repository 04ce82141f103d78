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

    Sets the environment the checkout domain and its settings read from.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("CHECKOUT_GATEWAY", "fake")


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
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(autouse=True)
def _fresh_settings_and_gateway():
    """Every test starts from environment settings and the default gateway."""
    from checkout.config import reset_settings
    from checkout.payment.gateway import reset_gateway

    reset_settings()
    reset_gateway()
    yield
    reset_settings()
    reset_gateway()
