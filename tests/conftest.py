import os

import pytest

# Test directory name -> marker it receives
_LAYER_MARKERS = ("domain", "application", "integration", "bdd")


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="domain.toml overlay to activate (sets PROTEAN_ENV)",
    )


def pytest_sessionstart(session):
    """Initialise the storefront domain and leave its context pushed for the whole run.

    Runs before collection, so test modules can import domain elements and use
    ``current_domain`` at import time.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from storefront.domain import storefront

    storefront.init()
    storefront.domain_context().push()


def pytest_collection_modifyitems(config, items):
    for item in items:
        parts = item.path.parts
        for layer in _LAYER_MARKERS:
            if layer in parts:
                item.add_marker(getattr(pytest.mark, layer))
                break

        if "integration" in parts and item.get_closest_marker("fast") is None:
            item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def database():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    setup_db(storefront)
    yield
    drop_db(storefront)


@pytest.fixture(autouse=True)
def reset_infrastructure():
    """Wipe repositories, brokers and the event store after each test."""
    yield

    from protean import current_domain

    for provider in current_domain.providers.values():
        provider._data_reset()
    for broker in current_domain.brokers.values():
        broker._data_reset()
    current_domain.event_store.store._data_reset()
