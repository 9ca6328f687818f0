import logging

import pytest

pytest_plugins = [
    'tests.fixtures.driver',
    'tests.fixtures.sqlite_pool',
]


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    """Capture aiodbpool debug logging for every test."""
    caplog.set_level(logging.DEBUG, logger='aiodbpool')
    yield
