import logging

import pytest


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    """Capture SQL tracing for every test."""
    caplog.set_level(logging.DEBUG, logger='crudsql')
    yield


pytest_plugins = [
    'tests.fixtures.values',
    'tests.fixtures.sqlite',
    'tests.fixtures.mysql',
]
