"""pytest configuration for yee-lan tests."""

import logging

import pytest

from yee_lan.directory import DeviceDirectory
from yee_lan.log import LOGGER_NAME


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture
def directory():
    """Fresh, independent device directory."""
    return DeviceDirectory()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep YEE_LAN_* variables from the host out of tests."""
    for name in ("YEE_LAN_EXPECTED_COUNT", "YEE_LAN_TIMEOUT", "YEE_LAN_MAX_RETRIES", "YEE_LAN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Leave the package logger without handlers between tests."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
