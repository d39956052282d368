"""Shared pytest fixtures for homestay booking tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Settings are cached per process; tests that patch env need a fresh read."""
    from homestay.infra.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_event_subscribers():
    """BookingCreated subscribers are module-level; never leak between tests."""
    from homestay.domain.events import clear_subscribers

    clear_subscribers()
    yield
    clear_subscribers()
