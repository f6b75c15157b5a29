import logging

from skybook.config import Settings
from skybook.services import providers
from skybook.services.providers import HttpBookingBackend, MockBookingBackend, get_backend
from skybook.utils import configure_logging


def test_mock_backend_without_base_url():
    assert Settings(_env_file=None, BOOKING_API_BASE_URL="").USE_MOCK_BACKEND
    assert not Settings(_env_file=None, BOOKING_API_BASE_URL="https://api.skybook.test").USE_MOCK_BACKEND


def test_defaults():
    configured = Settings(_env_file=None)
    assert configured.CURRENCY == "IDR"
    assert configured.DEFAULT_NATIONALITY == "Indonesia"
    assert configured.BOOKING_API_MAX_RETRIES == 3


def test_get_backend_follows_settings(monkeypatch):
    monkeypatch.setattr(providers, "settings", Settings(_env_file=None, BOOKING_API_BASE_URL=""))
    assert isinstance(get_backend(), MockBookingBackend)

    monkeypatch.setattr(providers, "settings", Settings(_env_file=None, BOOKING_API_BASE_URL="https://api.skybook.test"))
    assert isinstance(get_backend(lambda: "token"), HttpBookingBackend)


def test_configure_logging_accepts_level_names():
    configure_logging("warning")
    configure_logging()
    assert logging.getLogger("skybook").getEffectiveLevel() <= logging.WARNING
