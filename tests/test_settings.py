import pytest

from expiry_alerts import settings
from expiry_alerts.exceptions import ConfigurationMissing


def test_complete_configuration_passes(configured):
    assert settings.get_missing_settings() == []
    settings.require_settings()


def test_missing_settings_are_all_named(configured, monkeypatch):
    monkeypatch.setattr(settings, "SENDGRID_API_KEY", None)
    monkeypatch.setattr(settings, "FIREBASE_DB_URL", "  ")

    with pytest.raises(ConfigurationMissing) as exc_info:
        settings.require_settings()

    assert "SENDGRID_API_KEY" in str(exc_info.value)
    assert "FIREBASE_DB_URL" in str(exc_info.value)


def test_malformed_service_account_is_a_configuration_error(configured, monkeypatch):
    monkeypatch.setattr(settings, "FIREBASE_SERVICE_ACCOUNT", "{not json")

    with pytest.raises(ConfigurationMissing):
        settings.require_settings()


def test_service_account_must_be_an_object(configured, monkeypatch):
    monkeypatch.setattr(settings, "FIREBASE_SERVICE_ACCOUNT", "[1, 2]")

    with pytest.raises(ConfigurationMissing):
        settings.service_account_info()


def test_milestones_are_fixed():
    assert settings.ALERT_MILESTONES == (30, 15, 5, 0)


@pytest.mark.parametrize("zone", ["Mars/Base", "Europe/Atlantis"])
def test_unknown_timezone_is_a_configuration_error(configured, monkeypatch, zone):
    monkeypatch.setattr(settings, "ALERT_TIMEZONE", zone)

    with pytest.raises(ConfigurationMissing, match="ALERT_TIMEZONE"):
        settings.require_settings()


def test_alert_zone_is_built_once(configured):
    assert settings.alert_zone() is settings.alert_zone()


@pytest.mark.parametrize("workers", ["eight", "0", "-2"])
def test_bad_dispatch_workers_is_a_configuration_error(configured, monkeypatch, workers):
    monkeypatch.setattr(settings, "DISPATCH_WORKERS", workers)

    with pytest.raises(ConfigurationMissing, match="DISPATCH_WORKERS"):
        settings.require_settings()


@pytest.mark.parametrize("timeout", ["soon", "0"])
def test_bad_request_timeout_is_a_configuration_error(configured, monkeypatch, timeout):
    monkeypatch.setattr(settings, "REQUEST_TIMEOUT", timeout)

    with pytest.raises(ConfigurationMissing, match="REQUEST_TIMEOUT"):
        settings.require_settings()


def test_numeric_settings_are_parsed(configured, monkeypatch):
    monkeypatch.setattr(settings, "DISPATCH_WORKERS", "3")
    monkeypatch.setattr(settings, "REQUEST_TIMEOUT", "2.5")

    assert settings.dispatch_workers() == 3
    assert settings.request_timeout() == 2.5
