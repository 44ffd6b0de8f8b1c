from datetime import date

import pytest

from expiry_alerts.schemas import DispatchResult


class FakeReader:
    def __init__(self, inventory=None, contacts=None, fail_on=None):
        self.inventory = inventory or {}
        self.contacts = contacts or {}
        self.fail_on = fail_on
        self.closed = False

    def fetch_inventory(self) -> dict:
        if self.fail_on == "inventory":
            raise ConnectionError("inventory unavailable")
        return self.inventory

    def fetch_contacts(self) -> dict:
        if self.fail_on == "contacts":
            raise ConnectionError("contacts unavailable")
        return self.contacts

    def close(self):
        self.closed = True


class FakeDispatcher:
    def __init__(self, fail_for=()):
        self.sent: list[dict] = []
        self.fail_for = set(fail_for)
        self.closed = False

    def send(self, recipient, subject, html, study=""):
        self.sent.append({"to": recipient, "subject": subject, "html": html, "study": study})
        if recipient in self.fail_for:
            return DispatchResult(study=study, recipient=recipient, success=False, reason="HTTP 401")
        return DispatchResult(study=study, recipient=recipient, success=True, status_code=202)

    def close(self):
        self.closed = True


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload

    def raise_for_status(self):
        import requests

        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls: list[dict] = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append({"method": "GET", "url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        self.calls.append({"method": "POST", "url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


@pytest.fixture
def today():
    return date(2024, 1, 1)


@pytest.fixture
def scenario_inventory():
    return {
        "-kitA": {"barcode": "A-001", "visit": "V1", "study": "StudyX", "status": "Available", "expiry": "2024-01-31"},
        "-kitB": {"barcode": "B-002", "visit": "V2", "study": "StudyX", "status": "Available", "expiry": "2024-01-16"},
        "-kitC": {"barcode": "C-003", "visit": "V3", "study": "StudyX", "status": "Available", "expiry": "2023-12-20"},
        "-kitD": {"barcode": "D-004", "visit": "V4", "study": "StudyX", "status": "Discarded", "expiry": "2024-01-02"},
    }


@pytest.fixture
def scenario_contacts():
    return {"-c1": {"name": "StudyX", "email": "a@x.com"}}


@pytest.fixture
def configured(monkeypatch):
    from expiry_alerts import settings

    monkeypatch.setattr(settings, "FIREBASE_SERVICE_ACCOUNT", '{"type": "service_account"}')
    monkeypatch.setattr(settings, "FIREBASE_DB_URL", "https://lims.firebaseio.com")
    monkeypatch.setattr(settings, "SENDGRID_API_KEY", "SG.key")
    monkeypatch.setattr(settings, "SENDER_EMAIL", "lims@lab.org")
    monkeypatch.setattr(settings, "ALERT_TIMEZONE", "UTC")
    monkeypatch.setattr(settings, "DISPATCH_WORKERS", "8")
    monkeypatch.setattr(settings, "REQUEST_TIMEOUT", "15")
