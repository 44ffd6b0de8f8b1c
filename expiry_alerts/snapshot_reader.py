import logging
import threading
from typing import Optional

import requests
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from . import settings

logger = logging.getLogger(__name__)

FIREBASE_SCOPES = [
    "https://www.googleapis.com/auth/firebase.database",
    "https://www.googleapis.com/auth/userinfo.email",
]


class FirebaseSnapshotReader:
    """
    Read-only access to the Firebase Realtime Database over its REST API.
    Each fetch returns the full contents of one path as a plain dict.
    """

    def __init__(
        self,
        db_url: str,
        service_account_info: Optional[dict] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ):
        self.db_url = db_url.rstrip("/")
        self.service_account_info = service_account_info
        self.timeout = timeout
        self._session = session
        self._session_lock = threading.Lock()

    @classmethod
    def from_settings(cls) -> "FirebaseSnapshotReader":
        return cls(
            db_url=settings.FIREBASE_DB_URL,
            service_account_info=settings.service_account_info(),
            timeout=settings.request_timeout(),
        )

    @property
    def session(self) -> requests.Session:
        # Built on first use and shared by both snapshot reads; the authorized session refreshes its own token.
        with self._session_lock:
            if self._session is None:
                credentials = service_account.Credentials.from_service_account_info(
                    self.service_account_info, scopes=FIREBASE_SCOPES
                )
                self._session = AuthorizedSession(credentials)
            return self._session

    def close(self):
        with self._session_lock:
            if self._session is not None:
                self._session.close()
                self._session = None

    def fetch_snapshot(self, path: str) -> dict:
        """GETs `<db_url>/<path>.json`. An empty path (JSON null) comes back as {}."""
        url = f"{self.db_url}/{path.strip('/')}.json"
        logger.info(f"  > Reading snapshot: /{path}")
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        if data is None:
            return {}
        if isinstance(data, list):
            # Firebase serializes integer-keyed children as an array with holes.
            return {str(i): value for i, value in enumerate(data) if value is not None}
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object at /{path}, got {type(data).__name__}")
        return data

    def fetch_inventory(self) -> dict:
        return self.fetch_snapshot(settings.INVENTORY_PATH)

    def fetch_contacts(self) -> dict:
        return self.fetch_snapshot(settings.CONTACTS_PATH)
