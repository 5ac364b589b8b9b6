from __future__ import annotations
"""OAuth2 credential handling for direct HTTP calls."""
from datetime import datetime, timezone
import logging
from typing import Callable, Optional, Protocol

import google.auth
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from .models import AuthToken

LOGGER = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
REFRESH_MARGIN_SECONDS = 60
DEFAULT_SCOPE = "cloud-platform"


def scope_url(scope: str) -> str:
    if scope.startswith("https://"):
        return scope
    return f"https://www.googleapis.com/auth/{scope}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Authorizer(Protocol):
    access_token: str
    issued_at: datetime
    expires_in: float

    def refresh(self) -> None: ...

    def fetch_initial_token(self) -> None: ...


class GoogleAuthorizer:
    """Adapts ``google-auth`` credentials to the issued-at/expires-in view."""

    def __init__(self, credentials, request_factory: Callable[[], object] | None = None):
        self.credentials = credentials
        self._request_factory = request_factory or Request
        self.access_token = ""
        self.issued_at = datetime.fromtimestamp(0, timezone.utc)
        self.expires_in = 0.0

    @classmethod
    def from_service_account(
        cls,
        email_address: str,
        private_key: str,
        *,
        scope: str = DEFAULT_SCOPE,
    ) -> GoogleAuthorizer:
        credentials = service_account.Credentials.from_service_account_info(
            {
                "client_email": email_address,
                "private_key": private_key,
                "token_uri": TOKEN_URI,
            },
            scopes=[scope_url(scope)],
        )
        return cls(credentials)

    @classmethod
    def application_default(cls, *, scope: str = DEFAULT_SCOPE) -> GoogleAuthorizer:
        credentials, _ = google.auth.default(scopes=[scope_url(scope)])
        return cls(credentials)

    def fetch_initial_token(self) -> None:
        self.refresh()

    def refresh(self) -> None:
        issued_at = _utcnow()
        self.credentials.refresh(self._request_factory())
        self.access_token = self.credentials.token
        self.issued_at = issued_at
        expiry = self.credentials.expiry
        if expiry is None:
            self.expires_in = float("inf")
            return
        if expiry.tzinfo is None:
            # google-auth reports expiry as naive UTC
            expiry = expiry.replace(tzinfo=timezone.utc)
        self.expires_in = (expiry - issued_at).total_seconds()


class TokenGuard:
    """Returns a bearer token, refreshing the authorizer when it is about to expire.

    The staleness check and the refresh are not atomic. Concurrent callers
    may refresh redundantly, which the authorizer tolerates.
    """

    def __init__(
        self,
        authorizer: Authorizer,
        *,
        margin_seconds: float = REFRESH_MARGIN_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._authorizer = authorizer
        self._margin = margin_seconds
        self._clock = clock or _utcnow

    @property
    def token(self) -> AuthToken:
        return AuthToken(
            access_token=self._authorizer.access_token,
            issued_at=self._authorizer.issued_at,
            expires_in=self._authorizer.expires_in,
        )

    def is_stale(self) -> bool:
        token = self.token
        elapsed = (self._clock() - token.issued_at).total_seconds()
        return elapsed >= token.expires_in - self._margin

    def access_token(self) -> str:
        if self.is_stale():
            LOGGER.debug("Access token is about to expire, refreshing")
            self._authorizer.refresh()
        return self._authorizer.access_token
