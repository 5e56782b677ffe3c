"""Caller identity: trusted guest ids and admin token sessions."""

from __future__ import annotations

import secrets
from threading import Lock
from typing import Optional

from booking_core.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when provided token is invalid."""


class MissingGuestIdentityError(AuthenticationError):
    """Raised when the upstream identity provider supplied no guest id."""


class AuthService:
    """Resolves who is calling.

    Guest ids arrive already authenticated by the identity provider and are
    trusted as given. Administrative authority comes from exchanging the
    configured admin token for a bearer session token.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._session_tokens: set[str] = set()
        self._lock = Lock()

    @property
    def admin_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    def _expected_token(self) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        return self._settings.admin_token

    def login(self, provided_admin_token: str) -> str:
        expected = self._expected_token()
        if not secrets.compare_digest(provided_admin_token, expected):
            raise InvalidAdminTokenError("Invalid admin token")
        session_token = secrets.token_urlsafe(32)
        with self._lock:
            self._session_tokens.add(session_token)
        return session_token

    def is_admin_session(self, bearer_token: Optional[str]) -> bool:
        if not bearer_token or not self.admin_enabled:
            return False
        with self._lock:
            known = list(self._session_tokens)
        return any(secrets.compare_digest(bearer_token, token) for token in known)

    def validate_admin_token(self, bearer_token: Optional[str]) -> None:
        self._expected_token()
        if not self.is_admin_session(bearer_token):
            raise InvalidAdminTokenError("Invalid or missing admin bearer token")

    def resolve_guest_id(self, raw_guest_id: Optional[str]) -> str:
        guest_id = (raw_guest_id or "").strip()
        if not guest_id:
            raise MissingGuestIdentityError("X-Guest-Id header is required")
        return guest_id
