"""Firebase Authentication (email/password) over the Identity Toolkit REST API."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

import requests

from labsite.auth.session import Session
from labsite.core.errors import AuthError

logger = logging.getLogger(__name__)


class FirebaseAuthBackend:
    """Signs admins in with Firebase email/password accounts."""

    name = "firebase"

    SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

    def __init__(self, api_key: str, timeout: float = 15.0):
        self.api_key = api_key
        self.timeout = timeout

    def sign_in(self, email: str, password: str) -> Session:
        """Exchange credentials for a Firebase ID token.

        Raises:
            AuthError: If Firebase rejects the credentials or cannot be reached
        """
        try:
            response = requests.post(
                self.SIGN_IN_URL,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"Sign-in request failed: {e}") from e

        try:
            data: dict[str, Any] = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            # e.g. INVALID_PASSWORD, EMAIL_NOT_FOUND, INVALID_LOGIN_CREDENTIALS
            message = data.get("error", {}).get("message", response.text)
            logger.debug("Firebase sign-in rejected for %s: %s", email, message)
            raise AuthError(f"Sign-in failed: {message}")

        try:
            expires_in = int(data.get("expiresIn", 3600))
            return Session(
                uid=str(data["localId"]),
                email=str(data.get("email", email)),
                token=str(data["idToken"]),
                provider=self.name,
                expires_at=(datetime.now() + timedelta(seconds=expires_in)).isoformat(timespec="seconds"),
            )
        except (KeyError, ValueError) as e:
            raise AuthError(f"Unexpected sign-in response: missing {e}") from e
