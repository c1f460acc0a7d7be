"""
Admin sessions.

A SessionManager owns the current session (or None), pushes every change to
its subscribers and persists the session in the site cache so that separate
CLI invocations share one sign-in.
"""

from __future__ import annotations

import hashlib
import json
import logging
import secrets
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

import bcrypt

from labsite.core.backup import safe_write_json
from labsite.core.errors import AuthError

logger = logging.getLogger(__name__)

LOCAL_SESSION_HOURS = 12

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


@dataclass
class Session:
    """A signed-in admin."""

    uid: str
    email: str
    token: str
    provider: str
    expires_at: str | None = None  # ISO timestamp

    def is_expired(self, now: datetime | None = None) -> bool:
        if not self.expires_at:
            return False
        now = now or datetime.now()
        try:
            return datetime.fromisoformat(self.expires_at) <= now
        except ValueError:
            return True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            uid=str(data["uid"]),
            email=str(data["email"]),
            token=str(data["token"]),
            provider=str(data.get("provider", "local")),
            expires_at=data.get("expires_at"),
        )


class AuthBackend(Protocol):
    """Something that can turn credentials into a Session."""

    name: str

    def sign_in(self, email: str, password: str) -> Session:
        ...


# ---------------------------------------------------------------------------
# Local backend
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Return the salted bcrypt hash stored in ``auth.users``."""
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check *password* against a stored bcrypt hash.

    Malformed hashes (including digests from older configs) never match.
    """
    password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed.encode("utf-8"))
    except ValueError:
        logger.debug("Stored password hash is not a bcrypt hash")
        return False


class LocalAuthBackend:
    """Checks credentials against the ``auth.users`` table of the site config."""

    name = "local"

    def __init__(self, users: dict[str, str]):
        self.users = {email.lower(): digest for email, digest in users.items()}

    def sign_in(self, email: str, password: str) -> Session:
        expected = self.users.get(email.strip().lower())
        if expected is None or not verify_password(password, str(expected)):
            raise AuthError("Invalid email or password")
        expires = datetime.now() + timedelta(hours=LOCAL_SESSION_HOURS)
        return Session(
            uid=hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()[:28],
            email=email.strip(),
            token=secrets.token_hex(16),
            provider=self.name,
            expires_at=expires.isoformat(timespec="seconds"),
        )


def get_auth_backend(config: dict[str, Any]) -> AuthBackend:
    """Build the auth backend selected by ``auth.provider``.

    Raises:
        ValueError: If the provider is unknown or not configured
    """
    auth_config: dict[str, Any] = config.get("auth", {})
    provider = str(auth_config.get("provider", "local")).lower()

    if provider == "local":
        return LocalAuthBackend(dict(auth_config.get("users", {}) or {}))

    if provider == "firebase":
        from labsite.auth.firebase import FirebaseAuthBackend

        api_key = auth_config.get("api_key") or config.get("firestore", {}).get("api_key")
        if not api_key:
            raise ValueError("auth.api_key (or firestore.api_key) is not configured")
        return FirebaseAuthBackend(api_key=str(api_key))

    raise ValueError(f"Unknown auth provider: {provider!r} (expected 'local' or 'firebase')")


# ---------------------------------------------------------------------------
# Session manager
# ---------------------------------------------------------------------------


SessionListener = Callable[[Session | None], None]


class SessionManager:
    """Holds the current session and notifies subscribers of changes."""

    def __init__(self, backend: AuthBackend, cache_path: Path | None = None):
        """Initialize the manager, restoring a cached session if present.

        Args:
            backend: Credential checker
            cache_path: JSON file the session persists to (None = memory only)
        """
        self.backend = backend
        self.cache_path = Path(cache_path) if cache_path is not None else None
        self._session: Session | None = None
        self._listeners: list[SessionListener] = []
        self._restore()

    @property
    def current_session(self) -> Session | None:
        """The signed-in session, or None. Expired sessions read as None."""
        if self._session is not None and self._session.is_expired():
            logger.debug("Session for %s expired", self._session.email)
            self._set(None)
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call *listener* with the new session on every change.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_in(self, email: str, password: str) -> Session:
        """Sign in through the backend.

        Raises:
            AuthError: If the credentials are rejected
        """
        session = self.backend.sign_in(email, password)
        self._set(session)
        logger.debug("Signed in %s via %s", session.email, session.provider)
        return session

    def sign_out(self) -> None:
        """Forget the current session."""
        if self._session is not None:
            logger.debug("Signed out %s", self._session.email)
        self._set(None)

    def require(self) -> Session:
        """Return the current session.

        Raises:
            AuthError: If nobody is signed in
        """
        session = self.current_session
        if session is None:
            raise AuthError("Not signed in. Run 'labsite auth login' first.")
        return session

    # -- internals ----------------------------------------------------------

    def _set(self, session: Session | None) -> None:
        changed = session != self._session
        self._session = session
        self._persist()
        if changed:
            for listener in list(self._listeners):
                listener(session)

    def _persist(self) -> None:
        if self.cache_path is None:
            return
        if self._session is None:
            if self.cache_path.exists():
                self.cache_path.unlink()
            return
        safe_write_json(self.cache_path, self._session.to_dict(), create_backup_first=False)

    def _restore(self) -> None:
        if self.cache_path is None or not self.cache_path.exists():
            return
        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
            session = Session.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError):
            logger.debug("Ignoring unreadable session cache %s", self.cache_path, exc_info=True)
            return
        if session.is_expired():
            self.cache_path.unlink()
            return
        self._session = session
