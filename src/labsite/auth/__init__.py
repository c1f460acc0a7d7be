"""Admin authentication: sessions and sign-in backends."""

from labsite.auth.session import (
    LocalAuthBackend,
    Session,
    SessionManager,
    get_auth_backend,
    hash_password,
    verify_password,
)

__all__ = [
    "Session",
    "SessionManager",
    "LocalAuthBackend",
    "get_auth_backend",
    "hash_password",
    "verify_password",
]
