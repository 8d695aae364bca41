import secrets

from flask import session, Request
from werkzeug.security import check_password_hash, generate_password_hash


class Hasher:
    """Password hashing used by the account service and validators."""

    def hash_password(self, value: str) -> str:
        return generate_password_hash(value)

    def verify_password(self, value: str | None, passhash: str | None) -> bool:
        if not value or not passhash:
            return False
        return check_password_hash(passhash, value)


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate CSRF token from form or header."""
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    return bool(token and secrets.compare_digest(token, session.get("csrf_token") or ""))
