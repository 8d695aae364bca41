from __future__ import annotations

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, redirect, request, url_for
from sqlalchemy.orm import Session, sessionmaker

from app.starter.models import Account, Permission

logger = logging.getLogger(__name__)


def permission_key(area: str | None, controller: str, action: str) -> str:
    """("Administration", "Accounts", "Edit") -> "administration.accounts.edit"."""
    parts = [p for p in (area, controller, action) if p]
    return ".".join(p.strip().lower() for p in parts)


class AuthorizationProvider:
    """
    In-memory view of which account may use which protected endpoint.
    Keys that no permission row mentions are unprotected.
    The cache is rebuilt by `refresh()`; callers mutating accounts or
    roles are expected to call it.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self._grants: dict[int, frozenset[str]] | None = None
        self._protected: frozenset[str] = frozenset()

    def is_authorized_for(self, account_id: int | None, key: str) -> bool:
        if self._grants is None:
            self.refresh()
        key = key.lower()
        if key not in self._protected:
            return True
        if account_id is None:
            return False
        return key in self._grants.get(account_id, frozenset())  # type: ignore[union-attr]

    def permissions_for(self, account_id: int | None) -> frozenset[str]:
        if self._grants is None:
            self.refresh()
        if account_id is None:
            return frozenset()
        return self._grants.get(account_id, frozenset())  # type: ignore[union-attr]

    def refresh(self) -> None:
        s: Session = self._session_factory()
        try:
            protected = frozenset(k.lower() for (k,) in s.query(Permission.key).all())
            grants: dict[int, frozenset[str]] = {}
            for account in s.query(Account).filter(Account.is_locked.is_(False)).all():
                role = account.role
                keys = {p.key.lower() for p in role.permissions} if role else set()
                grants[account.id] = frozenset(keys)
        finally:
            s.close()
        # Swap both at once; readers never see a half-built cache.
        self._protected, self._grants = protected, grants
        logger.info("Authorization refreshed: %d protected keys, %d accounts", len(protected), len(grants))


# Process-wide provider; None means authorization is not configured.
provider: AuthorizationProvider | None = None


def refresh_authorization() -> None:
    if provider is not None:
        provider.refresh()


def is_authorized_for(account: Account | None, key: str) -> bool:
    if provider is None:
        return True
    return provider.is_authorized_for(account.id if account else None, key)


def _login_redirect():
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login", next=nxt))


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if not getattr(g, "current_account", None):
            return _login_redirect()
        return fn(*args, **kwargs)

    return wrapped


def require_permission(key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            account: Account | None = getattr(g, "current_account", None)
            # Unauthenticated → redirect to login.
            if not account:
                return _login_redirect()
            # Authenticated but unauthorized → 403
            if not is_authorized_for(account, key):
                g.missing_permission = key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
