from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, TypeVar

from flask import current_app, has_app_context, session
from sqlalchemy import func

from app.starter.mapping import resolver
from app.starter.models import Account, Role
from app.starter.rbac import refresh_authorization
from app.starter.views import (
    AccountCreateView,
    AccountEditView,
    AccountRecoveryView,
    AccountResetView,
    AccountView,
    ProfileEditView,
)

if TYPE_CHECKING:
    from app.starter.security import Hasher
    from app.starter.unit_of_work import UnitOfWork

V = TypeVar("V")

DEFAULT_RECOVERY_TOKEN_LIFETIME = timedelta(minutes=30)


@resolver(AccountView, "role_title")
def _role_title(account: Account) -> str | None:
    return account.role.title if account.role else None


def recovery_token_lifetime() -> timedelta:
    if has_app_context():
        minutes = current_app.config.get("RECOVERY_TOKEN_LIFETIME_MINUTES")
        if minutes:
            return timedelta(minutes=int(minutes))
    return DEFAULT_RECOVERY_TOKEN_LIFETIME


def find_by_username(uow: "UnitOfWork", username: str | None) -> Account | None:
    username = (username or "").strip().lower()
    return uow.select(Account).filter(func.lower(Account.username) == username).one_or_none()


def find_by_email(uow: "UnitOfWork", email: str | None) -> Account | None:
    email = (email or "").strip().lower()
    return uow.select(Account).filter(func.lower(Account.email) == email).one_or_none()


class AccountService:
    def __init__(self, unit_of_work: "UnitOfWork", hasher: "Hasher") -> None:
        self.unit_of_work = unit_of_work
        self.hasher = hasher
        self.current_account_id: int | None = None

    def get(self, view: type[V], id: int) -> V | None:
        return self.unit_of_work.get_as(Account, view, id)

    def get_views(self) -> list[AccountView]:
        accounts = self.unit_of_work.select(Account).order_by(Account.id.desc()).all()
        return [self.unit_of_work.to(AccountView, a) for a in accounts]

    def is_logged_in(self) -> bool:
        return bool(session.get("account_id"))

    def is_active(self, id: int) -> bool:
        account = self.unit_of_work.get(Account, id)
        return account is not None and not account.is_locked

    def recover(self, view: AccountRecoveryView) -> str | None:
        account = find_by_email(self.unit_of_work, view.email)
        if account is None:
            return None

        account.recovery_token = str(uuid.uuid4())
        account.recovery_token_expiration_date = datetime.utcnow() + recovery_token_lifetime()
        self.unit_of_work.update(account)
        self.unit_of_work.commit()
        return account.recovery_token

    def reset(self, view: AccountResetView) -> None:
        token = (view.token or "").strip()
        account = None
        if token:
            account = self.unit_of_work.select(Account).filter(Account.recovery_token == token).one_or_none()
        if account is None:
            raise LookupError("No account holds this recovery token")
        account.passhash = self.hasher.hash_password(view.new_password)
        account.recovery_token_expiration_date = None
        account.recovery_token = None

        self.unit_of_work.update(account)
        self.unit_of_work.commit()

    def create(self, view: AccountCreateView) -> Account:
        account = Account(
            username=view.username.strip(),
            email=view.email.strip().lower(),
            passhash=self.hasher.hash_password(view.password),
            is_locked=False,
            role_id=view.role_id,
        )
        if view.created_at is not None:
            account.created_at = view.created_at

        self.unit_of_work.insert(account)
        self.unit_of_work.commit()
        refresh_authorization()
        return account

    def edit(self, view: AccountEditView) -> None:
        account = self.unit_of_work.get(Account, view.id)
        if account is None:
            raise LookupError(f"Account {view.id} does not exist")
        account.username = view.username.strip()
        account.email = view.email.strip().lower()
        account.is_locked = view.is_locked
        # Both sides, so the audit log sees the column change before the flush.
        account.role_id = view.role_id
        account.role = self.unit_of_work.get(Role, view.role_id) if view.role_id else None

        self.unit_of_work.update(account)
        self.unit_of_work.commit()
        refresh_authorization()

    def edit_profile(self, view: ProfileEditView) -> None:
        account = self.unit_of_work.get(Account, self.current_account_id)
        if account is None:
            raise LookupError(f"Account {self.current_account_id} does not exist")
        if (view.new_password or "").strip():
            account.passhash = self.hasher.hash_password(view.new_password)
        account.username = view.username.strip()
        account.email = view.email.strip().lower()

        self.unit_of_work.update(account)
        self.unit_of_work.commit()

    def delete(self, id: int) -> None:
        self.unit_of_work.delete_by_id(Account, id)
        self.unit_of_work.commit()
        refresh_authorization()

    def login(self, username: str, is_persistent: bool = True) -> None:
        account = find_by_username(self.unit_of_work, username)
        if account is None:
            raise LookupError(f"Account {username!r} does not exist")
        session["account_id"] = str(account.id)
        session.permanent = is_persistent

    def logout(self) -> None:
        session.clear()
