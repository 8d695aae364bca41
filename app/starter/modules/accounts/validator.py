from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.starter.models import Account
from app.starter.modules.accounts.service import find_by_email, find_by_username
from app.starter.resources import validation
from app.starter.validation import Validator
from app.starter.views import (
    AccountCreateView,
    AccountEditView,
    AccountLoginView,
    AccountRecoveryView,
    AccountResetView,
    ProfileDeleteView,
    ProfileEditView,
)

if TYPE_CHECKING:
    from app.starter.security import Hasher
    from app.starter.unit_of_work import UnitOfWork

MIN_PASSWORD_LENGTH = 8
MAX_USERNAME_LENGTH = 32
MAX_EMAIL_LENGTH = 256


class AccountValidator(Validator):
    def __init__(self, unit_of_work: "UnitOfWork", hasher: "Hasher") -> None:
        super().__init__()
        self.unit_of_work = unit_of_work
        self.hasher = hasher
        self.current_account_id: int | None = None

    def can_login(self, view: AccountLoginView) -> bool:
        if not self.required(view, "username", "password"):
            return False
        account = find_by_username(self.unit_of_work, view.username)
        if account is None or not self.hasher.verify_password(view.password, account.passhash):
            self.add_error(validation("incorrect_credentials"))
        elif account.is_locked:
            self.add_error(validation("locked_account"))
        return self.is_valid

    def can_recover(self, view: AccountRecoveryView) -> bool:
        if self.required(view, "email"):
            self.email(view, "email")
        return self.is_valid

    def can_reset(self, view: AccountResetView) -> bool:
        if not self.can_use_token(view.token):
            return False
        self._new_password(view, "new_password", "new_password_confirmation", required=True)
        return self.is_valid

    def can_use_token(self, token: str | None) -> bool:
        account = None
        if token:
            account = self.unit_of_work.select(Account).filter(Account.recovery_token == token).one_or_none()
        expiration = account.recovery_token_expiration_date if account else None
        if expiration is None or expiration < datetime.utcnow():
            self.add_error(validation("expired_token"))
            return False
        return True

    def can_create(self, view: AccountCreateView) -> bool:
        self.required(view, "username", "password", "email")
        self._identity(view, exclude_id=None)
        self.min_length(view, "password", MIN_PASSWORD_LENGTH)
        return self.is_valid

    def can_edit(self, view: AccountEditView) -> bool:
        self.required(view, "username", "email")
        self._identity(view, exclude_id=view.id)
        return self.is_valid

    def can_edit_profile(self, view: ProfileEditView) -> bool:
        if not self._current_password(view.password):
            return False
        self.required(view, "username", "email")
        self._identity(view, exclude_id=self.current_account_id)
        if (view.new_password or "").strip():
            self._new_password(view, "new_password", "new_password_confirmation", required=False)
        return self.is_valid

    def can_delete_profile(self, view: ProfileDeleteView) -> bool:
        return self._current_password(view.password)

    def _current_password(self, password: str | None) -> bool:
        account = self.unit_of_work.get(Account, self.current_account_id) if self.current_account_id else None
        if account is None or not self.hasher.verify_password(password, account.passhash):
            self.add_error(validation("incorrect_password"))
            return False
        return True

    def _identity(self, view, *, exclude_id: int | None) -> None:
        self.max_length(view, "username", MAX_USERNAME_LENGTH)
        self.max_length(view, "email", MAX_EMAIL_LENGTH)
        self.email(view, "email")

        existing = find_by_username(self.unit_of_work, view.username) if view.username else None
        if existing is not None and existing.id != exclude_id:
            self.add_error(validation("unique_username"))
        existing = find_by_email(self.unit_of_work, view.email) if view.email else None
        if existing is not None and existing.id != exclude_id:
            self.add_error(validation("unique_email"))

    def _new_password(self, view, name: str, confirmation: str, *, required: bool) -> None:
        if required and not self.required(view, name):
            return
        self.min_length(view, name, MIN_PASSWORD_LENGTH)
        if (getattr(view, name) or "") != (getattr(view, confirmation) or ""):
            self.add_error(validation("password_mismatch"))
