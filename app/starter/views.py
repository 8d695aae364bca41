"""
View models passed between controllers, services and templates.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class BaseView:
    id: int = 0
    created_at: datetime | None = None


@dataclass
class AccountView(BaseView):
    username: str = ""
    email: str = ""
    is_locked: bool = False
    role_title: str | None = None


@dataclass
class AccountCreateView(BaseView):
    username: str = ""
    password: str = ""
    email: str = ""
    role_id: int | None = None


@dataclass
class AccountEditView(BaseView):
    username: str = ""
    email: str = ""
    is_locked: bool = False
    role_id: int | None = None


@dataclass
class ProfileEditView(BaseView):
    username: str = ""
    email: str = ""
    password: str = ""
    new_password: str | None = None
    new_password_confirmation: str | None = None


@dataclass
class ProfileDeleteView:
    password: str = ""


@dataclass
class AccountLoginView:
    username: str = ""
    password: str = ""
    is_persistent: bool = True
    next: str = ""


@dataclass
class AccountRecoveryView:
    email: str = ""


@dataclass
class AccountResetView:
    token: str = ""
    new_password: str = ""
    new_password_confirmation: str = ""


@dataclass
class RoleView(BaseView):
    title: str = ""
    permission_ids: list[int] = field(default_factory=list)


@dataclass
class AuditLogView(BaseView):
    account_id: int | None = None
    action: str = ""
    entity_name: str | None = None
    entity_id: str | None = None
    changes: str | None = None
