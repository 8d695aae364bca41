from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func

from app.starter.mapping import resolver
from app.starter.models import Account, Permission, Role
from app.starter.rbac import refresh_authorization
from app.starter.resources import validation
from app.starter.validation import Validator
from app.starter.views import RoleView

if TYPE_CHECKING:
    from app.starter.unit_of_work import UnitOfWork


@resolver(RoleView, "permission_ids")
def _permission_ids(role: Role) -> list[int]:
    return sorted(p.id for p in role.permissions)


class RoleService:
    def __init__(self, unit_of_work: "UnitOfWork") -> None:
        self.unit_of_work = unit_of_work

    def get_views(self) -> list[RoleView]:
        roles = self.unit_of_work.select(Role).order_by(Role.id.desc()).all()
        return [self.unit_of_work.to(RoleView, r) for r in roles]

    def get_view(self, id: int) -> RoleView | None:
        return self.unit_of_work.get_as(Role, RoleView, id)

    def permissions(self) -> list[Permission]:
        return (
            self.unit_of_work.select(Permission)
            .order_by(Permission.area, Permission.controller, Permission.action)
            .all()
        )

    def _permissions_by_id(self, ids: list[int]) -> list[Permission]:
        if not ids:
            return []
        return self.unit_of_work.select(Permission).filter(Permission.id.in_(ids)).all()

    def create(self, view: RoleView) -> Role:
        role = Role(title=view.title.strip())
        role.permissions = self._permissions_by_id(view.permission_ids)

        self.unit_of_work.insert(role)
        self.unit_of_work.commit()
        refresh_authorization()
        return role

    def edit(self, view: RoleView) -> None:
        role = self.unit_of_work.get(Role, view.id)
        if role is None:
            raise LookupError(f"Role {view.id} does not exist")
        role.title = view.title.strip()
        role.permissions = self._permissions_by_id(view.permission_ids)

        self.unit_of_work.update(role)
        self.unit_of_work.commit()
        refresh_authorization()

    def delete(self, id: int) -> None:
        role = self.unit_of_work.get(Role, id)
        if role is None:
            return
        for account in self.unit_of_work.select(Account).filter(Account.role_id == id).all():
            account.role_id = None
            account.role = None
            self.unit_of_work.update(account)
        self.unit_of_work.delete(role)
        self.unit_of_work.commit()
        refresh_authorization()


class RoleValidator(Validator):
    def __init__(self, unit_of_work: "UnitOfWork") -> None:
        super().__init__()
        self.unit_of_work = unit_of_work

    def can_create(self, view: RoleView) -> bool:
        return self._check_title(view, exclude_id=None)

    def can_edit(self, view: RoleView) -> bool:
        return self._check_title(view, exclude_id=view.id)

    def _check_title(self, view: RoleView, *, exclude_id: int | None) -> bool:
        if not self.required(view, "title"):
            return False
        self.max_length(view, "title", 128)
        title = view.title.strip().lower()
        existing = self.unit_of_work.select(Role).filter(func.lower(Role.title) == title).one_or_none()
        if existing is not None and existing.id != exclude_id:
            self.add_error(validation("unique_title"))
        return self.is_valid
