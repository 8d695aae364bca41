from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class BaseModel(Base):
    """
    Common columns of every entity handled by the unit of work.
    `created_at` is set once on insert and never touched by updates.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class RolePermission(Base):
    __tablename__ = "role_permissions"
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    permission_id: Mapped[int] = mapped_column(ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True)


class Account(BaseModel):
    __tablename__ = "accounts"

    username: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)  # always lower-case
    passhash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    recovery_token: Mapped[str | None] = mapped_column(String(36), nullable=True, unique=True)
    recovery_token_expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    role_id: Mapped[int | None] = mapped_column(ForeignKey("roles.id", ondelete="SET NULL"), nullable=True)
    role: Mapped["Role | None"] = relationship(back_populates="accounts", lazy="selectin")


class Role(BaseModel):
    __tablename__ = "roles"

    title: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    accounts: Mapped[list[Account]] = relationship(back_populates="role", lazy="selectin", passive_deletes=True)
    permissions: Mapped[list["Permission"]] = relationship(
        secondary="role_permissions",
        back_populates="roles",
        lazy="selectin",
    )


class Permission(BaseModel):
    __tablename__ = "permissions"

    key: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)  # e.g. "administration.accounts.edit"
    area: Mapped[str | None] = mapped_column(String(64), nullable=True)
    controller: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)

    roles: Mapped[list[Role]] = relationship(secondary="role_permissions", back_populates="permissions", lazy="selectin")


class AuditLog(BaseModel):
    """
    Append-only audit trail.
    Entity changes carry field-level before/after values in `changes`;
    events (login, logout, ...) carry free-form metadata there.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_created_at", "created_at"),
        Index("ix_audit_logs_account_id", "account_id"),
        Index("ix_audit_logs_entity", "entity_name", "entity_id"),
    )

    # Not a foreign key: the log must outlive the account it mentions.
    account_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # "create" / "edit" / "delete" / "auth.login"
    entity_name: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Account"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    changes: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON
