import os
import sys
from pathlib import Path

from sqlalchemy import func
from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.starter.models import Account, Permission, Role
from app.starter.rbac import permission_key
from scripts._db_utils import script_session

# (area, controller, action) of every protected endpoint.
PERMISSIONS = [
    ("Administration", "Accounts", "Index"),
    ("Administration", "Accounts", "Create"),
    ("Administration", "Accounts", "Details"),
    ("Administration", "Accounts", "Edit"),
    ("Administration", "Roles", "Index"),
    ("Administration", "Roles", "Create"),
    ("Administration", "Roles", "Details"),
    ("Administration", "Roles", "Edit"),
    ("Administration", "Roles", "Delete"),
    ("Administration", "Logs", "Index"),
    ("Administration", "Logs", "Details"),
]

ADMIN_ROLE_TITLE = "Sys_Admin"


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions, the admin role and the admin account idempotently.
    Does NOT overwrite an existing admin account's password.
    """
    admin_username = (os.environ.get("ADMIN_USERNAME") or "admin").strip()
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///starter.db").strip()

    with script_session(db_url) as s:
        def ensure_perm(area: str, controller: str, action: str) -> Permission:
            key = permission_key(area, controller, action)
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, area=area, controller=controller, action=action)
                s.add(p)
            return p

        permissions = [ensure_perm(*parts) for parts in PERMISSIONS]

        role_admin = s.query(Role).filter(Role.title == ADMIN_ROLE_TITLE).one_or_none()
        if not role_admin:
            role_admin = Role(title=ADMIN_ROLE_TITLE)
            s.add(role_admin)
        for p in permissions:
            if p not in role_admin.permissions:
                role_admin.permissions.append(p)

        account = s.query(Account).filter(func.lower(Account.username) == admin_username.lower()).one_or_none()
        if not account:
            account = Account(
                username=admin_username,
                email=admin_email,
                passhash=generate_password_hash(admin_password),
                is_locked=False,
            )
            s.add(account)
        account.role = role_admin

    print("Initialized database (seed_only).")
    print(f"Admin username: {admin_username}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
