from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.starter import create_app
from app.starter.db import session_factory, session_scope
from app.starter.models import Account, Base
from app.starter.modules.accounts.validator import AccountValidator
from app.starter.security import Hasher
from app.starter.unit_of_work import UnitOfWork
from app.starter.views import (
    AccountCreateView,
    AccountEditView,
    AccountLoginView,
    AccountRecoveryView,
    AccountResetView,
    ProfileDeleteView,
    ProfileEditView,
)


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("LANGUAGE", "en")
    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        s.add_all(
            [
                Account(
                    username="Jonas",
                    email="jonas@example.com",
                    passhash=generate_password_hash("password1"),
                    recovery_token="valid-token",
                    recovery_token_expiration_date=datetime.utcnow() + timedelta(minutes=10),
                ),
                Account(
                    username="locked",
                    email="locked@example.com",
                    passhash=generate_password_hash("password1"),
                    is_locked=True,
                    recovery_token="old-token",
                    recovery_token_expiration_date=datetime.utcnow() - timedelta(minutes=1),
                ),
            ]
        )
    return app


@pytest.fixture()
def validator(app):
    uow = UnitOfWork(session_factory(app)())
    with app.app_context():
        yield AccountValidator(uow, Hasher())
    uow.close()


def _id(app, username: str) -> int:
    s = session_factory(app)()
    try:
        return s.query(Account).filter(Account.username == username).one().id
    finally:
        s.close()


def test_can_login_is_case_insensitive(validator):
    assert validator.can_login(AccountLoginView(username="JONAS", password="password1"))
    assert validator.errors == []


@pytest.mark.parametrize(
    "username,password",
    [("Jonas", "wrong-password"), ("nobody", "password1")],
)
def test_can_not_login_with_bad_credentials(validator, username, password):
    assert not validator.can_login(AccountLoginView(username=username, password=password))
    assert validator.errors == ["Invalid username or password."]


def test_can_not_login_when_locked(validator):
    assert not validator.can_login(AccountLoginView(username="locked", password="password1"))
    assert validator.errors == ["Your account has been locked."]


def test_can_not_login_without_fields(validator):
    assert not validator.can_login(AccountLoginView())
    assert validator.errors == ["Username field is required.", "Password field is required."]


def test_can_recover_requires_valid_email(validator):
    assert validator.can_recover(AccountRecoveryView(email="someone@example.com"))
    assert not validator.can_recover(AccountRecoveryView(email="not-an-email"))


def test_can_reset_with_valid_token(validator):
    view = AccountResetView(token="valid-token", new_password="brandnew1", new_password_confirmation="brandnew1")
    assert validator.can_reset(view)


@pytest.mark.parametrize("token", ["old-token", "unknown", ""])
def test_can_not_reset_with_expired_or_unknown_token(validator, token):
    view = AccountResetView(token=token, new_password="brandnew1", new_password_confirmation="brandnew1")
    assert not validator.can_reset(view)
    assert validator.errors == ["Recovery token has expired or is not valid."]


def test_can_not_reset_with_mismatched_passwords(validator):
    view = AccountResetView(token="valid-token", new_password="brandnew1", new_password_confirmation="brandnew2")
    assert not validator.can_reset(view)
    assert "Passwords do not match." in validator.errors


def test_can_create_rejects_duplicates_and_short_password(validator):
    view = AccountCreateView(username="jonas", email="JONAS@example.com", password="short")
    assert not validator.can_create(view)
    assert "Username is already taken." in validator.errors
    assert "Email address is already in use." in validator.errors
    assert "Password must be at least 8 characters long." in validator.errors


def test_can_create_new_account(validator):
    assert validator.can_create(AccountCreateView(username="ona", email="ona@example.com", password="password1"))


def test_can_edit_keeps_own_username(app, validator):
    view = AccountEditView(id=_id(app, "Jonas"), username="Jonas", email="jonas@example.com")
    assert validator.can_edit(view)


def test_can_not_edit_into_taken_username(app, validator):
    view = AccountEditView(id=_id(app, "Jonas"), username="LOCKED", email="jonas@example.com")
    assert not validator.can_edit(view)
    assert validator.errors == ["Username is already taken."]


def test_can_edit_profile_requires_current_password(app, validator):
    validator.current_account_id = _id(app, "Jonas")
    view = ProfileEditView(username="Jonas", email="jonas@example.com", password="wrong")
    assert not validator.can_edit_profile(view)
    assert validator.errors == ["Incorrect password."]


def test_can_edit_profile_with_new_password(app, validator):
    validator.current_account_id = _id(app, "Jonas")
    view = ProfileEditView(
        username="Jonas",
        email="jonas@example.com",
        password="password1",
        new_password="brandnew1",
        new_password_confirmation="brandnew1",
    )
    assert validator.can_edit_profile(view)


def test_can_delete_profile(app, validator):
    validator.current_account_id = _id(app, "Jonas")
    assert validator.can_delete_profile(ProfileDeleteView(password="password1"))
    assert not validator.can_delete_profile(ProfileDeleteView(password="nope"))
