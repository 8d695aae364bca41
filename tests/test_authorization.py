from unittest import mock

import pytest
from flask import g

from app.starter import create_app, rbac
from app.starter.db import session_factory, session_scope
from app.starter.models import Account, Base, Permission, Role


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        edit = Permission(key="administration.accounts.edit", area="Administration", controller="Accounts", action="Edit")
        index = Permission(key="administration.accounts.index", area="Administration", controller="Accounts", action="Index")
        role = Role(title="Editor", permissions=[edit])
        s.add_all(
            [
                edit,
                index,
                role,
                Account(username="editor", email="editor@example.com", passhash="x", role=role),
                Account(username="locked", email="locked@example.com", passhash="x", role=role, is_locked=True),
                Account(username="plain", email="plain@example.com", passhash="x"),
            ]
        )
    return app


@pytest.fixture()
def provider(app):
    return rbac.AuthorizationProvider(session_factory(app))


def _id(app, username):
    s = session_factory(app)()
    try:
        return s.query(Account).filter_by(username=username).one().id
    finally:
        s.close()


def test_permission_key():
    assert rbac.permission_key("Administration", "Accounts", "Edit") == "administration.accounts.edit"
    assert rbac.permission_key(None, "Home", "Index") == "home.index"


def test_role_grants_protected_key(app, provider):
    assert provider.is_authorized_for(_id(app, "editor"), "administration.accounts.edit")
    assert provider.is_authorized_for(_id(app, "editor"), "Administration.Accounts.Edit")
    assert not provider.is_authorized_for(_id(app, "editor"), "administration.accounts.index")


def test_unprotected_keys_are_always_allowed(app, provider):
    assert provider.is_authorized_for(None, "routes.index")
    assert provider.is_authorized_for(_id(app, "plain"), "administration.accounts.details")


def test_anonymous_and_locked_accounts_get_nothing_protected(app, provider):
    assert not provider.is_authorized_for(None, "administration.accounts.edit")
    assert not provider.is_authorized_for(_id(app, "locked"), "administration.accounts.edit")
    assert provider.permissions_for(_id(app, "locked")) == frozenset()


def test_refresh_picks_up_role_changes(app, provider):
    plain_id = _id(app, "plain")
    assert not provider.is_authorized_for(plain_id, "administration.accounts.edit")

    with session_scope(app) as s:
        s.get(Account, plain_id).role = s.query(Role).one()

    # Cached until refreshed
    assert not provider.is_authorized_for(plain_id, "administration.accounts.edit")
    provider.refresh()
    assert provider.is_authorized_for(plain_id, "administration.accounts.edit")


def test_module_level_check_without_provider_allows_everything(monkeypatch):
    monkeypatch.setattr(rbac, "provider", None)
    assert rbac.is_authorized_for(None, "administration.accounts.edit")
    rbac.refresh_authorization()  # no-op


def test_module_level_check_delegates_to_provider(monkeypatch):
    fake = mock.Mock()
    fake.is_authorized_for.return_value = False
    monkeypatch.setattr(rbac, "provider", fake)
    account = mock.Mock(id=5)

    assert rbac.is_authorized_for(account, "x.y") is False
    fake.is_authorized_for.assert_called_once_with(5, "x.y")


def test_require_permission_redirects_anonymous_and_forbids_unauthorized(app, monkeypatch):
    fake = mock.Mock()
    fake.is_authorized_for.return_value = False
    monkeypatch.setattr(rbac, "provider", fake)

    @rbac.require_permission("administration.accounts.edit")
    def view():
        return "ok"

    with app.test_request_context("/administration/accounts/edit/1"):
        g.current_account = None
        r = view()
        assert r.status_code == 302
        assert "next=" in r.headers["Location"]

    from werkzeug.exceptions import Forbidden

    with app.test_request_context("/administration/accounts/edit/1"):
        g.current_account = mock.Mock(id=1)
        with pytest.raises(Forbidden):
            view()
        assert g.missing_permission == "administration.accounts.edit"

    fake.is_authorized_for.return_value = True
    with app.test_request_context("/administration/accounts/edit/1"):
        g.current_account = mock.Mock(id=1)
        assert view() == "ok"
