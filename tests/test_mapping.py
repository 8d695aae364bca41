from types import SimpleNamespace

from werkzeug.datastructures import MultiDict

from app.starter.mapping import bind, map_to, unwrap_optional
from app.starter.modules.accounts.service import AccountService  # noqa: F401  (registers AccountView resolvers)
from app.starter.views import AccountEditView, AccountLoginView, AccountView, RoleView


def test_map_to_copies_fields_and_resolves_role_title():
    account = SimpleNamespace(id=3, created_at=None, username="jonas", email="j@example.com", is_locked=False, role=SimpleNamespace(title="Admin"))
    view = map_to(AccountView, account)
    assert (view.id, view.username, view.role_title) == (3, "jonas", "Admin")


def test_map_to_without_role():
    account = SimpleNamespace(id=3, username="jonas", email="j@example.com", is_locked=False, role=None)
    assert map_to(AccountView, account).role_title is None


def test_unwrap_optional():
    assert unwrap_optional(int | None) == (int, True)
    assert unwrap_optional(int) == (int, False)


def test_bind_converts_by_annotation():
    form = MultiDict({"id": "9", "username": "jonas", "email": "j@example.com", "is_locked": "true", "role_id": "2"})
    view = bind(AccountEditView, form)
    assert view == AccountEditView(id=9, username="jonas", email="j@example.com", is_locked=True, role_id=2)


def test_bind_blank_optional_int_is_none():
    view = bind(AccountEditView, MultiDict({"role_id": ""}))
    assert view.role_id is None


def test_bind_missing_checkbox_is_false():
    view = bind(AccountLoginView, MultiDict({"username": "jonas", "password": "pw"}))
    assert view.is_persistent is False


def test_bind_list_of_ints_and_overrides():
    form = MultiDict([("title", "Editor"), ("permission_ids", "1"), ("permission_ids", "3"), ("permission_ids", "x")])
    view = bind(RoleView, form, id=5)
    assert view.id == 5
    assert view.permission_ids == [1, 3]
