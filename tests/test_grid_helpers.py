from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional
from unittest import mock

import pytest
from flask import g

from app.starter import create_app, rbac
from app.starter.grid import Grid, GridColumnCollection, GridOptions
from app.starter.grid_helpers import (
    LinkAction,
    add_action_link,
    add_date_property,
    add_property,
    apply_attributes,
    css_class_for,
)
from app.starter.views import AccountView, RoleView


class Color(Enum):
    RED = 1


@dataclass
class SampleView:
    id: int = 0
    count: int = 0
    price: Decimal | None = None
    created_at: datetime | None = None
    name: str = ""


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("LANGUAGE", "en")
    return create_app()


@pytest.fixture()
def provider(monkeypatch):
    fake = mock.Mock()
    fake.is_authorized_for.return_value = True
    monkeypatch.setattr(rbac, "provider", fake)
    return fake


@pytest.mark.parametrize(
    "tp",
    [int, float, Decimal, Optional[int], Optional[float], Decimal | None, int | None],
)
def test_numeric_types_are_number_cells(tp):
    assert css_class_for(tp) == "number-cell"


@pytest.mark.parametrize("tp", [datetime, date, time, Optional[datetime], date | None])
def test_temporal_types_are_date_cells(tp):
    assert css_class_for(tp) == "date-cell"


@pytest.mark.parametrize("tp", [str, Color, Optional[Color], bool, Optional[bool]])
def test_other_types_are_text_cells(tp):
    assert css_class_for(tp) == "text-cell"


@pytest.mark.parametrize("action", [LinkAction.DETAILS, LinkAction.EDIT, LinkAction.DELETE])
def test_authorized_action_link_adds_one_column(app, provider, action):
    columns = GridColumnCollection(RoleView)
    with app.test_request_context("/administration/roles/"):
        g.current_account = mock.Mock(id=1)
        column = add_action_link(columns, action)
        html = str(column.render_value(RoleView(id=42)))

    assert len(columns) == 1
    assert column.css_class == "action-link-cell"
    assert column.width == 25
    assert column.is_encoded is False
    assert column.is_sanitized is False
    provider.is_authorized_for.assert_called_once_with(1, f"administration.roles.{action.value}")
    icon = {"details": "fa-info", "edit": "fa-pencil", "delete": "fa-times"}[action.value]
    assert html == (
        f'<div class="action-link-container {action.value}-action-link">'
        f'<a href="/administration/roles/{action.value}/42"><i class="fa {icon}"></i></a>'
        "</div>"
    )


def test_unauthorized_action_link_adds_nothing(app, provider):
    provider.is_authorized_for.return_value = False
    columns = GridColumnCollection(AccountView)
    with app.test_request_context("/administration/accounts/"):
        g.current_account = mock.Mock(id=1)
        assert add_action_link(columns, LinkAction.EDIT) is None
    assert len(columns) == 0


def test_unsupported_action_adds_nothing(app, provider):
    columns = GridColumnCollection(AccountView)
    with app.test_request_context("/administration/accounts/"):
        g.current_account = mock.Mock(id=1)
        assert add_action_link(columns, LinkAction.CREATE) is None
    assert len(columns) == 0
    provider.is_authorized_for.assert_not_called()


def test_action_link_without_provider_is_always_added(app, monkeypatch):
    monkeypatch.setattr(rbac, "provider", None)
    columns = GridColumnCollection(AccountView)
    with app.test_request_context("/administration/accounts/"):
        g.current_account = None
        assert add_action_link(columns, LinkAction.DETAILS) is not None
    assert len(columns) == 1


def test_add_property_titles_and_css(app):
    columns = GridColumnCollection(SampleView)
    with app.test_request_context("/"):
        count = add_property(columns, "count")
        name = add_property(columns, "name")
        price = add_property(columns, "price")
    assert (count.name, count.css_class) == ("count", "number-cell")
    assert (name.title, name.css_class) == ("Name", "text-cell")
    assert price.css_class == "number-cell"


def test_add_property_unknown_field_raises(app):
    with app.test_request_context("/"):
        with pytest.raises(AttributeError):
            add_property(GridColumnCollection(SampleView), "missing")


def test_add_date_property_uses_short_date_pattern(app):
    columns = GridColumnCollection(SampleView)
    with app.test_request_context("/"):
        column = add_date_property(columns, "created_at")
    assert column.css_class == "date-cell"
    assert column.title == "Creation date"
    assert column.text(SampleView(created_at=datetime(2024, 3, 9, 15, 30))) == "03/09/2024"


def test_add_date_property_follows_request_language(app):
    columns = GridColumnCollection(SampleView)
    with app.test_request_context("/", headers={"Accept-Language": "lt"}):
        column = add_date_property(columns, "created_at")
    assert column.text(SampleView(created_at=datetime(2024, 3, 9))) == "2024-03-09"


def test_apply_attributes(app):
    with app.test_request_context("/"):
        options = apply_attributes(GridOptions(), AccountView)
    assert options.empty_message == "No data found"
    assert options.language == "en"
    assert options.name == "AccountView"
    assert options.multiple_filters is True
    assert options.is_selectable is False
    assert options.page_size == 20
    assert options.is_filterable is True
    assert options.is_sortable is True


def test_grid_processes_filter_sort_and_paging(app):
    rows = [SampleView(id=i, count=i, name=f"item {i:02d}") for i in range(1, 46)]
    grid = Grid(rows, SampleView)
    with app.test_request_context("/"):
        add_property(grid.columns, "name")
        add_property(grid.columns, "count")
        apply_attributes(grid.options, SampleView)

        grid.process({"grid-column": "count", "grid-dir": "desc", "grid-page": "2"})
        assert grid.total == 45
        assert grid.page_count == 3
        assert [r.count for r in grid.visible_rows][:2] == [25, 24]

        grid.process({"grid-filter": "name:item 1"})
        assert sorted(r.count for r in grid.visible_rows) == list(range(10, 20))
