from dataclasses import dataclass

import pytest
from werkzeug.datastructures import MultiDict

from app.starter import create_app
from app.starter.grid import Grid, GridColumn


@dataclass
class Row:
    id: int
    name: str
    city: str


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    return create_app()


ROWS = [Row(1, "Ona", "Vilnius"), Row(2, "jonas", "Kaunas"), Row(3, "Petras", "Vilnius")]


def _grid(**options) -> Grid:
    grid = Grid(ROWS, Row)
    grid.columns.add("name").titled("Name")
    grid.columns.add("city").titled("City")
    grid.options.filterable().sortable()
    if options.get("multiple"):
        grid.options.with_multiple_filters()
    return grid


def test_column_encodes_by_default():
    column = GridColumn("name")
    assert str(column.render_value(Row(1, "<b>x</b>", ""))) == "&lt;b&gt;x&lt;/b&gt;"


def test_column_sanitized_strips_tags():
    column = GridColumn("name").encoded(False)
    assert str(column.render_value(Row(1, "<b>x</b> & y", ""))) == "x &amp; y"


def test_column_raw_html_when_not_encoded_nor_sanitized():
    column = GridColumn().encoded(False).sanitized(False).render_value_as(lambda r: f"<i>{r.id}</i>")
    assert str(column.render_value(Row(7, "", ""))) == "<i>7</i>"


def test_column_format_string():
    column = GridColumn("id").format("#{:03d}")
    assert column.text(Row(5, "", "")) == "#005"


def test_sort_is_case_insensitive():
    grid = _grid().process({"grid-column": "name"})
    assert [r.name for r in grid.visible_rows] == ["jonas", "Ona", "Petras"]


def test_sort_ignores_unknown_columns():
    grid = _grid().process({"grid-column": "secret"})
    assert grid.sort_column is None
    assert [r.id for r in grid.visible_rows] == [1, 2, 3]


def test_single_filter_uses_first_only():
    args = MultiDict([("grid-filter", "city:vilnius"), ("grid-filter", "name:ona")])
    grid = _grid().process(args)
    assert grid.filters == {"city": "vilnius"}
    assert [r.id for r in grid.visible_rows] == [1, 3]


def test_multiple_filters_combine():
    args = MultiDict([("grid-filter", "city:vilnius"), ("grid-filter", "name:ona")])
    grid = _grid(multiple=True).process(args)
    assert [r.id for r in grid.visible_rows] == [1]


def test_filters_ignored_when_not_filterable():
    grid = Grid(ROWS, Row)
    grid.columns.add("city")
    grid.process(MultiDict([("grid-filter", "city:kaunas")]))
    assert len(grid.visible_rows) == 3


def test_page_is_clamped():
    grid = _grid()
    grid.options.with_paging(2)
    grid.process({"grid-page": "99"})
    assert grid.page == 2
    assert [r.id for r in grid.visible_rows] == [3]


def test_render_shows_empty_text(app):
    grid = Grid([], Row)
    grid.columns.add("name").titled("Name")
    grid.options.empty_text("Nothing here")
    with app.test_request_context("/"):
        html = str(grid.render())
    assert "Nothing here" in html
    assert "Name" in html


def test_sort_url_toggles_direction(app):
    grid = _grid()
    with app.test_request_context("/?grid-column=name&grid-dir=asc"):
        from flask import request

        grid.process(request.args)
        url = grid.sort_url(grid.columns.named("name"))
    assert "grid-dir=desc" in url
    assert "grid-column=name" in url


def test_filter_form_fields_are_understood():
    grid = _grid().process(MultiDict([("grid-filter-city", "kaunas")]))
    assert grid.filters == {"city": "kaunas"}
    assert [r.id for r in grid.visible_rows] == [2]
