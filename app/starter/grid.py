"""
Server-side grid: a fluent column/option builder over a list of view
models, with filtering, sorting and paging driven by query arguments.

Query arguments (all optional):
    grid-page=<n>
    grid-column=<field>&grid-dir=asc|desc
    grid-filter=<field>:<text>   (repeatable when multiple filters are on)
    grid-filter-<field>=<text>
"""
from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from flask import render_template, request, url_for
from markupsafe import Markup, escape


class GridColumn:
    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self.title = ""
        self.css_class = ""
        self.format_string: str | None = None
        self.width: int | None = None
        self.is_encoded = True
        self.is_sanitized = True
        self.value_renderer: Callable[[Any], str] | None = None

    def titled(self, title: str) -> "GridColumn":
        self.title = title
        return self

    def css(self, css_class: str) -> "GridColumn":
        self.css_class = css_class
        return self

    def format(self, format_string: str) -> "GridColumn":
        self.format_string = format_string
        return self

    def set_width(self, width: int) -> "GridColumn":
        self.width = width
        return self

    def encoded(self, value: bool) -> "GridColumn":
        self.is_encoded = value
        return self

    def sanitized(self, value: bool) -> "GridColumn":
        self.is_sanitized = value
        return self

    def render_value_as(self, renderer: Callable[[Any], str]) -> "GridColumn":
        self.value_renderer = renderer
        return self

    def value(self, row: Any) -> Any:
        return getattr(row, self.name) if self.name else None

    def text(self, row: Any) -> str:
        if self.value_renderer is not None:
            return self.value_renderer(row)
        value = self.value(row)
        if value is None:
            return ""
        if self.format_string:
            return self.format_string.format(value)
        return str(value)

    def render_value(self, row: Any) -> Markup:
        raw = self.text(row)
        if self.is_encoded:
            return escape(raw)
        if self.is_sanitized:
            return escape(Markup(raw).striptags())
        return Markup(raw)


class GridColumnCollection:
    def __init__(self, view: type) -> None:
        self.view = view
        self._columns: list[GridColumn] = []

    def add(self, name: str | None = None) -> GridColumn:
        column = GridColumn(name)
        self._columns.append(column)
        return column

    def named(self, name: str) -> GridColumn | None:
        for column in self._columns:
            if column.name == name:
                return column
        return None

    def __iter__(self) -> Iterator[GridColumn]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __getitem__(self, index: int) -> GridColumn:
        return self._columns[index]


class GridOptions:
    def __init__(self) -> None:
        self.name = "grid"
        self.language = "en"
        self.empty_message = ""
        self.page_size: int | None = None
        self.multiple_filters = False
        self.is_selectable = True
        self.is_filterable = False
        self.is_sortable = False

    def named(self, name: str) -> "GridOptions":
        self.name = name
        return self

    def set_language(self, language: str) -> "GridOptions":
        self.language = language
        return self

    def empty_text(self, text: str) -> "GridOptions":
        self.empty_message = text
        return self

    def with_paging(self, page_size: int) -> "GridOptions":
        self.page_size = page_size
        return self

    def with_multiple_filters(self) -> "GridOptions":
        self.multiple_filters = True
        return self

    def selectable(self, value: bool) -> "GridOptions":
        self.is_selectable = value
        return self

    def filterable(self) -> "GridOptions":
        self.is_filterable = True
        return self

    def sortable(self) -> "GridOptions":
        self.is_sortable = True
        return self


def _sort_key(value: Any) -> tuple[bool, Any]:
    if isinstance(value, str):
        value = value.casefold()
    return (value is None, value)


class Grid:
    def __init__(self, rows: Iterable[Any], view: type) -> None:
        self.rows = list(rows)
        self.view = view
        self.columns = GridColumnCollection(view)
        self.options = GridOptions()
        self.page = 1
        self.sort_column: str | None = None
        self.sort_descending = False
        self.filters: dict[str, str] = {}
        self.total = len(self.rows)
        self._processed: list[Any] | None = None

    def process(self, args: Mapping[str, Any]) -> "Grid":
        rows = list(self.rows)

        self.filters = {}
        if self.options.is_filterable:
            getlist = getattr(args, "getlist", None)
            raw_filters = getlist("grid-filter") if getlist else [args["grid-filter"]] if "grid-filter" in args else []
            # Per-column inputs of the rendered filter form.
            for column in self.columns:
                text = args.get(f"grid-filter-{column.name}") if column.name else None
                if text:
                    raw_filters = [*raw_filters, f"{column.name}:{text}"]
            for raw in raw_filters:
                name, sep, text = raw.partition(":")
                if not sep or not text or self.columns.named(name) is None:
                    continue
                self.filters[name] = text
                if not self.options.multiple_filters:
                    break
        for name, text in self.filters.items():
            column = self.columns.named(name)
            needle = text.casefold()
            rows = [row for row in rows if needle in column.text(row).casefold()]  # type: ignore[union-attr]

        self.sort_column = None
        if self.options.is_sortable:
            name = args.get("grid-column")
            if name and self.columns.named(name) is not None:
                self.sort_column = name
                self.sort_descending = (args.get("grid-dir") or "asc").lower() == "desc"
                rows.sort(key=lambda row: _sort_key(getattr(row, name)), reverse=self.sort_descending)

        self.total = len(rows)
        if self.options.page_size:
            try:
                page = int(args.get("grid-page") or 1)
            except ValueError:
                page = 1
            self.page = min(max(page, 1), self.page_count)
            start = (self.page - 1) * self.options.page_size
            rows = rows[start:start + self.options.page_size]

        self._processed = rows
        return self

    @property
    def page_count(self) -> int:
        if not self.options.page_size:
            return 1
        return max(1, math.ceil(self.total / self.options.page_size))

    @property
    def visible_rows(self) -> list[Any]:
        if self._processed is None:
            self.process({})
        return self._processed  # type: ignore[return-value]

    def url(self, **params: Any) -> str:
        args = request.args.to_dict(flat=False)
        for key, value in params.items():
            arg = f"grid-{key}"
            if value is None:
                args.pop(arg, None)
            else:
                args[arg] = value
        return url_for(request.endpoint, **(request.view_args or {}), **args)

    def sort_url(self, column: GridColumn) -> str:
        descending = self.sort_column == column.name and not self.sort_descending
        return self.url(column=column.name, dir="desc" if descending else "asc", page=None)

    def page_url(self, page: int) -> str:
        return self.url(page=page)

    def render(self) -> Markup:
        if self._processed is None:
            self.process(request.args)
        return Markup(render_template("shared/grid.html", grid=self))
