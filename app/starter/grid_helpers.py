"""
Column and option presets for grids over view models.
"""
from __future__ import annotations

import typing
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from flask import g, request, url_for

from app.starter import rbac
from app.starter.grid import GridColumn, GridColumnCollection, GridOptions
from app.starter.mapping import unwrap_optional
from app.starter.resources import current_language, property_title, short_date_pattern, table

PAGE_SIZE = 20


class LinkAction(str, Enum):
    CREATE = "create"
    DETAILS = "details"
    EDIT = "edit"
    DELETE = "delete"


_ACTION_ICONS = {
    LinkAction.DETAILS: "fa-info",
    LinkAction.EDIT: "fa-pencil",
    LinkAction.DELETE: "fa-times",
}


def css_class_for(tp: Any) -> str:
    tp, _ = unwrap_optional(tp)
    if not isinstance(tp, type):
        return "text-cell"
    if issubclass(tp, Enum) or issubclass(tp, bool):
        return "text-cell"
    if issubclass(tp, (int, float, Decimal)):
        return "number-cell"
    if issubclass(tp, (date, time)):  # datetime is a date
        return "date-cell"
    return "text-cell"


def _field_type(view: type, name: str) -> Any:
    hints = typing.get_type_hints(view)
    if name not in hints:
        raise AttributeError(f"{view.__name__} has no field {name!r}")
    return hints[name]


def add_action_link(columns: GridColumnCollection, action: LinkAction) -> GridColumn | None:
    icon = _ACTION_ICONS.get(action)
    if icon is None:
        return None
    endpoint = f"{request.blueprint}.{action.value}" if request.blueprint else action.value
    if not rbac.is_authorized_for(getattr(g, "current_account", None), endpoint):
        return None

    def render(view: Any) -> str:
        return (
            f'<div class="action-link-container {action.value}-action-link">'
            f'<a href="{url_for("." + action.value, id=view.id)}">'
            f'<i class="fa {icon}"></i>'
            "</a>"
            "</div>"
        )

    return (
        columns.add()
        .render_value_as(render)
        .css("action-link-cell")
        .encoded(False)
        .sanitized(False)
        .set_width(25)
    )


def add_date_property(columns: GridColumnCollection, name: str) -> GridColumn:
    return (
        columns.add(name)
        .titled(property_title(columns.view, name))
        .css("date-cell")
        .format("{:" + short_date_pattern() + "}")
    )


def add_property(columns: GridColumnCollection, name: str) -> GridColumn:
    return (
        columns.add(name)
        .titled(property_title(columns.view, name))
        .css(css_class_for(_field_type(columns.view, name)))
    )


def apply_attributes(options: GridOptions, view: type) -> GridOptions:
    return (
        options.empty_text(table("no_data_found"))
        .set_language(current_language())
        .named(view.__name__)
        .with_multiple_filters()
        .selectable(False)
        .with_paging(PAGE_SIZE)
        .filterable()
        .sortable()
    )
