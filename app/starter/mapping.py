from __future__ import annotations

import types
import typing
from collections.abc import Callable, Mapping
from dataclasses import fields
from typing import Any, TypeVar

T = TypeVar("T")

_resolvers: dict[tuple[type, str], Callable[[Any], Any]] = {}


def resolver(view: type, name: str) -> Callable[[Callable[[Any], Any]], Callable[[Any], Any]]:
    """Register a function computing `view.name` from a source object."""

    def decorator(fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
        _resolvers[(view, name)] = fn
        return fn

    return decorator


def map_to(view: type[T], source: Any) -> T:
    """
    Copy attributes of `source` onto a new `view` by field name.
    Fields neither present on the source nor resolvable keep their defaults.
    """
    values: dict[str, Any] = {}
    for f in fields(view):  # type: ignore[arg-type]
        fn = _resolvers.get((view, f.name))
        if fn is not None:
            values[f.name] = fn(source)
        elif hasattr(source, f.name):
            values[f.name] = getattr(source, f.name)
    return view(**values)


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """`int | None` -> (int, True); `int` -> (int, False)."""
    origin = typing.get_origin(tp)
    if origin in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1 and len(args) != len(typing.get_args(tp)):
            return args[0], True
    return tp, False


def _convert(raw: str | None, tp: Any) -> Any:
    inner, optional = unwrap_optional(tp)
    if inner is bool:
        return (raw or "").strip().lower() in ("1", "true", "on", "yes")
    if raw is None or (optional and raw.strip() == ""):
        return None
    if inner is int:
        try:
            return int(raw)
        except ValueError:
            return None if optional else 0
    return raw


def bind(view: type[T], form: Mapping[str, Any], **overrides: Any) -> T:
    """
    Build `view` from submitted form data, converting values by the
    dataclass annotations. Missing fields keep their defaults.
    """
    hints = typing.get_type_hints(view)
    values: dict[str, Any] = {}
    for f in fields(view):  # type: ignore[arg-type]
        tp = hints[f.name]
        if typing.get_origin(tp) is list:
            getlist = getattr(form, "getlist", None)
            raw_items = getlist(f.name) if getlist else form.get(f.name) or []
            (item_tp,) = typing.get_args(tp) or (str,)
            values[f.name] = [v for v in (_convert(r, item_tp | None) for r in raw_items) if v is not None]
            continue
        inner, _ = unwrap_optional(tp)
        if f.name not in form:
            # Unchecked checkboxes are not submitted at all.
            if inner is bool:
                values[f.name] = False
            continue
        values[f.name] = _convert(form.get(f.name), tp)
    values.update(overrides)
    return view(**values)
