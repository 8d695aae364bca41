from __future__ import annotations

import re
from typing import Any

from app.starter.resources import property_title, validation

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_valid_email(email: str | None) -> bool:
    return bool(email and EMAIL_PATTERN.match(email.strip()))


class Validator:
    """
    Collects localized error messages for a view; `errors` is what
    controllers flash back to the user.
    """

    def __init__(self) -> None:
        self.errors: list[str] = []

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def _title(self, view: Any, name: str) -> str:
        return property_title(type(view), name)

    def required(self, view: Any, *names: str) -> bool:
        ok = True
        for name in names:
            value = getattr(view, name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                self.add_error(validation("required", self._title(view, name)))
                ok = False
        return ok

    def email(self, view: Any, name: str) -> bool:
        value = getattr(view, name, None)
        if value and not is_valid_email(value):
            self.add_error(validation("email", self._title(view, name)))
            return False
        return True

    def min_length(self, view: Any, name: str, length: int) -> bool:
        value = getattr(view, name, None) or ""
        if value and len(value) < length:
            self.add_error(validation("min_length", self._title(view, name), length))
            return False
        return True

    def max_length(self, view: Any, name: str, length: int) -> bool:
        value = getattr(view, name, None) or ""
        if len(value) > length:
            self.add_error(validation("max_length", self._title(view, name), length))
            return False
        return True
