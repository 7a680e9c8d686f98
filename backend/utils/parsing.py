"""
parsing.py — Request-body field parsing with per-field error collection.

    form = FormReader(request.get_json() or {})
    title = form.text("title", required=True, min_len=2)
    due   = form.datetime("due_date", required=True)
    if form.errors:
        return validation_error(form.errors)
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
import re

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_MISSING = object()


class FormReader:
    def __init__(self, body: dict, partial: bool = False):
        self.body = body or {}
        self.partial = partial      # updates: absent fields are skipped, not required
        self.errors = {}

    def has(self, name) -> bool:
        return name in self.body

    def _raw(self, name, required):
        if name not in self.body:
            if self.partial:
                return _MISSING
            if required:
                self.errors[name] = "This field is required."
            return None
        value = self.body[name]
        if isinstance(value, str):
            value = value.strip()
        if value in (None, ""):
            if required:
                self.errors[name] = "This field is required."
            return None
        return value

    def text(self, name, required=False, min_len=None, max_len=None):
        value = self._raw(name, required)
        if value is _MISSING or value is None:
            return value
        value = str(value)
        if min_len and len(value) < min_len:
            self.errors[name] = f"Must be at least {min_len} characters."
        elif max_len and len(value) > max_len:
            self.errors[name] = f"Must be at most {max_len} characters."
        return value

    def email(self, name, required=False):
        value = self.text(name, required=required, max_len=255)
        if isinstance(value, str):
            value = value.lower()
            if not EMAIL_RE.match(value):
                self.errors[name] = "Invalid email address."
        return value

    def boolean(self, name, required=False):
        value = self._raw(name, required)
        if value is _MISSING or value is None:
            return value
        if isinstance(value, bool):
            return value
        if str(value).lower() in ("true", "1", "yes", "on"):
            return True
        if str(value).lower() in ("false", "0", "no", "off"):
            return False
        self.errors[name] = "Must be true or false."
        return None

    def integer(self, name, required=False, minimum=None):
        value = self._raw(name, required)
        if value is _MISSING or value is None:
            return value
        try:
            value = int(value)
        except (TypeError, ValueError):
            self.errors[name] = "Must be a whole number."
            return None
        if minimum is not None and value < minimum:
            self.errors[name] = f"Must be at least {minimum}."
        return value

    def decimal(self, name, required=False, minimum=None):
        value = self._raw(name, required)
        if value is _MISSING or value is None:
            return value
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError):
            self.errors[name] = "Must be a number."
            return None
        if not value.is_finite():
            self.errors[name] = "Must be a number."
            return None
        if minimum is not None and value < minimum:
            self.errors[name] = f"Must be at least {minimum}."
        return value

    def date(self, name, required=False):
        value = self._raw(name, required)
        if value is _MISSING or value is None:
            return value
        try:
            return parse_date(value)
        except ValueError:
            self.errors[name] = "Invalid date (expected YYYY-MM-DD)."
            return None

    def datetime(self, name, required=False):
        value = self._raw(name, required)
        if value is _MISSING or value is None:
            return value
        try:
            return parse_datetime(value)
        except ValueError:
            self.errors[name] = "Invalid date/time (expected ISO 8601)."
            return None


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_datetime(value) -> datetime:
    """ISO 8601 → aware UTC datetime. Bare dates mean midnight UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value).replace("Z", "+00:00")
        dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_missing(value) -> bool:
    return value is _MISSING
