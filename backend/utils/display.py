"""
display.py — Display names and badge variants shared by every view.

Party name rule (used wherever a party is rendered):
    organization_name if non-empty
    else "first last" trimmed
    else the caller's fallback literal
"""

from datetime import datetime, timezone

CLIENT_FALLBACK = "Unknown Client"
PARTY_FALLBACK  = "Unknown"
USER_FALLBACK   = "Unknown"
CASE_FALLBACK   = "Unknown Case"

CASE_STATUSES     = ("active", "pending", "closed")
DEADLINE_STATUSES = ("Pending", "Completed", "Overdue")
PRIORITIES        = ("High", "Medium", "Low")

_STATUS_VARIANTS = {
    "active":    "success",
    "pending":   "warning",
    "closed":    "default",
    "completed": "success",
    "overdue":   "danger",
}

_PRIORITY_VARIANTS = {
    "high":   "danger",
    "medium": "warning",
    "low":    "info",
}


def party_display_name(party, fallback: str = PARTY_FALLBACK) -> str:
    """Never raises; never returns a name built from missing parts."""
    if party is None:
        return fallback
    org = (getattr(party, "organization_name", None) or "").strip()
    if org:
        return org
    first = getattr(party, "first_name", None) or ""
    last  = getattr(party, "last_name", None) or ""
    name = f"{first} {last}".strip()
    return name or fallback


def user_display_name(user, fallback: str = USER_FALLBACK) -> str:
    if user is None:
        return fallback
    name = f"{user.first_name or ''} {user.last_name or ''}".strip()
    return name or fallback


# ─── Open-string status values ────────────────────────────────────────────────

def normalize_known(value, known):
    """
    Map `value` onto its canonical spelling in `known` (case-insensitive).
    Unrecognised strings are kept as given (trimmed).
    """
    if value is None:
        return None
    cleaned = str(value).strip()
    for canonical in known:
        if cleaned.lower() == canonical.lower():
            return canonical
    return cleaned


def normalize_case_status(status):
    return normalize_known(status, CASE_STATUSES)


def status_variant(status) -> str:
    return _STATUS_VARIANTS.get((status or "").strip().lower(), "info")


def priority_variant(priority) -> str:
    return _PRIORITY_VARIANTS.get((priority or "").strip().lower(), "default")


# ─── Dates ────────────────────────────────────────────────────────────────────

def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def iso(value):
    if value is None:
        return None
    return as_utc(value).isoformat()


def format_file_size(size) -> str:
    if not size:
        return "0 B"
    size = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
