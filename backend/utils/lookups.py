"""
lookups.py — Batched foreign-key → display-name resolution.

List and detail views need names for many parties / users / cases at once.
Each helper issues one IN query for the distinct ids and returns results in
the order of the ids given, with the fallback for missing or null ids.
"""

from utils.display import (
    party_display_name, user_display_name,
    PARTY_FALLBACK, USER_FALLBACK, CASE_FALLBACK,
)


def _fetch(model, firm_id, ids):
    wanted = {i for i in ids if i}
    if not wanted:
        return {}
    rows = model.query.filter(model.firm_id == firm_id, model.id.in_(wanted)).all()
    return {row.id: row for row in rows}


def parties_by_id(firm_id, ids) -> dict:
    from models import Party
    return _fetch(Party, firm_id, ids)


def users_by_id(firm_id, ids) -> dict:
    from models import User
    return _fetch(User, firm_id, ids)


def party_names(firm_id, ids, fallback=PARTY_FALLBACK) -> list:
    found = parties_by_id(firm_id, ids)
    return [party_display_name(found.get(i), fallback) for i in ids]


def user_names(firm_id, ids, fallback=USER_FALLBACK) -> list:
    found = users_by_id(firm_id, ids)
    return [user_display_name(found.get(i), fallback) for i in ids]


def case_titles(firm_id, ids, fallback=CASE_FALLBACK) -> list:
    from models import Case
    found = _fetch(Case, firm_id, ids)
    return [found[i].title if i in found else fallback for i in ids]
