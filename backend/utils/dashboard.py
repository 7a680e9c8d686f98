"""
dashboard.py — Firm dashboard aggregation.

The five headline counts are scalar subqueries of one SELECT, so the numbers
come from a single round trip and a single snapshot.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select, func

from database import db
from models import Case, Party, Document, Deadline
from utils.display import CLIENT_FALLBACK
from utils.lookups import party_names, user_names, case_titles
from utils.serialize import case_dict, deadline_dict


def _count(model, *criteria):
    return (
        select(func.count(model.id))
        .where(*criteria)
        .scalar_subquery()
    )


def upcoming_window(now=None, window_days: int = 7):
    now = now or datetime.now(timezone.utc)
    return now, now + timedelta(days=window_days)


def dashboard_stats(firm_id, now=None, window_days: int = 7) -> dict:
    """
    Exact counts for the caller's firm.

    upcoming_deadlines counts deadlines with now <= due_date <= now + window,
    whatever their status. total_documents includes templates.
    """
    start, end = upcoming_window(now, window_days)
    stmt = select(
        _count(Case, Case.firm_id == firm_id).label("total_cases"),
        _count(Case, Case.firm_id == firm_id, Case.status == "active").label("active_cases"),
        _count(
            Deadline,
            Deadline.firm_id == firm_id,
            Deadline.due_date >= start,
            Deadline.due_date <= end,
        ).label("upcoming_deadlines"),
        _count(Party, Party.firm_id == firm_id).label("total_parties"),
        _count(Document, Document.firm_id == firm_id).label("total_documents"),
    )
    row = db.session.execute(stmt).one()
    return {key: int(value or 0) for key, value in row._mapping.items()}


def recent_cases(firm_id, limit: int = 5) -> list:
    """Newest cases first, each with its client's display name."""
    cases = (
        Case.query
        .filter_by(firm_id=firm_id)
        .order_by(Case.created_at.desc())
        .limit(limit)
        .all()
    )
    names = party_names(firm_id, [c.client_id for c in cases], CLIENT_FALLBACK)
    return [case_dict(c, client_name=name) for c, name in zip(cases, names)]


def upcoming_deadlines(firm_id, now=None, window_days: int = 7) -> list:
    """The deadlines behind the upcoming_deadlines count, soonest first."""
    start, end = upcoming_window(now, window_days)
    rows = (
        Deadline.query
        .filter(
            Deadline.firm_id == firm_id,
            Deadline.due_date >= start,
            Deadline.due_date <= end,
        )
        .order_by(Deadline.due_date.asc())
        .all()
    )
    titles = case_titles(firm_id, [d.case_id for d in rows])
    owners = user_names(firm_id, [d.assigned_to for d in rows], "Unassigned")
    result = []
    for deadline, title, owner in zip(rows, titles, owners):
        item = deadline_dict(deadline, owner, now=start)
        item["case_title"] = title
        result.append(item)
    return result
