"""
dashboard.py — Firm dashboard: headline counts, recent cases, upcoming
deadlines and the activity feed.
"""

from datetime import datetime, timezone
from flask import Blueprint, request, current_app

from models import AuditLog
from utils.audit import audit_dict
from utils.auth import login_required, get_current_firm_id
from utils.dashboard import dashboard_stats, recent_cases, upcoming_deadlines
from utils.lookups import user_names
from utils.response import success

dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.route("/", methods=["GET"])
@login_required
def dashboard_page():
    """
    GET /dashboard/

    Response:
    {
        "stats": { total_cases, active_cases, upcoming_deadlines,
                   total_parties, total_documents },
        "recent_cases": [ { ...case, client_name } ]   (newest 5)
    }
    """
    firm_id = get_current_firm_id()
    now = datetime.now(timezone.utc)
    return success(data={
        "stats": dashboard_stats(
            firm_id, now=now, window_days=current_app.config["UPCOMING_DEADLINE_DAYS"]
        ),
        "recent_cases": recent_cases(firm_id, limit=current_app.config["RECENT_CASES_LIMIT"]),
        "generated_at": now.isoformat(),
    })


@dashboard_bp.route("/upcoming-deadlines", methods=["GET"])
@login_required
def upcoming():
    """GET /dashboard/upcoming-deadlines — deadlines due within the window."""
    firm_id = get_current_firm_id()
    rows = upcoming_deadlines(firm_id, window_days=current_app.config["UPCOMING_DEADLINE_DAYS"])
    return success(data={"deadlines": rows, "total": len(rows)})


@dashboard_bp.route("/activity", methods=["GET"])
@login_required
def activity():
    """
    GET /dashboard/activity?limit=10
    Returns recent audit log entries for the firm.
    """
    firm_id = get_current_firm_id()
    try:
        limit = min(max(int(request.args.get("limit", 10)), 1), 50)
    except ValueError:
        limit = 10

    logs = (
        AuditLog.query
        .filter_by(firm_id=firm_id)
        .order_by(AuditLog.timestamp.desc())
        .limit(limit)
        .all()
    )
    actors = user_names(firm_id, [entry.performed_by for entry in logs], "System")
    items = []
    for entry, actor in zip(logs, actors):
        item = audit_dict(entry)
        item["performed_by_name"] = actor
        items.append(item)
    return success(data={"activity": items})
