"""
cases.py — Case list, detail and lifecycle routes.

The lifecycle itself (foreclosure placeholder, status/closure rules, cascade
delete) lives in utils/cases.py; these routes parse input and shape output.
"""

from flask import Blueprint, request, redirect, url_for, current_app
from sqlalchemy import func

from database import db
from models import Case
from utils.auth import login_required, get_current_firm_id, get_current_user, wants_json
from utils.cases import (
    CaseError, create_case, update_case, change_status, delete_case,
    get_case_detail, list_rows,
)
from utils.display import CASE_STATUSES
from utils.pagination import paginate
from utils.parsing import FormReader, is_missing
from utils.response import success, created, paginated, error, not_found, validation_error

cases_bp = Blueprint("cases", __name__)


# ════════════════════════════════════════════════════════════
#  List
# ════════════════════════════════════════════════════════════

@cases_bp.route("", methods=["GET"])
@login_required
def list_cases():
    """
    GET /cases?search=&status=&case_type=&page=
    search matches title or case number (case-insensitive). Newest first.

    Response:
    {
        "cases": [ { ...case, client_name, assignee_name } ],
        "total", "page", "per_page", "pages", "from", "to"
    }
    """
    firm_id   = get_current_firm_id()
    search    = request.args.get("search", "").strip()
    status    = request.args.get("status", "").strip()
    case_type = request.args.get("case_type", "").strip()

    q = Case.query.filter_by(firm_id=firm_id)
    if search:
        q = q.filter(db.or_(
            Case.title.icontains(search, autoescape=True),
            Case.case_number.icontains(search, autoescape=True),
        ))
    if status and status.lower() != "all":
        q = q.filter(func.lower(Case.status) == status.lower())
    if case_type and case_type.lower() != "all":
        q = q.filter(func.lower(Case.case_type) == case_type.lower())

    q = q.order_by(Case.created_at.desc(), Case.id.desc())
    page = paginate(q, request.args.get("page"), current_app.config["ITEMS_PER_PAGE"])

    return paginated("cases", list_rows(firm_id, page.items), page)


# ════════════════════════════════════════════════════════════
#  Detail
# ════════════════════════════════════════════════════════════

@cases_bp.route("/<case_id>", methods=["GET"])
@login_required
def get_case(case_id):
    """
    GET /cases/<case_id>
    Case plus client, opposing party, security interests (foreclosure only),
    documents, deadlines, financials and balance.
    A case outside the caller's firm is indistinguishable from a missing one.
    """
    detail = get_case_detail(get_current_firm_id(), case_id)
    if detail is None:
        if wants_json():
            return not_found("Case")
        return redirect(url_for("cases.list_cases"))
    return success(data=detail)


# ════════════════════════════════════════════════════════════
#  Create / update / status / delete
# ════════════════════════════════════════════════════════════

@cases_bp.route("", methods=["POST"])
@login_required
def create():
    """
    POST /cases
    Body: {
        "title", "case_number", "case_type", "status", "client_id",   (required)
        "description", "opposing_party_id", "assigned_to",
        "court_name", "court_location", "judge_name",
        "filing_date", "closure_date"                                  (optional)
    }
    A foreclosure case also gets a placeholder mortgage security interest.
    """
    form = FormReader(request.get_json(silent=True) or {})
    fields = _read_case(form)
    if form.errors:
        return validation_error(form.errors)

    try:
        case = create_case(get_current_firm_id(), fields, performed_by=get_current_user().id)
    except CaseError as e:
        return error(e.message, e.status_code, e.details)

    return created(data={"case": get_case_detail(case.firm_id, case.id)["case"]},
                   message="Case created.")


@cases_bp.route("/<case_id>", methods=["PUT"])
@login_required
def update(case_id):
    """PUT /cases/<case_id> — partial update, last write wins."""
    form = FormReader(request.get_json(silent=True) or {}, partial=True)
    fields = {k: v for k, v in _read_case(form).items() if not is_missing(v)}
    if form.errors:
        return validation_error(form.errors)

    try:
        case = update_case(get_current_firm_id(), case_id, fields, performed_by=get_current_user().id)
    except CaseError as e:
        return error(e.message, e.status_code, e.details)

    return success(data={"case": get_case_detail(case.firm_id, case.id)["case"]},
                   message="Case updated.")


@cases_bp.route("/<case_id>/status", methods=["POST"])
@login_required
def set_status(case_id):
    """
    POST /cases/<case_id>/status
    Body: { "status": str, "closure_date": "YYYY-MM-DD"? }
    """
    form = FormReader(request.get_json(silent=True) or {})
    status = form.text("status", required=True, max_len=50)
    closure_date = form.date("closure_date")
    if form.errors:
        return validation_error(form.errors)

    try:
        case = change_status(
            get_current_firm_id(), case_id, status, closure_date,
            performed_by=get_current_user().id,
        )
    except CaseError as e:
        return error(e.message, e.status_code, e.details)

    return success(data={
        "id":           case.id,
        "status":       case.status,
        "closure_date": case.closure_date.isoformat() if case.closure_date else None,
    }, message=f"Status changed to {case.status}.")


@cases_bp.route("/<case_id>", methods=["DELETE"])
@login_required
def delete(case_id):
    """
    DELETE /cases/<case_id>
    Removes the case's security interests, documents, deadlines and
    financials, then the case.
    """
    try:
        removed = delete_case(get_current_firm_id(), case_id, performed_by=get_current_user().id)
    except CaseError as e:
        return error(e.message, e.status_code, e.details)
    return success(data={"removed": removed}, message="Case deleted.")


@cases_bp.route("/statuses", methods=["GET"])
@login_required
def statuses():
    """GET /cases/statuses — known statuses and the case types in use."""
    firm_id = get_current_firm_id()
    types = (
        db.session.query(Case.case_type)
        .filter(Case.firm_id == firm_id)
        .distinct()
        .order_by(Case.case_type.asc())
        .all()
    )
    return success(data={
        "statuses":   list(CASE_STATUSES),
        "case_types": [t for (t,) in types],
    })


# ─── Private helpers ──────────────────────────────────────────────────────────

def _read_case(form) -> dict:
    return {
        "title":             form.text("title", required=True, max_len=255),
        "case_number":       form.text("case_number", required=True, max_len=100),
        "case_type":         form.text("case_type", required=True, max_len=100),
        "status":            form.text("status", required=True, max_len=50),
        "client_id":         form.text("client_id", required=True),
        "description":       form.text("description"),
        "opposing_party_id": form.text("opposing_party_id"),
        "assigned_to":       form.text("assigned_to"),
        "court_name":        form.text("court_name", max_len=255),
        "court_location":    form.text("court_location", max_len=255),
        "judge_name":        form.text("judge_name", max_len=255),
        "filing_date":       form.date("filing_date"),
        "closure_date":      form.date("closure_date"),
    }
