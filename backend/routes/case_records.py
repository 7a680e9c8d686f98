"""
case_records.py — Deadlines, financial transactions and security interests
of one case.

Every route first resolves the case under the caller's firm; a case of
another firm answers 404 exactly like a missing one.
"""

from datetime import datetime, timezone
from decimal import Decimal

from flask import Blueprint, request

from database import db
from models import Deadline, Financial, SecurityInterest, Party
from utils.audit import write_audit
from utils.auth import login_required, get_current_firm_id, get_current_user
from utils.cases import get_case
from utils.display import normalize_known, DEADLINE_STATUSES, PRIORITIES
from utils.lookups import party_names, user_names
from utils.parsing import FormReader, is_missing
from utils.response import success, created, not_found, validation_error
from utils.serialize import deadline_dict, financial_dict, interest_dict

case_records_bp = Blueprint("case_records", __name__)


def _scoped_case(case_id):
    firm_id = get_current_firm_id()
    return firm_id, get_case(firm_id, case_id)


def _body():
    return request.get_json(silent=True) or {}


def _check_user(firm_id, user_id, field, errors):
    from models import User
    if user_id and not User.query.filter_by(id=user_id, firm_id=firm_id).first():
        errors[field] = "User not found."


def _check_party(firm_id, party_id, field, errors):
    if party_id and not Party.query.filter_by(id=party_id, firm_id=firm_id).first():
        errors[field] = "Party not found."


# ════════════════════════════════════════════════════════════
#  Deadlines
# ════════════════════════════════════════════════════════════

@case_records_bp.route("/<case_id>/deadlines", methods=["GET"])
@login_required
def list_deadlines(case_id):
    """GET /cases/<case_id>/deadlines — soonest first, with overdue flag."""
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")

    rows = (
        Deadline.query
        .filter_by(firm_id=firm_id, case_id=case.id)
        .order_by(Deadline.due_date.asc())
        .all()
    )
    owners = user_names(firm_id, [d.assigned_to for d in rows], "Unassigned")
    now = datetime.now(timezone.utc)
    return success(data={
        "deadlines": [deadline_dict(d, n, now=now) for d, n in zip(rows, owners)],
    })


@case_records_bp.route("/<case_id>/deadlines", methods=["POST"])
@login_required
def create_deadline(case_id):
    """
    POST /cases/<case_id>/deadlines
    Body: { "title", "due_date" (required), "description", "priority",
            "status", "assigned_to", "reminder_date" }
    """
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")

    form = FormReader(_body())
    values = _read_deadline(form)
    _check_user(firm_id, values.get("assigned_to"), "assigned_to", form.errors)
    if form.errors:
        return validation_error(form.errors)

    values["priority"] = values.get("priority") or "Medium"
    values["status"] = values.get("status") or "Pending"
    deadline = Deadline(firm_id=firm_id, case_id=case.id, **values)
    db.session.add(deadline)
    db.session.flush()
    write_audit(
        firm_id, f"Deadline '{deadline.title}' added to case '{case.case_number}'.",
        get_current_user().id, "deadline", deadline.id,
    )
    db.session.commit()

    [owner] = user_names(firm_id, [deadline.assigned_to], "Unassigned")
    return created(data={"deadline": deadline_dict(deadline, owner)}, message="Deadline created.")


@case_records_bp.route("/<case_id>/deadlines/<deadline_id>", methods=["PUT"])
@login_required
def update_deadline(case_id, deadline_id):
    """PUT /cases/<case_id>/deadlines/<deadline_id> — partial update."""
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")
    deadline = Deadline.query.filter_by(id=deadline_id, firm_id=firm_id, case_id=case.id).first()
    if not deadline:
        return not_found("Deadline")

    form = FormReader(_body(), partial=True)
    values = {k: v for k, v in _read_deadline(form).items() if not is_missing(v)}
    _check_user(firm_id, values.get("assigned_to"), "assigned_to", form.errors)
    for key in ("priority", "status"):
        if key in values and values[key] is None:
            form.errors[key] = "This field cannot be empty."
    if form.errors:
        return validation_error(form.errors)

    for key, value in values.items():
        setattr(deadline, key, value)
    db.session.commit()

    [owner] = user_names(firm_id, [deadline.assigned_to], "Unassigned")
    return success(data={"deadline": deadline_dict(deadline, owner)}, message="Deadline updated.")


@case_records_bp.route("/<case_id>/deadlines/<deadline_id>/complete", methods=["POST"])
@login_required
def complete_deadline(case_id, deadline_id):
    """POST /cases/<case_id>/deadlines/<deadline_id>/complete"""
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")
    deadline = Deadline.query.filter_by(id=deadline_id, firm_id=firm_id, case_id=case.id).first()
    if not deadline:
        return not_found("Deadline")

    deadline.status = "Completed"
    write_audit(
        firm_id, f"Deadline '{deadline.title}' completed.",
        get_current_user().id, "deadline", deadline.id,
    )
    db.session.commit()
    [owner] = user_names(firm_id, [deadline.assigned_to], "Unassigned")
    return success(data={"deadline": deadline_dict(deadline, owner)}, message="Deadline completed.")


@case_records_bp.route("/<case_id>/deadlines/<deadline_id>", methods=["DELETE"])
@login_required
def delete_deadline(case_id, deadline_id):
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")
    deadline = Deadline.query.filter_by(id=deadline_id, firm_id=firm_id, case_id=case.id).first()
    if not deadline:
        return not_found("Deadline")

    db.session.delete(deadline)
    db.session.commit()
    return success(message="Deadline deleted.")


def _read_deadline(form) -> dict:
    values = {
        "title":         form.text("title", required=True, max_len=255),
        "description":   form.text("description"),
        "due_date":      form.datetime("due_date", required=True),
        "priority":      form.text("priority", max_len=20),
        "status":        form.text("status", max_len=20),
        "assigned_to":   form.text("assigned_to"),
        "reminder_date": form.datetime("reminder_date"),
    }
    if isinstance(values["priority"], str):
        values["priority"] = normalize_known(values["priority"], PRIORITIES)
    if isinstance(values["status"], str):
        values["status"] = normalize_known(values["status"], DEADLINE_STATUSES)
    return values


# ════════════════════════════════════════════════════════════
#  Financials
# ════════════════════════════════════════════════════════════

@case_records_bp.route("/<case_id>/financials", methods=["GET"])
@login_required
def list_financials(case_id):
    """GET /cases/<case_id>/financials — newest first, with running balance."""
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")

    rows = (
        Financial.query
        .filter_by(firm_id=firm_id, case_id=case.id)
        .order_by(Financial.transaction_date.desc(), Financial.created_at.desc())
        .all()
    )
    recorders = user_names(firm_id, [f.recorded_by for f in rows])
    parties = party_names(firm_id, [f.party_id for f in rows], "")
    balance = sum((f.amount for f in rows), Decimal("0"))
    return success(data={
        "financials": [
            financial_dict(f, r, p or None) for f, r, p in zip(rows, recorders, parties)
        ],
        "balance": float(balance),
    })


@case_records_bp.route("/<case_id>/financials", methods=["POST"])
@login_required
def create_financial(case_id):
    """
    POST /cases/<case_id>/financials
    Body: { "transaction_type", "amount" (signed), "transaction_date"
            (required), "description", "invoice_id", "party_id" }
    """
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")

    form = FormReader(_body())
    values = _read_financial(form)
    _check_party(firm_id, values.get("party_id"), "party_id", form.errors)
    if form.errors:
        return validation_error(form.errors)

    user = get_current_user()
    fin = Financial(firm_id=firm_id, case_id=case.id, recorded_by=user.id, **values)
    db.session.add(fin)
    db.session.flush()
    write_audit(
        firm_id,
        f"{fin.transaction_type} of {fin.amount} recorded on case '{case.case_number}'.",
        user.id, "financial", fin.id,
    )
    db.session.commit()

    [party_name] = party_names(firm_id, [fin.party_id], "")
    return created(
        data={"financial": financial_dict(fin, user.full_name, party_name or None)},
        message="Transaction recorded.",
    )


@case_records_bp.route("/<case_id>/financials/<financial_id>", methods=["PUT"])
@login_required
def update_financial(case_id, financial_id):
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")
    fin = Financial.query.filter_by(id=financial_id, firm_id=firm_id, case_id=case.id).first()
    if not fin:
        return not_found("Transaction")

    form = FormReader(_body(), partial=True)
    values = {k: v for k, v in _read_financial(form).items() if not is_missing(v)}
    _check_party(firm_id, values.get("party_id"), "party_id", form.errors)
    if form.errors:
        return validation_error(form.errors)

    for key, value in values.items():
        setattr(fin, key, value)
    db.session.commit()

    [recorder] = user_names(firm_id, [fin.recorded_by])
    [party_name] = party_names(firm_id, [fin.party_id], "")
    return success(
        data={"financial": financial_dict(fin, recorder, party_name or None)},
        message="Transaction updated.",
    )


@case_records_bp.route("/<case_id>/financials/<financial_id>", methods=["DELETE"])
@login_required
def delete_financial(case_id, financial_id):
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")
    fin = Financial.query.filter_by(id=financial_id, firm_id=firm_id, case_id=case.id).first()
    if not fin:
        return not_found("Transaction")

    db.session.delete(fin)
    db.session.commit()
    return success(message="Transaction deleted.")


def _read_financial(form) -> dict:
    return {
        "transaction_type": form.text("transaction_type", required=True, max_len=100),
        "amount":           form.decimal("amount", required=True),
        "transaction_date": form.date("transaction_date", required=True),
        "description":      form.text("description"),
        "invoice_id":       form.text("invoice_id", max_len=100),
        "party_id":         form.text("party_id"),
    }


# ════════════════════════════════════════════════════════════
#  Security interests
# ════════════════════════════════════════════════════════════

@case_records_bp.route("/<case_id>/security-interests", methods=["GET"])
@login_required
def list_interests(case_id):
    """GET /cases/<case_id>/security-interests — by lien position."""
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")

    rows = (
        SecurityInterest.query
        .filter_by(firm_id=firm_id, case_id=case.id)
        .order_by(
            SecurityInterest.lien_position.asc().nulls_first(),
            SecurityInterest.created_at.asc(),
        )
        .all()
    )
    lenders = party_names(firm_id, [si.lender_id for si in rows])
    borrowers = party_names(firm_id, [si.borrower_id for si in rows])
    return success(data={
        "security_interests": [
            interest_dict(si, lender, borrower)
            for si, lender, borrower in zip(rows, lenders, borrowers)
        ],
    })


@case_records_bp.route("/<case_id>/security-interests", methods=["POST"])
@login_required
def create_interest(case_id):
    """
    POST /cases/<case_id>/security-interests
    Body: { "type", "description", "lender_id", "borrower_id" (required),
            "amount", "lien_position", "property_address", "recorded_date",
            "maturity_date", "interest_rate", "property_value" }
    """
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")

    form = FormReader(_body())
    values = _read_interest(form)
    _check_party(firm_id, values.get("lender_id"), "lender_id", form.errors)
    _check_party(firm_id, values.get("borrower_id"), "borrower_id", form.errors)
    if form.errors:
        return validation_error(form.errors)

    if values.get("amount") is None:
        values["amount"] = Decimal("0")
    si = SecurityInterest(firm_id=firm_id, case_id=case.id, **values)
    db.session.add(si)
    db.session.flush()
    write_audit(
        firm_id, f"{si.type} added to case '{case.case_number}'.",
        get_current_user().id, "security_interest", si.id,
    )
    db.session.commit()

    lender, borrower = party_names(firm_id, [si.lender_id, si.borrower_id])
    return created(data={"security_interest": interest_dict(si, lender, borrower)},
                   message="Security interest created.")


@case_records_bp.route("/<case_id>/security-interests/<interest_id>", methods=["PUT"])
@login_required
def update_interest(case_id, interest_id):
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")
    si = SecurityInterest.query.filter_by(id=interest_id, firm_id=firm_id, case_id=case.id).first()
    if not si:
        return not_found("Security interest")

    form = FormReader(_body(), partial=True)
    values = {k: v for k, v in _read_interest(form).items() if not is_missing(v)}
    _check_party(firm_id, values.get("lender_id"), "lender_id", form.errors)
    _check_party(firm_id, values.get("borrower_id"), "borrower_id", form.errors)
    if "amount" in values and values["amount"] is None:
        values["amount"] = Decimal("0")
    if form.errors:
        return validation_error(form.errors)

    for key, value in values.items():
        setattr(si, key, value)
    db.session.commit()

    lender, borrower = party_names(firm_id, [si.lender_id, si.borrower_id])
    return success(data={"security_interest": interest_dict(si, lender, borrower)},
                   message="Security interest updated.")


@case_records_bp.route("/<case_id>/security-interests/<interest_id>", methods=["DELETE"])
@login_required
def delete_interest(case_id, interest_id):
    firm_id, case = _scoped_case(case_id)
    if not case:
        return not_found("Case")
    si = SecurityInterest.query.filter_by(id=interest_id, firm_id=firm_id, case_id=case.id).first()
    if not si:
        return not_found("Security interest")

    db.session.delete(si)
    db.session.commit()
    return success(message="Security interest deleted.")


def _read_interest(form) -> dict:
    return {
        "type":             form.text("type", required=True, max_len=100),
        "description":      form.text("description", required=True),
        "lender_id":        form.text("lender_id", required=True),
        "borrower_id":      form.text("borrower_id", required=True),
        "amount":           form.decimal("amount", minimum=0),
        "lien_position":    form.integer("lien_position", minimum=1),
        "property_address": form.text("property_address", max_len=512),
        "recorded_date":    form.date("recorded_date"),
        "maturity_date":    form.date("maturity_date"),
        "interest_rate":    form.decimal("interest_rate", minimum=0),
        "property_value":   form.decimal("property_value", minimum=0),
    }
