"""
cases.py — Case aggregate lifecycle.

A Case owns its SecurityInterest, Document, Deadline and Financial rows.
Creation and deletion touch several tables; each is committed as one
transaction so a failure leaves neither a foreclosure case without its
security interest nor a half-deleted case.
"""

import logging
from datetime import date
from decimal import Decimal

from database import db
from models import (
    Case, Party, User, SecurityInterest, Document, Deadline, Financial,
    CASE_CHILD_MODELS, new_uuid,
)
from utils.audit import write_audit
from utils.display import normalize_case_status, CLIENT_FALLBACK
from utils.lookups import party_names, user_names
from utils.serialize import (
    case_dict, interest_dict, document_dict, deadline_dict, financial_dict, party_dict,
)

log = logging.getLogger(__name__)

FORECLOSURE = "foreclosure"
PLACEHOLDER_INTEREST_TYPE = "Mortgage"
PLACEHOLDER_INTEREST_DESCRIPTION = "Primary mortgage on property"

CASE_FIELDS = (
    "title", "case_number", "case_type", "status", "description",
    "client_id", "opposing_party_id", "assigned_to",
    "court_name", "court_location", "judge_name", "filing_date", "closure_date",
)


class CaseError(Exception):
    status_code = 400

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class CaseNotFound(CaseError):
    status_code = 404


def is_foreclosure(case_type) -> bool:
    return (case_type or "").lower() == FORECLOSURE


def get_case(firm_id, case_id):
    """Firm-scoped lookup. None for unknown ids and other firms' cases."""
    if not firm_id or not case_id:
        return None
    return Case.query.filter_by(id=case_id, firm_id=firm_id).first()


def require_case(firm_id, case_id):
    case = get_case(firm_id, case_id)
    if case is None:
        raise CaseNotFound("Case not found.")
    return case


# ─── Reference checks ─────────────────────────────────────────────────────────

def check_case_refs(firm_id, client_id=None, opposing_party_id=None, assigned_to=None) -> dict:
    """
    Per-field errors for party / user references that are not in the firm.
    The client must be a party flagged is_client.
    """
    errors = {}
    if client_id:
        client = Party.query.filter_by(id=client_id, firm_id=firm_id).first()
        if client is None:
            errors["client_id"] = "Client not found."
        elif not client.is_client:
            errors["client_id"] = "Party is not marked as a client."
    if opposing_party_id:
        if not Party.query.filter_by(id=opposing_party_id, firm_id=firm_id).first():
            errors["opposing_party_id"] = "Opposing party not found."
    if assigned_to:
        if not User.query.filter_by(id=assigned_to, firm_id=firm_id, is_active=True).first():
            errors["assigned_to"] = "Assignee not found."
    return errors


# ─── Lifecycle ────────────────────────────────────────────────────────────────

def apply_status(case, status, closure_date=None):
    """
    Set an open-string status. Entering `closed` stamps closure_date (today
    unless given); leaving `closed` clears it.
    """
    new_status = normalize_case_status(status)
    if new_status == "closed":
        case.closure_date = closure_date or case.closure_date or date.today()
    elif case.status == "closed":
        case.closure_date = None
    case.status = new_status
    return case


def placeholder_interest(case) -> SecurityInterest:
    """Security interest created alongside every foreclosure case."""
    return SecurityInterest(
        id=new_uuid(),
        firm_id=case.firm_id,
        case_id=case.id,
        type=PLACEHOLDER_INTEREST_TYPE,
        description=PLACEHOLDER_INTEREST_DESCRIPTION,
        lender_id=case.client_id,
        borrower_id=case.opposing_party_id or case.client_id,
        amount=Decimal("0"),
    )


def create_case(firm_id, fields: dict, performed_by=None) -> Case:
    """
    Insert a case (and, for foreclosure cases, its placeholder security
    interest) in one transaction. `fields` are already validated.
    """
    errors = check_case_refs(
        firm_id,
        client_id=fields.get("client_id"),
        opposing_party_id=fields.get("opposing_party_id"),
        assigned_to=fields.get("assigned_to"),
    )
    if errors:
        raise CaseError("Validation failed.", details=errors)

    values = {k: fields.get(k) for k in CASE_FIELDS if k not in ("status", "closure_date")}
    case = Case(id=new_uuid(), firm_id=firm_id, **values)
    apply_status(case, fields["status"], fields.get("closure_date"))
    db.session.add(case)

    interest = None
    if is_foreclosure(case.case_type):
        interest = placeholder_interest(case)
        db.session.add(interest)

    write_audit(firm_id, f"Case '{case.case_number}' created.", performed_by, "case", case.id)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        log.exception(f"Case creation failed for firm {firm_id}")
        raise

    log.info(
        f"Case {case.id} created for firm {firm_id}"
        + (f" with placeholder security interest {interest.id}" if interest else "")
    )
    return case


def update_case(firm_id, case_id, fields: dict, performed_by=None) -> Case:
    """Partial update, last write wins."""
    case = require_case(firm_id, case_id)
    errors = check_case_refs(
        firm_id,
        client_id=fields.get("client_id"),
        opposing_party_id=fields.get("opposing_party_id"),
        assigned_to=fields.get("assigned_to"),
    )
    if errors:
        raise CaseError("Validation failed.", details=errors)

    for key in CASE_FIELDS:
        if key in fields and key not in ("status", "closure_date"):
            setattr(case, key, fields[key])
    if "status" in fields:
        apply_status(case, fields["status"], fields.get("closure_date"))
    elif "closure_date" in fields:
        case.closure_date = fields["closure_date"]

    write_audit(firm_id, f"Case '{case.case_number}' updated.", performed_by, "case", case.id)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return case


def change_status(firm_id, case_id, status, closure_date=None, performed_by=None) -> Case:
    case = require_case(firm_id, case_id)
    old_status = case.status
    apply_status(case, status, closure_date)
    write_audit(
        firm_id,
        f"Case '{case.case_number}' status changed: {old_status} → {case.status}",
        performed_by, "case", case.id,
    )
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return case


def delete_case(firm_id, case_id, performed_by=None) -> dict:
    """
    Delete every child row of the case, then the case, in one transaction.
    Returns the number of rows removed per child table.
    """
    case = require_case(firm_id, case_id)
    removed = {}
    try:
        for model in CASE_CHILD_MODELS:
            query = model.query.filter(model.firm_id == firm_id, model.case_id == case.id)
            if model is Document:
                query = query.filter(Document.is_template.is_(False))
            removed[model.__tablename__] = query.delete(synchronize_session=False)
        db.session.delete(case)
        write_audit(
            firm_id, f"Case '{case.case_number}' deleted.", performed_by, "case", case_id,
            details=removed,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        log.exception(f"Case deletion failed for {case_id}")
        raise

    log.info(f"Case {case_id} deleted with children {removed}")
    return removed


# ─── Read side ────────────────────────────────────────────────────────────────

def list_rows(firm_id, cases) -> list:
    """Case list rows with client and assignee names resolved in batch."""
    clients   = party_names(firm_id, [c.client_id for c in cases], CLIENT_FALLBACK)
    assignees = user_names(firm_id, [c.assigned_to for c in cases], "Unassigned")
    return [
        case_dict(c, client_name=client, assignee_name=assignee)
        for c, client, assignee in zip(cases, clients, assignees)
    ]


def get_case_detail(firm_id, case_id):
    """
    Everything the case page shows, or None if the case is not the firm's.
    Security interests are only loaded for foreclosure cases.
    """
    case = get_case(firm_id, case_id)
    if case is None:
        return None

    parties = {
        p.id: p for p in Party.query.filter(
            Party.firm_id == firm_id,
            Party.id.in_([i for i in (case.client_id, case.opposing_party_id) if i]),
        ).all()
    }
    client = parties.get(case.client_id)
    opposing = parties.get(case.opposing_party_id)
    [client_name] = party_names(firm_id, [case.client_id], CLIENT_FALLBACK)
    [assignee_name] = user_names(firm_id, [case.assigned_to], "Unassigned")

    interests = []
    if is_foreclosure(case.case_type):
        rows = (
            SecurityInterest.query
            .filter_by(firm_id=firm_id, case_id=case.id)
            .order_by(
                SecurityInterest.lien_position.asc().nulls_first(),
                SecurityInterest.created_at.asc(),
            )
            .all()
        )
        lenders   = party_names(firm_id, [si.lender_id for si in rows])
        borrowers = party_names(firm_id, [si.borrower_id for si in rows])
        interests = [
            interest_dict(si, lender, borrower)
            for si, lender, borrower in zip(rows, lenders, borrowers)
        ]

    documents = (
        Document.query
        .filter_by(firm_id=firm_id, case_id=case.id, is_template=False)
        .order_by(Document.created_at.desc())
        .all()
    )
    uploaders = user_names(firm_id, [d.uploaded_by for d in documents])

    deadlines = (
        Deadline.query
        .filter_by(firm_id=firm_id, case_id=case.id)
        .order_by(Deadline.due_date.asc())
        .all()
    )
    deadline_owners = user_names(firm_id, [d.assigned_to for d in deadlines], "Unassigned")

    financials = (
        Financial.query
        .filter_by(firm_id=firm_id, case_id=case.id)
        .order_by(Financial.transaction_date.desc(), Financial.created_at.desc())
        .all()
    )
    recorders = user_names(firm_id, [f.recorded_by for f in financials])
    fin_parties = party_names(firm_id, [f.party_id for f in financials], "")
    balance = sum((f.amount for f in financials), Decimal("0"))

    return {
        "case": case_dict(case, client_name=client_name, assignee_name=assignee_name),
        "client": party_dict(client) if client else None,
        "opposing_party": party_dict(opposing) if opposing else None,
        "security_interests": interests,
        "documents": [document_dict(d, n) for d, n in zip(documents, uploaders)],
        "deadlines": [deadline_dict(d, n) for d, n in zip(deadlines, deadline_owners)],
        "financials": [
            financial_dict(f, r, p or None)
            for f, r, p in zip(financials, recorders, fin_parties)
        ],
        "balance": float(balance),
    }
