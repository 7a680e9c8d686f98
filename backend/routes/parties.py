"""
parties.py — Party registry: clients, opposing parties, lenders, borrowers.

Every party shows under one display name (utils/display.py): its
organization name, else "first last".
"""

import logging
from flask import Blueprint, request, current_app

from database import db
from models import Party, PartyType, Case, SecurityInterest, Document, Financial
from utils.audit import write_audit
from utils.auth import login_required, get_current_firm_id, get_current_user
from utils.display import party_display_name
from utils.pagination import paginate
from utils.parsing import FormReader, is_missing
from utils.response import success, created, paginated, not_found, conflict, validation_error
from utils.serialize import party_dict

parties_bp = Blueprint("parties", __name__)
log = logging.getLogger(__name__)

PARTY_FIELDS = (
    "type", "first_name", "last_name", "organization_name",
    "email", "phone", "address", "notes", "is_client",
)


# ════════════════════════════════════════════════════════════
#  List / detail
# ════════════════════════════════════════════════════════════

@parties_bp.route("", methods=["GET"])
@login_required
def list_parties():
    """
    GET /parties?search=&is_client=&page=
    Newest first, ITEMS_PER_PAGE per page.
    """
    firm_id = get_current_firm_id()
    search  = request.args.get("search", "").strip()
    only    = request.args.get("is_client")

    q = Party.query.filter_by(firm_id=firm_id)
    if search:
        q = q.filter(
            db.or_(
                Party.first_name.icontains(search, autoescape=True),
                Party.last_name.icontains(search, autoescape=True),
                Party.organization_name.icontains(search, autoescape=True),
                Party.email.icontains(search, autoescape=True),
            )
        )
    if only is not None and only != "":
        q = q.filter(Party.is_client.is_(only.lower() in ("true", "1", "yes")))

    q = q.order_by(Party.created_at.desc())
    page = paginate(q, request.args.get("page"), current_app.config["ITEMS_PER_PAGE"])

    return paginated("parties", [party_dict(p) for p in page.items], page)


@parties_bp.route("/clients", methods=["GET"])
@login_required
def list_clients():
    """
    GET /parties/clients
    Every is_client party of the firm, by display name. Feeds the client
    picker of the case form.
    """
    firm_id = get_current_firm_id()
    clients = Party.query.filter_by(firm_id=firm_id, is_client=True).all()
    rows = sorted((party_dict(p) for p in clients), key=lambda p: p["display_name"].lower())
    return success(data={"clients": rows})


@parties_bp.route("/<party_id>", methods=["GET"])
@login_required
def get_party(party_id):
    """GET /parties/<party_id> — the party and the cases it appears on."""
    firm_id = get_current_firm_id()
    party = Party.query.filter_by(id=party_id, firm_id=firm_id).first()
    if not party:
        return not_found("Party")

    cases = (
        Case.query
        .filter(
            Case.firm_id == firm_id,
            db.or_(Case.client_id == party.id, Case.opposing_party_id == party.id),
        )
        .order_by(Case.created_at.desc())
        .all()
    )
    return success(data={
        "party": party_dict(party),
        "cases": [
            {
                "id":          c.id,
                "case_number": c.case_number,
                "title":       c.title,
                "status":      c.status,
                "role":        "client" if c.client_id == party.id else "opposing_party",
            }
            for c in cases
        ],
    })


# ════════════════════════════════════════════════════════════
#  Create / update / delete
# ════════════════════════════════════════════════════════════

@parties_bp.route("", methods=["POST"])
@login_required
def create_party():
    """
    POST /parties
    Body: { type, first_name, last_name, organization_name, email, phone,
            address, notes, is_client }
    Needs organization_name, or both first_name and last_name.
    """
    firm_id = get_current_firm_id()
    form = FormReader(request.get_json(silent=True) or {})
    values = _read_party(form)
    if values.get("type") is None:
        values["type"] = PartyType.individual.value
    if values.get("is_client") is None:
        values["is_client"] = False

    probe = Party(**values)
    _check_name(probe, form.errors)
    if form.errors:
        return validation_error(form.errors)

    party = Party(firm_id=firm_id, **values)
    db.session.add(party)
    db.session.flush()
    write_audit(
        firm_id, f"Party '{party_display_name(party)}' created.",
        get_current_user().id, "party", party.id,
    )
    db.session.commit()
    return created(data={"party": party_dict(party)}, message="Party created.")


@parties_bp.route("/<party_id>", methods=["PUT"])
@login_required
def update_party(party_id):
    """PUT /parties/<party_id> — partial update; the name rule is re-checked."""
    firm_id = get_current_firm_id()
    party = Party.query.filter_by(id=party_id, firm_id=firm_id).first()
    if not party:
        return not_found("Party")

    form = FormReader(request.get_json(silent=True) or {}, partial=True)
    values = {k: v for k, v in _read_party(form).items() if not is_missing(v)}
    if values.get("is_client", True) is None:
        form.errors["is_client"] = "Must be true or false."
    if "type" in values and values["type"] is None:
        values.pop("type")

    merged = Party(**{k: values.get(k, getattr(party, k)) for k in PARTY_FIELDS})
    _check_name(merged, form.errors)

    if values.get("is_client") is False and party.is_client:
        if Case.query.filter_by(firm_id=firm_id, client_id=party.id).first():
            form.errors["is_client"] = "Party is the client on existing cases."
    if form.errors:
        return validation_error(form.errors)

    for key, value in values.items():
        setattr(party, key, value)
    db.session.commit()
    return success(data={"party": party_dict(party)}, message="Party updated.")


@parties_bp.route("/<party_id>", methods=["DELETE"])
@login_required
def delete_party(party_id):
    """
    DELETE /parties/<party_id>
    Refused (409) while a case or security interest references the party.
    Optional references from documents and financials are cleared.
    """
    firm_id = get_current_firm_id()
    party = Party.query.filter_by(id=party_id, firm_id=firm_id).first()
    if not party:
        return not_found("Party")

    on_case = Case.query.filter(
        Case.firm_id == firm_id,
        db.or_(Case.client_id == party.id, Case.opposing_party_id == party.id),
    ).first()
    on_interest = SecurityInterest.query.filter(
        SecurityInterest.firm_id == firm_id,
        db.or_(SecurityInterest.lender_id == party.id, SecurityInterest.borrower_id == party.id),
    ).first()
    if on_case or on_interest:
        return conflict("Party is referenced by a case or security interest and cannot be deleted.")

    name = party_display_name(party)
    try:
        Document.query.filter(
            Document.firm_id == firm_id, Document.related_party_id == party.id
        ).update({Document.related_party_id: None}, synchronize_session=False)
        Financial.query.filter(
            Financial.firm_id == firm_id, Financial.party_id == party.id
        ).update({Financial.party_id: None}, synchronize_session=False)
        db.session.delete(party)
        write_audit(firm_id, f"Party '{name}' deleted.", get_current_user().id, "party", party_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        log.exception(f"Party deletion failed for {party_id}")
        raise

    return success(message=f"Party '{name}' deleted.")


# ─── Private helpers ──────────────────────────────────────────────────────────

def _read_party(form) -> dict:
    values = {
        "type":              form.text("type"),
        "first_name":        form.text("first_name", max_len=100),
        "last_name":         form.text("last_name", max_len=100),
        "organization_name": form.text("organization_name", max_len=255),
        "email":             form.email("email"),
        "phone":             form.text("phone", max_len=50),
        "address":           form.text("address", max_len=512),
        "notes":             form.text("notes"),
        "is_client":         form.boolean("is_client"),
    }
    kind = values["type"]
    if isinstance(kind, str):
        kind = kind.lower()
        if kind not in PartyType.__members__:
            form.errors["type"] = "type must be 'individual' or 'organization'."
        values["type"] = kind
    return values


def _check_name(party, errors: dict):
    if party.organization_name or (party.first_name and party.last_name):
        return
    if party.type == PartyType.organization.value:
        errors["organization_name"] = "Organization name is required."
    else:
        if not party.first_name:
            errors["first_name"] = "First name is required (or an organization name)."
        if not party.last_name:
            errors["last_name"] = "Last name is required (or an organization name)."
