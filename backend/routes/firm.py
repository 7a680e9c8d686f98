"""
firm.py — The caller's firm profile.
"""

from flask import Blueprint, request, session

from database import db
from models import Firm
from utils.audit import write_audit
from utils.auth import login_required, admin_required, get_current_firm_id, get_current_user
from utils.parsing import FormReader, is_missing
from utils.response import success, not_found, validation_error
from utils.serialize import firm_dict

firm_bp = Blueprint("firm", __name__)

TIERS = ("basic", "professional", "enterprise")


@firm_bp.route("", methods=["GET"])
@login_required
def get_firm():
    """GET /firm"""
    firm = db.session.get(Firm, get_current_firm_id())
    if not firm:
        return not_found("Firm")
    return success(data={"firm": firm_dict(firm)})


@firm_bp.route("", methods=["PUT"])
@admin_required
def update_firm():
    """
    PUT /firm
    Body: any of { name, address, phone, email, logo_url, subscription_tier }
    """
    firm = db.session.get(Firm, get_current_firm_id())
    if not firm:
        return not_found("Firm")

    form = FormReader(request.get_json(silent=True) or {}, partial=True)
    values = {
        "name":              form.text("name", required=True, min_len=2, max_len=255),
        "address":           form.text("address", max_len=512),
        "phone":             form.text("phone", max_len=50),
        "email":             form.email("email", required=True),
        "logo_url":          form.text("logo_url", max_len=1024),
        "subscription_tier": form.text("subscription_tier"),
    }
    tier = values["subscription_tier"]
    if isinstance(tier, str) and tier.lower() not in TIERS:
        form.errors["subscription_tier"] = "Unknown subscription tier."
    if form.errors:
        return validation_error(form.errors)

    for key, value in values.items():
        if is_missing(value):
            continue
        if key in ("address", "phone") and value is None:
            value = ""
        if key == "subscription_tier":
            if value is None:
                continue
            value = value.lower()
        setattr(firm, key, value)

    user = get_current_user()
    write_audit(firm.id, "Firm profile updated.", user.id, "firm", firm.id)
    db.session.commit()
    return success(data={"firm": firm_dict(firm)}, message="Firm updated.")


@firm_bp.route("/deactivate", methods=["POST"])
@admin_required
def deactivate_firm():
    """
    POST /firm/deactivate
    Soft delete. Members can no longer sign in; the caller is signed out.
    """
    firm = db.session.get(Firm, get_current_firm_id())
    if not firm:
        return not_found("Firm")

    user = get_current_user()
    firm.is_active = False
    write_audit(firm.id, f"Firm '{firm.name}' deactivated.", user.id, "firm", firm.id)
    db.session.commit()

    session.clear()
    return success(message="Firm deactivated.", data={"redirect": "/auth/login"})
