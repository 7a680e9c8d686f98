"""
serialize.py — Model → JSON dicts.

Dates go out as ISO strings, money as floats. Display names are passed in by
the caller (resolved in batch by utils/lookups.py).
"""

from datetime import datetime, timezone
from utils.display import iso, status_variant, priority_variant, as_utc, format_file_size


def _money(value):
    return float(value) if value is not None else None


def _date(value):
    return value.isoformat() if value is not None else None


def firm_dict(firm) -> dict:
    return {
        "id":                firm.id,
        "name":              firm.name,
        "address":           firm.address,
        "phone":             firm.phone,
        "email":             firm.email,
        "logo_url":          firm.logo_url,
        "subscription_tier": firm.subscription_tier,
        "is_active":         firm.is_active,
        "created_at":        iso(firm.created_at),
    }


def user_dict(user) -> dict:
    return {
        "id":           user.id,
        "firm_id":      user.firm_id,
        "email":        user.email,
        "first_name":   user.first_name,
        "last_name":    user.last_name,
        "role":         user.role.value,
        "phone":        user.phone,
        "avatar_url":   user.avatar_url,
        "is_active":    user.is_active,
        "last_sign_in": iso(user.last_sign_in),
        "created_at":   iso(user.created_at),
    }


def party_dict(party, display_name=None) -> dict:
    from utils.display import party_display_name
    return {
        "id":                party.id,
        "type":              party.type,
        "first_name":        party.first_name,
        "last_name":         party.last_name,
        "organization_name": party.organization_name,
        "display_name":      display_name or party_display_name(party),
        "email":             party.email,
        "phone":             party.phone,
        "address":           party.address,
        "notes":             party.notes,
        "is_client":         party.is_client,
        "created_at":        iso(party.created_at),
    }


def case_dict(case, client_name=None, assignee_name=None) -> dict:
    return {
        "id":                case.id,
        "case_number":       case.case_number,
        "title":             case.title,
        "case_type":         case.case_type,
        "status":            case.status,
        "status_variant":    status_variant(case.status),
        "description":       case.description,
        "client_id":         case.client_id,
        "client_name":       client_name,
        "opposing_party_id": case.opposing_party_id,
        "assigned_to":       case.assigned_to,
        "assignee_name":     assignee_name,
        "court_name":        case.court_name,
        "court_location":    case.court_location,
        "judge_name":        case.judge_name,
        "filing_date":       _date(case.filing_date),
        "closure_date":      _date(case.closure_date),
        "created_at":        iso(case.created_at),
    }


def interest_dict(si, lender_name=None, borrower_name=None) -> dict:
    return {
        "id":               si.id,
        "case_id":          si.case_id,
        "type":             si.type,
        "description":      si.description,
        "property_address": si.property_address,
        "recorded_date":    _date(si.recorded_date),
        "amount":           _money(si.amount),
        "lien_position":    si.lien_position,
        "lender_id":        si.lender_id,
        "lender_name":      lender_name,
        "borrower_id":      si.borrower_id,
        "borrower_name":    borrower_name,
        "maturity_date":    _date(si.maturity_date),
        "interest_rate":    _money(si.interest_rate),
        "property_value":   _money(si.property_value),
        "created_at":       iso(si.created_at),
    }


def document_dict(doc, uploader_name=None, case_title=None) -> dict:
    return {
        "id":               doc.id,
        "case_id":          None if doc.is_template else doc.case_id,
        "case_title":       case_title,
        "name":             doc.name,
        "document_type":    doc.document_type,
        "description":      doc.description,
        "file_path":        doc.file_path,
        "file_size":        doc.file_size,
        "file_size_label":  format_file_size(doc.file_size),
        "uploaded_by":      doc.uploaded_by,
        "uploader_name":    uploader_name,
        "version":          doc.version,
        "is_template":      doc.is_template,
        "related_party_id": doc.related_party_id,
        "created_at":       iso(doc.created_at),
    }


def deadline_dict(deadline, assignee_name=None, now=None) -> dict:
    now = now or datetime.now(timezone.utc)
    due = as_utc(deadline.due_date)
    return {
        "id":               deadline.id,
        "case_id":          deadline.case_id,
        "title":            deadline.title,
        "description":      deadline.description,
        "due_date":         iso(deadline.due_date),
        "priority":         deadline.priority,
        "priority_variant": priority_variant(deadline.priority),
        "status":           deadline.status,
        "status_variant":   status_variant(deadline.status),
        "is_overdue":       deadline.status == "Pending" and due is not None and due < now,
        "assigned_to":      deadline.assigned_to,
        "assignee_name":    assignee_name,
        "reminder_date":    iso(deadline.reminder_date),
        "created_at":       iso(deadline.created_at),
    }


def financial_dict(fin, recorder_name=None, party_name=None) -> dict:
    return {
        "id":               fin.id,
        "case_id":          fin.case_id,
        "transaction_type": fin.transaction_type,
        "amount":           _money(fin.amount),
        "description":      fin.description,
        "transaction_date": _date(fin.transaction_date),
        "recorded_by":      fin.recorded_by,
        "recorder_name":    recorder_name,
        "invoice_id":       fin.invoice_id,
        "party_id":         fin.party_id,
        "party_name":       party_name,
        "created_at":       iso(fin.created_at),
    }
