"""
audit.py — AuditLog entries for firm activity.

Entries are added to the current transaction, so an audit row exists exactly
when the change it describes was committed.
"""

import logging
from database import db

log = logging.getLogger(__name__)


def write_audit(firm_id, action, performed_by=None, record_type=None, record_id=None, details=None):
    """Stage an AuditLog row on the session. The caller commits."""
    from models import AuditLog
    entry = AuditLog(
        firm_id=firm_id,
        action=action,
        performed_by=performed_by,
        record_type=record_type,
        record_id=record_id,
        details=details,
    )
    db.session.add(entry)
    log.debug(f"audit[{firm_id}] {action}")
    return entry


def audit_dict(entry) -> dict:
    from utils.display import iso
    return {
        "id":          entry.id,
        "action":      entry.action,
        "performed_by": entry.performed_by,
        "record_type": entry.record_type,
        "record_id":   entry.record_id,
        "timestamp":   iso(entry.timestamp),
        "details":     entry.details,
    }
