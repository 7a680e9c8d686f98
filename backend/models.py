"""
models.py — All database table definitions for LegalBeacon.

Multi-tenancy: every table that stores case or party data includes firm_id
and mixes in FirmScoped (utils/tenancy.py). Child rows carry the firm_id of
the case or party they reference; the tenant gate refuses any flush where the
two diverge.
"""

from datetime import datetime, timezone
from database import db
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Date,
    ForeignKey, Numeric, JSON, Enum as PgEnum, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from utils.tenancy import FirmScoped
import uuid
import enum


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class UserRole(enum.Enum):
    admin = "admin"
    attorney = "attorney"
    paralegal = "paralegal"
    staff = "staff"


class PartyType(enum.Enum):
    individual = "individual"
    organization = "organization"


# ─────────────────────────────────────────────
# Helper
# ─────────────────────────────────────────────

def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ─────────────────────────────────────────────
# 1. Firms
# ─────────────────────────────────────────────

class Firm(db.Model):
    __tablename__ = "firms"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    address = Column(String(512), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")
    email = Column(String(255), nullable=False)
    logo_url = Column(String(1024), nullable=True)
    subscription_tier = Column(String(50), nullable=False, default="basic")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    users = relationship("User", back_populates="firm")

    def __repr__(self):
        return f"<Firm {self.name}>"


# ─────────────────────────────────────────────
# 2. Users (authorization profile of a principal)
# ─────────────────────────────────────────────

class User(db.Model):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_uuid)
    firm_id = Column(String(36), ForeignKey("firms.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(PgEnum(UserRole, name="user_role_enum"), nullable=False, default=UserRole.staff)
    phone = Column(String(50), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_sign_in = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    firm = relationship("Firm", back_populates="users")

    __table_args__ = (
        Index("ix_users_firm_id", "firm_id"),
    )

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"


# ─────────────────────────────────────────────
# 3. Parties (clients, opposing parties, lenders, ...)
# ─────────────────────────────────────────────

class Party(FirmScoped, db.Model):
    __tablename__ = "parties"

    id = Column(String(36), primary_key=True, default=new_uuid)
    type = Column(String(50), nullable=False, default=PartyType.individual.value)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    organization_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(512), nullable=True)
    notes = Column(Text, nullable=True)
    is_client = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(organization_name IS NOT NULL AND organization_name <> '') "
            "OR (first_name IS NOT NULL AND first_name <> '' "
            "AND last_name IS NOT NULL AND last_name <> '')",
            name="ck_parties_has_name",
        ),
        Index("ix_parties_firm_id", "firm_id"),
        Index("ix_parties_is_client", "firm_id", "is_client"),
    )

    def __repr__(self):
        return f"<Party {self.organization_name or self.first_name}>"


# ─────────────────────────────────────────────
# 4. Cases (aggregate root)
# ─────────────────────────────────────────────

class Case(FirmScoped, db.Model):
    __tablename__ = "cases"
    __firm_parents__ = {
        "client_id": "parties",
        "opposing_party_id": "parties",
        "assigned_to": "users",
    }

    id = Column(String(36), primary_key=True, default=new_uuid)
    case_number = Column(String(100), nullable=False)       # unique per firm by convention only
    title = Column(String(255), nullable=False)
    case_type = Column(String(100), nullable=False)         # free-form: foreclosure, civil litigation, ...
    status = Column(String(50), nullable=False)             # open string: active | pending | closed | ...
    description = Column(Text, nullable=True)
    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    client_id = Column(String(36), ForeignKey("parties.id"), nullable=False)
    opposing_party_id = Column(String(36), ForeignKey("parties.id"), nullable=True)
    court_name = Column(String(255), nullable=True)
    court_location = Column(String(255), nullable=True)
    judge_name = Column(String(255), nullable=True)
    filing_date = Column(Date, nullable=True)
    closure_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    client = relationship("Party", foreign_keys=[client_id])
    opposing_party = relationship("Party", foreign_keys=[opposing_party_id])
    assignee = relationship("User", foreign_keys=[assigned_to])

    __table_args__ = (
        Index("ix_cases_firm_id", "firm_id"),
        Index("ix_cases_firm_created", "firm_id", "created_at"),
        Index("ix_cases_status", "firm_id", "status"),
    )

    def __repr__(self):
        return f"<Case {self.case_number} — {self.title}>"


# ─────────────────────────────────────────────
# 5. Security Interests (mortgages / liens)
# ─────────────────────────────────────────────

class SecurityInterest(FirmScoped, db.Model):
    __tablename__ = "security_interests"
    __firm_parents__ = {
        "case_id": "cases",
        "lender_id": "parties",
        "borrower_id": "parties",
    }

    id = Column(String(36), primary_key=True, default=new_uuid)
    case_id = Column(String(36), ForeignKey("cases.id"), nullable=False)
    type = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    property_address = Column(String(512), nullable=True)
    recorded_date = Column(Date, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    lien_position = Column(Integer, nullable=True)
    lender_id = Column(String(36), ForeignKey("parties.id"), nullable=False)
    borrower_id = Column(String(36), ForeignKey("parties.id"), nullable=False)
    maturity_date = Column(Date, nullable=True)
    interest_rate = Column(Numeric(7, 4), nullable=True)
    property_value = Column(Numeric(14, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_security_interests_case_id", "case_id"),
        Index("ix_security_interests_firm_id", "firm_id"),
    )

    def __repr__(self):
        return f"<SecurityInterest {self.type} amount={self.amount}>"


# ─────────────────────────────────────────────
# 6. Documents (case documents and templates)
# ─────────────────────────────────────────────

class Document(FirmScoped, db.Model):
    """
    Case documents and firm templates share this table. Templates carry
    is_template=True and the reserved case id from Config.TEMPLATE_CASE_ID,
    so case_id has no foreign key; the tenant gate checks real case ids.
    """
    __tablename__ = "documents"
    __firm_parents__ = {
        "case_id": "cases",
        "uploaded_by": "users",
        "related_party_id": "parties",
    }

    id = Column(String(36), primary_key=True, default=new_uuid)
    case_id = Column(String(36), nullable=False)
    name = Column(String(255), nullable=False)
    document_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    file_path = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    uploaded_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    is_template = Column(Boolean, nullable=False, default=False)
    related_party_id = Column(String(36), ForeignKey("parties.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_documents_case_id", "case_id"),
        Index("ix_documents_firm_template", "firm_id", "is_template"),
    )

    def firm_parent_refs(self) -> dict:
        refs = super().firm_parent_refs()
        if self.is_template:
            refs.pop("cases", None)
        return refs

    def __repr__(self):
        return f"<Document {self.name} v{self.version}>"


# ─────────────────────────────────────────────
# 7. Deadlines
# ─────────────────────────────────────────────

class Deadline(FirmScoped, db.Model):
    __tablename__ = "deadlines"
    __firm_parents__ = {
        "case_id": "cases",
        "assigned_to": "users",
    }

    id = Column(String(36), primary_key=True, default=new_uuid)
    case_id = Column(String(36), ForeignKey("cases.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=False)
    priority = Column(String(20), nullable=False, default="Medium")   # High | Medium | Low by convention
    status = Column(String(20), nullable=False, default="Pending")    # Pending | Completed | Overdue
    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reminder_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_deadlines_case_id", "case_id"),
        Index("ix_deadlines_firm_due", "firm_id", "due_date"),
    )

    def __repr__(self):
        return f"<Deadline {self.title} due {self.due_date}>"


# ─────────────────────────────────────────────
# 8. Financial transactions
# ─────────────────────────────────────────────

class Financial(FirmScoped, db.Model):
    __tablename__ = "financials"
    __firm_parents__ = {
        "case_id": "cases",
        "recorded_by": "users",
        "party_id": "parties",
    }

    id = Column(String(36), primary_key=True, default=new_uuid)
    case_id = Column(String(36), ForeignKey("cases.id"), nullable=False)
    transaction_type = Column(String(100), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)        # signed
    description = Column(Text, nullable=True)
    transaction_date = Column(Date, nullable=False)
    recorded_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    invoice_id = Column(String(100), nullable=True)
    party_id = Column(String(36), ForeignKey("parties.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_financials_case_id", "case_id"),
        Index("ix_financials_firm_id", "firm_id"),
    )

    def __repr__(self):
        return f"<Financial {self.transaction_type} {self.amount}>"


# ─────────────────────────────────────────────
# 9. Audit Logs
# ─────────────────────────────────────────────

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_uuid)
    firm_id = Column(String(36), ForeignKey("firms.id", ondelete="CASCADE"), nullable=False)
    action = Column(Text, nullable=False)
    performed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    record_type = Column(String(100), nullable=True)            # e.g. "case", "party"
    record_id = Column(String(36), nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    details = Column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_audit_logs_firm_id", "firm_id"),
        Index("ix_audit_logs_timestamp", "timestamp"),
    )

    def __repr__(self):
        return f"<AuditLog {self.action} at {self.timestamp}>"


# Firm-scoped tables, in cascade-delete order for a case
CASE_CHILD_MODELS = (SecurityInterest, Document, Deadline, Financial)
FIRM_SCOPED_TABLES = ("parties", "cases", "security_interests", "documents", "deadlines", "financials")
