"""
tenancy.py — Per-firm isolation enforced at the ORM session.

Every table that belongs to a firm mixes in FirmScoped. Once a session is
bound to a firm (bind_firm / tenant_scope), the session itself guarantees:

  reads   → every SELECT touching a FirmScoped model gets firm_id = <bound>
  writes  → flushing a FirmScoped row of another firm raises TenantViolation,
            as does a row whose parent references (case, party, user) belong
            to another firm

Binding None means "authenticated principal has no firm": reads come back
empty and writes are refused. An unbound session (scripts, seeding) is not
restricted.

On PostgreSQL the bound firm is also pushed into the `app.current_firm_id`
setting so the row-level security policies installed by scripts/init_db.py
apply the same predicate inside the database.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import Column, ForeignKey, String, event, select, text
from sqlalchemy.orm import Session, declared_attr, scoped_session, with_loader_criteria

log = logging.getLogger(__name__)

TENANT_KEY = "tenant_firm_id"
NO_FIRM = "none"   # value pushed to PostgreSQL when bound without a firm


class TenantViolation(Exception):
    """A write would cross the firm boundary."""


class FirmScoped:
    """
    Mixin for firm-owned models. Supplies the firm_id column the session
    hooks filter on.

    Subclasses list their same-firm parent references in __firm_parents__
    as {column_attr: parent_table_name}.
    """

    __firm_parents__ = {}

    @declared_attr
    def firm_id(cls):
        return Column(String(36), ForeignKey("firms.id", ondelete="CASCADE"), nullable=False)

    def firm_parent_refs(self) -> dict:
        """Return {table_name: id} for every non-null parent reference."""
        refs = {}
        for attr, table_name in self.__firm_parents__.items():
            value = getattr(self, attr, None)
            if value:
                refs.setdefault(table_name, set()).add(value)
        return refs


# ─── Binding ──────────────────────────────────────────────────────────────────

def _resolve(session):
    """The request-local Session behind a scoped_session such as db.session."""
    return session() if isinstance(session, scoped_session) else session


def bind_firm(session, firm_id):
    """Bind `session` to a firm (or to None = no access)."""
    session = _resolve(session)
    session.info[TENANT_KEY] = firm_id
    if session.in_transaction():
        _push_firm_setting(session.connection(), firm_id)


def unbind(session):
    _resolve(session).info.pop(TENANT_KEY, None)


def is_bound(session) -> bool:
    return TENANT_KEY in _resolve(session).info


def bound_firm_id(session):
    return _resolve(session).info.get(TENANT_KEY)


@contextmanager
def tenant_scope(session, firm_id):
    """
    Temporarily bind `session` to `firm_id`, restoring the previous binding
    on exit.

        with tenant_scope(db.session, firm_id):
            Case.query.all()     # only this firm's cases
    """
    had_binding = is_bound(session)
    previous = bound_firm_id(session)
    bind_firm(session, firm_id)
    try:
        yield
    finally:
        if had_binding:
            bind_firm(session, previous)
        else:
            unbind(session)


# ─── Explicit predicates (same rule as the session hooks / RLS) ──────────────

def can_access(firm_id, record) -> bool:
    """True if a caller of `firm_id` may see `record`."""
    if record is None or not firm_id:
        return False
    return getattr(record, "firm_id", None) == firm_id


def require_same_firm(firm_id, record):
    """Raise TenantViolation unless `record` belongs to `firm_id`."""
    if not can_access(firm_id, record):
        raise TenantViolation(
            f"{type(record).__name__} is not accessible to firm {firm_id!r}."
        )
    return record


# ─── Session hooks ────────────────────────────────────────────────────────────

@event.listens_for(Session, "do_orm_execute")
def _scope_reads(execute_state):
    session = execute_state.session
    if not is_bound(session):
        return
    if (
        not execute_state.is_select
        or execute_state.is_column_load
        or execute_state.is_relationship_load
    ):
        return

    firm_id = bound_firm_id(session)
    if firm_id is None:
        criteria = with_loader_criteria(
            FirmScoped, lambda cls: cls.firm_id.is_(None), include_aliases=True
        )
    else:
        criteria = with_loader_criteria(
            FirmScoped, lambda cls: cls.firm_id == firm_id, include_aliases=True
        )
    execute_state.statement = execute_state.statement.options(criteria)


@event.listens_for(Session, "before_flush")
def _guard_writes(session, flush_context, instances):
    if not is_bound(session):
        return
    firm_id = bound_firm_id(session)
    pending = _pending_rows(session)

    for obj in list(session.new) + list(session.dirty):
        if not isinstance(obj, FirmScoped):
            continue
        if firm_id is None or obj.firm_id != firm_id:
            log.warning(
                f"Refused write of {type(obj).__name__} for firm {obj.firm_id!r} "
                f"from session bound to {firm_id!r}"
            )
            raise TenantViolation(f"Cannot write {type(obj).__name__} outside your firm.")
        _check_parents(session, obj, pending)

    for obj in session.deleted:
        if isinstance(obj, FirmScoped) and (firm_id is None or obj.firm_id != firm_id):
            raise TenantViolation(f"Cannot delete {type(obj).__name__} outside your firm.")


@event.listens_for(Session, "after_begin")
def _set_firm_on_begin(session, transaction, connection):
    if is_bound(session):
        _push_firm_setting(connection, bound_firm_id(session))


def _pending_rows(session) -> dict:
    """{(table_name, id): firm_id} for rows inserted by this flush."""
    pending = {}
    for obj in session.new:
        table = getattr(obj, "__table__", None)
        row_id = getattr(obj, "id", None)
        if table is not None and row_id and "firm_id" in table.c:
            pending[(table.name, row_id)] = obj.firm_id
    return pending


def _check_parents(session, obj, pending):
    """Every parent reference of `obj` must resolve to a row of obj's firm."""
    tables = obj.__table__.metadata.tables
    with session.no_autoflush:
        for table_name, ids in obj.firm_parent_refs().items():
            found = {i: pending[(table_name, i)] for i in ids if (table_name, i) in pending}
            missing = ids - set(found)
            if missing:
                table = tables[table_name]
                rows = session.execute(
                    select(table.c.id, table.c.firm_id).where(table.c.id.in_(missing))
                ).all()
                found.update({row.id: row.firm_id for row in rows})
            for parent_id in ids:
                if found.get(parent_id) != obj.firm_id:
                    raise TenantViolation(
                        f"{type(obj).__name__} references {table_name} row {parent_id} "
                        f"outside its firm."
                    )


def _push_firm_setting(connection, firm_id):
    if connection.dialect.name != "postgresql":
        return
    connection.execute(
        text("SELECT set_config('app.current_firm_id', :firm_id, true)"),
        {"firm_id": firm_id or NO_FIRM},
    )
