"""
documents.py — Case document and template metadata routes.

Storage path convention (utils/naming.py):
    case documents  documents/<case_id>/<unix_ms>_<file_name>
    templates       templates/<unix_ms>_<file_name>

Only the path and size are recorded here; the bytes live in object storage.
Templates share the documents table under the reserved TEMPLATE_CASE_ID.
"""

import logging
from flask import Blueprint, request, current_app

from database import db
from models import Document, Party
from utils.audit import write_audit
from utils.auth import login_required, get_current_firm_id, get_current_user
from utils.cases import get_case
from utils.lookups import user_names, case_titles
from utils.naming import make_document_path, make_template_path, make_generated_path
from utils.pagination import paginate
from utils.parsing import FormReader, is_missing
from utils.response import success, created, paginated, not_found, validation_error
from utils.serialize import document_dict

documents_bp = Blueprint("documents", __name__)
logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════
#  Case documents — list / detail
# ════════════════════════════════════════════════════════════

@documents_bp.route("", methods=["GET"])
@login_required
def list_documents():
    """
    GET /documents?search=&document_type=&case_id=&page=
    Case documents across the firm (templates excluded), newest first.
    """
    firm_id  = get_current_firm_id()
    search   = request.args.get("search", "").strip()
    doc_type = request.args.get("document_type", "").strip()
    case_id  = request.args.get("case_id", "").strip()

    q = Document.query.filter_by(firm_id=firm_id, is_template=False)
    if search:
        q = q.filter(Document.name.icontains(search, autoescape=True))
    if doc_type and doc_type.lower() != "all":
        q = q.filter(Document.document_type == doc_type)
    if case_id and case_id.lower() != "all":
        q = q.filter(Document.case_id == case_id)

    q = q.order_by(Document.created_at.desc(), Document.id.desc())
    page = paginate(q, request.args.get("page"), current_app.config["ITEMS_PER_PAGE"])

    return paginated("documents", _rows(firm_id, page.items), page)


@documents_bp.route("/<document_id>", methods=["GET"])
@login_required
def get_document(document_id):
    """
    GET /documents/<document_id>
    Returns document metadata (firm-scoped). Works for templates too.
    """
    firm_id = get_current_firm_id()
    doc = _get_doc_scoped(document_id, firm_id)
    if not doc:
        return not_found("Document")
    [row] = _rows(firm_id, [doc])
    return success(data={"document": row})


# ════════════════════════════════════════════════════════════
#  Case documents — create / update / delete
# ════════════════════════════════════════════════════════════

@documents_bp.route("", methods=["POST"])
@login_required
def create_document():
    """
    POST /documents
    Body: { "case_id", "name", "document_type", "file_name" (required),
            "file_size", "description", "related_party_id" }
    """
    firm_id = get_current_firm_id()
    form = FormReader(request.get_json(silent=True) or {})
    case_id   = form.text("case_id", required=True)
    name      = form.text("name", required=True, max_len=255)
    doc_type  = form.text("document_type", required=True, max_len=100)
    file_name = form.text("file_name", required=True, max_len=255)
    file_size = form.integer("file_size", minimum=0)
    desc      = form.text("description")
    party_id  = form.text("related_party_id")

    case = get_case(firm_id, case_id) if case_id else None
    if case_id and not case:
        form.errors["case_id"] = "Case not found."
    _check_party(firm_id, party_id, form.errors)
    if form.errors:
        return validation_error(form.errors)

    user = get_current_user()
    doc = Document(
        firm_id=firm_id,
        case_id=case.id,
        name=name,
        document_type=doc_type,
        description=desc,
        file_path=make_document_path(case.id, file_name),
        file_size=file_size or 0,
        uploaded_by=user.id,
        version=1,
        is_template=False,
        related_party_id=party_id,
    )
    db.session.add(doc)
    db.session.flush()
    write_audit(
        firm_id, f"Document '{doc.name}' added to case '{case.case_number}'.",
        user.id, "document", doc.id,
    )
    db.session.commit()

    return created(data={"document": document_dict(doc, user.full_name, case.title)},
                   message="Document created.")


@documents_bp.route("/<document_id>", methods=["PUT"])
@login_required
def update_document(document_id):
    """
    PUT /documents/<document_id>
    Body: any of { "name", "document_type", "description", "related_party_id" }
    plus optionally { "file_name", "file_size" } when a new file is attached,
    which moves the path and bumps the version.
    """
    firm_id = get_current_firm_id()
    doc = _get_doc_scoped(document_id, firm_id)
    if not doc:
        return not_found("Document")

    form = FormReader(request.get_json(silent=True) or {}, partial=True)
    values = {
        "name":             form.text("name", required=True, max_len=255),
        "document_type":    form.text("document_type", required=True, max_len=100),
        "description":      form.text("description"),
        "related_party_id": form.text("related_party_id"),
    }
    file_name = form.text("file_name", required=True, max_len=255)
    file_size = form.integer("file_size", minimum=0)
    party_id = values["related_party_id"]
    if not is_missing(party_id):
        _check_party(firm_id, party_id, form.errors)
    if form.errors:
        return validation_error(form.errors)

    for key, value in values.items():
        if not is_missing(value):
            setattr(doc, key, value)

    if not is_missing(file_name):
        doc.file_path = (
            make_template_path(file_name) if doc.is_template
            else make_document_path(doc.case_id, file_name)
        )
        doc.version = (doc.version or 1) + 1
        if not is_missing(file_size):
            doc.file_size = file_size or 0
        logger.info(f"Document {doc.id} now at version {doc.version}")

    db.session.commit()
    [row] = _rows(firm_id, [doc])
    return success(data={"document": row}, message="Document updated.")


@documents_bp.route("/<document_id>", methods=["DELETE"])
@login_required
def delete_document(document_id):
    """DELETE /documents/<document_id> — removes the metadata row."""
    firm_id = get_current_firm_id()
    doc = _get_doc_scoped(document_id, firm_id)
    if not doc:
        return not_found("Document")

    write_audit(
        firm_id, f"Document '{doc.name}' deleted.",
        get_current_user().id, "document", doc.id,
    )
    db.session.delete(doc)
    db.session.commit()
    return success(data={"document_id": document_id, "deleted": True})


# ════════════════════════════════════════════════════════════
#  Templates
# ════════════════════════════════════════════════════════════

@documents_bp.route("/templates", methods=["GET"])
@login_required
def list_templates():
    """
    GET /documents/templates?search=
    All templates of the firm by name, with creator name.
    """
    firm_id = get_current_firm_id()
    search  = request.args.get("search", "").strip()

    q = Document.query.filter_by(firm_id=firm_id, is_template=True)
    if search:
        q = q.filter(Document.name.icontains(search, autoescape=True))
    templates = q.order_by(Document.name.asc()).all()

    creators = user_names(firm_id, [t.uploaded_by for t in templates])
    return success(data={
        "templates": [document_dict(t, c) for t, c in zip(templates, creators)],
        "total":     len(templates),
    })


@documents_bp.route("/templates", methods=["POST"])
@login_required
def create_template():
    """
    POST /documents/templates
    Body: { "name", "document_type", "file_name" (required), "file_size",
            "description" }
    """
    firm_id = get_current_firm_id()
    form = FormReader(request.get_json(silent=True) or {})
    name      = form.text("name", required=True, max_len=255)
    doc_type  = form.text("document_type", required=True, max_len=100)
    file_name = form.text("file_name", required=True, max_len=255)
    file_size = form.integer("file_size", minimum=0)
    desc      = form.text("description")
    if form.errors:
        return validation_error(form.errors)

    user = get_current_user()
    template = Document(
        firm_id=firm_id,
        case_id=current_app.config["TEMPLATE_CASE_ID"],
        name=name,
        document_type=doc_type,
        description=desc,
        file_path=make_template_path(file_name),
        file_size=file_size or 0,
        uploaded_by=user.id,
        version=1,
        is_template=True,
    )
    db.session.add(template)
    db.session.flush()
    write_audit(firm_id, f"Template '{template.name}' created.", user.id, "document", template.id)
    db.session.commit()

    return created(data={"template": document_dict(template, user.full_name)},
                   message="Template created.")


@documents_bp.route("/templates/<template_id>/generate", methods=["POST"])
@login_required
def generate_from_template(template_id):
    """
    POST /documents/templates/<template_id>/generate
    Body: { "case_id": str, "name": str }
    Creates a version-1 case document of the template's type.
    """
    firm_id = get_current_firm_id()
    template = Document.query.filter_by(id=template_id, firm_id=firm_id, is_template=True).first()
    if not template:
        return not_found("Template")

    form = FormReader(request.get_json(silent=True) or {})
    case_id = form.text("case_id", required=True)
    name    = form.text("name", required=True, max_len=255)
    case = get_case(firm_id, case_id) if case_id else None
    if case_id and not case:
        form.errors["case_id"] = "Case not found."
    if form.errors:
        return validation_error(form.errors)

    user = get_current_user()
    doc = Document(
        firm_id=firm_id,
        case_id=case.id,
        name=name,
        document_type=template.document_type,
        description=f"Generated from template '{template.name}'.",
        file_path=make_generated_path(case.id, name),
        file_size=template.file_size or 0,
        uploaded_by=user.id,
        version=1,
        is_template=False,
    )
    db.session.add(doc)
    db.session.flush()
    write_audit(
        firm_id, f"Document '{doc.name}' generated from template '{template.name}'.",
        user.id, "document", doc.id,
    )
    db.session.commit()

    return created(data={"document": document_dict(doc, user.full_name, case.title)},
                   message="Document generated.")


# ════════════════════════════════════════════════════════════
#  Helpers
# ════════════════════════════════════════════════════════════

def _get_doc_scoped(document_id: str, firm_id: str):
    """Return a Document only if it belongs to the given firm."""
    if not firm_id:
        return None
    return Document.query.filter_by(id=document_id, firm_id=firm_id).first()


def _check_party(firm_id, party_id, errors):
    if party_id and not Party.query.filter_by(id=party_id, firm_id=firm_id).first():
        errors["related_party_id"] = "Party not found."


def _rows(firm_id, docs) -> list:
    uploaders = user_names(firm_id, [d.uploaded_by for d in docs])
    titles = case_titles(firm_id, [None if d.is_template else d.case_id for d in docs])
    return [
        document_dict(d, uploader, None if d.is_template else title)
        for d, uploader, title in zip(docs, uploaders, titles)
    ]
