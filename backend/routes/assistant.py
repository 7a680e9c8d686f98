"""
assistant.py — The legal assistant chat.

Replies come from a fixed keyword table; no model is called. This is the
only file that produces assistant text, so a real provider would replace
generate_reply() and nothing else.
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, request, current_app

from models import Document
from utils.auth import login_required, get_current_firm_id
from utils.cases import get_case
from utils.display import CLIENT_FALLBACK
from utils.lookups import party_names
from utils.parsing import FormReader
from utils.response import success, validation_error

assistant_bp = Blueprint("assistant", __name__)
log = logging.getLogger(__name__)

GREETING = (
    "Hello! I'm your AI legal assistant. I can help you draft documents, analyze legal "
    "content, summarize case information, and more. Select a case to get started, or "
    "just ask me a general legal question."
)

DRAFT_REPLY = (
    "I have drafted the document based on your requirements. Here is the suggested text:\n\n"
    "[Document content would appear here with proper formatting and legal language based "
    "on the case details provided]"
)

ANALYSIS_REPLY = (
    "Based on my analysis of the document, here are my observations:\n\n"
    "1. The agreement contains several ambiguous clauses in sections 3.2 and 5.1 that could "
    "be clarified.\n"
    "2. The indemnification clause is more favorable to the opposing party.\n"
    "3. There are potential compliance issues with local regulations in section 7.\n\n"
    "I recommend revising these sections to strengthen your client's position."
)

SUMMARY_REPLY = (
    "Summary of the document:\n\n"
    "This is a mortgage foreclosure complaint filed against John Doe regarding the property "
    "at 123 Main St. The complaint alleges that the defendant has failed to make payments "
    "for 6 months, totaling $12,500 in arrears. The plaintiff is seeking foreclosure and sale "
    "of the property to satisfy the debt of $275,000 plus interest and costs."
)

DEADLINE_REPLY = (
    "Based on the foreclosure regulations in this jurisdiction, here are the key deadlines "
    "to be aware of:\n\n"
    "- Defendant has 21 days to file an answer to the complaint\n"
    "- If no answer is filed, you can move for default judgment after day 22\n"
    "- Redemption period is 6 months from judgment\n"
    "- Sale can be scheduled approximately 30-45 days after judgment\n"
    "- Confirmation hearing typically 30 days after sale"
)

DEFAULT_REPLY = (
    "I've analyzed your request and the case information provided. To best assist you with "
    "this legal matter, I would need more specific details about what you're looking to "
    "accomplish. Would you like me to draft a document, review existing content, provide "
    "legal analysis, or suggest strategy?"
)

# First matching row wins.
REPLY_TABLE = (
    (("draft", "write"),         DRAFT_REPLY),
    (("analyze", "review"),      ANALYSIS_REPLY),
    (("summarize",),             SUMMARY_REPLY),
    (("deadline", "timeline"),   DEADLINE_REPLY),
)


def generate_reply(prompt: str, context: dict | None = None) -> str:
    """
    Pick the reply for `prompt` by case-insensitive substring match.

    `context` (case / document summaries) is accepted for the provider
    interface and logged; the table does not use it.
    """
    text = (prompt or "").lower()
    log.debug(f"Assistant request: {text[:80]!r} context={sorted((context or {}).keys())}")
    for keywords, reply in REPLY_TABLE:
        if any(word in text for word in keywords):
            return reply
    return DEFAULT_REPLY


@assistant_bp.route("/greeting", methods=["GET"])
@login_required
def greeting():
    """GET /assistant/greeting — the assistant's opening message."""
    return success(data={"message": _message("ai", GREETING)})


@assistant_bp.route("/chat", methods=["POST"])
@login_required
def chat():
    """
    POST /assistant/chat
    Body: { "prompt": str, "case_id": str?, "document_id": str? }

    Context ids must belong to the caller's firm.

    Response:
    {
        "message": { "sender": "ai", "content": str, "timestamp": str },
        "context": { "case": {...}?, "document": {...}? }
    }
    """
    firm_id = get_current_firm_id()
    form = FormReader(request.get_json(silent=True) or {})
    prompt      = form.text("prompt", required=True, max_len=4000)
    case_id     = form.text("case_id")
    document_id = form.text("document_id")

    context = {}
    if case_id:
        case = get_case(firm_id, case_id)
        if case is None:
            form.errors["case_id"] = "Case not found."
        else:
            [client_name] = party_names(firm_id, [case.client_id], CLIENT_FALLBACK)
            context["case"] = {
                "id":          case.id,
                "case_number": case.case_number,
                "title":       case.title,
                "case_type":   case.case_type,
                "status":      case.status,
                "client_name": client_name,
            }
    if document_id:
        doc = Document.query.filter_by(id=document_id, firm_id=firm_id).first()
        if doc is None:
            form.errors["document_id"] = "Document not found."
        else:
            context["document"] = {
                "id":            doc.id,
                "name":          doc.name,
                "document_type": doc.document_type,
            }
    if form.errors:
        return validation_error(form.errors)

    delay = current_app.config.get("ASSISTANT_DELAY_SECONDS", 0)
    if delay:
        time.sleep(delay)

    reply = generate_reply(prompt, context)
    return success(data={"message": _message("ai", reply), "context": context})


def _message(sender, content):
    return {
        "sender":    sender,
        "content":   content,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
