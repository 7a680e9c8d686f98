"""
naming.py — Storage path conventions for documents and templates.

Case documents:  documents/<case_id>/<unix_ms>_<file_name>
Templates:       templates/<unix_ms>_<file_name>

Only the path is recorded; writing the bytes is the storage layer's job.
"""

import re
import time


def clean_filename(file_name: str) -> str:
    """
    Strip directory parts and characters unsafe in object keys.
    e.g. "../Notice of Default (final).docx" → "Notice_of_Default_final.docx"
    """
    base = re.split(r"[\\/]", file_name or "")[-1]
    stem, dot, ext = base.rpartition(".")
    if not dot:
        stem, ext = base, ""
    stem = re.sub(r"[^\w\s-]", "", stem).strip()
    stem = re.sub(r"\s+", "_", stem) or "file"
    ext = re.sub(r"[^\w]", "", ext)
    return f"{stem}.{ext}" if ext else stem


def _stamp(now_ms: int = None) -> int:
    return now_ms if now_ms is not None else int(time.time() * 1000)


def make_document_path(case_id: str, file_name: str, now_ms: int = None) -> str:
    return f"documents/{case_id}/{_stamp(now_ms)}_{clean_filename(file_name)}"


def make_template_path(file_name: str, now_ms: int = None) -> str:
    return f"templates/{_stamp(now_ms)}_{clean_filename(file_name)}"


def make_generated_path(case_id: str, document_name: str, now_ms: int = None) -> str:
    """Path for a document generated from a template (always .docx)."""
    return make_document_path(case_id, f"{document_name}.docx", now_ms)
