"""
auth.py — Authentication and authorisation decorators + helpers.

The Flask session holds only the principal (user_id). Everything else, the
firm in particular, is resolved from the User row on every request by
bind_request_principal(), which also binds the database session to that firm
(utils/tenancy.py).
"""

from functools import wraps
from flask import session, request, g, redirect, url_for
from utils.response import unauthorized, forbidden


# ─── Decorators ───────────────────────────────────────────────────────────────

def login_required(f):
    """Require a principal with a firm. Returns 401 / redirects to login otherwise."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not getattr(g, "current_user", None):
            if wants_json():
                return unauthorized("You must be logged in.")
            return redirect(url_for("auth.login_page"))
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """Require role == admin. Returns 401/403 otherwise."""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = getattr(g, "current_user", None)
        if not user:
            if wants_json():
                return unauthorized("You must be logged in.")
            return redirect(url_for("auth.login_page"))
        if user.role.value != "admin":
            return forbidden("Admin access required.")
        return f(*args, **kwargs)
    return decorated


def guest_only(f):
    """Login / registration views: authenticated callers go to the dashboard."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_user", None):
            return redirect(url_for("dashboard.dashboard_page"))
        return f(*args, **kwargs)
    return decorated


# ─── Principal resolution ─────────────────────────────────────────────────────

def resolve_principal(user_id):
    """
    Return the active User bound to the authenticated principal, or None.
    A principal without a User row has no firm context.
    """
    if not user_id:
        return None
    from models import User
    from database import db
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    if user.firm is None or not user.firm.is_active:
        return None
    return user


def bind_request_principal():
    """
    Resolve the caller and bind the DB session to their firm.
    Called from a before_request hook for every request.
    """
    from database import db
    from utils.tenancy import bind_firm

    user = resolve_principal(session.get("user_id"))
    g.current_user = user
    bind_firm(db.session, user.firm_id if user else None)
    return user


# ─── Session helpers ──────────────────────────────────────────────────────────

def get_current_user():
    """Return the current User (None if not logged in)."""
    return getattr(g, "current_user", None)


def get_current_firm_id() -> str | None:
    """Return the caller's firm id. ALL DB queries filter by this."""
    user = get_current_user()
    return user.firm_id if user else None


def start_session(user):
    session.clear()
    session.permanent = True
    session["user_id"] = user.id


# ─── Private helpers ──────────────────────────────────────────────────────────

def wants_json() -> bool:
    """True if the request expects a JSON response (API call, not browser nav)."""
    if request.is_json:
        return True
    best = request.accept_mimetypes.best_match(["text/html", "application/json"])
    return best != "text/html"
