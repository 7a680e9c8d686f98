"""
auth.py — Registration, login, logout, session status and firm user management.
"""

import re
from datetime import datetime, timezone

from flask import Blueprint, request, session, current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from database import db
from models import User, Firm, UserRole
from utils.audit import write_audit
from utils.auth import (
    login_required, admin_required, guest_only,
    get_current_user, get_current_firm_id, start_session,
)
from utils.parsing import FormReader
from utils.response import success, created, error, unauthorized, forbidden, not_found, conflict, validation_error
from utils.serialize import user_dict, firm_dict

auth_bp = Blueprint("auth", __name__)

MIN_LOGIN_PASSWORD = 6
MIN_PASSWORD = 8


def password_errors(password) -> str | None:
    """Strength rule for new passwords. Returns the first failure or None."""
    if not password or len(password) < MIN_PASSWORD:
        return f"Password must be at least {MIN_PASSWORD} characters."
    if not re.search(r"[A-Z]", password):
        return "Password must contain an uppercase letter."
    if not re.search(r"\d", password):
        return "Password must contain a number."
    if not re.search(r"[^A-Za-z0-9]", password):
        return "Password must contain a special character."
    return None


def _body() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


# ─── Registration ─────────────────────────────────────────────────────────────

@auth_bp.route("/register", methods=["GET"])
@guest_only
def register_page():
    return success(data={"authenticated": False})


@auth_bp.route("/register", methods=["POST"])
@guest_only
def register():
    """
    POST /auth/register
    Body: {
        "first_name": str, "last_name": str, "email": str,
        "password": str, "confirm_password": str,
        "firm_name": str, "accept_terms": true
    }

    Creates the firm and its first (admin) user in one transaction and
    signs the new user in.
    """
    body = _body()
    form = FormReader(body)
    first_name = form.text("first_name", required=True, min_len=2, max_len=100)
    last_name  = form.text("last_name", required=True, min_len=2, max_len=100)
    email      = form.email("email", required=True)
    firm_name  = form.text("firm_name", required=True, min_len=2, max_len=255)
    accepted   = form.boolean("accept_terms")

    password = body.get("password") or ""
    problem = password_errors(password)
    if problem:
        form.errors["password"] = problem
    if body.get("confirm_password") != password:
        form.errors["confirm_password"] = "Passwords do not match."
    if accepted is not True:
        form.errors["accept_terms"] = "You must accept the terms and conditions."
    if form.errors:
        return validation_error(form.errors)

    if User.query.filter_by(email=email).first():
        return conflict("An account with this email already exists.")

    firm = Firm(name=firm_name, address="", phone="", email=email, subscription_tier="basic")
    db.session.add(firm)
    db.session.flush()

    user = User(
        firm_id=firm.id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=generate_password_hash(password),
        role=UserRole.admin,
    )
    db.session.add(user)
    db.session.flush()
    write_audit(firm.id, f"Firm '{firm.name}' registered by {email}.", user.id, "firm", firm.id)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return conflict("An account with this email already exists.")

    current_app.logger.info(f"Registered firm {firm.id} with admin {user.id}")
    start_session(user)
    return created(
        data={"user": user_dict(user), "firm": firm_dict(firm), "redirect": "/dashboard/"},
        message="Registration successful.",
    )


# ─── Login ────────────────────────────────────────────────────────────────────

@auth_bp.route("/login", methods=["GET"])
@guest_only
def login_page():
    return success(data={"authenticated": False})


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    POST /auth/login
    Accepts JSON or form data.
    Body: { "email": str, "password": str }

    On success: sets session and returns user info.
    On failure: returns 401.
    """
    form = FormReader(_body())
    email    = form.email("email", required=True)
    password = form.text("password", required=True, min_len=MIN_LOGIN_PASSWORD)
    if form.errors:
        return validation_error(form.errors)

    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        _log_failed_login(email)
        return unauthorized("Invalid email or password.")
    if not user.is_active:
        _log_failed_login(email, "user inactive")
        return unauthorized("This account has been deactivated.")

    firm = db.session.get(Firm, user.firm_id)
    if not firm or not firm.is_active:
        _log_failed_login(email, "firm inactive")
        return unauthorized("This firm account is not active.")

    user.last_sign_in = datetime.now(timezone.utc)
    write_audit(user.firm_id, f"User '{user.full_name}' logged in.", user.id, "user", user.id)
    db.session.commit()

    start_session(user)
    return success(data={
        "user": user_dict(user),
        "firm": firm_dict(firm),
        "redirect": "/dashboard/",
    }, message="Login successful.")


# ─── Logout ───────────────────────────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """
    POST /auth/logout
    Clears session.
    """
    user = get_current_user()
    write_audit(user.firm_id, f"User '{user.full_name}' logged out.", user.id, "user", user.id)
    db.session.commit()

    session.clear()
    return success(message="Logged out.", data={"redirect": "/auth/login"})


# ─── Session status ───────────────────────────────────────────────────────────

@auth_bp.route("/session", methods=["GET"])
def session_status():
    """
    GET /auth/session
    Returns current session info. Used by the frontend to check auth state.
    """
    user = get_current_user()
    if not user:
        return success(data={"authenticated": False})

    firm = db.session.get(Firm, user.firm_id)
    return success(data={
        "authenticated": True,
        "user": user_dict(user),
        "firm": firm_dict(firm) if firm else None,
    })


# ─── User management (admin only) ─────────────────────────────────────────────

@auth_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    """
    GET /auth/users
    Returns all users for the current firm.
    """
    firm_id = get_current_firm_id()
    users = (
        User.query
        .filter_by(firm_id=firm_id)
        .order_by(User.last_name.asc(), User.first_name.asc())
        .all()
    )
    return success(data={"users": [user_dict(u) for u in users]})


@auth_bp.route("/users", methods=["POST"])
@admin_required
def create_user():
    """
    POST /auth/users
    Body: {
        "first_name": str, "last_name": str, "email": str, "password": str,
        "role": "admin" | "attorney" | "paralegal" | "staff", "phone": str?
    }
    Adds a user to the current firm and queues an invitation email.
    """
    from tasks.notifications import queue_invitation

    firm_id = get_current_firm_id()
    admin   = get_current_user()
    body    = _body()
    form    = FormReader(body)

    first_name = form.text("first_name", required=True, min_len=2, max_len=100)
    last_name  = form.text("last_name", required=True, min_len=2, max_len=100)
    email      = form.email("email", required=True)
    role       = form.text("role", required=True)
    phone      = form.text("phone", max_len=50)
    password   = body.get("password") or ""

    problem = password_errors(password)
    if problem:
        form.errors["password"] = problem
    if role and role not in UserRole.__members__:
        form.errors["role"] = "role must be one of: " + ", ".join(UserRole.__members__) + "."
    if form.errors:
        return validation_error(form.errors)

    if User.query.filter_by(email=email).first():
        return conflict("A user with this email already exists.")

    user = User(
        firm_id=firm_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        password_hash=generate_password_hash(password),
        role=UserRole[role],
    )
    db.session.add(user)
    db.session.flush()
    write_audit(
        firm_id,
        f"Admin created new user '{user.full_name}' ({user.role.value}).",
        admin.id, "user", user.id,
    )
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return conflict("A user with this email already exists.")

    invitation_queued = queue_invitation(current_app.config, user.id, admin.full_name)
    return created(
        data={"user": user_dict(user), "invitation_queued": invitation_queued},
        message="User created.",
    )


@auth_bp.route("/users/<user_id>/password", methods=["PUT"])
@login_required
def change_password(user_id):
    """
    PUT /auth/users/<user_id>/password
    Body: { "current_password": str, "new_password": str }

    Users can change their own password.
    Admins can change any user's password in their firm.
    """
    body = _body()
    current_user = get_current_user()
    firm_id = get_current_firm_id()
    is_self = current_user.id == user_id

    if not is_self and current_user.role != UserRole.admin:
        return forbidden("You can only change your own password.")

    user = User.query.filter_by(id=user_id, firm_id=firm_id).first()
    if not user:
        return not_found("User")

    if is_self and not check_password_hash(user.password_hash, body.get("current_password") or ""):
        return unauthorized("Current password is incorrect.")

    problem = password_errors(body.get("new_password") or "")
    if problem:
        return validation_error({"new_password": problem})

    user.password_hash = generate_password_hash(body["new_password"])
    write_audit(
        firm_id, f"Password changed for user '{user.full_name}'.",
        current_user.id, "user", user.id,
    )
    db.session.commit()
    return success(message="Password updated successfully.")


@auth_bp.route("/users/<user_id>/deactivate", methods=["POST"])
@admin_required
def deactivate_user(user_id):
    """
    POST /auth/users/<user_id>/deactivate
    Soft delete (is_active=False). Admins cannot deactivate themselves.
    """
    firm_id = get_current_firm_id()
    current_user = get_current_user()

    if current_user.id == user_id:
        return error("You cannot deactivate your own account.")

    user = User.query.filter_by(id=user_id, firm_id=firm_id).first()
    if not user:
        return not_found("User")

    user.is_active = False
    write_audit(
        firm_id, f"User '{user.full_name}' deactivated.",
        current_user.id, "user", user.id,
    )
    db.session.commit()
    return success(message=f"User '{user.full_name}' has been deactivated.")


# ─── Private helpers ──────────────────────────────────────────────────────────

def _log_failed_login(email: str, reason: str = "bad credentials"):
    """Log a failed login attempt (no firm_id known at this point)."""
    current_app.logger.warning(f"Failed login attempt for email: {email} ({reason})")
