"""
notifications.py — Background Celery tasks for email notifications.

Tasks run inside a Flask app context (utils/email.py reads current_app).
Each task gracefully degrades if SendGrid is not configured.
"""

import logging
from tasks.celery_app import celery

log = logging.getLogger(__name__)

_app = None


def _app_context():
    global _app
    if _app is None:
        from app import create_app
        _app = create_app()
    return _app.app_context()


@celery.task(bind=True, name="tasks.send_invitation_email", max_retries=3, default_retry_delay=60)
def send_invitation_email(self, user_id: str, invited_by: str = ""):
    """
    Tell a newly added user which firm they joined and where to sign in.
    Queued by POST /auth/users.
    """
    with _app_context():
        from flask import current_app
        from database import db
        from models import User, Firm
        from utils.email import send_email, invitation_email, email_configured

        if not email_configured(current_app.config):
            log.info(f"send_invitation_email: SendGrid not configured, skipping {user_id}")
            return False

        user = db.session.get(User, user_id)
        if not user or not user.is_active:
            log.warning(f"send_invitation_email: no active user {user_id}")
            return False

        firm = db.session.get(Firm, user.firm_id)
        firm_name = firm.name if firm else "Your Law Firm"
        login_url = current_app.config.get("PORTAL_BASE_URL", "").rstrip("/") + "/auth/login"

        subject, html = invitation_email(
            user_name=user.full_name,
            firm_name=firm_name,
            role=user.role.value,
            login_url=login_url,
            invited_by=invited_by,
        )
        if not send_email(to_email=user.email, subject=subject, html_body=html):
            log.warning(f"Invitation email to {user.email} failed, retrying")
            raise self.retry(exc=RuntimeError("SendGrid send returned False"))
        return True


def queue_invitation(config, user_id: str, invited_by: str = "") -> bool:
    """
    Queue the invitation task. Returns False without touching the broker
    when email is not configured, or when the broker is unreachable.
    """
    from utils.email import email_configured
    if not email_configured(config):
        log.info(f"Invitation for {user_id} not queued: SendGrid not configured.")
        return False
    try:
        send_invitation_email.delay(user_id, invited_by)
        return True
    except Exception as exc:
        log.warning(f"Could not queue invitation for {user_id}: {exc}")
        return False
