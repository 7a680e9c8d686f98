"""
utils/email.py — SendGrid email helpers.

All outbound email goes through `send_email()`. It is a no-op if
SENDGRID_API_KEY is not configured, so the app degrades gracefully
in development.
"""

import logging
import re

log = logging.getLogger(__name__)


def email_configured(config) -> bool:
    return bool(config.get("SENDGRID_API_KEY"))


def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: str = "",
    from_email: str = "",
    from_name: str = "",
) -> bool:
    """
    Send a transactional email via SendGrid.

    Returns True on success, False on failure. Errors are logged, never
    raised; the Celery task decides whether to retry.
    """
    from flask import current_app

    api_key      = current_app.config.get("SENDGRID_API_KEY", "")
    default_from = current_app.config.get("SENDGRID_FROM_EMAIL", "noreply@legalbeacon.app")

    if not api_key:
        log.warning(f"SendGrid not configured, email to {to_email} suppressed.")
        return False

    from_addr = from_email or default_from
    plain     = text_body or _html_to_plain(html_body)

    try:
        from sendgrid import SendGridAPIClient
        from sendgrid.helpers.mail import Mail, Email, To, Content

        message = Mail(
            from_email=Email(from_addr, from_name or "LegalBeacon"),
            to_emails=To(to_email),
            subject=subject,
        )
        message.add_content(Content("text/plain", plain))
        message.add_content(Content("text/html", html_body))

        response = SendGridAPIClient(api_key).send(message)

        if response.status_code in (200, 202):
            log.info(f"Email sent to {to_email}: {subject!r} (status {response.status_code})")
            return True
        log.error(f"SendGrid returned {response.status_code} sending to {to_email}")
        return False

    except Exception as exc:
        log.error(f"SendGrid error sending to {to_email}: {exc}")
        return False


def _html_to_plain(html: str) -> str:
    """Strip tags for the text/plain alternative."""
    text = re.sub(r"<br\s*/?>", "\n", html, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# ── Email templates ───────────────────────────────────────────────────────────

def invitation_email(user_name: str, firm_name: str, role: str, login_url: str,
                     invited_by: str = "") -> tuple[str, str]:
    """Returns (subject, html_body) for a new-user invitation."""
    subject = f"You have been added to {firm_name} on LegalBeacon"
    inviter = f" by <strong>{invited_by}</strong>" if invited_by else ""
    html = f"""
<!DOCTYPE html>
<html>
<body style="font-family:Arial,sans-serif;color:#1e293b;max-width:560px;margin:0 auto;padding:24px;">
  <h2 style="color:#0f1a2e;margin-bottom:4px;">{firm_name}</h2>
  <hr style="border:none;border-top:2px solid #2962cc;margin-bottom:24px;">
  <p>Hello <strong>{user_name}</strong>,</p>
  <p>You have been invited{inviter} to join <strong>{firm_name}</strong> as
     <strong>{role}</strong>. Sign in with this email address and the password
     your administrator gave you.</p>
  <p style="text-align:center;margin:32px 0;">
    <a href="{login_url}" style="background:#2962cc;color:#fff;text-decoration:none;
       padding:12px 28px;border-radius:4px;font-weight:600;display:inline-block;">
      Sign in to LegalBeacon
    </a>
  </p>
  <p style="font-size:0.85em;color:#64748b;">
    If the button does not work, copy this link into your browser:<br>
    <a href="{login_url}" style="color:#2962cc;word-break:break-all;">{login_url}</a>
  </p>
  <p style="font-size:0.8em;color:#94a3b8;margin-top:32px;">
    Please change your password after your first sign-in.
  </p>
</body>
</html>
"""
    return subject, html
