"""Email service for transactional emails (Resend).

To send to any recipient, verify a domain at resend.com/domains and set
EMAIL_FROM to an address at that domain. Jobs reach this module through the
email outbox worker, never directly from a lifecycle transition.
"""

import logging
from decimal import Decimal
from html import escape

from app.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when the email provider refuses or fails a send."""


def _should_skip_email(to_email: str) -> bool:
    """Skip sending in test env or to test domains (Resend sandbox restricts recipients)."""
    if settings.ENVIRONMENT == "test":
        return True
    test_domains = ("@test.com", "@test.example.com", "@resend.dev")
    return any(to_email.lower().endswith(d) for d in test_domains)


def _layout(title: str, greeting: str, body_html: str, accent: str = "#10b981") -> str:
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{escape(title)}</title></head>
<body style="font-family: sans-serif; line-height: 1.6; color: #333; max-width: 560px; margin: 0 auto; padding: 20px;">
  <h2 style="color: {accent};">{escape(title)}</h2>
  <p>Hi {escape(greeting)},</p>
  {body_html}
  <hr style="border: none; border-top: 1px solid #e2e8f0; margin: 24px 0;">
  <p style="color: #94a3b8; font-size: 12px;">{escape(settings.APP_NAME)}</p>
</body>
</html>
"""


def _amount(value: Decimal) -> str:
    return f"{Decimal(value):,.2f}"


def render_verification_email(name: str, token: str) -> str:
    link = f"{settings.FRONTEND_URL.rstrip('/')}/auth/verify?token={token}"
    return _layout(
        "Verify your email",
        name,
        f"""
  <p>Confirm your email address to start enrolling in batches.</p>
  <p style="margin: 24px 0;">
    <a href="{escape(link)}" style="background: #667eea; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">Verify email</a>
  </p>
  <p style="color: #666; font-size: 14px;">This link expires in {settings.EMAIL_VERIFY_TOKEN_EXPIRE_HOURS} hours.</p>
""",
        accent="#667eea",
    )


def render_payment_submitted(student_name: str, amount: Decimal, payment_id: str, batch_name: str) -> str:
    return _layout(
        "New payment submitted",
        "Admin",
        f"""
  <p>{escape(student_name)} submitted a payment of <strong>{_amount(amount)}</strong> for <strong>{escape(batch_name)}</strong>.</p>
  <p style="color: #666; font-size: 14px;">Payment reference: <code>{escape(payment_id)}</code></p>
  <p>Review it from the admin payments page.</p>
""",
    )


def render_payment_approved(student_name: str, amount: Decimal, payment_id: str) -> str:
    return _layout(
        "Payment approved",
        student_name,
        f"""
  <p>Your payment of <strong>{_amount(amount)}</strong> has been approved. Your enrollment is now active.</p>
  <p style="color: #666; font-size: 14px;">Payment reference: <code>{escape(payment_id)}</code></p>
""",
    )


def render_payment_rejected(student_name: str, amount: Decimal, payment_id: str, reason: str) -> str:
    return _layout(
        "Payment rejected",
        student_name,
        f"""
  <p>Your payment of <strong>{_amount(amount)}</strong> was rejected.</p>
  <p style="background: #f8fafc; padding: 12px; border-left: 4px solid #f59e0b;">Reason: {escape(reason)}</p>
  <p style="color: #666; font-size: 14px;">Payment reference: <code>{escape(payment_id)}</code></p>
""",
        accent="#f59e0b",
    )


def render_enrollment_expired(student_name: str, batch_name: str) -> str:
    return _layout(
        "Enrollment expired",
        student_name,
        f"""
  <p>Your pending enrollment in <strong>{escape(batch_name)}</strong> expired because the enrollment period closed before a payment was submitted.</p>
""",
        accent="#f59e0b",
    )


def deliver_email(to_email: str, subject: str, html: str) -> bool:
    """
    Send one email through Resend.

    Returns True if sent, False if skipped (no API key, test env or test domain).
    Raises EmailDeliveryError when the provider call fails.
    """
    if not settings.RESEND_API_KEY:
        logger.info("Email skipped (RESEND_API_KEY not set): %s to %s", subject, to_email)
        return False
    if _should_skip_email(to_email):
        logger.info("Email skipped (test env or test domain): %s to %s", subject, to_email)
        return False

    import resend

    resend.api_key = settings.RESEND_API_KEY
    try:
        resend.Emails.send(
            {
                "from": settings.EMAIL_FROM,
                "to": [to_email],
                "subject": subject,
                "html": html,
            }
        )
    except Exception as e:
        raise EmailDeliveryError(str(e)) from e
    logger.info("Email sent: %s to %s", subject, to_email)
    return True
