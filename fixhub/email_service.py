"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml2html as mjml_to_html

from .config import EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .email_templates import (
    email_verification_template,
    password_reset_template,
    workflow_notification_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Raised when Resend rejects or fails to deliver a message"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    # mjml_to_html returns a dict with 'html' and 'errors' keys
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> Optional[dict]:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict, or None when no email provider is configured
    """
    recipients = [to] if isinstance(to, str) else to

    if not RESEND_API_KEY:
        logger.warning(f"RESEND_API_KEY missing - skipping email '{subject}' to {recipients}")
        return None

    html_content = compile_mjml_to_html(mjml_content)

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {e}") from e


# ============================================
# Pre-built emails for account and workflow events
# ============================================


async def send_verification_email(to: str, user_name: str, user_id: int, token: str) -> Optional[dict]:
    """Send the account verification link"""
    verify_link = f"{FRONTEND_URL}/verify-account?userId={user_id}&token={token}"
    return await send_email(
        to=to,
        subject="Verify Your Email - FixHub",
        mjml_content=email_verification_template(user_name, verify_link),
    )


async def send_password_reset_email(to: str, user_id: int, token: str) -> Optional[dict]:
    """Send password reset email"""
    reset_link = f"{FRONTEND_URL}/reset-password?userId={user_id}&token={token}"
    return await send_email(
        to=to,
        subject="Reset Your Password - FixHub",
        mjml_content=password_reset_template(reset_link),
    )


async def send_notification_email(
    to: str,
    recipient_name: str,
    subject: str,
    message: str,
    service_id: Optional[int] = None,
    sender_name: Optional[str] = None,
) -> Optional[dict]:
    """Email a workflow notification (quotes, payments, service status)"""
    return await send_email(
        to=to,
        subject=f"{subject} - FixHub",
        mjml_content=workflow_notification_template(
            recipient_name, subject, message, service_id, sender_name
        ),
    )
