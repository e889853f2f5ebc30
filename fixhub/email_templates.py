"""
MJML Email Templates
All email templates using MJML for responsive, cross-client compatibility
"""

from typing import Optional

from .config import FRONTEND_URL

# App theme colors - Indigo/Slate color scheme
THEME = {
    "primary": "#4f46e5",
    "primary_light": "#e0e7ff",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 0 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="700" color="{THEME['primary']}" padding="0">
              FixHub
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="24px 0 0 0" />
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="#ffffff" padding="24px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you have a FixHub account.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def email_verification_template(user_name: str, verify_link: str) -> str:
    """Account verification MJML template"""
    content = f"""
    <mj-text>
      Hi {user_name},
    </mj-text>

    <mj-text>
      Thanks for signing up. Confirm your email address to activate your account.
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This link expires in 24 hours. If you didn't create an account, you can ignore this email.
    </mj-text>
    """
    return get_base_template(
        title="Verify your email",
        preview_text="Confirm your FixHub account",
        content_sections=content,
        cta_url=verify_link,
        cta_label="Verify Account",
    )


def password_reset_template(reset_link: str) -> str:
    """Password reset MJML template"""
    content = f"""
    <mj-text>
      We received a request to reset your password.
    </mj-text>

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      This link expires in 30 minutes. If you didn't request a reset, no action is needed.
    </mj-text>
    """
    return get_base_template(
        title="Reset your password",
        preview_text="Reset your FixHub password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset Password",
    )


def workflow_notification_template(
    recipient_name: str,
    subject: str,
    message: str,
    service_id: Optional[int] = None,
    sender_name: Optional[str] = None,
) -> str:
    """Quote, payment and service status updates share one layout"""
    sender_line = ""
    if sender_name:
        sender_line = f"""
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      From: {sender_name}
    </mj-text>
    """

    content = f"""
    <mj-text>
      Hi {recipient_name},
    </mj-text>

    <mj-text>
      {message}
    </mj-text>
    {sender_line}
    """

    cta_url = f"{FRONTEND_URL}/services/{service_id}" if service_id else None
    return get_base_template(
        title=subject,
        preview_text=message[:90],
        content_sections=content,
        cta_url=cta_url,
        cta_label="View Service" if cta_url else None,
    )
