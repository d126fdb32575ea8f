"""
MJML Email Templates
Account emails for HealthConnect: one-time codes, welcome, password reset and change notices
"""

from typing import Optional

# Blue/Slate clinical palette
THEME = {
    "primary": "#2563eb",
    "primary_dark": "#1d4ed8",
    "primary_light": "#dbeafe",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "warning": "#f59e0b",
}

BRAND = "HealthConnect"

PURPOSE_COPY = {
    "registration": (
        "Verify Your Email Address",
        "Use this code to finish creating your account.",
    ),
    "login": (
        "Your Sign-In Code",
        "Use this code to complete your sign-in.",
    ),
    "password-reset": (
        "Password Reset Code",
        "Use this code to reset your password.",
    ),
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
        <mj-section background-color="#ffffff" padding="0 40px 40px 40px">
          <mj-column>
            <mj-button href="{cta_url}" background-color="{THEME['primary']}" color="#ffffff"
              font-weight="600" border-radius="8px" padding="16px 36px" font-size="16px">
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
        <mj-section background-color="#ffffff" padding="28px 40px 0 40px">
          <mj-column>
            <mj-text font-size="20px" font-weight="700" color="{THEME['primary_dark']}" padding="0">
              {BRAND}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="20px 0 24px 0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 32px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="24px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="#94a3b8" padding="0">
              You're receiving this because you have an account with {BRAND}.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _code_block(code: str, label: str = "Verification Code") -> str:
    return f"""
    <mj-text align="center" font-size="13px" color="{THEME['text_muted']}" text-transform="uppercase"
      letter-spacing="1px" font-weight="600" padding="16px 0 8px 0">
      {label}
    </mj-text>
    <mj-text align="center" font-size="34px" font-weight="700" color="{THEME['text_primary']}"
      letter-spacing="8px" font-family="'Courier New', monospace" container-background-color="{THEME['primary_light']}"
      padding="18px 0">
      {code}
    </mj-text>
    """


def otp_email_template(user_name: str, otp: str, purpose: str, ttl_minutes: int = 10) -> str:
    """One-time code email; wording follows the code's purpose"""
    title, lead = PURPOSE_COPY.get(purpose, PURPOSE_COPY["registration"])
    content = f"""
    <mj-text>Hi {user_name},</mj-text>
    <mj-text>{lead} It expires in {ttl_minutes} minutes.</mj-text>
    {_code_block(otp)}
    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="16px 0 0 0">
      If you didn't request this code, you can safely ignore this email.
    </mj-text>
    """
    return get_base_template(
        title=title,
        preview_text=f"Your {BRAND} code is {otp}",
        content_sections=content,
    )


def welcome_email_template(user_name: str, role: str, dashboard_url: str) -> str:
    if role == "doctor":
        next_steps = (
            "Set up your weekly schedule so patients can book you. "
            "An administrator will review your profile shortly."
        )
    else:
        next_steps = "Browse doctors, pick an open slot and book your first appointment."

    content = f"""
    <mj-text>Hi {user_name},</mj-text>
    <mj-text>Your email is verified and your {BRAND} account is ready.</mj-text>
    <mj-text>{next_steps}</mj-text>
    """
    return get_base_template(
        title=f"Welcome to {BRAND}!",
        preview_text="Your account is ready",
        content_sections=content,
        cta_url=dashboard_url,
        cta_label="Go to Dashboard",
    )


def password_reset_template(user_name: str, otp: str, reset_link: str, ttl_minutes: int = 60) -> str:
    """Reset email carries both the code and a single-use link"""
    content = f"""
    <mj-text>Hi {user_name},</mj-text>
    <mj-text>We received a request to reset your password. Enter the code below, or use the button to pick a new password. The link expires in {ttl_minutes} minutes.</mj-text>
    {_code_block(otp, label="Reset Code")}
    <mj-text color="{THEME['text_muted']}" font-size="14px" padding="16px 0 0 0">
      If you didn't request this, you can safely ignore this email. Your password won't be changed.
    </mj-text>
    """
    return get_base_template(
        title="Reset Your Password",
        preview_text=f"Reset your {BRAND} password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset Password",
    )


def password_changed_template(user_name: str, changed_at: str) -> str:
    content = f"""
    <mj-text>Hi {user_name},</mj-text>
    <mj-text>The password for your {BRAND} account was changed on {changed_at} UTC.</mj-text>
    <mj-text color="{THEME['warning']}" font-weight="600">
      If this wasn't you, reset your password immediately and contact support.
    </mj-text>
    """
    return get_base_template(
        title="Your Password Was Changed",
        preview_text="Security notice for your account",
        content_sections=content,
    )
