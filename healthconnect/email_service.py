"""
Unified Email Service using SMTP (when configured) or Resend
Provides account emails rendered from MJML templates
"""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import Settings, get_settings
from .email_templates import (
    PURPOSE_COPY,
    otp_email_template,
    password_changed_template,
    password_reset_template,
    welcome_email_template,
)
from .shared.timeutils import utcnow

logger = logging.getLogger(__name__)


class EmailNotConfigured(Exception):
    pass


class EmailDeliveryError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    # mjml_to_html returns a dict with 'html' and 'errors' keys
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


def send_via_smtp(
    settings: Settings,
    recipients: list[str],
    subject: str,
    html_content: str,
    from_address: str,
) -> dict:
    """Send email via the configured SMTP relay"""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = ", ".join(recipients)
    msg.attach(MIMEText(html_content, "html"))

    context = ssl.create_default_context()
    if settings.smtp_port == 465:
        server = smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=30)
    else:
        server = smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30)
        if settings.smtp_use_tls:
            server.starttls(context=context)

    try:
        if settings.smtp_username:
            server.login(settings.smtp_username, settings.smtp_password or "")
        server.sendmail(from_address.split("<")[-1].rstrip(">"), recipients, msg.as_string())
    finally:
        server.quit()

    logger.info(f"✅ SMTP email sent via {settings.smtp_host}")
    return {"id": f"smtp-{utcnow().timestamp()}", "success": True}


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email using SMTP (if SMTP_HOST is set) or Resend

    Raises:
        EmailNotConfigured: Neither provider is configured
        EmailDeliveryError: The provider rejected or failed the send
    """
    settings = get_settings()
    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to
    sender = from_address or settings.email_from_address

    if settings.smtp_host:
        try:
            logger.info(f"📧 Sending email via SMTP: {settings.smtp_host}")
            return send_via_smtp(settings, recipients, subject, html_content, sender)
        except (smtplib.SMTPException, OSError) as e:
            if not settings.resend_api_key:
                logger.error(f"❌ SMTP send failed and no Resend fallback: {e}")
                raise EmailDeliveryError(f"SMTP failed: {e}") from e
            logger.warning(f"⚠️ SMTP failed, falling back to Resend: {e}")

    if not settings.resend_api_key:
        logger.error("❌ No email service configured - RESEND_API_KEY missing and no SMTP_HOST")
        raise EmailNotConfigured("Email service not configured")

    resend.api_key = settings.resend_api_key
    try:
        logger.info("📧 Sending email via Resend")
        response = resend.Emails.send(
            {"from": sender, "to": recipients, "subject": subject, "html": html_content}
        )
    except Exception as e:
        logger.error(f"❌ Resend delivery failed: {e}")
        raise EmailDeliveryError(f"Failed to send email: {e}") from e

    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return response


# ============================================
# Account emails
# ============================================


async def send_otp_email(to: str, user_name: str, otp: str, purpose: str) -> dict:
    """Send a one-time code for registration, login or password reset"""
    settings = get_settings()
    title, _ = PURPOSE_COPY.get(purpose, PURPOSE_COPY["registration"])
    return await send_email(
        to=to,
        subject=f"{title} - HealthConnect",
        mjml_content=otp_email_template(user_name, otp, purpose, settings.otp_ttl_minutes),
    )


async def send_welcome_email(to: str, user_name: str, role: str) -> dict:
    settings = get_settings()
    return await send_email(
        to=to,
        subject="Welcome to HealthConnect",
        mjml_content=welcome_email_template(user_name, role, f"{settings.frontend_url}/dashboard"),
    )


async def send_password_reset_email(to: str, user_name: str, otp: str, reset_link: str) -> dict:
    settings = get_settings()
    return await send_email(
        to=to,
        subject="Reset Your Password - HealthConnect",
        mjml_content=password_reset_template(
            user_name, otp, reset_link, settings.password_reset_ttl_minutes
        ),
    )


async def send_password_changed_email(to: str, user_name: str) -> dict:
    changed_at = utcnow().strftime("%Y-%m-%d %H:%M")
    return await send_email(
        to=to,
        subject="Your Password Was Changed - HealthConnect",
        mjml_content=password_changed_template(user_name, changed_at),
    )
