"""
Unified Email Service over Resend, SendGrid or SMTP
Provides awards notifications using MJML templates for responsive design
"""

import asyncio
import base64
import logging
import smtplib
import ssl
from datetime import datetime
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr
from typing import Optional, Union

import httpx
import resend
from mjml import mjml_to_html
from resend.exceptions import ResendError

from . import config
from .email_templates import (
    STATUS_CONFIG,
    awards_name,
    certificate_email_template,
    nomination_deleted_template,
    nomination_status_update_template,
    nomination_submitted_admin_template,
    nomination_submitted_user_template,
)
from .errors import DownstreamFailure

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"
SEND_TIMEOUT_SECONDS = 30


def get_email_provider() -> Optional[str]:
    """
    Resolve which provider to send through.
    EMAIL_PROVIDER pins one; "auto" takes the first configured of resend, sendgrid, smtp.
    """
    available = {
        "resend": bool(config.RESEND_API_KEY),
        "sendgrid": bool(config.SENDGRID_API_KEY),
        "smtp": bool(config.SMTP_HOST and config.SMTP_USER and config.SMTP_PASSWORD),
    }
    if config.EMAIL_PROVIDER in available:
        return config.EMAIL_PROVIDER if available[config.EMAIL_PROVIDER] else None
    for name in ("resend", "sendgrid", "smtp"):
        if available[name]:
            return name
    return None


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise DownstreamFailure(f"Failed to compile MJML template: {e}") from e

    # mjml_to_html returns an object with html and errors
    errors = getattr(result, "errors", None) or (result.get("errors") if isinstance(result, dict) else None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    if isinstance(result, dict):
        return result.get("html", "")
    return getattr(result, "html", str(result))


def send_via_smtp(
    to: list[str],
    subject: str,
    html_content: str,
    from_address: str,
    reply_to: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    msg = MIMEMultipart("mixed")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = ", ".join(to)
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.attach(MIMEText(html_content, "html"))

    for attachment in attachments or []:
        part = MIMEBase("application", "octet-stream")
        part.set_payload(attachment["content"])
        encoders.encode_base64(part)
        part.add_header("Content-Disposition", f'attachment; filename="{attachment["filename"]}"')
        msg.attach(part)

    context = ssl.create_default_context()
    if config.SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, context=context, timeout=SEND_TIMEOUT_SECONDS)
    else:
        server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=SEND_TIMEOUT_SECONDS)
        if config.SMTP_USE_TLS:
            server.starttls(context=context)

    try:
        server.login(config.SMTP_USER, config.SMTP_PASSWORD)
        server.sendmail(parseaddr(from_address)[1], to, msg.as_string())
    finally:
        server.quit()

    logger.info(f"✅ SMTP email sent successfully via {config.SMTP_HOST}")
    return {"id": f"smtp-{datetime.utcnow().timestamp()}", "provider": "smtp"}


async def send_via_sendgrid(
    to: list[str],
    subject: str,
    html_content: str,
    from_address: str,
    reply_to: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    from_name, from_email = parseaddr(from_address)
    payload = {
        "personalizations": [{"to": [{"email": addr} for addr in to]}],
        "from": {"email": from_email, "name": from_name} if from_name else {"email": from_email},
        "subject": subject,
        "content": [{"type": "text/html", "value": html_content}],
    }
    if reply_to:
        payload["reply_to"] = {"email": reply_to}
    if attachments:
        payload["attachments"] = [
            {
                "content": base64.b64encode(attachment["content"]).decode(),
                "filename": attachment["filename"],
                "type": attachment.get("content_type", "application/octet-stream"),
                "disposition": "attachment",
            }
            for attachment in attachments
        ]

    async with httpx.AsyncClient(timeout=SEND_TIMEOUT_SECONDS) as client:
        response = await client.post(
            SENDGRID_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {config.SENDGRID_API_KEY}"},
        )
    if response.status_code >= 400:
        raise DownstreamFailure(f"SendGrid returned {response.status_code}: {response.text[:200]}")

    logger.info("✅ Email sent successfully via SendGrid")
    return {"id": response.headers.get("X-Message-Id"), "provider": "sendgrid"}


def send_via_resend(
    to: list[str],
    subject: str,
    html_content: str,
    from_address: str,
    reply_to: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    resend.api_key = config.RESEND_API_KEY
    email_data = {
        "from": from_address,
        "to": to,
        "subject": subject,
        "html": html_content,
    }
    if reply_to:
        email_data["reply_to"] = reply_to
    if attachments:
        email_data["attachments"] = [
            {"filename": attachment["filename"], "content": list(attachment["content"])}
            for attachment in attachments
        ]

    response = resend.Emails.send(email_data)
    logger.info(f"✅ Email sent successfully via Resend: {response}")
    return {"id": response.get("id") if isinstance(response, dict) else None, "provider": "resend"}


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
    attachments: Optional[list[dict]] = None,
) -> dict:
    """
    Send an email through the configured provider.

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address
        reply_to: Optional reply-to address
        attachments: Optional list of {"filename", "content": bytes, "content_type"}

    Returns:
        Send response dict; {"skipped": True} when no provider is configured

    Raises:
        DownstreamFailure: if the provider rejects or cannot be reached
    """
    provider = get_email_provider()
    if provider is None:
        logger.warning(f"📭 Email service not configured, skipping '{subject}'")
        return {"skipped": True, "reason": "Email service not configured"}

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or config.EMAIL_FROM_ADDRESS
    reply_to = reply_to or config.EMAIL_REPLY_TO
    html_content = compile_mjml_to_html(mjml_content)

    logger.info(f"📧 Sending email via {provider} to: {recipients}")
    try:
        if provider == "resend":
            return await asyncio.to_thread(
                send_via_resend, recipients, subject, html_content, sender, reply_to, attachments
            )
        if provider == "sendgrid":
            return await send_via_sendgrid(recipients, subject, html_content, sender, reply_to, attachments)
        return await asyncio.to_thread(
            send_via_smtp, recipients, subject, html_content, sender, reply_to, attachments
        )
    except DownstreamFailure:
        logger.error(f"❌ Email send error to {recipients} via {provider}")
        raise
    except (smtplib.SMTPException, OSError, httpx.HTTPError, ResendError) as e:
        logger.error(f"❌ Email send error to {recipients} via {provider}: {e}")
        raise DownstreamFailure(f"Failed to send email via {provider}: {e}") from e


# ============================================
# Awards notifications
# ============================================


async def send_nomination_submitted_user(data: dict) -> dict:
    """Confirm a submission to the nominator"""
    return await send_email(
        to=data["nominator_email"],
        subject=f"🏆 Award Nomination Submitted Successfully - {data['nominee_name']}",
        mjml_content=nomination_submitted_user_template(data),
    )


async def send_nomination_submitted_admin(data: dict) -> dict:
    """Alert the awards inbox about a new nomination"""
    if not config.NOTIFY_EMAIL:
        logger.warning("📭 NOTIFY_EMAIL not set, skipping admin nomination alert")
        return {"skipped": True, "reason": "NOTIFY_EMAIL not set"}
    return await send_email(
        to=config.NOTIFY_EMAIL,
        subject=f"🏆 New Award Nomination: {data['nominee_name']} - {data.get('category_name') or 'Unknown Category'}",
        mjml_content=nomination_submitted_admin_template(data),
        reply_to=data.get("nominator_email"),
    )


async def send_nomination_status_update(data: dict) -> dict:
    status_config = STATUS_CONFIG.get(data.get("status"), STATUS_CONFIG["approved"])
    return await send_email(
        to=data["nominator_email"],
        subject=f"{status_config['icon']} Nomination Status Update: {data['nominee_name']}",
        mjml_content=nomination_status_update_template(data),
    )


async def send_nomination_deleted(data: dict) -> dict:
    return await send_email(
        to=data["nominator_email"],
        subject=f"ℹ️ Nomination Removed: {data['nominee_name']}",
        mjml_content=nomination_deleted_template(data),
    )


async def send_certificate_email(data: dict, pdf_bytes: bytes) -> dict:
    """Deliver a certificate PDF to the nominator"""
    return await send_email(
        to=data["recipient_email"],
        subject=f"🏆 Your {awards_name()} Certificate - {data['recipient_name']}",
        mjml_content=certificate_email_template(data),
        attachments=[
            {
                "filename": data["filename"],
                "content": pdf_bytes,
                "content_type": "application/pdf",
            }
        ],
    )
