"""
Outbox event handlers.

Each handler receives the worker's session and the event payload. It raises
to signal a retryable failure and may return ids of follow-up events it
staged in the session.
"""

import asyncio
import logging

from sqlalchemy.orm import Session

from .. import email_service
from ..errors import DownstreamFailure
from ..models_outbox import (
    EVENT_CERTIFICATE_GENERATE,
    EVENT_CERTIFICATE_ISSUED,
    EVENT_NOMINATION_ADMIN_ALERT,
    EVENT_NOMINATION_CONFIRMATION,
    EVENT_NOMINATION_DELETED,
    EVENT_NOMINATION_STATUS_CHANGED,
)
from ..utils import storage
from .certificates.service import CertificateService

logger = logging.getLogger(__name__)


async def handle_nomination_confirmation(db: Session, payload: dict):
    await email_service.send_nomination_submitted_user(payload)


async def handle_nomination_admin_alert(db: Session, payload: dict):
    await email_service.send_nomination_submitted_admin(payload)


async def handle_nomination_status_changed(db: Session, payload: dict):
    await email_service.send_nomination_status_update(payload)


async def handle_nomination_deleted(db: Session, payload: dict):
    await email_service.send_nomination_deleted(payload)


def _issue_certificate(db: Session, nomination_id: int) -> list[int]:
    service = CertificateService(db)
    certificate = service.issue_for_nomination(nomination_id)
    if certificate is None:
        return []
    return [service.record_issued_event(certificate)]


async def handle_certificate_generate(db: Session, payload: dict):
    # PDF rendering and file writes run off the event loop
    return await asyncio.to_thread(_issue_certificate, db, payload["nomination_id"])


async def handle_certificate_issued(db: Session, payload: dict):
    if not payload.get("recipient_email"):
        logger.warning(f"📭 Certificate {payload.get('certificate_id')} has no recipient email, skipping")
        return
    try:
        pdf_bytes = storage.load_certificate(payload["filename"])
    except OSError as e:
        raise DownstreamFailure(f"Could not read certificate {payload['filename']}: {e}") from e
    await email_service.send_certificate_email(payload, pdf_bytes)


EVENT_HANDLERS = {
    EVENT_NOMINATION_CONFIRMATION: handle_nomination_confirmation,
    EVENT_NOMINATION_ADMIN_ALERT: handle_nomination_admin_alert,
    EVENT_NOMINATION_STATUS_CHANGED: handle_nomination_status_changed,
    EVENT_NOMINATION_DELETED: handle_nomination_deleted,
    EVENT_CERTIFICATE_GENERATE: handle_certificate_generate,
    EVENT_CERTIFICATE_ISSUED: handle_certificate_issued,
}
