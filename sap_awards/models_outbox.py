"""
Outbox events: side effects recorded in the same transaction as the write
that caused them, then processed by the worker.
"""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base

EVENT_NOMINATION_CONFIRMATION = "nomination.confirmation"
EVENT_NOMINATION_ADMIN_ALERT = "nomination.admin_alert"
EVENT_NOMINATION_STATUS_CHANGED = "nomination.status_changed"
EVENT_NOMINATION_DELETED = "nomination.deleted"
EVENT_CERTIFICATE_GENERATE = "certificate.generate"
EVENT_CERTIFICATE_ISSUED = "certificate.issued"


class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(50), nullable=False, index=True)
    payload = Column(JSON, nullable=False, default=dict)

    # pending -> processing -> done | failed
    status = Column(String(20), default="pending", nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, default=5, nullable=False)
    last_error = Column(Text, nullable=True)
    next_attempt_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
    locked_at = Column(DateTime, nullable=True)  # Set while a worker holds the event

    created_at = Column(DateTime, server_default=func.now())
    processed_at = Column(DateTime, nullable=True)
