"""
Outbox processing.

Write paths call record_event() inside their own transaction, commit, then
hand the new event ids to dispatch_events(). Each event is claimed
atomically before its handler runs, so the arq retry, the periodic sweep
and an inline background task can never process the same event twice at
the same time. Failures are stored on the row and retried with exponential
backoff until max_attempts is reached.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from arq import create_pool
from fastapi import BackgroundTasks
from redis.exceptions import RedisError
from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from . import config
from .database import SessionLocal
from .models_outbox import OutboxEvent

logger = logging.getLogger(__name__)

# A "processing" row older than this is assumed to belong to a dead worker
STALE_LOCK_SECONDS = 900
MAX_ERROR_LENGTH = 2000


def record_event(db: Session, event_type: str, payload: dict) -> OutboxEvent:
    """Add an event to the caller's transaction. The caller commits."""
    event = OutboxEvent(
        event_type=event_type,
        payload=payload,
        status="pending",
        attempts=0,
        max_attempts=config.OUTBOX_MAX_ATTEMPTS,
        next_attempt_at=datetime.utcnow(),
    )
    db.add(event)
    return event


def backoff_seconds(attempts: int) -> int:
    """Delay before the next try after `attempts` failed tries"""
    return config.OUTBOX_BACKOFF_SECONDS * (2 ** max(attempts - 1, 0))


def _claimable(now: datetime):
    return or_(
        and_(OutboxEvent.status == "pending", OutboxEvent.next_attempt_at <= now),
        and_(
            OutboxEvent.status == "processing",
            OutboxEvent.locked_at < now - timedelta(seconds=STALE_LOCK_SECONDS),
        ),
    )


def claim_event(db: Session, event_id: int) -> bool:
    """Move an event to processing if it is due. Returns False if someone else has it."""
    now = datetime.utcnow()
    result = db.execute(
        update(OutboxEvent)
        .where(OutboxEvent.id == event_id, _claimable(now))
        .values(status="processing", attempts=OutboxEvent.attempts + 1, locked_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def _record_failure(db: Session, event: OutboxEvent, error: Exception) -> dict:
    event.last_error = f"{type(error).__name__}: {error}"[:MAX_ERROR_LENGTH]
    event.locked_at = None
    if event.attempts >= event.max_attempts:
        event.status = "failed"
        event.processed_at = datetime.utcnow()
        db.commit()
        logger.error(
            f"💀 Outbox event {event.id} ({event.event_type}) failed permanently "
            f"after {event.attempts} attempts: {event.last_error}"
        )
        return {"event_id": event.id, "status": "failed", "retry_in": None}

    delay = backoff_seconds(event.attempts)
    event.status = "pending"
    event.next_attempt_at = datetime.utcnow() + timedelta(seconds=delay)
    db.commit()
    logger.warning(
        f"🔁 Outbox event {event.id} ({event.event_type}) attempt {event.attempts} failed, "
        f"retrying in {delay}s: {event.last_error}"
    )
    return {"event_id": event.id, "status": "pending", "retry_in": delay}


async def process_event(event_id: int) -> dict:
    """
    Claim and run one outbox event.

    Returns:
        {"event_id", "status": done|pending|failed|skipped, "retry_in": seconds or None}
    """
    from .domain.handlers import EVENT_HANDLERS

    follow_up: list[int] = []
    db = SessionLocal()
    try:
        if not claim_event(db, event_id):
            logger.debug(f"⏭️ Outbox event {event_id} not due or already claimed")
            return {"event_id": event_id, "status": "skipped", "retry_in": None}

        event = db.get(OutboxEvent, event_id)
        handler = EVENT_HANDLERS.get(event.event_type)
        if handler is None:
            event.attempts = event.max_attempts
            return _record_failure(db, event, LookupError(f"No handler for {event.event_type}"))

        logger.info(f"📤 Processing outbox event {event.id} ({event.event_type}), attempt {event.attempts}")
        try:
            follow_up = await handler(db, dict(event.payload or {})) or []
        except Exception as e:
            # Background boundary: the failure is recorded on the row, never re-raised
            db.rollback()
            event = db.get(OutboxEvent, event_id)
            return _record_failure(db, event, e)

        event.status = "done"
        event.locked_at = None
        event.last_error = None
        event.processed_at = datetime.utcnow()
        db.commit()
        logger.info(f"✅ Outbox event {event_id} done")
    finally:
        db.close()

    if follow_up:
        await dispatch_events(follow_up)
    return {"event_id": event_id, "status": "done", "retry_in": None}


async def process_due_events(limit: int = 50) -> int:
    """Run every event whose backoff has elapsed. Returns how many were attempted."""
    db = SessionLocal()
    try:
        event_ids = list(
            db.scalars(
                select(OutboxEvent.id)
                .where(_claimable(datetime.utcnow()))
                .order_by(OutboxEvent.id)
                .limit(limit)
            )
        )
    finally:
        db.close()

    for event_id in event_ids:
        await process_event(event_id)
    if event_ids:
        logger.info(f"🧹 Outbox sweep attempted {len(event_ids)} events")
    return len(event_ids)


async def run_events(event_ids: list[int]):
    for event_id in event_ids:
        await process_event(event_id)


async def enqueue_events(event_ids: list[int]) -> bool:
    """Hand events to the arq worker. Returns False if Redis could not be reached."""
    from .worker import get_redis_settings

    try:
        pool = await asyncio.wait_for(create_pool(get_redis_settings()), timeout=10.0)
        try:
            for event_id in event_ids:
                await pool.enqueue_job("process_outbox_event_task", event_id, _job_id=f"outbox:{event_id}")
        finally:
            await pool.aclose()
    except (RedisError, OSError, asyncio.TimeoutError) as e:
        logger.warning(f"⚠️ Failed to queue outbox events {event_ids}, the sweep will retry them: {e}")
        return False

    logger.info(f"📋 Queued outbox events {event_ids}")
    return True


async def dispatch_events(event_ids: list[int], background_tasks: Optional[BackgroundTasks] = None):
    """
    Start processing committed events. Never raises: an event that cannot be
    dispatched stays pending and is picked up by the sweep.
    """
    if not event_ids:
        return
    if config.OUTBOX_DISPATCH == "arq":
        await enqueue_events(event_ids)
    elif background_tasks is not None:
        background_tasks.add_task(run_events, list(event_ids))
    else:
        await run_events(list(event_ids))


async def run_sweeper(interval_seconds: int = 60):
    """In-process sweep loop for deployments without the arq worker"""
    logger.info(f"🧹 Outbox sweeper started (every {interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await process_due_events()
        except Exception as e:
            logger.error(f"❌ Outbox sweep failed: {e}")
