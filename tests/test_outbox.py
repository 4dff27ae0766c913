import asyncio
import threading
from datetime import datetime, timedelta

import pytest

from sap_awards import config, email_service
from sap_awards.domain import handlers
from sap_awards.errors import DownstreamFailure
from sap_awards.models_outbox import OutboxEvent
from sap_awards.outbox import backoff_seconds, claim_event, process_due_events, process_event, record_event


@pytest.fixture
def flaky_handler(monkeypatch):
    calls = []

    async def handler(db, payload):
        calls.append(payload)
        if len(calls) <= payload.get("fail_times", 0):
            raise DownstreamFailure("provider unavailable")

    monkeypatch.setitem(handlers.EVENT_HANDLERS, "test.flaky", handler)
    return calls


def stage(db, payload, event_type="test.flaky"):
    event = record_event(db, event_type, payload)
    db.commit()
    return event.id


def make_due(db, event_id):
    db.query(OutboxEvent).filter(OutboxEvent.id == event_id).update(
        {OutboxEvent.next_attempt_at: datetime.utcnow() - timedelta(seconds=1)}
    )
    db.commit()


def test_backoff_doubles_per_attempt(monkeypatch):
    monkeypatch.setattr(config, "OUTBOX_BACKOFF_SECONDS", 30)

    assert [backoff_seconds(n) for n in (1, 2, 3, 4)] == [30, 60, 120, 240]


def test_successful_event_is_marked_done(db, flaky_handler):
    event_id = stage(db, {"n": 1})

    result = asyncio.run(process_event(event_id))

    assert result == {"event_id": event_id, "status": "done", "retry_in": None}
    event = db.get(OutboxEvent, event_id)
    db.refresh(event)
    assert event.status == "done"
    assert event.attempts == 1
    assert event.processed_at is not None
    assert flaky_handler == [{"n": 1}]


def test_failed_event_is_rescheduled_with_backoff(db, flaky_handler):
    event_id = stage(db, {"fail_times": 1})

    result = asyncio.run(process_event(event_id))

    assert result["status"] == "pending"
    assert result["retry_in"] == config.OUTBOX_BACKOFF_SECONDS
    event = db.get(OutboxEvent, event_id)
    db.refresh(event)
    assert event.attempts == 1
    assert "provider unavailable" in event.last_error
    assert event.next_attempt_at > datetime.utcnow()


def test_event_is_not_retried_before_backoff_elapses(db, flaky_handler):
    event_id = stage(db, {"fail_times": 1})
    asyncio.run(process_event(event_id))

    assert asyncio.run(process_event(event_id))["status"] == "skipped"
    assert len(flaky_handler) == 1

    make_due(db, event_id)
    assert asyncio.run(process_event(event_id))["status"] == "done"
    assert len(flaky_handler) == 2


def test_event_fails_permanently_after_max_attempts(db, flaky_handler):
    event_id = stage(db, {"fail_times": 99})

    for _ in range(config.OUTBOX_MAX_ATTEMPTS):
        make_due(db, event_id)
        result = asyncio.run(process_event(event_id))

    assert result == {"event_id": event_id, "status": "failed", "retry_in": None}
    event = db.get(OutboxEvent, event_id)
    db.refresh(event)
    assert event.status == "failed"
    assert event.attempts == config.OUTBOX_MAX_ATTEMPTS

    make_due(db, event_id)
    assert asyncio.run(process_event(event_id))["status"] == "skipped"


def test_unknown_event_type_fails_immediately(db):
    event_id = stage(db, {}, event_type="test.unknown")

    result = asyncio.run(process_event(event_id))

    assert result["status"] == "failed"


def test_claim_is_exclusive(db, flaky_handler):
    event_id = stage(db, {})

    assert claim_event(db, event_id) is True
    assert claim_event(db, event_id) is False


def test_stale_claim_can_be_taken_over(db, flaky_handler):
    event_id = stage(db, {})
    claim_event(db, event_id)
    db.query(OutboxEvent).filter(OutboxEvent.id == event_id).update(
        {OutboxEvent.locked_at: datetime.utcnow() - timedelta(hours=1)}
    )
    db.commit()

    assert asyncio.run(process_event(event_id))["status"] == "done"


def test_sweep_runs_only_due_events(db, flaky_handler):
    due = stage(db, {"name": "due"})
    later = stage(db, {"name": "later"})
    db.query(OutboxEvent).filter(OutboxEvent.id == later).update(
        {OutboxEvent.next_attempt_at: datetime.utcnow() + timedelta(minutes=10)}
    )
    db.commit()

    attempted = asyncio.run(process_due_events())

    assert attempted == 1
    assert flaky_handler == [{"name": "due"}]
    assert db.get(OutboxEvent, due).status == "done"


def test_failed_email_does_not_block_other_event(db, sent_emails, monkeypatch):
    async def broken_send(data):
        raise DownstreamFailure("resend is down")

    monkeypatch.setattr(email_service, "send_nomination_submitted_user", broken_send)
    payload = {"nominee_name": "Grace", "nominator_email": "peter@example.com", "category_name": "Innovation"}
    confirmation = stage(db, payload, event_type="nomination.confirmation")
    alert = stage(db, payload, event_type="nomination.admin_alert")

    asyncio.run(process_event(confirmation))
    asyncio.run(process_event(alert))

    db.expire_all()
    assert db.get(OutboxEvent, confirmation).status == "pending"
    assert db.get(OutboxEvent, alert).status == "done"
    assert [email["to"] for email in sent_emails] == ["inbox@saphaniox.com"]


def test_certificate_generation_runs_off_the_event_loop_thread(db, monkeypatch):
    threads = []

    def fake_issue(self, nomination_id):
        threads.append((threading.get_ident(), nomination_id))
        return None

    monkeypatch.setattr(handlers.CertificateService, "issue_for_nomination", fake_issue)

    follow_up = asyncio.run(handlers.handle_certificate_generate(db, {"nomination_id": 7}))

    assert follow_up == []
    assert threads and threads[0][1] == 7
    assert threads[0][0] != threading.get_ident()
