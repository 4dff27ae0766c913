import asyncio
import json
import smtplib

import httpx
import pytest

from sap_awards import config, email_service
from sap_awards.email_templates import (
    certificate_email_template,
    nomination_deleted_template,
    nomination_status_update_template,
    nomination_submitted_admin_template,
)
from sap_awards.errors import DownstreamFailure

PAYLOAD = {
    "nominee_name": "Grace Nakato",
    "category_name": "Innovation Excellence",
    "nominator_name": "Peter Okello",
    "nominator_email": "peter@example.com",
    "nominee_company": "Kampala Labs",
    "nomination_reason": "Built mobile payments for rural farmers",
    "status": "approved",
}


@pytest.fixture
def no_providers(monkeypatch):
    for name in ("RESEND_API_KEY", "SENDGRID_API_KEY", "SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD"):
        monkeypatch.setattr(config, name, None)
    monkeypatch.setattr(config, "EMAIL_PROVIDER", "auto")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda mjml: f"<html>{mjml}</html>")
    return monkeypatch


def test_no_provider_configured(no_providers):
    assert email_service.get_email_provider() is None

    result = asyncio.run(email_service.send_email("a@example.com", "Hi", "<mjml></mjml>"))

    assert result["skipped"] is True


def test_auto_provider_prefers_resend(no_providers):
    no_providers.setattr(config, "SENDGRID_API_KEY", "sg-key")
    assert email_service.get_email_provider() == "sendgrid"

    no_providers.setattr(config, "RESEND_API_KEY", "re-key")
    assert email_service.get_email_provider() == "resend"


def test_pinned_provider_must_be_configured(no_providers):
    no_providers.setattr(config, "RESEND_API_KEY", "re-key")
    no_providers.setattr(config, "EMAIL_PROVIDER", "smtp")

    assert email_service.get_email_provider() is None


def test_smtp_needs_full_credentials(no_providers):
    no_providers.setattr(config, "SMTP_HOST", "smtp.example.com")
    assert email_service.get_email_provider() is None

    no_providers.setattr(config, "SMTP_USER", "user")
    no_providers.setattr(config, "SMTP_PASSWORD", "secret")
    assert email_service.get_email_provider() == "smtp"


def test_smtp_errors_become_downstream_failures(no_providers):
    for name, value in (("SMTP_HOST", "smtp.example.com"), ("SMTP_USER", "u"), ("SMTP_PASSWORD", "p")):
        no_providers.setattr(config, name, value)

    def refuse(*args, **kwargs):
        raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    no_providers.setattr(email_service, "send_via_smtp", refuse)

    with pytest.raises(DownstreamFailure):
        asyncio.run(email_service.send_email("a@example.com", "Hi", "<mjml></mjml>"))


def test_sendgrid_request(no_providers):
    no_providers.setattr(config, "SENDGRID_API_KEY", "sg-key")
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(202, headers={"X-Message-Id": "msg-1"})

    real_client = httpx.AsyncClient
    no_providers.setattr(
        email_service.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    result = asyncio.run(
        email_service.send_email(
            "a@example.com",
            "Certificate",
            "<mjml></mjml>",
            from_address="SAPHANIOX Awards <awards@example.com>",
            attachments=[{"filename": "c.pdf", "content": b"%PDF", "content_type": "application/pdf"}],
        )
    )

    assert result == {"id": "msg-1", "provider": "sendgrid"}
    assert requests[0].headers["Authorization"] == "Bearer sg-key"
    body = json.loads(requests[0].content)
    assert body["from"] == {"email": "awards@example.com", "name": "SAPHANIOX Awards"}
    assert body["attachments"][0]["content"] == "JVBERg=="


def test_sendgrid_rejection(no_providers):
    no_providers.setattr(config, "SENDGRID_API_KEY", "sg-key")
    real_client = httpx.AsyncClient
    no_providers.setattr(
        email_service.httpx,
        "AsyncClient",
        lambda **kwargs: real_client(
            transport=httpx.MockTransport(lambda request: httpx.Response(401, text="unauthorized")), **kwargs
        ),
    )

    with pytest.raises(DownstreamFailure):
        asyncio.run(email_service.send_email("a@example.com", "Hi", "<mjml></mjml>"))


def test_admin_alert_skipped_without_inbox(no_providers):
    no_providers.setattr(config, "NOTIFY_EMAIL", None)

    result = asyncio.run(email_service.send_nomination_submitted_admin(PAYLOAD))

    assert result["skipped"] is True


def test_templates_escape_user_content():
    mjml = nomination_submitted_admin_template({**PAYLOAD, "nominee_name": "<script>alert(1)</script>"})

    assert "<script>" not in mjml
    assert "&lt;script&gt;" in mjml
    assert "Built mobile payments for rural farmers" in mjml


def test_status_template_includes_notes():
    mjml = nomination_status_update_template({**PAYLOAD, "status": "winner", "admin_notes": "Unanimous"})

    assert "Unanimous" in mjml
    assert "Grace Nakato" in mjml


def test_deleted_template_defaults():
    mjml = nomination_deleted_template({"nominee_name": "Grace Nakato", "nominator_name": "Peter"})

    assert "Unknown Category" in mjml
    assert "No specific reason provided" in mjml


def test_certificate_template_links_verification():
    mjml = certificate_email_template(
        {
            "recipient_name": "Grace Nakato",
            "category_name": "Innovation Excellence",
            "certificate_id": "WIN-2025-ABCDEF-1234",
            "award_year": 2025,
            "kind": "winner",
            "verify_url": "https://awards.example.com/verify/WIN-2025-ABCDEF-1234",
        }
    )

    assert "WIN-2025-ABCDEF-1234" in mjml
    assert "https://awards.example.com/verify/WIN-2025-ABCDEF-1234" in mjml
