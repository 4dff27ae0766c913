import os
import re

from sap_awards import config
from sap_awards.auth import hash_password
from sap_awards.models import Nomination, NominationVote, User
from sap_awards.models_certificate import Certificate
from sap_awards.models_outbox import OutboxEvent

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_admin_routes_require_login(client, make_nomination):
    nomination = make_nomination()

    assert client.get("/api/awards/admin/nominations").status_code == 401
    assert client.get("/api/awards/admin/stats").status_code == 401
    response = client.patch(f"/api/awards/nominations/{nomination.id}/status", json={"status": "winner"})
    assert response.status_code == 401
    assert client.delete(f"/api/awards/nominations/{nomination.id}").status_code == 401


def test_admin_routes_reject_non_admin(client, db):
    db.add(User(name="Voter", email="voter@example.com", password_hash=hash_password("password123")))
    db.commit()
    client.post("/api/auth/login", json={"email": "voter@example.com", "password": "password123"})

    response = client.get("/api/awards/admin/nominations")

    assert response.status_code == 403
    assert response.json()["message"] == "Admin access required"


def test_approve_nomination_issues_participation_certificate(
    admin_client, db, admin_user, make_nomination, sent_emails
):
    nomination = make_nomination(status="pending")

    response = admin_client.patch(
        f"/api/awards/nominations/{nomination.id}/status",
        json={"status": "approved", "adminNotes": "Strong impact"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["nomination"]["status"] == "approved"

    db.expire_all()
    stored = db.get(Nomination, nomination.id)
    assert stored.reviewed_by == admin_user.id
    assert stored.reviewed_at is not None
    assert stored.admin_notes == "Strong impact"
    assert re.fullmatch(r"PAR-2025-[0-9A-F]{6}-[A-Z0-9]{4}", stored.certificate_id)
    assert stored.certificate_file == f"certificate_{stored.certificate_id}.pdf"
    assert os.path.isfile(os.path.join(config.CERTIFICATES_DIR, stored.certificate_file))

    certificate = db.query(Certificate).one()
    assert certificate.kind == "participant"
    assert certificate.status == "active"

    event_types = [e.event_type for e in db.query(OutboxEvent).order_by(OutboxEvent.id)]
    assert event_types == ["nomination.status_changed", "certificate.generate", "certificate.issued"]
    assert all(e.status == "done" for e in db.query(OutboxEvent))

    subjects = [email["subject"] for email in sent_emails]
    assert any("Nomination Status Update" in s for s in subjects)
    certificate_email = next(e for e in sent_emails if e["attachments"])
    assert certificate_email["to"] == nomination.nominator_email
    assert certificate_email["attachments"][0]["content"].startswith(b"%PDF")


def test_winner_gets_winner_certificate(admin_client, db, make_nomination, sent_emails):
    nomination = make_nomination(status="approved")

    admin_client.patch(f"/api/awards/nominations/{nomination.id}/status", json={"status": "winner"})

    db.expire_all()
    assert db.get(Nomination, nomination.id).certificate_id.startswith("WIN-2025-")


def test_existing_certificate_is_not_reissued(admin_client, db, make_nomination, sent_emails):
    nomination = make_nomination(status="pending", certificate_id="PAR-2025-ABCDEF-AAAA", certificate_file="x.pdf")

    admin_client.patch(f"/api/awards/nominations/{nomination.id}/status", json={"status": "finalist"})

    event_types = [e.event_type for e in db.query(OutboxEvent)]
    assert event_types == ["nomination.status_changed"]


def test_reject_nomination_sends_status_email_only(admin_client, db, make_nomination, sent_emails):
    nomination = make_nomination(status="pending")

    admin_client.patch(f"/api/awards/nominations/{nomination.id}/status", json={"status": "rejected"})

    db.expire_all()
    assert db.get(Nomination, nomination.id).certificate_id is None
    assert [e.event_type for e in db.query(OutboxEvent)] == ["nomination.status_changed"]
    assert len(sent_emails) == 1


def test_status_update_validation(admin_client, make_nomination):
    nomination = make_nomination()
    url = f"/api/awards/nominations/{nomination.id}/status"

    assert admin_client.patch(url, json={"status": "crowned"}).status_code == 400
    assert admin_client.patch(url, json={"status": "approved", "adminNotes": "x" * 501}).status_code == 400
    assert admin_client.patch("/api/awards/nominations/999/status", json={"status": "approved"}).status_code == 404


def test_status_change_invalidates_public_listing(admin_client, client, make_nomination, sent_emails):
    nomination = make_nomination(status="pending")
    assert client.get("/api/awards/nominations").json()["data"]["nominations"] == []

    admin_client.patch(f"/api/awards/nominations/{nomination.id}/status", json={"status": "approved"})

    body = client.get("/api/awards/nominations").json()
    assert "cached" not in body
    assert [n["id"] for n in body["data"]["nominations"]] == [nomination.id]


def test_delete_nomination(admin_client, db, make_nomination, sent_emails):
    photo_dir = os.path.join(config.UPLOAD_DIR, "awards")
    os.makedirs(photo_dir, exist_ok=True)
    with open(os.path.join(photo_dir, "nominee-1.png"), "wb") as f:
        f.write(PNG_BYTES)
    nomination = make_nomination(votes=2, nominee_photo="/uploads/awards/nominee-1.png", admin_notes="Duplicate")
    name = nomination.nominee_name

    response = admin_client.delete(f"/api/awards/nominations/{nomination.id}")

    assert response.status_code == 200
    db.expire_all()
    assert db.query(Nomination).count() == 0
    assert db.query(NominationVote).count() == 0
    assert not os.path.exists(os.path.join(photo_dir, "nominee-1.png"))

    event = db.query(OutboxEvent).one()
    assert event.event_type == "nomination.deleted"
    assert event.payload["nominee_name"] == name
    assert event.payload["category_name"] == "Innovation Excellence"
    assert "Duplicate" in sent_emails[0]["body"]


def test_delete_nomination_skips_external_photo(admin_client, db, make_nomination, sent_emails):
    nomination = make_nomination(nominee_photo="https://cdn.example.com/awards/nominee.png")

    response = admin_client.delete(f"/api/awards/nominations/{nomination.id}")

    assert response.status_code == 200


def test_delete_missing_nomination(admin_client):
    assert admin_client.delete("/api/awards/nominations/999").status_code == 404


def test_update_nomination_fields(admin_client, db, make_nomination):
    nomination = make_nomination(nominee_title="Engineer", nominee_company="Old Co")

    response = admin_client.put(
        f"/api/awards/nominations/{nomination.id}",
        data={"nomineeTitle": "Chief Engineer", "nomineeCountry": "Kenya"},
    )

    assert response.status_code == 200
    updated = response.json()["data"]["nomination"]
    assert updated["nomineeTitle"] == "Chief Engineer"
    assert updated["nomineeCountry"] == "Kenya"
    assert updated["nomineeCompany"] == "Old Co"
    assert updated["nomineeName"] == nomination.nominee_name


def test_update_nomination_replaces_photo(admin_client, db, make_nomination):
    photo_dir = os.path.join(config.UPLOAD_DIR, "awards")
    os.makedirs(photo_dir, exist_ok=True)
    old_path = os.path.join(photo_dir, "nominee-old.png")
    with open(old_path, "wb") as f:
        f.write(PNG_BYTES)
    nomination = make_nomination(nominee_photo="/uploads/awards/nominee-old.png")

    response = admin_client.put(
        f"/api/awards/nominations/{nomination.id}",
        files={"nomineePhoto": ("new.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 200
    new_photo = response.json()["data"]["nomination"]["nomineePhoto"]
    assert new_photo != "/uploads/awards/nominee-old.png"
    assert not os.path.exists(old_path)


def test_update_nomination_unknown_category(admin_client, make_nomination):
    nomination = make_nomination()

    response = admin_client.put(f"/api/awards/nominations/{nomination.id}", data={"category": "999"})

    assert response.status_code == 404


def test_admin_list_includes_every_status(admin_client, make_nomination):
    make_nomination(status="pending")
    make_nomination(status="approved")
    make_nomination(status="rejected")

    data = admin_client.get("/api/awards/admin/nominations").json()["data"]

    assert data["pagination"]["totalItems"] == 3
    assert data["statusSummary"] == {"pending": 1, "approved": 1, "rejected": 1, "winner": 0, "finalist": 0}
    assert "nominatorEmail" in data["nominations"][0]

    pending = admin_client.get("/api/awards/admin/nominations", params={"status": "pending"}).json()["data"]
    assert [n["status"] for n in pending["nominations"]] == ["pending"]


def test_admin_stats(admin_client, make_nomination):
    make_nomination(status="approved", votes=3)
    make_nomination(status="approved", votes=1, nominee_country="Kenya")
    make_nomination(status="pending")

    data = admin_client.get("/api/awards/admin/stats").json()["data"]

    assert data["generalStats"] == {
        "totalNominations": 3,
        "approvedNominations": 2,
        "pendingNominations": 1,
        "totalVotes": 4,
        "localNominees": 2,
        "internationalNominees": 1,
    }
    assert data["categoryStats"][0]["categoryName"] == "Innovation Excellence"
    assert data["categoryStats"][0]["count"] == 3
    assert data["categoryStats"][0]["totalVotes"] == 4
    assert [n["totalVotes"] for n in data["topNominations"]] == [3, 1]
