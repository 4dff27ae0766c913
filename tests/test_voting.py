import pytest
from sqlalchemy.exc import IntegrityError

from sap_awards.models import Nomination, NominationVote


def test_vote_records_and_returns_total(client, db, make_nomination):
    nomination = make_nomination(votes=2)

    response = client.post(
        f"/api/awards/nominations/{nomination.id}/vote",
        json={"voterEmail": "Fan@Example.com", "voterName": "A Fan"},
        headers={"X-Forwarded-For": "41.210.0.7, 10.0.0.1"},
    )

    assert response.status_code == 200
    assert response.json()["data"] == {
        "nomination": {"id": nomination.id, "nomineeName": nomination.nominee_name, "totalVotes": 3}
    }
    vote = db.query(NominationVote).filter(NominationVote.voter_name == "A Fan").one()
    assert vote.voter_email == "fan@example.com"
    assert vote.ip_address == "41.210.0.7"


def test_vote_twice_with_same_email_is_rejected(client, db, make_nomination):
    nomination = make_nomination()
    url = f"/api/awards/nominations/{nomination.id}/vote"

    assert client.post(url, json={"voterEmail": "fan@example.com"}).status_code == 200
    response = client.post(url, json={"voterEmail": "  FAN@example.com "})

    assert response.status_code == 400
    assert response.json()["message"] == "You have already voted for this nomination"
    assert db.query(NominationVote).count() == 1


def test_same_email_can_vote_for_different_nominations(client, make_nomination):
    first = make_nomination()
    second = make_nomination()

    for nomination in (first, second):
        response = client.post(
            f"/api/awards/nominations/{nomination.id}/vote", json={"voterEmail": "fan@example.com"}
        )
        assert response.status_code == 200


def test_vote_on_pending_nomination_is_rejected(client, db, make_nomination):
    nomination = make_nomination(status="pending", votes=1)

    response = client.post(f"/api/awards/nominations/{nomination.id}/vote", json={"voterEmail": "fan@example.com"})

    assert response.status_code == 400
    assert response.json()["message"] == "This nomination is not available for voting"
    db.expire_all()
    assert db.query(NominationVote).filter(NominationVote.nomination_id == nomination.id).count() == 1
    assert db.get(Nomination, nomination.id).total_votes == 1


def test_vote_on_winner_is_rejected(client, db, make_nomination):
    nomination = make_nomination(status="winner", votes=2)

    response = client.post(f"/api/awards/nominations/{nomination.id}/vote", json={"voterEmail": "fan@example.com"})

    assert response.status_code == 400
    db.expire_all()
    assert db.query(NominationVote).filter(NominationVote.nomination_id == nomination.id).count() == 2
    assert db.get(Nomination, nomination.id).total_votes == 2


def test_duplicate_vote_row_violates_unique_constraint(db, make_nomination):
    nomination = make_nomination()
    db.add(NominationVote(nomination_id=nomination.id, voter_email="fan@example.com"))
    db.commit()

    db.add(NominationVote(nomination_id=nomination.id, voter_email="fan@example.com"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    assert db.query(NominationVote).filter(NominationVote.nomination_id == nomination.id).count() == 1


def test_vote_on_missing_nomination(client):
    response = client.post("/api/awards/nominations/999/vote", json={"voterEmail": "fan@example.com"})

    assert response.status_code == 404
    assert response.json()["message"] == "Nomination not found"


def test_vote_requires_valid_email(client, make_nomination):
    nomination = make_nomination()

    missing = client.post(f"/api/awards/nominations/{nomination.id}/vote", json={})
    invalid = client.post(f"/api/awards/nominations/{nomination.id}/vote", json={"voterEmail": "fan@"})

    assert missing.status_code == 400
    assert invalid.status_code == 400


def test_vote_invalidates_listing_cache(client, make_nomination):
    nomination = make_nomination()
    client.get("/api/awards/nominations")

    client.post(f"/api/awards/nominations/{nomination.id}/vote", json={"voterEmail": "fan@example.com"})
    body = client.get("/api/awards/nominations").json()

    assert "cached" not in body
    assert body["data"]["nominations"][0]["totalVotes"] == 1


def test_vote_status(client, make_nomination):
    nomination = make_nomination(votes=1)
    url = f"/api/awards/nominations/{nomination.id}/vote-status"

    before = client.get(url, params={"email": "new@example.com"}).json()["data"]
    client.post(f"/api/awards/nominations/{nomination.id}/vote", json={"voterEmail": "new@example.com"})
    after = client.get(url, params={"email": "NEW@example.com"}).json()["data"]

    assert before == {"hasVoted": False, "totalVotes": 1}
    assert after == {"hasVoted": True, "totalVotes": 2}


def test_vote_status_requires_email(client, make_nomination):
    nomination = make_nomination()

    response = client.get(f"/api/awards/nominations/{nomination.id}/vote-status")

    assert response.status_code == 400
    assert response.json()["message"] == "Email is required"


def test_vote_status_missing_nomination(client):
    response = client.get("/api/awards/nominations/999/vote-status", params={"email": "fan@example.com"})

    assert response.status_code == 404
