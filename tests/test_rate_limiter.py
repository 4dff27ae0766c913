from starlette.requests import Request

from sap_awards import config
from sap_awards.rate_limiter import check_rate_limit, get_client_ip


def make_request(headers=None, client=("10.0.0.5", 1234)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_check_rate_limit_blocks_after_limit():
    results = [check_rate_limit("test:ip", limit=3, window_seconds=60) for _ in range(4)]

    assert [allowed for allowed, _, _ in results] == [True, True, True, False]
    allowed, count, ttl = results[-1]
    assert count == 3
    assert 0 < ttl <= 60


def test_rate_limit_keys_are_independent():
    for _ in range(2):
        check_rate_limit("test:a", limit=2, window_seconds=60)

    assert check_rate_limit("test:a", limit=2, window_seconds=60)[0] is False
    assert check_rate_limit("test:b", limit=2, window_seconds=60)[0] is True


def test_client_ip_prefers_first_forwarded_hop():
    assert get_client_ip(make_request({"X-Forwarded-For": "41.1.1.1, 10.0.0.1"})) == "41.1.1.1"
    assert get_client_ip(make_request()) == "10.0.0.5"


def test_vote_endpoint_is_rate_limited(client, monkeypatch):
    monkeypatch.setattr(config, "RATE_LIMIT_ENABLED", True)
    headers = {"X-Forwarded-For": "41.9.9.9"}

    statuses = [
        client.post("/api/awards/nominations/999/vote", json={"voterEmail": "fan@example.com"}, headers=headers)
        for _ in range(config.VOTE_RATE_LIMIT + 1)
    ]

    assert {r.status_code for r in statuses[:-1]} == {404}
    assert statuses[-1].status_code == 429
    assert int(statuses[-1].headers["Retry-After"]) > 0

    other_ip = client.post(
        "/api/awards/nominations/999/vote",
        json={"voterEmail": "fan@example.com"},
        headers={"X-Forwarded-For": "41.9.9.10"},
    )
    assert other_ip.status_code == 404
