"""League handlers over HTTP: auth outcomes, tier views, error envelopes."""
from __future__ import annotations

import pytest

from errors import DataUnavailable

EXAMPLE_DEALS = [
    {"series_name_obligor": "A-1", "lead_managers": ["A"], "total_par": 100, "underwriter_fee": {"total": 10}},
    {"series_name_obligor": "A-2", "lead_managers": ["A"], "total_par": 200, "underwriter_fee": {"total": None}},
    {
        "series_name_obligor": "B-1",
        "lead_managers": ["B"],
        "total_par": 50,
        "underwriter_fee": {"total": 5},
        "os_type": "Negotiated",
        "co_managers": ["C"],
        "counsels": ["Law Firm A"],
    },
]


@pytest.fixture
def seeded(add_deals):
    add_deals(EXAMPLE_DEALS)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-Id" in response.headers


def test_public_league_data_is_guest_view(client, seeded):
    response = client.get("/getPublicLeagueData")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    rows = body["data"]
    assert [(r["leadLeftManager"], r["aggregatePar"], r["rank"]) for r in rows] == [("A", 300, 1), ("B", 50, 2)]
    assert all(r["avgFeeAmount"] == "locked" and r["deals"] == "locked" for r in rows)


def test_public_league_data_empty_collection(client):
    response = client.get("/getPublicLeagueData")
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_public_league_data_recovers_from_unavailable_store(client, monkeypatch):
    import routes.league

    def _unavailable(db):
        raise DataUnavailable("down")

    monkeypatch.setattr(routes.league, "load_deals", _unavailable)
    response = client.get("/getPublicLeagueData")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": [], "error": None}


def test_public_league_data_internal_error(client, monkeypatch):
    import routes.league

    def _broken(db):
        raise RuntimeError("password=hunter2 at db-host")

    monkeypatch.setattr(routes.league, "load_deals", _broken)
    response = client.get("/getPublicLeagueData")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to fetch league data"}
    assert "hunter2" not in response.text


def test_authenticated_requires_identity(client, seeded):
    response = client.post("/getAuthenticatedLeagueData", json={"data": {}})
    assert response.status_code == 401
    assert response.json()["error"]["status"] == "unauthenticated"


def test_authenticated_rejects_invalid_token(client, seeded):
    response = client.post(
        "/getAuthenticatedLeagueData",
        json={"data": {}},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["status"] == "unauthenticated"


def test_authenticated_returns_free_view(client, seeded, auth_header):
    # No tier claim at all: signed in is enough for the free view.
    response = client.post("/getAuthenticatedLeagueData", json={"data": {}}, headers=auth_header())
    assert response.status_code == 200
    rows = response.json()
    assert rows[0]["avgFeeAmount"] == 10
    assert rows[0]["visibilityInfo"] == {"dealDetails": "need_subscriber"}
    assert set(rows[1]["deals"][0]) == {"series_name_obligor", "total_par", "underwriter_fee"}


def test_subscriber_requires_identity(client, seeded):
    response = client.post("/getSubscriberLeagueData", json={"data": {}})
    assert response.status_code == 401


@pytest.mark.parametrize("user_type", [None, "free", "bogus"])
def test_subscriber_denies_lower_tiers(client, seeded, auth_header, user_type):
    response = client.post("/getSubscriberLeagueData", json={"data": {}}, headers=auth_header(user_type))
    assert response.status_code == 403
    assert response.json() == {"error": {"status": "permission-denied", "message": "Subscription required"}}


@pytest.mark.parametrize("user_type", ["subscriber", "premium"])
def test_subscriber_gets_full_view(client, seeded, auth_header, user_type):
    response = client.post("/getSubscriberLeagueData", json={"data": {}}, headers=auth_header(user_type))
    assert response.status_code == 200
    rows = response.json()
    assert "visibilityInfo" not in rows[0]
    assert len(rows[0]["deals"]) == 2
    b_deal = rows[1]["deals"][0]
    assert b_deal["os_type"] == "Negotiated"
    assert b_deal["counsels"] == ["Law Firm A"]


def test_subscriber_data_unavailable_is_internal_error(client, auth_header, monkeypatch):
    import routes.league

    def _unavailable(db):
        raise DataUnavailable("down")

    monkeypatch.setattr(routes.league, "load_deals", _unavailable)
    response = client.post("/getSubscriberLeagueData", json={"data": {}}, headers=auth_header("subscriber"))
    assert response.status_code == 500
    assert response.json()["error"]["status"] == "internal"


@pytest.mark.parametrize(
    "user_type, tier",
    [(None, "guest"), ("bogus", "guest"), ("free", "free"), ("subscriber", "subscriber")],
)
def test_rank_table_resolves_tier_from_token(client, seeded, auth_header, user_type, tier):
    response = client.post("/getRankTableData", json={"data": {}}, headers=auth_header(user_type))
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["tier"] == tier


def test_rank_table_anonymous_without_body(client, seeded):
    response = client.post("/getRankTableData")
    assert response.status_code == 200
    body = response.json()
    assert body["tier"] == "guest"
    assert body["data"][0]["deals"] == "locked"


def test_rank_table_display_mode(client, seeded, auth_header):
    response = client.post("/getRankTableData", json={"data": {"display": True}}, headers=auth_header("free"))
    rows = response.json()["data"]
    assert rows[0]["aggregatePar"] == "$300"
    assert rows[0]["avgFeeAmount"] == "$10"
    assert rows[0]["avgFeePercentage"] == "3.33%"
    assert rows[0]["deals"][0]["total_par"] == "$100"
    assert rows[0]["deals"][1]["underwriter_fee"] == "-"


def test_rank_table_failure_envelope(client, monkeypatch):
    import routes.league

    def _broken(db):
        raise DataUnavailable("down")

    monkeypatch.setattr(routes.league, "load_deals", _broken)
    response = client.post("/getRankTableData", json={"data": {}})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Failed to fetch rank table data"


def test_participants_and_os_types_are_subscriber_only(client, seeded, auth_header):
    for path in ("/getUniqueParticipants", "/getOsTypeBreakdown"):
        assert client.post(path, json={"data": {}}).status_code == 401
        assert client.post(path, json={"data": {}}, headers=auth_header("free")).status_code == 403

    participants = client.post("/getUniqueParticipants", json={"data": {}}, headers=auth_header("subscriber")).json()
    assert participants["lead_managers"] == ["A", "B"]
    assert participants["co_managers"] == ["C"]

    os_types = client.post("/getOsTypeBreakdown", json={"data": {}}, headers=auth_header("subscriber")).json()
    assert [r["os_type"] for r in os_types] == ["Unknown", "Negotiated"]
    assert os_types[0]["total_par"] == 300


@pytest.mark.parametrize("path", ["/getUniqueParticipants", "/getOsTypeBreakdown", "/getSubscriberLeagueData"])
def test_subscriber_callables_map_unexpected_failure_to_internal(client, auth_header, monkeypatch, path):
    import routes.league

    def _broken(db):
        raise RuntimeError("secret-detail")

    monkeypatch.setattr(routes.league, "load_deals", _broken)
    response = client.post(path, json={"data": {}}, headers=auth_header("subscriber"))
    assert response.status_code == 500
    assert response.json()["error"]["status"] == "internal"
    assert "secret-detail" not in response.text


@pytest.mark.parametrize("path", ["/getUniqueParticipants", "/getOsTypeBreakdown"])
def test_subscriber_summaries_data_unavailable_is_internal(client, auth_header, monkeypatch, path):
    import routes.league

    def _unavailable(db):
        raise DataUnavailable("down")

    monkeypatch.setattr(routes.league, "load_deals", _unavailable)
    response = client.post(path, json={"data": {}}, headers=auth_header("subscriber"))
    assert response.status_code == 500
    assert response.json() == {"error": {"status": "internal", "message": "Something went wrong"}}


def test_version_does_not_expose_server_paths(client):
    body = client.get("/version").json()
    assert set(body) == {"version", "render_service_name"}
