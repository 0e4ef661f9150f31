"""
API tests against an in-memory election

Run with: pytest tests/test_api.py
"""

import pytest
from fastapi.testclient import TestClient

from config import config
from database.memory import MemoryStorage
from exceptions import ConfigurationError
from server.main import create_app


class FakeSummarizer:
    def summarize_results(self, ranking, elected, seats):
        return f"{len(elected)} representatives elected"


@pytest.fixture
def client():
    app = create_app(storage=MemoryStorage(), summarizer=FakeSummarizer())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/admin/login", json={"password": config.ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def election(client, admin_headers):
    """Two candidates and two registered voters"""
    ids = []
    for name in ["Ana", "Bruno"]:
        response = client.post("/api/admin/candidates", json={"name": name}, headers=admin_headers)
        assert response.status_code == 201
        ids.append(response.json()["candidate"]["id"])

    response = client.post("/api/admin/voters", json={"text": "x@y.com\nz@y.com"}, headers=admin_headers)
    assert response.json()["added"] == 2
    return ids


def vote(client, email, candidate_ids):
    session_id = client.post("/api/vote/login", json={"email": email}).json()["session_id"]
    for candidate_id in candidate_ids:
        client.post(f"/api/vote/{session_id}/toggle", json={"candidate_id": candidate_id})
    return client.post(f"/api/vote/{session_id}/submit")


class TestAdminGate:

    def test_wrong_password(self, client):
        response = client.post("/api/admin/login", json={"password": "wrong"})
        assert response.status_code == 401

    def test_admin_routes_require_token(self, client):
        assert client.get("/api/admin/candidates").status_code == 401
        response = client.get("/api/admin/candidates", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_voter_session_is_not_admin(self, client, election):
        session_id = client.post("/api/vote/login", json={"email": "x@y.com"}).json()["session_id"]
        response = client.get("/api/results", headers={"Authorization": f"Bearer {session_id}"})
        assert response.status_code == 403

    def test_logout_invalidates_token(self, client, admin_headers):
        assert client.post("/api/admin/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/admin/stats", headers=admin_headers).status_code == 401


class TestAdminManagement:

    def test_blank_candidate_rejected(self, client, admin_headers):
        response = client.post("/api/admin/candidates", json={"name": "   "}, headers=admin_headers)
        assert response.status_code == 400

    def test_remove_candidate(self, client, admin_headers, election):
        response = client.delete(f"/api/admin/candidates/{election[0]}", headers=admin_headers)
        assert response.json()["removed"] is True

        response = client.delete("/api/admin/candidates/missing", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["removed"] is False

        names = [c["name"] for c in client.get("/api/admin/candidates", headers=admin_headers).json()["candidates"]]
        assert names == ["Bruno"]

    def test_duplicate_voters_skipped(self, client, admin_headers, election):
        response = client.post("/api/admin/voters", json={"emails": ["X@Y.com", "new@y.com"]}, headers=admin_headers)
        assert response.json()["added"] == 1
        assert response.json()["stats"]["voters"] == 3

    def test_voters_request_needs_a_source(self, client, admin_headers):
        response = client.post("/api/admin/voters", json={}, headers=admin_headers)
        assert response.status_code == 422

    def test_reset(self, client, admin_headers, election):
        vote(client, "x@y.com", election)

        response = client.post("/api/admin/reset", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["stats"]["voted"] == 0
        votes = [c["votes"] for c in client.get("/api/admin/candidates", headers=admin_headers).json()["candidates"]]
        assert votes == [0, 0]


class TestVoting:

    def test_unregistered_email(self, client, election):
        response = client.post("/api/vote/login", json={"email": "stranger@y.com"})
        assert response.status_code == 404
        assert response.json()["detail"] == "This email is not registered to vote"

    def test_blank_email_rejected(self, client):
        assert client.post("/api/vote/login", json={"email": "  "}).status_code == 422

    def test_full_ballot_flow(self, client, admin_headers, election):
        a, b = election
        login = client.post("/api/vote/login", json={"email": "X@Y.COM"}).json()
        assert login["state"] == "ballot_open"
        session_id = login["session_id"]

        ballot = client.get(f"/api/vote/{session_id}/candidates").json()
        assert [c["selected"] for c in ballot["candidates"]] == [False, False]
        assert ballot["max_votes"] == config.MAX_VOTES

        toggled = client.post(f"/api/vote/{session_id}/toggle", json={"candidate_id": a}).json()
        assert toggled["changed"] is True
        assert toggled["selection"] == [a]

        response = client.post(f"/api/vote/{session_id}/submit")
        assert response.status_code == 200
        assert response.json()["state"] == "submitted"

        # Session is closed after an accepted ballot
        assert client.get(f"/api/vote/{session_id}").status_code == 404

        stats = client.get("/api/admin/stats", headers=admin_headers).json()["stats"]
        assert stats["voted"] == 1

    def test_empty_submit(self, client, election):
        session_id = client.post("/api/vote/login", json={"email": "x@y.com"}).json()["session_id"]
        response = client.post(f"/api/vote/{session_id}/submit")
        assert response.status_code == 400
        assert client.get(f"/api/vote/{session_id}").json()["state"] == "ballot_open"

    def test_second_login_after_voting(self, client, election):
        vote(client, "x@y.com", election[:1])

        response = client.post("/api/vote/login", json={"email": "x@y.com"})

        assert response.status_code == 200
        assert response.json()["state"] == "already_voted"
        assert "session_id" not in response.json()

    def test_abandon_session(self, client, election):
        session_id = client.post("/api/vote/login", json={"email": "x@y.com"}).json()["session_id"]
        assert client.delete(f"/api/vote/{session_id}").json()["state"] == "anonymous"
        assert client.post(f"/api/vote/{session_id}/submit").status_code == 404


class TestResults:

    def test_results_ranking(self, client, admin_headers, election):
        a, b = election
        vote(client, "x@y.com", [b])
        vote(client, "z@y.com", [a, b])

        data = client.get("/api/results", headers=admin_headers).json()

        assert [r["name"] for r in data["ranking"]] == ["Bruno", "Ana"]
        assert [r["share_of_max"] for r in data["ranking"]] == [100.0, 50.0]
        assert data["total_votes"] == 3
        assert data["leader_votes"] == 2
        assert data["stats"]["turnout"] == 100.0

    def test_no_votes_yet(self, client, admin_headers, election):
        data = client.get("/api/results", headers=admin_headers).json()
        assert [r["share_of_max"] for r in data["ranking"]] == [0.0, 0.0]

    def test_summary(self, client, admin_headers, election):
        response = client.post("/api/results/summary", headers=admin_headers)

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary["available"] is True
        assert summary["text"] == "2 representatives elected"

        latest = client.get("/api/results/summary", headers=admin_headers).json()
        assert latest["summary"]["text"] == "2 representatives elected"


class TestMonitoring:

    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["checks"]["storage"]["status"] == "healthy"
        assert data["checks"]["summary_generator"]["status"] == "available"

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "councilvote_logins_total" in response.text

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestStorageSelection:

    def test_sqlite_backend_survives_restart(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "STORAGE", "sqlite")
        monkeypatch.setattr(config, "DB_DIR", str(tmp_path))
        monkeypatch.setattr(config, "DB_PATH", str(tmp_path / "election.db"))

        with TestClient(create_app(summarizer=FakeSummarizer())) as client:
            token = client.post("/api/admin/login", json={"password": config.ADMIN_PASSWORD}).json()["token"]
            client.post("/api/admin/candidates", json={"name": "Ana"}, headers={"Authorization": f"Bearer {token}"})

        with TestClient(create_app(summarizer=FakeSummarizer())) as client:
            token = client.post("/api/admin/login", json={"password": config.ADMIN_PASSWORD}).json()["token"]
            response = client.get("/api/admin/candidates", headers={"Authorization": f"Bearer {token}"})
            assert [c["name"] for c in response.json()["candidates"]] == ["Ana"]

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setattr(config, "STORAGE", "redis")
        with pytest.raises(ConfigurationError):
            with TestClient(create_app(summarizer=FakeSummarizer())):
                pass
