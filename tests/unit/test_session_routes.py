"""
Tests for session, leaderboard and attempt routes
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from siteback.schemas import Attempt, Session
from siteback.services.auth_service import Role

T0 = datetime(2025, 3, 1, 9, 5, tzinfo=timezone.utc)


@pytest.fixture
def admin(make_headers):
    return make_headers("admin", Role.ADMIN)


@pytest.fixture
def maria(make_headers):
    return make_headers("Maria")


@pytest.fixture
def ivan(make_headers):
    return make_headers("Ivan")


def _add_attempt(store, session_id, user_name, rate, minutes=0):
    store.insert_attempts([
        Attempt(
            attempt_id=uuid.uuid4().hex,
            session_id=session_id,
            user_name=user_name,
            rate=rate,
            created_at=T0 + timedelta(minutes=minutes),
        )
    ])


class TestListSessions:
    """Test GET /api/sessions"""

    def test_sorted_and_split(self, client, store, maria):
        """Sessions are newest first with UTC date and time split"""
        store.insert_session(Session(id=1, start_at=T0, description="first", created_at=T0))
        store.insert_session(Session(id=2, start_at=T0 + timedelta(days=1, hours=14), created_at=T0))
        response = client.get("/api/sessions", headers=maria)
        assert response.status_code == 200
        assert response.json() == {
            "sessions": [
                {"id": 2, "startDate": "2025-03-02", "startTime": "23:05", "description": ""},
                {"id": 1, "startDate": "2025-03-01", "startTime": "09:05", "description": "first"},
            ]
        }

    def test_admin_can_list(self, client, admin):
        """Admins see the list too"""
        response = client.get("/api/sessions", headers=admin)
        assert response.status_code == 200
        assert response.json() == {"sessions": []}


class TestCreateSession:
    """Test POST /api/sessions"""

    def test_create(self, client, store, admin):
        """Admins create sessions with allocated ids"""
        body = {"startDate": "2025-04-10", "startTime": "18:30", "description": "Spring round"}
        first = client.post("/api/sessions", json=body, headers=admin)
        second = client.post("/api/sessions", json={"startDate": "2025-04-11", "startTime": "08:00"}, headers=admin)
        assert first.status_code == 201
        assert first.json() == {
            "session": {"id": 1, "startDate": "2025-04-10", "startTime": "18:30", "description": "Spring round"}
        }
        assert second.json()["session"]["id"] == 2
        assert second.json()["session"]["description"] == ""
        stored = {s.id: s for s in store.list_sessions()}
        assert stored[1].start_at == datetime(2025, 4, 10, 18, 30, tzinfo=timezone.utc)

    def test_ids_never_reused(self, client, admin):
        """Deleting the newest session does not free its id"""
        body = {"startDate": "2025-04-10", "startTime": "18:30"}
        client.post("/api/sessions", json=body, headers=admin)
        client.delete("/api/sessions/1", headers=admin)
        response = client.post("/api/sessions", json=body, headers=admin)
        assert response.json()["session"]["id"] == 2

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"startDate": "2025-04-10"},
            {"startTime": "18:30"},
            {"startDate": "2025-13-10", "startTime": "18:30"},
            {"startDate": "2025-02-30", "startTime": "18:30"},
            {"startDate": "2025-04-10", "startTime": "25:00"},
            {"startDate": "tomorrow", "startTime": "noon"},
        ],
    )
    def test_invalid_datetime(self, client, admin, body):
        """Missing or unparseable start gives 400"""
        response = client.post("/api/sessions", json=body, headers=admin)
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_datetime"}

    def test_player_forbidden(self, client, maria):
        """Players cannot create sessions"""
        response = client.post("/api/sessions", json={"startDate": "2025-04-10", "startTime": "18:30"}, headers=maria)
        assert response.status_code == 403
        assert response.json() == {"error": "forbidden"}


class TestDeleteSession:
    """Test DELETE /api/sessions/{id}"""

    def test_cascade(self, client, store, admin, maria):
        """Deleting a session removes its attempts and empties its leaderboard"""
        store.insert_session(Session(id=5, start_at=T0, created_at=T0))
        store.insert_session(Session(id=6, start_at=T0, created_at=T0))
        _add_attempt(store, 5, "Maria", 80)
        _add_attempt(store, 5, "Ivan", 60)
        _add_attempt(store, 6, "Maria", 70)

        response = client.delete("/api/sessions/5", headers=admin)
        assert response.status_code == 204
        assert response.content == b""
        assert [s.id for s in store.list_sessions()] == [6]
        assert store.list_attempts(5) == []
        assert len(store.list_attempts(6)) == 1

        leaderboard = client.get("/api/sessions/5/leaderboard", headers=maria)
        assert leaderboard.json() == {"leaderboard": []}

    def test_missing_session(self, client, admin):
        """Deleting an unknown id still gives 204"""
        assert client.delete("/api/sessions/404", headers=admin).status_code == 204

    def test_invalid_id(self, client, admin):
        """Non-numeric ids give 400"""
        response = client.delete("/api/sessions/abc", headers=admin)
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_id"}

    def test_player_forbidden(self, client, store, maria):
        """Players cannot delete sessions"""
        store.insert_session(Session(id=5, start_at=T0, created_at=T0))
        assert client.delete("/api/sessions/5", headers=maria).status_code == 403
        assert store.has_sessions() is True


class TestLeaderboard:
    """Test GET /api/sessions/{id}/leaderboard"""

    def test_ranking(self, client, store, maria):
        """Best rate per user, ties by name, ranks 1..N"""
        _add_attempt(store, 3, "A", 90)
        _add_attempt(store, 3, "A", 70)
        _add_attempt(store, 3, "B", 90)
        _add_attempt(store, 3, "C", 50)
        _add_attempt(store, 4, "D", 100)
        response = client.get("/api/sessions/3/leaderboard", headers=maria)
        assert response.status_code == 200
        assert response.json() == {
            "leaderboard": [
                {"rank": 1, "userName": "A", "rate": 90},
                {"rank": 2, "userName": "B", "rate": 90},
                {"rank": 3, "userName": "C", "rate": 50},
            ]
        }

    def test_invalid_id(self, client, maria):
        """Non-numeric ids give 400"""
        response = client.get("/api/sessions/x/leaderboard", headers=maria)
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_id"}

    def test_requires_token(self, client):
        """Anonymous callers get 401"""
        assert client.get("/api/sessions/3/leaderboard").status_code == 401


class TestListAttempts:
    """Test GET /api/sessions/{id}/attempts"""

    @pytest.fixture(autouse=True)
    def attempts(self, store):
        _add_attempt(store, 1, "Maria", 40, minutes=5)
        _add_attempt(store, 1, "Maria", 75, minutes=10)
        _add_attempt(store, 1, "Ivan", 60, minutes=7)

    def test_own_attempts(self, client, maria):
        """Players read their own attempts, newest first"""
        response = client.get("/api/sessions/1/attempts", params={"userName": "Maria"}, headers=maria)
        assert response.status_code == 200
        attempts = response.json()["attempts"]
        assert [a["rate"] for a in attempts] == [75, 40]
        assert attempts[0]["sessionId"] == 1
        assert attempts[0]["userName"] == "Maria"
        assert attempts[0]["dateTime"] == "2025-03-01T09:15:00.000Z"
        assert isinstance(attempts[0]["id"], str) and attempts[0]["id"]
        assert attempts[0]["id"] != attempts[1]["id"]

    def test_other_player_forbidden(self, client, ivan):
        """Players cannot read other players' attempts"""
        response = client.get("/api/sessions/1/attempts", params={"userName": "Maria"}, headers=ivan)
        assert response.status_code == 403
        assert response.json() == {"error": "forbidden"}

    def test_admin_reads_anyone(self, client, admin):
        """Admins read any player's attempts"""
        response = client.get("/api/sessions/1/attempts", params={"userName": "Ivan"}, headers=admin)
        assert response.status_code == 200
        assert [a["rate"] for a in response.json()["attempts"]] == [60]

    def test_missing_user_name(self, client, maria):
        """userName is required"""
        response = client.get("/api/sessions/1/attempts", headers=maria)
        assert response.status_code == 400
        assert response.json() == {"error": "missing_userName"}

    def test_invalid_id(self, client, maria):
        """Non-numeric ids give 400"""
        response = client.get("/api/sessions/one/attempts", params={"userName": "Maria"}, headers=maria)
        assert response.status_code == 400


class TestSubmitAttempt:
    """Test POST /api/sessions/{id}/attempts"""

    @pytest.mark.parametrize("rate", [0, 101, "x", -5, 50.5, None, True, "", [10]])
    def test_invalid_rate(self, client, store, maria, rate):
        """Out of range or non-numeric rates give 400"""
        response = client.post("/api/sessions/1/attempts", json={"rate": rate}, headers=maria)
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_rate"}
        assert store.list_attempts(1) == []

    @pytest.mark.parametrize("rate,stored", [(1, 1), (100, 100), ("42", 42), (77.0, 77)])
    def test_valid_rate(self, client, store, maria, rate, stored):
        """Boundaries and numeric strings are accepted"""
        response = client.post("/api/sessions/1/attempts", json={"rate": rate}, headers=maria)
        assert response.status_code == 201
        assert response.json() == {"ok": True}
        [attempt] = store.list_attempts(1)
        assert attempt.rate == stored
        assert attempt.user_name == "Maria"

    def test_missing_body(self, client, maria):
        """No body means no rate"""
        response = client.post("/api/sessions/1/attempts", headers=maria)
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_rate"}

    def test_admin_forbidden(self, client, admin):
        """Only players submit attempts"""
        response = client.post("/api/sessions/1/attempts", json={"rate": 50}, headers=admin)
        assert response.status_code == 403

    def test_unknown_session_accepted(self, client, store, maria):
        """Attempts for sessions that do not exist are stored"""
        response = client.post("/api/sessions/999/attempts", json={"rate": 50}, headers=maria)
        assert response.status_code == 201
        assert len(store.list_attempts(999)) == 1

    def test_multiple_attempts_allowed(self, client, store, maria):
        """Players may submit several attempts per session"""
        for rate in (10, 20, 30):
            client.post("/api/sessions/1/attempts", json={"rate": rate}, headers=maria)
        assert len(store.list_attempts(1, user_name="Maria")) == 3


class TestErrors:
    """Test error rendering"""

    def test_store_failure_is_server_error(self, app, store, make_headers, monkeypatch):
        """Unexpected failures give a generic 500"""
        def _boom():
            raise RuntimeError("store unreachable")

        monkeypatch.setattr(store, "list_sessions", _boom)
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get("/api/sessions", headers=make_headers("Maria"))
        assert response.status_code == 500
        assert response.json() == {"error": "server_error"}

    def test_malformed_json(self, client, maria):
        """Bodies that are not JSON objects give 400"""
        response = client.post(
            "/api/sessions/1/attempts",
            content=b"{not json",
            headers={**maria, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_request"}

    def test_unknown_route(self, client, maria):
        """Unknown routes keep 404 with an error code"""
        response = client.get("/api/nowhere", headers=maria)
        assert response.status_code == 404
        assert response.json() == {"error": "not_found"}


class TestNonStringSessionBodies:
    """Test JSON values other than strings in session bodies"""

    @pytest.mark.parametrize(
        "body",
        [
            {"startDate": 20250410, "startTime": "10:00"},
            {"startDate": "2025-04-10", "startTime": 1000},
            {"startDate": ["2025-04-10"], "startTime": "10:00"},
            {"startDate": True, "startTime": "10:00"},
        ],
    )
    def test_non_string_start(self, client, admin, body):
        """Only strings describe a start"""
        response = client.post("/api/sessions", json=body, headers=admin)
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_datetime"}

    def test_numeric_description(self, client, admin):
        """A numeric description is kept as text"""
        body = {"startDate": "2025-04-10", "startTime": "10:00", "description": 5}
        response = client.post("/api/sessions", json=body, headers=admin)
        assert response.status_code == 201
        assert response.json()["session"]["description"] == "5"


class TestSessionIdParsing:
    """Test numeric forms of the path id"""

    @pytest.mark.parametrize("raw", ["3", "3.0", "+3", "0.3e1", " 3"])
    def test_whole_number_forms(self, client, store, maria, raw):
        """Decimal and exponent spellings of a whole number address the same session"""
        _add_attempt(store, 3, "Maria", 80)
        response = client.get(f"/api/sessions/{raw}/leaderboard", headers=maria)
        assert response.status_code == 200
        assert response.json()["leaderboard"][0]["rate"] == 80

    def test_exponent_id_on_submit(self, client, store, maria):
        """1e3 is session 1000"""
        response = client.post("/api/sessions/1e3/attempts", json={"rate": 10}, headers=maria)
        assert response.status_code == 201
        assert len(store.list_attempts(1000)) == 1

    @pytest.mark.parametrize("raw", ["3.5", "1_000", "0x10", "inf", "NaN", "1e40", "9" * 39, "9007199254740992"])
    def test_rejected_forms(self, client, maria, raw):
        """Fractions, non-decimal spellings and ids beyond the safe range give 400"""
        response = client.get(f"/api/sessions/{raw}/leaderboard", headers=maria)
        assert response.status_code == 400
        assert response.json() == {"error": "invalid_id"}

    def test_largest_id(self, client, admin):
        """The largest safe integer is still an id"""
        assert client.delete("/api/sessions/9007199254740991", headers=admin).status_code == 204
