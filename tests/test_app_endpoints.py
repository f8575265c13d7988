from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from loveblog import __version__
from loveblog.app import create_app
from loveblog.auth.passwords import verify_password
from loveblog.auth.roles import Role

COUPLE_PASSWORD = "Secret123"


def test_couple_login_status_logout(client, app):
    app.state.passwords.set_couple("Secret123")

    r = client.post("/auth/login", json={"password": "Secret123"})
    assert r.status_code == 200
    assert r.json()["user"] == {"type": "couple"}
    assert r.json()["expiryTime"] is None

    r = client.get("/auth/status")
    assert r.json()["authenticated"] is True
    assert r.json()["user"]["type"] == "couple"

    r = client.post("/auth/logout")
    assert r.status_code == 200

    r = client.get("/auth/status")
    assert r.json() == {"success": False, "authenticated": False}


def test_login_wrong_password(client, app):
    app.state.passwords.set_couple("Secret123")
    r = client.post("/auth/login", json={"password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_login_blank_password_is_validation_error(client):
    r = client.post("/auth/login", json={})
    assert r.status_code == 400
    assert r.json()["code"] == "VALIDATION_ERROR"


def test_password_routes_require_session(client):
    r = client.get("/password/status")
    assert r.status_code == 401
    assert r.json()["code"] == "AUTHENTICATION_REQUIRED"


def test_generate_visitor_then_visitor_login(couple_client, app):
    r = couple_client.post("/password/visitor/generate", json={"expiryHours": 2, "length": 10})
    assert r.status_code == 200
    body = r.json()
    assert len(body["password"]) == 10
    stored = app.state.passwords.credentials.get_credential(Role.VISITOR)
    assert verify_password(body["password"], stored.secret_hash)

    couple_client.post("/auth/logout")
    r = couple_client.post("/auth/login", json={"password": body["password"]})
    assert r.status_code == 200
    assert r.json()["user"]["type"] == "visitor"
    assert r.json()["expiryTime"] == body["expiresAt"]

    r = couple_client.get("/password/status")
    assert r.status_code == 403
    assert r.json()["code"] == "INSUFFICIENT_PERMISSIONS"


def test_visitor_session_expires_on_next_request(couple_client, clock):
    r = couple_client.put("/password/visitor", json={"password": "Guest123", "expiryHours": 1})
    assert r.status_code == 200
    couple_client.post("/auth/logout")
    assert couple_client.post("/auth/login", json={"password": "Guest123"}).status_code == 200

    clock.advance(minutes=59, seconds=59)
    assert couple_client.get("/settings").status_code == 200

    clock.advance(seconds=2)
    r = couple_client.get("/settings")
    assert r.status_code == 401
    assert r.json()["code"] == "VISITOR_EXPIRED"

    r = couple_client.get("/auth/status")
    assert r.json()["authenticated"] is False


def test_visitor_expiry_hours_out_of_range(couple_client):
    r = couple_client.put("/password/visitor", json={"password": "Guest123", "expiryHours": 169})
    assert r.status_code == 400
    r = couple_client.post("/password/visitor/generate", json={"length": 4})
    assert r.status_code == 400


def test_change_couple_password(couple_client):
    r = couple_client.put("/password/couple", json={"currentPassword": "wrong-one", "newPassword": "Another123"})
    assert r.status_code == 400
    r = couple_client.put(
        "/password/couple", json={"currentPassword": COUPLE_PASSWORD, "newPassword": "x"}
    )
    assert r.status_code == 400
    assert r.json()["details"]
    r = couple_client.put(
        "/password/couple", json={"currentPassword": COUPLE_PASSWORD, "newPassword": "Another123"}
    )
    assert r.status_code == 200

    couple_client.post("/auth/logout")
    assert couple_client.post("/auth/login", json={"password": COUPLE_PASSWORD}).status_code == 401
    assert couple_client.post("/auth/login", json={"password": "Another123"}).status_code == 200


def test_revoke_visitor_and_history(couple_client):
    couple_client.put("/password/visitor", json={"password": "Guest123", "expiryHours": 5})
    r = couple_client.get("/password/status")
    assert r.json()["status"]["visitorPassword"]["hoursLeft"] == 5

    assert couple_client.delete("/password/visitor").status_code == 200
    st = couple_client.get("/password/status").json()["status"]
    assert st["visitorPassword"]["isSet"] is False
    assert st["visitorPassword"]["expiresAt"] is None

    history = couple_client.get("/password/history").json()["history"]
    assert {h["type"] for h in history} == {"couple", "visitor"}
    assert all("hash" not in str(h).lower() for h in history)


def test_settings_visibility_and_update(couple_client):
    r = couple_client.put("/settings", json={"settings": {"couple_name_1": "Ana", "couple_password_hash": "x"}})
    assert r.status_code == 200
    assert r.json()["updatedCount"] == 1

    r = couple_client.put("/settings", json={"settings": {"encryption_key": "x"}})
    assert r.status_code == 400

    r = couple_client.get("/settings")
    assert r.json()["settings"] == {"couple_name_1": "Ana"}


def test_unknown_route_is_json_404(client):
    r = client.get("/nope")
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_root_reports_package_version(client):
    assert client.get("/").json()["version"] == __version__


@pytest.mark.parametrize("source", ["store", "session"])
def test_revoked_visitor_loses_access(settings, clock, source):
    app = create_app(replace(settings, visitor_expiry_source=source), clock=clock)
    client = TestClient(app)
    app.state.passwords.set_couple(COUPLE_PASSWORD)
    assert client.post("/auth/login", json={"password": COUPLE_PASSWORD}).status_code == 200
    assert client.put("/password/visitor", json={"password": "Guest123", "expiryHours": 1}).status_code == 200
    client.post("/auth/logout")

    visitor = TestClient(app)
    assert visitor.post("/auth/login", json={"password": "Guest123"}).status_code == 200
    assert visitor.get("/settings").status_code == 200

    assert client.post("/auth/login", json={"password": COUPLE_PASSWORD}).status_code == 200
    assert client.delete("/password/visitor").status_code == 200

    assert visitor.get("/settings").status_code == 401
    clock.advance(hours=5)
    assert visitor.get("/settings").status_code == 401
    assert visitor.get("/auth/status").json()["authenticated"] is False
    assert client.get("/settings").status_code == 200
