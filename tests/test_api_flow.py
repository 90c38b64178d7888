import uuid

from fastapi.testclient import TestClient

from servicehub.main import create_app
from servicehub.core.db import SessionLocal
from servicehub.core.security import hash_password
from servicehub.models.principal import Admin
from servicehub.services.identity import BANNED_LOGIN_MESSAGE, PENDING_LOGIN_MESSAGE

PASSWORD = "Abcd1234!"


def _client() -> TestClient:
    app = create_app()
    return TestClient(app)


def _suffix() -> str:
    return uuid.uuid4().hex[:8]


def _create_admin(clearance: str = "director") -> tuple[str, str]:
    name = f"admin{_suffix()}"
    with SessionLocal() as db:
        admin = Admin(
            username=name,
            email=f"{name}@servicehub.io",
            password_hash=hash_password(PASSWORD),
            status="approved",
            clearance_level=clearance,
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin.id, admin.email


def _register(client: TestClient, role: str = "customer", **extra) -> dict:
    name = f"{role[:4]}{_suffix()}"
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": name, "email": f"{name}@servicehub.io", "password": PASSWORD, "role": role, **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _login_token(client: TestClient, email: str, password: str = PASSWORD) -> str:
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _approve(client: TestClient, admin_token: str, user_id: str) -> None:
    resp = client.patch(
        f"/api/v1/admin/users/{user_id}/status", json={"status": "approved"}, headers=_auth(admin_token)
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["user"]["status"] == "approved"


def test_registration_approval_and_login() -> None:
    with _client() as client:
        registered = _register(client, phoneNumber="+1 555 0100")
        user = registered["user"]
        assert user["status"] == "pending"
        assert user["phone_number"] == "+1 555 0100"
        assert "password_hash" not in user
        assert registered["access_token"]
        assert "pending" in registered["next_steps"]

        resp = client.get("/api/v1/auth/profile", headers=_auth(registered["access_token"]))
        assert resp.status_code == 200
        assert resp.json()["user"]["status"] == "pending"

        resp = client.post("/api/v1/auth/login", json={"email": user["email"], "password": PASSWORD})
        assert resp.status_code == 403
        assert resp.json()["detail"] == PENDING_LOGIN_MESSAGE

        _, admin_email = _create_admin("director")
        admin_token = _login_token(client, admin_email)
        _approve(client, admin_token, user["id"])

        token = _login_token(client, user["email"])
        resp = client.get("/api/v1/auth/profile", headers=_auth(token))
        assert resp.status_code == 200, resp.text
        assert resp.json()["user"]["id"] == user["id"]

        resp = client.patch(
            f"/api/v1/admin/users/{user['id']}/status", json={"status": "banned"}, headers=_auth(admin_token)
        )
        assert resp.status_code == 200, resp.text
        resp = client.post("/api/v1/auth/login", json={"email": user["email"], "password": PASSWORD})
        assert resp.status_code == 403
        assert resp.json()["detail"] == BANNED_LOGIN_MESSAGE

        resp = client.get("/api/v1/auth/profile", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json()["user"]["status"] == "banned"


def test_registration_validation_errors_are_collected() -> None:
    with _client() as client:
        resp = client.post(
            "/api/v1/auth/register",
            json={"username": "x", "email": "nope", "password": "abc", "role": "customer"},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["detail"] == "Validation failed"
        assert len(body["errors"]) >= 3


def test_session_and_role_gates() -> None:
    with _client() as client:
        resp = client.get("/api/v1/auth/profile")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "No token, authorization denied"

        resp = client.get("/api/v1/auth/profile", headers=_auth("bogus.token.value"))
        assert resp.status_code == 401

        _, admin_email = _create_admin()
        admin_token = _login_token(client, admin_email)
        customer = _register(client)["user"]
        _approve(client, admin_token, customer["id"])
        customer_token = _login_token(client, customer["email"])

        resp = client.get("/api/v1/admin/users", headers=_auth(customer_token))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Access denied. Admin privileges required."

        resp = client.get("/api/v1/admin/users?userType=customer&limit=2", headers=_auth(admin_token))
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert len(body["users"]) <= 2
        assert all(u["role"] == "customer" for u in body["users"])
        assert body["pagination"]["limit"] == 2


def test_admin_clearance_enforced_over_http() -> None:
    with _client() as client:
        sup_id, sup_email = _create_admin("supervisor")
        peer_id, _ = _create_admin("supervisor")
        sup_token = _login_token(client, sup_email)

        resp = client.patch(f"/api/v1/admin/users/{peer_id}/status", json={"status": "banned"}, headers=_auth(sup_token))
        assert resp.status_code == 403
        assert "equal or higher clearance" in resp.json()["detail"]

        resp = client.delete(f"/api/v1/admin/users/{sup_id}", headers=_auth(sup_token))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Cannot delete your own account"

        resp = client.get("/api/v1/admin/users/stats", headers=_auth(sup_token))
        assert resp.status_code == 200
        stats = resp.json()
        assert set(stats) == {"totalUsers", "roleBreakdown", "statusBreakdown", "recentActivity", "approvalRate"}
        assert stats["roleBreakdown"]["admins"] >= 2


def test_service_request_flow_reuses_vehicle_and_follows_lifecycle() -> None:
    with _client() as client:
        _, admin_email = _create_admin()
        admin_token = _login_token(client, admin_email)
        customer = _register(client)["user"]
        mechanic = _register(client, role="mechanic", specialization=["Engine Repair"])["user"]
        _approve(client, admin_token, customer["id"])
        _approve(client, admin_token, mechanic["id"])
        customer_token = _login_token(client, customer["email"])
        mechanic_token = _login_token(client, mechanic["email"])

        body = {
            "vehicleData": {"make": "Toyota", "model": "Camry", "year": 2020},
            "description": "Check engine light is on",
            "serviceType": "diagnostic",
            "mechanicId": mechanic["id"],
        }
        resp = client.post("/api/v1/service-request", json=body, headers=_auth(customer_token))
        assert resp.status_code == 201, resp.text
        first = resp.json()
        assert first["status"] == "pending"
        assert first["vehicle"]["is_primary"] is True
        assert first["mechanic"]["id"] == mechanic["id"]

        body["vehicleData"] = {"make": "toyota", "model": "camry", "year": "2020"}
        resp = client.post("/api/v1/service-request", json=body, headers=_auth(customer_token))
        assert resp.status_code == 201, resp.text
        second = resp.json()
        assert second["vehicle_id"] == first["vehicle_id"]

        resp = client.get("/api/v1/vehicles", headers=_auth(customer_token))
        assert resp.status_code == 200
        assert len(resp.json()) == 1

        resp = client.put(
            f"/api/v1/service-request/{first['id']}", json={"status": "completed"}, headers=_auth(mechanic_token)
        )
        assert resp.status_code == 400

        for status in ("accepted", "in_progress", "completed"):
            resp = client.put(
                f"/api/v1/service-request/{first['id']}", json={"status": status}, headers=_auth(mechanic_token)
            )
            assert resp.status_code == 200, resp.text
        done = resp.json()
        assert done["status"] == "completed"
        assert done["completed_at"] is not None
        assert done["notes"][-1]["text"] == "Status changed from in_progress to completed"

        resp = client.get(f"/api/v1/service-request/mechanic/{mechanic['id']}/queue", headers=_auth(mechanic_token))
        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()] == [second["id"]]

        resp = client.get(f"/api/v1/service-request/customer/{customer['id']}", headers=_auth(mechanic_token))
        assert resp.status_code == 403

        resp = client.get(
            f"/api/v1/vehicles/{first['vehicle_id']}/service-history", headers=_auth(customer_token)
        )
        assert resp.status_code == 200
        assert len(resp.json()) == 2


def test_other_mechanic_cannot_update_request() -> None:
    with _client() as client:
        _, admin_email = _create_admin()
        admin_token = _login_token(client, admin_email)
        customer = _register(client)["user"]
        assigned = _register(client, role="mechanic")["user"]
        intruder = _register(client, role="mechanic")["user"]
        for user in (customer, assigned, intruder):
            _approve(client, admin_token, user["id"])
        customer_token = _login_token(client, customer["email"])
        intruder_token = _login_token(client, intruder["email"])

        resp = client.post(
            "/api/v1/service-request",
            json={
                "vehicle_data": {"make": "Honda", "model": "Civic", "year": 2018},
                "description": "Squeaky brakes",
                "service_type": "repair",
                "mechanic_id": assigned["id"],
            },
            headers=_auth(customer_token),
        )
        assert resp.status_code == 201, resp.text

        resp = client.put(
            f"/api/v1/service-request/{resp.json()['id']}", json={"status": "accepted"}, headers=_auth(intruder_token)
        )
        assert resp.status_code == 403


def test_health() -> None:
    with _client() as client:
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
