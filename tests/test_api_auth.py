import pytest

from agendando.models import Host, SchedulingConfig

from factories import make_host

REGISTRATION = {
    "email": "Ana@Example.com",
    "username": "ana-gomez",
    "password": "s3cret-pass",
    "name": "Ana Gómez",
    "timezone": "America/Argentina/Buenos_Aires",
}


def register(client, **overrides):
    return client.post("/api/v1/auth/register", json={**REGISTRATION, **overrides})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestRegister:

    def test_creates_host_with_default_schedule(self, client, db):
        response = register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["tokenType"] == "bearer"
        assert data["host"]["email"] == "ana@example.com"
        assert data["host"]["username"] == "ana-gomez"

        headers = bearer(data["accessToken"])
        config = client.get("/api/v1/availability/config", headers=headers).json()
        assert config == {"bufferBefore": 0, "bufferAfter": 0, "minNoticeMinutes": 60, "maxDaysInAdvance": 60}

        rules = client.get("/api/v1/availability", headers=headers).json()
        assert sorted((r["dayOfWeek"], r["startTime"], r["endTime"]) for r in rules) == [
            (day, "09:00", "17:00") for day in (1, 2, 3, 4, 5)
        ]

        host = db.query(Host).filter_by(username="ana-gomez").one()
        assert host.hashed_password != REGISTRATION["password"]
        assert db.query(SchedulingConfig).filter_by(host_id=host.id).count() == 1

    def test_duplicate_email_and_username(self, client):
        assert register(client).status_code == 201

        same_email = register(client, username="other")
        assert same_email.status_code == 400
        assert same_email.json()["code"] == "email_taken"

        same_username = register(client, email="other@example.com")
        assert same_username.status_code == 400
        assert same_username.json()["code"] == "username_taken"

    @pytest.mark.parametrize("overrides", [
        {"timezone": "Mars/Olympus_Mons"},
        {"password": "short"},
        {"username": "Not Valid"},
        {"email": "not-an-email"},
    ])
    def test_invalid_registration(self, client, overrides):
        response = register(client, **overrides)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"


class TestLogin:

    def test_login_returns_working_token(self, client):
        register(client)

        response = client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "s3cret-pass"})

        assert response.status_code == 200
        me = client.get("/api/v1/auth/me", headers=bearer(response.json()["accessToken"]))
        assert me.status_code == 200
        assert me.json()["username"] == "ana-gomez"

    @pytest.mark.parametrize("email, password", [
        ("ana@example.com", "wrong-password"),
        ("nobody@example.com", "s3cret-pass"),
    ])
    def test_bad_credentials(self, client, email, password):
        register(client)

        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})

        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"

    def test_host_without_password_cannot_log_in(self, client, db):
        make_host(db, username="legacy")

        response = client.post("/api/v1/auth/login", json={"email": "legacy@example.com", "password": "anything"})

        assert response.status_code == 401
