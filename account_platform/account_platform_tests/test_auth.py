import uuid

from account_platform.account_platform.account_service.auth import create_access_token, verify_access_token
from datetime import datetime, timedelta

from .conftest import TEST_SECRET


def unique_email():
    return f"user_{uuid.uuid4().hex[:8]}@example.com"


def register(client, email, password="secret1"):
    return client.post("/auth/register", json={"email": email, "password": password})


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def test_root_returns_hello_world(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "hello world"}


def test_register_and_login(client):
    email = unique_email()
    reg = register(client, email, "testing12345")
    assert reg.status_code == 201
    body = reg.json()
    assert body["token"]
    assert body["user"]["email"] == email
    assert body["user"]["membershipLevel"] == "Bronze"
    assert body["user"]["points"] == 0
    assert "password" not in body["user"]
    assert "passwordHash" not in body["user"]

    login = client.post("/auth/login", json={"email": email, "password": "testing12345"})
    assert login.status_code == 200
    claims = verify_access_token(login.json()["token"], TEST_SECRET)
    assert claims.user_id == body["user"]["id"]
    assert claims.email == email


def test_register_duplicate_email(client):
    email = unique_email()
    assert register(client, email).status_code == 201

    again = register(client, email)
    assert again.status_code == 400
    assert again.json()["error"] == "User already exists with this email"


def test_register_missing_fields(client):
    response = client.post("/auth/register", json={"email": unique_email()})
    assert response.status_code == 400
    assert response.json()["fields"] == ["password"]


def test_register_short_password(client):
    response = register(client, unique_email(), "12345")
    assert response.status_code == 400
    assert response.json()["fields"] == ["password"]


def test_login_missing_fields(client):
    response = client.post("/auth/login", json={"email": unique_email()})
    assert response.status_code == 400


def test_login_invalid_password_and_unknown_email_look_the_same(client):
    email = unique_email()
    assert register(client, email, "goodpassword").status_code == 201

    bad_password = client.post("/auth/login", json={"email": email, "password": "wrongpassword"})
    unknown_email = client.post("/auth/login", json={"email": unique_email(), "password": "goodpassword"})

    assert bad_password.status_code == 401
    assert unknown_email.status_code == 401
    assert bad_password.json() == unknown_email.json()


def test_profile_requires_token(client):
    response = client.get("/auth/profile")
    assert response.status_code == 401

    response = client.get("/auth/profile", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401


def test_profile_rejects_bad_and_expired_tokens(client):
    email = unique_email()
    user_id = register(client, email).json()["user"]["id"]

    forged = create_access_token(user_id, email, "some-other-secret")
    assert client.get("/auth/profile", headers=auth_header(forged)).status_code == 403

    expired = create_access_token(user_id, email, TEST_SECRET, issued_at=datetime.utcnow() - timedelta(hours=25))
    assert client.get("/auth/profile", headers=auth_header(expired)).status_code == 403

    assert client.get("/auth/profile", headers=auth_header("not-a-jwt")).status_code == 403


def test_profile_for_vanished_user_is_not_found(client):
    token = create_access_token(str(uuid.uuid4()), "ghost@example.com", TEST_SECRET)
    response = client.get("/auth/profile", headers=auth_header(token))
    assert response.status_code == 404


def test_account_scenario(client):
    reg = register(client, "a@x.com", "secret1")
    assert reg.status_code == 201
    assert reg.json()["token"]
    assert reg.json()["user"]["membershipLevel"] == "Bronze"
    assert reg.json()["user"]["points"] == 0

    assert register(client, "a@x.com", "secret1").status_code == 400
    assert client.post("/auth/login", json={"email": "a@x.com", "password": "wrong"}).status_code == 401

    login = client.post("/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert login.status_code == 200
    token = login.json()["token"]

    update = client.put(
        "/auth/profile",
        json={"points": 100, "membershipLevel": "Gold"},
        headers=auth_header(token),
    )
    assert update.status_code == 200
    assert update.json()["user"]["points"] == 100

    profile = client.get("/auth/profile", headers=auth_header(token))
    assert profile.status_code == 200
    user = profile.json()["user"]
    assert user["points"] == 100
    assert user["membershipLevel"] == "Gold"
    assert user["id"] == reg.json()["user"]["id"]


def test_update_profile_is_sparse(client):
    token = register(client, unique_email()).json()["token"]

    first = client.put(
        "/auth/profile",
        json={"firstName": "สมชาย", "lastName": "ใจดี", "phone": "081-234-5678"},
        headers=auth_header(token),
    )
    assert first.status_code == 200

    second = client.put("/auth/profile", json={"firstName": "Somchai"}, headers=auth_header(token))
    assert second.status_code == 200
    user = second.json()["user"]
    assert user["firstName"] == "Somchai"
    assert user["lastName"] == "ใจดี"
    assert user["phone"] == "081-234-5678"


def test_update_profile_rejects_invalid_fields(client):
    token = register(client, unique_email()).json()["token"]

    diamond = client.put("/auth/profile", json={"membershipLevel": "Diamond"}, headers=auth_header(token))
    assert diamond.status_code == 400
    assert diamond.json()["fields"] == ["membershipLevel"]

    negative = client.put("/auth/profile", json={"points": -1}, headers=auth_header(token))
    assert negative.status_code == 400
    assert negative.json()["fields"] == ["points"]

    not_a_number = client.put("/auth/profile", json={"points": "lots"}, headers=auth_header(token))
    assert not_a_number.status_code == 400
    assert not_a_number.json()["fields"] == ["points"]

    bad_phone = client.put("/auth/profile", json={"phone": "call me"}, headers=auth_header(token))
    assert bad_phone.status_code == 400
    assert bad_phone.json()["fields"] == ["phone"]

    profile = client.get("/auth/profile", headers=auth_header(token)).json()["user"]
    assert profile["membershipLevel"] == "Bronze"
    assert profile["points"] == 0
    assert profile["phone"] is None


def test_update_profile_ignores_immutable_fields(client):
    email = unique_email()
    reg = register(client, email).json()
    token = reg["token"]

    response = client.put(
        "/auth/profile",
        json={"email": "other@example.com", "id": "hijack", "lastName": "Smith"},
        headers=auth_header(token),
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == email
    assert user["id"] == reg["user"]["id"]
    assert user["lastName"] == "Smith"


def test_health_and_ready(client):
    assert client.get("/health").json()["status"] == "healthy"
    ready = client.get("/ready")
    assert ready.status_code == 200
    assert ready.json()["database"] == "connected"


def test_get_profile_body_holds_only_the_user(client):
    token = register(client, unique_email()).json()["token"]

    response = client.get("/auth/profile", headers=auth_header(token))
    assert response.status_code == 200
    assert list(response.json()) == ["user"]


def test_update_profile_rejects_points_too_large_to_store(client):
    token = register(client, unique_email()).json()["token"]

    response = client.put("/auth/profile", json={"points": 2 ** 70}, headers=auth_header(token))
    assert response.status_code == 400
    assert response.json()["fields"] == ["points"]

    profile = client.get("/auth/profile", headers=auth_header(token)).json()["user"]
    assert profile["points"] == 0
