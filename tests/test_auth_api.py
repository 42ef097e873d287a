import json

from microjob_api.app.core.config import settings
from microjob_api.app.core.security import (
    _b64_url_decode,
    _b64_url_encode,
    _sign,
    create_access_token,
    decode_access_token,
)
from microjob_api.app.schemas.user import UserCreate


def register(client, email, password="secret123", **extra):
    payload = {"email": email, "password": password}
    payload.update(extra)
    return client.post("/api/auth/register", json=payload)


def test_first_user_becomes_admin(client):
    first = register(client, "Founder@Example.com", user_type="employer")
    second = register(client, "worker@example.com")

    assert first.status_code == 201
    assert first.json()["user_type"] == "admin"
    assert first.json()["email"] == "founder@example.com"
    assert second.json()["user_type"] == "worker"


def test_duplicate_email_conflicts(client):
    register(client, "dup@example.com")

    assert register(client, "dup@example.com").status_code == 409


def test_login_returns_usable_token(client):
    register(client, "admin@example.com")
    register(client, "employer@example.com", user_type="employer")

    response = client.post("/api/auth/login", json={"email": "employer@example.com", "password": "secret123"})

    assert response.status_code == 200
    token = response.json()["access_token"]
    assert response.json()["token_type"] == "bearer"
    assert decode_access_token(token)["sub"] == "employer@example.com"
    assert client.get("/api/favorites", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_login_rejects_wrong_password(client):
    register(client, "user@example.com")

    response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "wrong-password"})

    assert response.status_code == 401


def test_disabled_user_is_rejected(client, make_user, auth_headers):
    make_user("banned@example.com", disabled=True)

    response = client.get("/api/favorites", headers=auth_headers("banned@example.com"))

    assert response.status_code == 401
    assert response.json()["detail"] == "User account disabled"


def test_token_for_unknown_user_is_rejected(client):
    headers = {"Authorization": f"Bearer {create_access_token({'sub': 'ghost@example.com'})}"}

    assert client.get("/api/favorites", headers=headers).status_code == 401


def test_tampered_and_expired_tokens_are_invalid():
    header, _, signature = create_access_token({"sub": "user@example.com"}).split(".")
    _, forged_payload, _ = create_access_token({"sub": "admin@example.com"}).split(".")

    assert decode_access_token(f"{header}.{forged_payload}.{signature}") is None
    assert decode_access_token("not-a-token") is None
    assert decode_access_token(create_access_token({"sub": "user@example.com"}, expires_delta=-10)) is None


def test_token_header_must_name_hs256():
    token = create_access_token({"sub": "user@example.com"})
    header_b64, payload_b64, _ = token.split(".")

    assert json.loads(_b64_url_decode(header_b64))["alg"] == "HS256"
    forged_header = _b64_url_encode(json.dumps({"alg": "HS512", "typ": "JWT"}).encode("utf-8"))
    signature = _b64_url_encode(_sign(f"{forged_header}.{payload_b64}".encode("utf-8"), settings.secret_key))
    assert decode_access_token(f"{forged_header}.{payload_b64}.{signature}") is None


def test_registration_schema_publishes_examples():
    properties = UserCreate.model_json_schema()["properties"]

    assert properties["email"]["examples"] == ["user@example.com"]
    assert properties["location"]["examples"] == ["Lagos, Nigeria"]
