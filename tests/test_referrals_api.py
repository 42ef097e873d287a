def register(client, email, **extra):
    payload = {"email": email, "password": "secret123", "first_name": "Ada", "last_name": "Lovelace"}
    payload.update(extra)
    return client.post("/api/auth/register", json=payload)


def test_requires_authentication(client):
    assert client.get("/api/referrals").status_code == 401


def test_generate_code_is_idempotent(client, make_user, auth_headers):
    make_user("referrer@example.com")
    headers = auth_headers("referrer@example.com")

    first = client.post("/api/referrals/generate-code", headers=headers)
    second = client.post("/api/referrals/generate-code", headers=headers)

    assert first.status_code == 200
    code = first.json()["referral_code"]
    assert len(code) == 8
    assert code.isalnum() and code.upper() == code
    assert second.json()["referral_code"] == code


def test_overview_without_referrals(client, make_user, auth_headers):
    make_user("lonely@example.com")

    response = client.get("/api/referrals", headers=auth_headers("lonely@example.com"))

    assert response.status_code == 200
    assert response.json() == {
        "referral_code": None,
        "statistics": {"total": 0, "completed": 0, "pending": 0, "vip": 0},
        "referrals": [],
    }


def test_registration_with_code_is_listed_and_counted(client, conn, make_user, auth_headers):
    referrer_id = make_user("referrer@example.com")
    headers = auth_headers("referrer@example.com")
    code = client.post("/api/referrals/generate-code", headers=headers).json()["referral_code"]

    assert register(client, "friend@example.com", referral_code=code.lower(), location="Kenya").status_code == 201
    assert register(client, "buddy@example.com", referral_code=code, first_name="Grace", last_name="Hopper").status_code == 201
    conn.execute(
        "UPDATE referrals SET status = 'completed' WHERE referred_id = (SELECT id FROM users WHERE email = ?)",
        ("buddy@example.com",),
    )
    conn.commit()

    body = client.get("/api/referrals", headers=headers).json()

    assert body["referral_code"] == code
    assert body["statistics"] == {"total": 2, "completed": 1, "pending": 1, "vip": 1}
    by_email = {entry["email"]: entry for entry in body["referrals"]}
    assert by_email["friend@example.com"]["country"] == "Kenya"
    assert by_email["friend@example.com"]["type"] == "Regular"
    assert by_email["friend@example.com"]["full_name"] == "Ada Lovelace"
    assert by_email["buddy@example.com"]["country"] == "Not specified"
    assert by_email["buddy@example.com"]["type"] == "VIP"
    assert by_email["buddy@example.com"]["full_name"] == "Grace Hopper"
    referred_ids = {row["referrer_id"] for row in conn.execute("SELECT referrer_id FROM referrals").fetchall()}
    assert referred_ids == {referrer_id}


def test_unknown_referral_code_is_rejected(client, conn, make_user):
    make_user("existing@example.com")

    response = register(client, "newbie@example.com", referral_code="NOPE0000")

    assert response.status_code == 400
    assert conn.execute("SELECT id FROM users WHERE email = 'newbie@example.com'").fetchone() is None
