import os

import pytest

API = "/api/v1/users"


def register(client, username="alice", email=None, password="s3cret-pass", with_avatar=True, cover=False):
    files = {}
    if with_avatar:
        files["avatar"] = ("avatar.png", b"png-bytes", "image/png")
    if cover:
        files["coverImage"] = ("cover.png", b"png-bytes", "image/png")
    data = {
        "fullName": "Alice Doe",
        "email": email or f"{username}@example.com",
        "username": username,
        "password": password,
    }
    return client.post(f"{API}/register", data=data, files=files or None)


def login(client, username="alice", password="s3cret-pass"):
    return client.post(f"{API}/login", json={"username": username, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_register_returns_envelope_without_secrets(client, media, upload_dir):
    r = register(client, cover=True)
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["statusCode"] == 201
    user = body["data"]
    assert user["username"] == "alice"
    assert user["avatar"].startswith("https://media.test/")
    assert user["cover_image"]
    assert "password" not in user
    assert "refresh_token" not in user
    assert len(media.uploaded) == 2
    assert os.listdir(upload_dir) == []


def test_register_requires_avatar(client):
    r = register(client, with_avatar=False)
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_register_upload_failure_cleans_staged_files(client, media, upload_dir):
    media.fail = True
    r = register(client, cover=True)
    assert r.status_code == 400
    assert os.listdir(upload_dir) == []


def test_register_duplicate_username(client):
    assert register(client).status_code == 201
    r = register(client, email="other@example.com")
    assert r.status_code == 409


def test_login_and_current_user(client):
    register(client)
    r = login(client)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["user"]["username"] == "alice"
    assert "accessToken=" in r.headers.get("set-cookie", "")

    me = client.get(f"{API}/current-user", headers=bearer(data["accessToken"]))
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "alice@example.com"


def test_login_wrong_password(client):
    register(client)
    assert login(client, password="nope").status_code == 401


def test_login_unknown_user(client):
    assert login(client, username="ghost").status_code == 404


def test_protected_route_without_token(client):
    r = client.get(f"{API}/current-user")
    assert r.status_code == 401
    assert r.json() == {
        "statusCode": 401,
        "data": None,
        "message": "Unauthorized request",
        "success": False,
        "errors": [],
    }


def test_protected_route_with_garbage_token(client):
    r = client.get(f"{API}/current-user", headers=bearer("not.a.jwt"))
    assert r.status_code == 401


def test_refresh_rotates_tokens_and_rejects_reuse(client):
    register(client)
    old_refresh = login(client).json()["data"]["refreshToken"]
    client.cookies.clear()

    r = client.post(f"{API}/refresh-token", json={"refreshToken": old_refresh})
    assert r.status_code == 200
    new_refresh = r.json()["data"]["refreshToken"]
    assert new_refresh != old_refresh
    client.cookies.clear()

    reused = client.post(f"{API}/refresh-token", json={"refreshToken": old_refresh})
    assert reused.status_code == 401


def test_logout_invalidates_refresh_token(client):
    register(client)
    data = login(client).json()["data"]
    client.cookies.clear()

    assert client.post(f"{API}/logout", headers=bearer(data["accessToken"])).status_code == 200
    r = client.post(f"{API}/refresh-token", json={"refreshToken": data["refreshToken"]})
    assert r.status_code == 401


def test_change_password(client):
    register(client)
    token = login(client).json()["data"]["accessToken"]
    client.cookies.clear()

    bad = client.post(
        f"{API}/change-password",
        json={"oldPassword": "wrong", "newPassword": "brand-new"},
        headers=bearer(token),
    )
    assert bad.status_code == 400

    ok = client.post(
        f"{API}/change-password",
        json={"oldPassword": "s3cret-pass", "newPassword": "brand-new"},
        headers=bearer(token),
    )
    assert ok.status_code == 200
    assert login(client, password="brand-new").status_code == 200


def test_update_account_and_avatar(client, make_user, media):
    _, headers = make_user("bob")
    r = client.patch(
        f"{API}/update-account",
        json={"fullName": "Robert", "email": "robert@example.com"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["data"]["full_name"] == "Robert"

    first = client.patch(f"{API}/avatar", files={"avatar": ("a.png", b"1", "image/png")}, headers=headers)
    second = client.patch(f"{API}/avatar", files={"avatar": ("b.png", b"2", "image/png")}, headers=headers)
    assert first.status_code == second.status_code == 200
    assert second.json()["data"]["avatar"] != first.json()["data"]["avatar"]
    assert len(media.destroyed) == 1


def test_update_avatar_requires_file(client, make_user):
    _, headers = make_user("bob")
    assert client.patch(f"{API}/avatar", headers=headers).status_code == 400


def test_channel_profile(client, make_user, database):
    alice, alice_headers = make_user("alice")
    bob, bob_headers = make_user("bob")
    client.post(f"/api/v1/subscriptions/toggle/{alice['_id']}", headers=bob_headers)

    r = client.get(f"{API}/c/alice", headers=bob_headers)
    assert r.status_code == 200
    profile = r.json()["data"]
    assert profile["subscribers_count"] == 1
    assert profile["channels_subscribed_to_count"] == 0
    assert profile["is_subscribed"] is True
    assert "password" not in profile

    assert client.get(f"{API}/c/nobody", headers=bob_headers).status_code == 404


@pytest.mark.parametrize("field", ["fullName", "email", "username", "password"])
def test_register_missing_field(client, field):
    data = {"fullName": "A", "email": "a@example.com", "username": "alice", "password": "pw"}
    data[field] = "   "
    r = client.post(f"{API}/register", data=data, files={"avatar": ("a.png", b"x", "image/png")})
    assert r.status_code == 400
