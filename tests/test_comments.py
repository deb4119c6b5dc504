from bson import ObjectId

API = "/api/v1/comments"


def test_add_and_list_comments(client, make_user, make_video):
    alice, alice_headers = make_user("alice")
    video = make_video(alice)
    url = f"{API}/{video['_id']}"

    for text in ("first", "second", "third"):
        r = client.post(url, json={"content": text}, headers=alice_headers)
        assert r.status_code == 201

    data = client.get(url, params={"limit": 2}).json()["data"]
    assert [c["content"] for c in data["comments"]] == ["third", "second"]
    assert data["comments"][0]["owner"]["username"] == "alice"
    assert data["pagination"]["totalItems"] == 3
    assert data["pagination"]["hasNextPage"] is True


def test_comments_on_unknown_video(client, make_user):
    _, headers = make_user("alice")
    missing = str(ObjectId())
    assert client.get(f"{API}/{missing}").status_code == 404
    assert client.post(f"{API}/{missing}", json={"content": "hi"}, headers=headers).status_code == 404
    assert client.get(f"{API}/not-an-id").status_code == 400


def test_empty_comment_list(client, make_user, make_video):
    alice, _ = make_user("alice")
    video = make_video(alice)
    body = client.get(f"{API}/{video['_id']}").json()
    assert body["message"] == "No comments found"
    assert body["data"]["comments"] == []


def test_blank_content_rejected(client, make_user, make_video):
    alice, headers = make_user("alice")
    video = make_video(alice)
    for payload in ({"content": "   "}, {"content": 42}, {}):
        r = client.post(f"{API}/{video['_id']}", json=payload, headers=headers)
        assert r.status_code == 400


def test_comment_requires_auth(client, make_user, make_video):
    alice, _ = make_user("alice")
    video = make_video(alice)
    assert client.post(f"{API}/{video['_id']}", json={"content": "hi"}).status_code == 401


def test_update_and_delete_are_owner_only(client, make_user, make_video, database):
    alice, alice_headers = make_user("alice")
    _, bob_headers = make_user("bob")
    video = make_video(alice)
    comment = client.post(f"{API}/{video['_id']}", json={"content": "mine"}, headers=alice_headers).json()["data"]
    url = f"{API}/{comment['id']}"

    assert client.patch(url, json={"content": "edited"}, headers=bob_headers).status_code == 403
    assert client.delete(url, headers=bob_headers).status_code == 403

    r = client.patch(url, json={"editedContent": "edited"}, headers=alice_headers)
    assert r.status_code == 200
    assert r.json()["data"]["content"] == "edited"

    client.post(f"/api/v1/likes/toggle/c/{comment['id']}", headers=bob_headers)
    assert client.delete(url, headers=alice_headers).status_code == 200
    assert database["comments"].count_documents({}) == 0
    assert database["likes"].count_documents({}) == 0
    assert client.delete(url, headers=alice_headers).status_code == 404
