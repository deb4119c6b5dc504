import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

API = "/api/v1/likes"


def test_toggle_video_like(client, make_user, make_video, database):
    alice, _ = make_user("alice")
    _, bob_headers = make_user("bob")
    video = make_video(alice)
    url = f"{API}/toggle/v/{video['_id']}"

    assert client.post(url, headers=bob_headers).json()["data"] == {"is_liked": True}
    assert database["likes"].count_documents({"video": video["_id"]}) == 1
    assert client.post(url, headers=bob_headers).json()["data"] == {"is_liked": False}
    assert database["likes"].count_documents({}) == 0


def test_likes_on_different_targets_are_independent(client, make_user, make_video, database):
    alice, alice_headers = make_user("alice")
    video = make_video(alice)
    tweet = client.post("/api/v1/tweets", json={"content": "t"}, headers=alice_headers).json()["data"]

    client.post(f"{API}/toggle/v/{video['_id']}", headers=alice_headers)
    client.post(f"{API}/toggle/t/{tweet['id']}", headers=alice_headers)
    assert database["likes"].count_documents({}) == 2


def test_like_unknown_target(client, make_user):
    _, headers = make_user("alice")
    assert client.post(f"{API}/toggle/v/{ObjectId()}", headers=headers).status_code == 404
    assert client.post(f"{API}/toggle/c/{ObjectId()}", headers=headers).status_code == 404
    assert client.post(f"{API}/toggle/t/oops", headers=headers).status_code == 400


def test_liked_videos(client, make_user, make_video):
    alice, _ = make_user("alice")
    _, bob_headers = make_user("bob")
    first = make_video(alice, title="first")
    second = make_video(alice, title="second")
    client.post(f"{API}/toggle/v/{first['_id']}", headers=bob_headers)
    client.post(f"{API}/toggle/v/{second['_id']}", headers=bob_headers)

    r = client.get(f"{API}/videos", headers=bob_headers)
    assert r.status_code == 200
    assert {v["title"] for v in r.json()["data"]} == {"first", "second"}
    assert r.json()["data"][0]["owner"]["username"] == "alice"


def test_like_per_user_and_target_is_unique(client, make_user, make_video, database):
    alice, _ = make_user("alice")
    bob, _ = make_user("bob")
    video = make_video(alice)
    like = {"liked_by": bob["_id"], "video": video["_id"], "comment": None, "tweet": None}
    database["likes"].insert_one(dict(like))
    with pytest.raises(DuplicateKeyError):
        database["likes"].insert_one(dict(like))
    database["likes"].insert_one(dict(like, liked_by=alice["_id"]))
    assert database["likes"].count_documents({"video": video["_id"]}) == 2
