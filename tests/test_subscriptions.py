import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

API = "/api/v1/subscriptions"


def test_toggle_subscription_twice(client, make_user, database):
    alice, _ = make_user("alice")
    bob, bob_headers = make_user("bob")
    url = f"{API}/toggle/{alice['_id']}"

    first = client.post(url, headers=bob_headers)
    assert first.status_code == 201
    assert first.json()["data"] == {"subscribed": True}
    assert database["subscriptions"].count_documents({"subscriber": bob["_id"], "channel": alice["_id"]}) == 1

    second = client.post(url, headers=bob_headers)
    assert second.status_code == 200
    assert second.json()["data"] == {"subscribed": False}
    assert database["subscriptions"].count_documents({}) == 0


def test_cannot_subscribe_to_self(client, make_user, database):
    alice, alice_headers = make_user("alice")
    url = f"{API}/toggle/{alice['_id']}"
    assert client.post(url, headers=alice_headers).status_code == 400
    database["subscriptions"].insert_one({"subscriber": alice["_id"], "channel": alice["_id"]})
    assert client.post(url, headers=alice_headers).status_code == 400
    assert database["subscriptions"].count_documents({}) == 1


def test_subscribe_to_unknown_channel(client, make_user):
    _, headers = make_user("alice")
    assert client.post(f"{API}/toggle/{ObjectId()}", headers=headers).status_code == 404
    assert client.post(f"{API}/toggle/xyz", headers=headers).status_code == 400


def test_count_and_is_subscribed(client, make_user):
    alice, alice_headers = make_user("alice")
    _, bob_headers = make_user("bob")
    _, carol_headers = make_user("carol")
    client.post(f"{API}/toggle/{alice['_id']}", headers=bob_headers)
    client.post(f"{API}/toggle/{alice['_id']}", headers=carol_headers)

    count = client.get(f"{API}/count/{alice['_id']}")
    assert count.json()["data"] == {"totalSubscribers": 2}

    yes = client.get(f"{API}/is-subscribed/{alice['_id']}", headers=bob_headers)
    no = client.get(f"{API}/is-subscribed/{alice['_id']}", headers=alice_headers)
    assert yes.json()["data"] == {"isSubscribed": True}
    assert no.json()["data"] == {"isSubscribed": False}


def test_subscribed_channels_self_only(client, make_user):
    alice, _ = make_user("alice")
    bob, bob_headers = make_user("bob")
    _, carol_headers = make_user("carol")
    client.post(f"{API}/toggle/{alice['_id']}", headers=bob_headers)

    r = client.get(f"{API}/u/{bob['_id']}", headers=bob_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["totalSubscriptions"] == 1
    assert data["subscriptions"][0]["channel"]["username"] == "alice"

    assert client.get(f"{API}/u/{bob['_id']}", headers=carol_headers).status_code == 403


def test_channel_subscribers_owner_only(client, make_user):
    alice, alice_headers = make_user("alice")
    _, bob_headers = make_user("bob")
    client.post(f"{API}/toggle/{alice['_id']}", headers=bob_headers)

    r = client.get(f"{API}/subscribers/{alice['_id']}", headers=alice_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["totalSubscribers"] == 1
    assert data["subscribers"][0]["subscriber"]["username"] == "bob"

    assert client.get(f"{API}/subscribers/{alice['_id']}", headers=bob_headers).status_code == 403


def test_subscription_pair_is_unique(client, make_user, database):
    alice, _ = make_user("alice")
    bob, _ = make_user("bob")
    pair = {"subscriber": bob["_id"], "channel": alice["_id"]}
    database["subscriptions"].insert_one(dict(pair))
    with pytest.raises(DuplicateKeyError):
        database["subscriptions"].insert_one(dict(pair))
    # The reverse direction is a different pair
    database["subscriptions"].insert_one({"subscriber": alice["_id"], "channel": bob["_id"]})
    assert database["subscriptions"].count_documents({}) == 2
