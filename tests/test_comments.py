# tests/test_comments.py
from app.comment.services import extract_mentions


def post(client, headers, tid, **body):
    r = client.post(f"/tickets/{tid}/comments", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_post_and_list_in_order(client, alice, bob, make_ticket):
    tid = make_ticket(alice[0])["id"]
    first = post(client, bob[0], tid, content="  Happens to me too  ")
    second = post(client, alice[0], tid, content="Thanks, looking into it")

    r = client.get(f"/tickets/{tid}/comments")
    assert r.status_code == 200
    rows = r.json()
    assert [c["id"] for c in rows] == [first["id"], second["id"]]
    assert rows[0]["content"] == "Happens to me too"
    assert rows[0]["profile"]["username"] == "bob"


def test_empty_comment_rejected_unless_image(client, alice, make_ticket):
    tid = make_ticket(alice[0])["id"]
    r = client.post(f"/tickets/{tid}/comments", json={"content": "   "}, headers=alice[0])
    assert r.status_code == 422

    with_image = post(client, alice[0], tid, content="", image_url="https://cdn.tracker.dev/shot.png")
    assert with_image["image_url"] == "https://cdn.tracker.dev/shot.png"


def test_comment_requires_sign_in(client, alice, make_ticket):
    tid = make_ticket(alice[0])["id"]
    assert client.post(f"/tickets/{tid}/comments", json={"content": "hi"}).status_code == 401


def test_replies_nest_under_parent(client, alice, bob, make_ticket):
    tid = make_ticket(alice[0])["id"]
    root = post(client, alice[0], tid, content="Which browser?")
    reply = post(client, bob[0], tid, content="Firefox 130", parent_id=root["id"])
    nested = post(client, alice[0], tid, content="Thanks!", parent_id=reply["id"])

    tree = client.get(f"/tickets/{tid}/comments").json()
    assert len(tree) == 1
    assert tree[0]["replies"][0]["id"] == reply["id"]
    assert tree[0]["replies"][0]["replies"][0]["id"] == nested["id"]

    flat = client.get(f"/tickets/{tid}/comments", params={"tree": "false"}).json()
    assert [c["id"] for c in flat] == [root["id"], reply["id"], nested["id"]]
    assert all(c["replies"] == [] for c in flat)


def test_parent_must_belong_to_same_ticket(client, alice, make_ticket):
    one = make_ticket(alice[0], title="First ticket")["id"]
    two = make_ticket(alice[0], title="Second ticket")["id"]
    elsewhere = post(client, alice[0], one, content="On ticket one")

    r = client.post(f"/tickets/{two}/comments", json={"content": "reply", "parent_id": elsewhere["id"]}, headers=alice[0])
    assert r.status_code == 400
    r = client.post(f"/tickets/{two}/comments", json={"content": "reply", "parent_id": 9999}, headers=alice[0])
    assert r.status_code == 400


def test_delete_own_comment_removes_replies(client, alice, bob, make_ticket):
    tid = make_ticket(alice[0])["id"]
    root = post(client, bob[0], tid, content="Original")
    post(client, alice[0], tid, content="Reply", parent_id=root["id"])

    assert client.delete(f"/comments/{root['id']}", headers=alice[0]).status_code == 403
    assert client.delete(f"/comments/{root['id']}", headers=bob[0]).status_code == 204
    assert client.get(f"/tickets/{tid}/comments").json() == []
    assert client.delete(f"/comments/{root['id']}", headers=bob[0]).status_code == 404


def test_reactions_toggle_and_tally(client, alice, bob, make_ticket):
    tid = make_ticket(alice[0])["id"]
    cid = post(client, alice[0], tid, content="Fixed in the next release")["id"]

    r = client.post(f"/comments/{cid}/reactions", json={"emoji": "🎉"}, headers=alice[0])
    assert r.json()["reactions"] == [{"emoji": "🎉", "count": 1, "reacted": True}]

    client.post(f"/comments/{cid}/reactions", json={"emoji": "🎉"}, headers=bob[0])
    client.post(f"/comments/{cid}/reactions", json={"emoji": "👍"}, headers=bob[0])

    rows = client.get(f"/tickets/{tid}/comments", headers=alice[0]).json()
    assert rows[0]["reactions"] == [
        {"emoji": "🎉", "count": 2, "reacted": True},
        {"emoji": "👍", "count": 1, "reacted": False},
    ]

    # toggling again removes bob's party popper
    r = client.post(f"/comments/{cid}/reactions", json={"emoji": "🎉"}, headers=bob[0])
    assert r.json()["reactions"][0] == {"emoji": "🎉", "count": 1, "reacted": False}


def test_mentions_are_resolved(client, alice, bob, make_ticket):
    tid = make_ticket(alice[0])["id"]
    comment = post(client, alice[0], tid, content="@bob can you check? cc @alice @nobody")
    assert comment["mentions"] == ["bob"]

    mine = client.get("/mentions", headers=bob[0]).json()
    assert [c["id"] for c in mine] == [comment["id"]]
    assert client.get("/mentions", headers=alice[0]).json() == []


def test_extract_mentions():
    assert extract_mentions("hey @bob and @carol_2.") == {"bob", "carol_2"}
    assert extract_mentions("mail me at bob@tracker.dev") == set()
    assert extract_mentions("@ab is too short") == set()


def test_read_receipts(client, alice, bob, make_ticket):
    tid = make_ticket(alice[0])["id"]
    own = post(client, alice[0], tid, content="My own note")
    post(client, bob[0], tid, content="First from bob")
    post(client, bob[0], tid, content="Second from bob")

    assert client.get(f"/tickets/{tid}/comments/unread", headers=alice[0]).json()["unread"] == 2

    r = client.post(f"/tickets/{tid}/comments/read", headers=alice[0])
    assert r.json() == {"marked": 2, "unread": 0}

    # idempotent
    r = client.post(f"/tickets/{tid}/comments/read", json={"comment_ids": None}, headers=alice[0])
    assert r.json() == {"marked": 0, "unread": 0}

    rows = client.get(f"/tickets/{tid}/comments", params={"tree": "false"}).json()
    by_id = {c["id"]: c for c in rows}
    assert by_id[own["id"]]["read_by"] == 0
    assert [c["read_by"] for c in rows if c["user_id"] == bob[1]["user_id"]] == [1, 1]


def test_read_receipts_for_selected_comments(client, alice, bob, make_ticket):
    tid = make_ticket(alice[0])["id"]
    first = post(client, bob[0], tid, content="one")
    post(client, bob[0], tid, content="two")

    r = client.post(f"/tickets/{tid}/comments/read", json={"comment_ids": [first["id"]]}, headers=alice[0])
    assert r.json() == {"marked": 1, "unread": 1}
