"""
tests/test_end_to_end.py -- Two users, one post, the full ownership lifecycle.

U registers, logs in and creates P. U edits P. V (a second user) cannot
delete P. U deletes P, and P no longer appears in the public listing.
"""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


def test_post_lifecycle_across_two_users(client: TestClient, user_factory) -> None:
    tag = uuid.uuid4().hex[:8]
    u = user_factory(name="Owner U")
    v = user_factory(name="Other V")

    created = client.post("/posts", json={"title": f"P {tag}", "body": "first draft"}, headers=u.auth)
    assert created.status_code == 201
    post_id = created.json()["post"]["id"]

    listed = client.get("/posts", params={"search": tag}).json()
    assert [p["id"] for p in listed["posts"]] == [post_id]
    assert listed["posts"][0]["author"]["name"] == "Owner U"

    edited = client.put(f"/posts/{post_id}", json={"title": f"P {tag} v2", "body": "second draft"}, headers=u.auth)
    assert edited.status_code == 200
    assert edited.json()["updatedPost"]["body"] == "second draft"

    denied = client.delete(f"/posts/{post_id}", headers=v.auth)
    assert denied.status_code == 400
    assert denied.json()["message"] == "not authorized to delete this post or post not found"

    deleted = client.delete(f"/posts/{post_id}", headers=u.auth)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "post deleted successfully"

    after = client.get("/posts", params={"search": tag}).json()
    assert after["posts"] == []
    assert after["totalPosts"] == 0


def test_logout_then_cookie_is_gone(client: TestClient, user_factory) -> None:
    u = user_factory()
    client.cookies.set("token", u.token, domain="testserver.local")
    assert client.get("/auth/me").status_code == 200

    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401
