"""Tests for the post endpoints and the /tweet-limit summary."""

from tests.mocks.models import ALICE, BOB


def _subscribe(client, email: str, plan: str) -> None:
    resp = client.post(
        "/payment-success",
        json={"email": email, "plan": plan, "paymentId": "pay_test"},
    )
    assert resp.status_code == 200


class TestCreatePost:
    def test_requires_authentication(self, client):
        resp = client.post("/post", json={"post": "hello"})
        assert resp.status_code == 401

    def test_free_user_gets_one_post(self, client, register, auth_headers):
        register(**ALICE)
        headers = auth_headers(ALICE["email"])

        first = client.post("/post", json={"post": "first"}, headers=headers)
        assert first.status_code == 201
        assert first.json()["email"] == ALICE["email"]

        second = client.post("/post", json={"post": "second"}, headers=headers)
        assert second.status_code == 403
        assert second.json()["message"] == "Tweet limit reached for your plan"
        assert second.json()["details"] == {"plan": "free", "limit": 1, "used": 1}

    def test_allowance_returns_after_30_days(self, client, register, auth_headers, clock):
        register(**ALICE)
        headers = auth_headers(ALICE["email"])
        client.post("/post", json={"post": "first"}, headers=headers)

        clock.advance(days=30, seconds=1)
        resp = client.post("/post", json={"post": "again"}, headers=headers)
        assert resp.status_code == 201

    def test_gold_user_unbounded(self, client, register, auth_headers):
        register(**ALICE)
        _subscribe(client, ALICE["email"], "gold")
        headers = auth_headers(ALICE["email"])

        for i in range(8):
            resp = client.post("/post", json={"post": f"#{i}"}, headers=headers)
            assert resp.status_code == 201

    def test_unregistered_author(self, client, auth_headers):
        resp = client.post("/post", json={"post": "hi"}, headers=auth_headers("ghost@example.com"))
        assert resp.status_code == 404


class TestListing:
    def test_newest_first(self, client, register, auth_headers, clock):
        register(**ALICE)
        register(**BOB)
        client.post("/post", json={"post": "older"}, headers=auth_headers(ALICE["email"]))
        clock.advance(minutes=5)
        client.post("/post", json={"post": "newer"}, headers=auth_headers(BOB["email"]))

        bodies = [p["post"] for p in client.get("/post").json()]
        assert bodies == ["newer", "older"]

    def test_user_posts(self, client, register, auth_headers):
        register(**ALICE)
        register(**BOB)
        client.post("/post", json={"post": "mine"}, headers=auth_headers(ALICE["email"]))
        client.post("/post", json={"post": "theirs"}, headers=auth_headers(BOB["email"]))

        resp = client.get("/userpost", params={"email": ALICE["email"]})
        assert [p["post"] for p in resp.json()] == ["mine"]


class TestVoicePost:
    def test_voice_post_skips_quota(self, client, register, auth_headers):
        register(**ALICE)
        client.post("/post", json={"post": "first"}, headers=auth_headers(ALICE["email"]))

        resp = client.post(
            "/voice-tweet",
            json={"email": ALICE["email"], "audioUrl": "https://cdn.example.com/a.mp3"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["data"]["audio"] == "https://cdn.example.com/a.mp3"
        assert data["data"]["post"] == ""

    def test_audio_url_required(self, client):
        resp = client.post("/voice-tweet", json={"email": ALICE["email"]})
        assert resp.status_code == 422


class TestTweetLimit:
    def test_free_summary(self, client, register, auth_headers):
        register(**ALICE)
        headers = auth_headers(ALICE["email"])
        client.post("/post", json={"post": "one"}, headers=headers)

        data = client.get("/tweet-limit", headers=headers).json()
        assert data == {"plan": "free", "limit": 1, "used": 1, "left": 0, "tweetsLeft": 0}

    def test_gold_summary_is_unlimited(self, client, register, auth_headers):
        register(**ALICE)
        _subscribe(client, ALICE["email"], "gold")

        data = client.get("/tweet-limit", headers=auth_headers(ALICE["email"])).json()
        assert data["plan"] == "gold"
        assert data["limit"] == "unlimited"
        assert data["tweetsLeft"] == "unlimited"

    def test_requires_authentication(self, client):
        assert client.get("/tweet-limit").status_code == 401
