"""Tests for the user registration and profile endpoints."""

from twiller.models import normalize_email
from tests.mocks.models import ALICE, BOB


class TestRegister:
    def test_register(self, client):
        resp = client.post("/register", json=ALICE)
        assert resp.status_code == 201
        data = resp.json()
        assert data["email"] == ALICE["email"]
        assert data["phone"] == ALICE["phone"]
        assert data["subscription"] == "free"
        assert data["language"] == "en"
        assert data["last_password_reset"] is None

    def test_duplicate_email(self, client, register):
        register(**ALICE)
        resp = client.post("/register", json=ALICE)
        assert resp.status_code == 409

    def test_username_taken(self, client, register):
        register(**ALICE)
        resp = client.post("/register", json={**BOB, "username": ALICE["username"]})
        assert resp.status_code == 409
        assert resp.json()["message"] == "Username already taken"

    def test_invalid_email(self, client):
        resp = client.post("/register", json={"email": "nope"})
        assert resp.status_code == 422


class TestLookup:
    def test_logged_in_user(self, client, register):
        register(**ALICE)
        resp = client.get("/loggedinuser", params={"email": ALICE["email"]})
        assert resp.status_code == 200
        assert resp.json()["username"] == "alice"

    def test_email_required(self, client):
        resp = client.get("/loggedinuser")
        assert resp.status_code == 400
        assert resp.json()["message"] == "Email required"

    def test_not_found(self, client):
        resp = client.get("/loggedinuser", params={"email": "ghost@example.com"})
        assert resp.status_code == 404

    def test_list_users(self, client, register):
        register(**ALICE)
        register(**BOB)
        emails = {u["email"] for u in client.get("/user").json()}
        assert emails == {ALICE["email"], BOB["email"]}


class TestUpdate:
    def test_update_profile(self, client, register):
        register(**ALICE)
        resp = client.patch(
            f"/userupdate/{ALICE['email']}",
            json={"bio": "hello", "location": "Pune"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["bio"] == "hello"
        assert data["location"] == "Pune"
        assert data["username"] == "alice"

    def test_update_creates_missing_profile(self, client):
        resp = client.patch("/userupdate/new%40example.com", json={"name": "New"})
        assert resp.status_code == 200
        assert resp.json()["email"] == "new@example.com"
        assert resp.json()["name"] == "New"

    def test_username_taken_by_other(self, client, register):
        register(**ALICE)
        register(**BOB)
        resp = client.patch(f"/userupdate/{BOB['email']}", json={"username": "alice"})
        assert resp.status_code == 409

    def test_keeping_own_username_is_fine(self, client, register):
        register(**ALICE)
        resp = client.patch(f"/userupdate/{ALICE['email']}", json={"username": "alice"})
        assert resp.status_code == 200


class TestNormalizeEmail:
    def test_domain_lowercased(self):
        assert normalize_email("Carol@Example.COM") == "Carol@example.com"

    def test_non_address_unchanged(self):
        assert normalize_email("+919876543210") == "+919876543210"

    def test_register_stores_canonical_form(self, client):
        resp = client.post("/register", json={"email": "Dave@EXAMPLE.com"})
        assert resp.status_code == 201
        assert resp.json()["email"] == "Dave@example.com"
