"""Tests for the OTP endpoints."""

from tests.mocks.models import ALICE, BOB, extract_code


class TestSendAudioOtp:
    def test_success(self, client, identity, email_transport):
        token = identity.issue_token("carol@example.com")
        resp = client.post(
            "/send-audio-otp",
            json={"email": "carol@example.com", "idToken": token},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["message"] == "OTP sent"
        assert data["channel"] == "email"
        assert data["expiresInSeconds"] == 300
        assert email_transport.last.to == "carol@example.com"

    def test_token_for_other_email_rejected(self, client, identity, email_transport):
        token = identity.issue_token("mallory@example.com")
        resp = client.post(
            "/send-audio-otp",
            json={"email": "carol@example.com", "idToken": token},
        )
        assert resp.status_code == 403
        assert resp.json()["error"] == "forbidden"
        assert email_transport.sent == []

    def test_garbage_token_rejected(self, client):
        resp = client.post(
            "/send-audio-otp",
            json={"email": "carol@example.com", "idToken": "not-a-jwt"},
        )
        assert resp.status_code == 401

    def test_delivery_failure(self, client, identity, email_transport):
        email_transport.fail = True
        token = identity.issue_token("carol@example.com")
        resp = client.post(
            "/send-audio-otp",
            json={"email": "carol@example.com", "idToken": token},
        )
        assert resp.status_code == 502
        assert resp.json()["error"] == "upstream_failure"

    def test_missing_fields(self, client):
        resp = client.post("/send-audio-otp", json={"email": "carol@example.com"})
        assert resp.status_code == 422


class TestVerifyAudioOtp:
    def _send(self, client, identity, email_transport) -> str:
        token = identity.issue_token("carol@example.com")
        resp = client.post(
            "/send-audio-otp",
            json={"email": "carol@example.com", "idToken": token},
        )
        assert resp.status_code == 200
        return extract_code(email_transport.last.body)

    def test_verify_success(self, client, identity, email_transport):
        code = self._send(client, identity, email_transport)
        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": code})
        assert resp.status_code == 200
        assert resp.json()["verified"] is True

    def test_code_is_consumed(self, client, identity, email_transport):
        code = self._send(client, identity, email_transport)
        client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": code})

        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": code})
        assert resp.status_code == 404

    def test_wrong_code_then_right_code(self, client, identity, email_transport):
        code = self._send(client, identity, email_transport)
        wrong = "000000" if code != "000000" else "111111"

        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": wrong})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid OTP"

        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": code})
        assert resp.status_code == 200

    def test_overlong_code_is_invalid_not_malformed(self, client, identity, email_transport):
        code = self._send(client, identity, email_transport)

        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": code + "0"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid OTP"

        # Still pending
        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": code})
        assert resp.status_code == 200

    def test_expired(self, client, identity, email_transport, clock):
        code = self._send(client, identity, email_transport)
        clock.advance(seconds=301)

        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": code})
        assert resp.status_code == 401
        assert "expired" in resp.json()["message"]

    def test_no_pending_code(self, client):
        resp = client.post("/verify-audio-otp", json={"email": "carol@example.com", "otp": "123456"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"


class TestLanguageOtp:
    def test_requires_authentication(self, client):
        resp = client.post("/send-lang-otp", json={"language": "hi"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Missing or invalid token"

    def test_french_by_email(self, client, register, auth_headers, email_transport, sms_transport):
        register(**BOB)
        resp = client.post("/send-lang-otp", json={"language": "fr"}, headers=auth_headers(BOB["email"]))
        assert resp.status_code == 200
        assert resp.json()["channel"] == "email"
        assert email_transport.last.to == BOB["email"]
        assert sms_transport.sent == []

    def test_missing_phone(self, client, register, auth_headers):
        register(**BOB)
        resp = client.post("/send-lang-otp", json={"language": "es"}, headers=auth_headers(BOB["email"]))
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_unsupported_language(self, client, register, auth_headers):
        register(**ALICE)
        resp = client.post("/send-lang-otp", json={"language": "kl"}, headers=auth_headers(ALICE["email"]))
        assert resp.status_code == 400
        assert "supported" in resp.json()["details"]

    def test_unregistered_user(self, client, auth_headers):
        resp = client.post("/send-lang-otp", json={"language": "hi"}, headers=auth_headers("ghost@example.com"))
        assert resp.status_code == 404

    def test_wrong_code_keeps_language(self, client, register, auth_headers, sms_transport):
        register(**ALICE)
        headers = auth_headers(ALICE["email"])
        client.post("/send-lang-otp", json={"language": "zh"}, headers=headers)
        code = extract_code(sms_transport.last.body)
        wrong = "000000" if code != "000000" else "111111"

        resp = client.post("/verify-lang-otp", json={"otp": wrong}, headers=headers)
        assert resp.status_code == 401

        user = client.get("/loggedinuser", params={"email": ALICE["email"]}).json()
        assert user["language"] == "en"

    def test_overlong_code_is_invalid(self, client, register, auth_headers, sms_transport):
        register(**ALICE)
        headers = auth_headers(ALICE["email"])
        client.post("/send-lang-otp", json={"language": "hi"}, headers=headers)
        code = extract_code(sms_transport.last.body)

        resp = client.post("/verify-lang-otp", json={"otp": code + "12"}, headers=headers)
        assert resp.status_code == 401
        assert resp.json()["error"] == "unauthenticated"


class TestEmailCase:
    """Token claims and request bodies agree on the stored address form."""

    MIXED = "Carol@Example.COM"

    def test_audio_otp_with_mixed_case_domain(self, client, identity, email_transport):
        resp = client.post(
            "/send-audio-otp",
            json={"email": self.MIXED, "idToken": identity.issue_token(self.MIXED)},
        )
        assert resp.status_code == 200
        assert email_transport.last.to == "Carol@example.com"

        code = extract_code(email_transport.last.body)
        resp = client.post("/verify-audio-otp", json={"email": self.MIXED, "otp": code})
        assert resp.status_code == 200

    def test_registered_user_can_post_and_change_language(
        self, client, register, auth_headers, sms_transport
    ):
        register(email=self.MIXED, username="carol", phone="+15551234567")
        headers = auth_headers(self.MIXED)

        assert client.post("/post", json={"post": "hi"}, headers=headers).status_code == 201
        assert client.get("/tweet-limit", headers=headers).json()["used"] == 1

        resp = client.post("/send-lang-otp", json={"language": "es"}, headers=headers)
        assert resp.status_code == 200
        assert sms_transport.last.to == "+15551234567"

    def test_lookups_accept_the_typed_address(self, client, register):
        register(email=self.MIXED, username="carol")

        resp = client.get("/loggedinuser", params={"email": self.MIXED})
        assert resp.status_code == 200
        assert resp.json()["email"] == "Carol@example.com"

        resp = client.patch(f"/userupdate/{self.MIXED}", json={"bio": "hey"})
        assert resp.status_code == 200
        assert len(client.get("/user").json()) == 1
