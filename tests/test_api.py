"""
HTTP tests against the FastAPI app with an in-memory database.
"""
import pytest
from fastapi.testclient import TestClient

from ecotrack import models
from ecotrack.ledger import Ledger
from ecotrack.main import app
from ecotrack.security import create_access_token


class TestUsers:

    def test_register_issues_token(self, client):
        r = client.post("/api/users/register", json={"email": "new@example.com", "password": "pw"})
        assert r.status_code == 201
        body = r.json()
        assert body["email"] == "new@example.com"
        assert body["token"]

    def test_register_twice_fails(self, client, auth_headers):
        auth_headers("dup@example.com")
        r = client.post("/api/users/register", json={"email": "dup@example.com", "password": "other"})
        assert r.status_code == 400
        assert r.json() == {"message": "User already exists"}

    def test_register_rejects_bad_email(self, client):
        r = client.post("/api/users/register", json={"email": "not-an-email", "password": "pw"})
        assert r.status_code == 400
        assert "message" in r.json()

    def test_login(self, client, auth_headers):
        auth_headers("me@example.com", "pw123")
        r = client.post("/api/users/login", json={"email": "me@example.com", "password": "pw123"})
        assert r.status_code == 200
        assert r.json()["token"]

    def test_login_wrong_password_issues_no_token(self, client, auth_headers):
        auth_headers("me@example.com", "pw123")
        r = client.post("/api/users/login", json={"email": "me@example.com", "password": "nope"})
        assert r.status_code == 401
        assert r.json() == {"message": "Invalid credentials"}

    def test_login_unknown_user(self, client):
        r = client.post("/api/users/login", json={"email": "ghost@example.com", "password": "pw"})
        assert r.status_code == 404

    def test_me(self, client, auth_headers):
        headers = auth_headers("me@example.com")
        r = client.get("/api/users/me", headers=headers)
        assert r.status_code == 200
        assert r.json() == {"email": "me@example.com", "points": 0}


class TestAuthRequired:

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/users/me"),
        ("get", "/api/waste"),
        ("post", "/api/waste"),
        ("get", "/api/rewards/points"),
        ("get", "/api/rewards/gifts"),
        ("post", "/api/rewards/redeem/1"),
        ("get", "/api/shipping"),
    ])
    def test_missing_token(self, client, method, path):
        r = getattr(client, method)(path)
        assert r.status_code == 401
        assert "message" in r.json()

    def test_expired_token(self, client, auth_headers):
        auth_headers("late@example.com")
        token = create_access_token("late@example.com", expires_minutes=-1)
        r = client.get("/api/rewards/points", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401
        assert r.json() == {"message": "Token expired."}

    def test_token_for_deleted_user(self, client):
        token = create_access_token("never-registered@example.com")
        r = client.get("/api/rewards/points", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401


class TestWaste:

    def test_submit_credits_points(self, client, auth_headers):
        headers = auth_headers()
        r = client.post("/api/waste", json={"wasteType": "Metal", "wasteAmount": 50}, headers=headers)
        assert r.status_code == 200
        body = r.json()
        assert body["message"] == "Waste entry added successfully and points updated."
        assert body["pointsEarned"] == 150
        assert body["totalPoints"] == 150

    def test_numeric_string_amount(self, client, auth_headers):
        headers = auth_headers()
        r = client.post("/api/waste", json={"wasteType": "Glass", "wasteAmount": "25"}, headers=headers)
        assert r.status_code == 200
        assert r.json()["pointsEarned"] == 50

    @pytest.mark.parametrize("payload", [
        {},
        {"wasteType": "Plastic"},
        {"wasteAmount": 10},
        {"wasteType": "Wood", "wasteAmount": 10},
        {"wasteType": "Plastic", "wasteAmount": "abc"},
        {"wasteType": "Plastic", "wasteAmount": 0},
        {"wasteType": "Plastic", "wasteAmount": -5},
        {"wasteType": "Plastic", "wasteAmount": 2.5},
        {"wasteType": "Metal", "wasteAmount": 10**19},
        {"wasteType": "Metal", "wasteAmount": 4e18},
        {"wasteType": "Plastic", "wasteAmount": "1" * 5000},
    ])
    def test_invalid_submission_is_rejected(self, client, auth_headers, payload):
        headers = auth_headers()
        r = client.post("/api/waste", json=payload, headers=headers)
        assert r.status_code == 400
        assert "message" in r.json()
        assert client.get("/api/rewards/points", headers=headers).json() == {"points": 0}

    def test_identity_comes_from_token(self, client, auth_headers):
        victim = auth_headers("victim@example.com")
        attacker = auth_headers("attacker@example.com")
        r = client.post(
            "/api/waste",
            json={"wasteType": "Paper", "wasteAmount": 10, "email": "victim@example.com"},
            headers=attacker,
        )
        assert r.status_code == 200
        assert client.get("/api/rewards/points", headers=attacker).json() == {"points": 10}
        assert client.get("/api/rewards/points", headers=victim).json() == {"points": 0}

    def test_history_empty_is_404(self, client, auth_headers):
        r = client.get("/api/waste", headers=auth_headers())
        assert r.status_code == 404
        assert r.json() == {"message": "No waste entries found for this user."}

    def test_history_newest_first(self, client, auth_headers):
        headers = auth_headers()
        client.post("/api/waste", json={"wasteType": "Plastic", "wasteAmount": 1}, headers=headers)
        client.post("/api/waste", json={"wasteType": "Metal", "wasteAmount": 2}, headers=headers)
        r = client.get("/api/waste", headers=headers)
        assert r.status_code == 200
        rows = r.json()
        assert [row["wasteType"] for row in rows] == ["Metal", "Plastic"]
        assert rows[0]["pointsEarned"] == 6
        assert rows[0]["wasteAmount"] == 2
        assert rows[0]["createdAt"]


class TestRewards:

    def test_gifts_lists_available_only(self, client, auth_headers, rewards):
        r = client.get("/api/rewards/gifts", headers=auth_headers())
        assert r.status_code == 200
        gifts = r.json()
        assert [g["name"] for g in gifts] == ["Seed Packet", "Reusable Water Bottle"]
        assert gifts[0]["pointsRequired"] == 50
        assert all(g["available"] for g in gifts)

    def test_gifts_empty_catalog(self, client, auth_headers):
        r = client.get("/api/rewards/gifts", headers=auth_headers())
        assert r.status_code == 404
        assert r.json() == {"message": "No rewards available."}

    def test_redeem_unknown_reward(self, client, auth_headers, rewards):
        r = client.post("/api/rewards/redeem/9999", headers=auth_headers())
        assert r.status_code == 404
        assert r.json() == {"message": "Reward not found."}

    @pytest.mark.parametrize("reward_id", ["0", "-1", "99999999999999999999", "abc"])
    def test_redeem_out_of_range_id(self, client, auth_headers, rewards, reward_id):
        r = client.post(f"/api/rewards/redeem/{reward_id}", headers=auth_headers())
        assert r.status_code == 400
        assert "message" in r.json()

    def test_redeem_insufficient_points(self, client, auth_headers, rewards):
        headers = auth_headers()
        client.post("/api/waste", json={"wasteType": "Plastic", "wasteAmount": 5}, headers=headers)
        r = client.post(f"/api/rewards/redeem/{rewards['Seed Packet']}", headers=headers)
        assert r.status_code == 400
        assert r.json() == {"message": "Insufficient points for this reward."}
        assert client.get("/api/rewards/points", headers=headers).json() == {"points": 5}

    def test_end_to_end_submit_redeem_reject(self, client, auth_headers, rewards, db):
        headers = auth_headers("flow@example.com")

        r = client.post("/api/waste", json={"wasteType": "Plastic", "wasteAmount": 100}, headers=headers)
        assert r.json()["totalPoints"] == 100

        r = client.post(f"/api/rewards/redeem/{rewards['Seed Packet']}", headers=headers)
        assert r.status_code == 200
        assert r.json() == {"message": "Reward redeemed successfully.", "totalPoints": 50}
        assert db.query(models.Redemption).filter(models.Redemption.user_email == "flow@example.com").count() == 1

        r = client.post(f"/api/rewards/redeem/{rewards['Reusable Water Bottle']}", headers=headers)
        assert r.status_code == 400
        assert client.get("/api/rewards/points", headers=headers).json() == {"points": 50}

        history = client.get("/api/rewards/redemptions", headers=headers).json()
        assert len(history) == 1
        assert history[0]["rewardName"] == "Seed Packet"
        assert history[0]["pointsSpent"] == 50


class TestShipping:

    ADDRESS = {
        "firstName": "Ada", "lastName": "Green", "address": "1 Compost Way",
        "city": "Portland", "state": "OR", "zip": "97201",
    }

    def test_add_and_list(self, client, auth_headers):
        headers = auth_headers()
        r = client.post("/api/shipping", json=self.ADDRESS, headers=headers)
        assert r.status_code == 201
        assert r.json()["message"] == "Shipping address added successfully."

        rows = client.get("/api/shipping", headers=headers).json()
        assert len(rows) == 1
        assert rows[0]["city"] == "Portland"
        assert rows[0]["firstName"] == "Ada"

    def test_addresses_are_private(self, client, auth_headers):
        client.post("/api/shipping", json=self.ADDRESS, headers=auth_headers("a@example.com"))
        assert client.get("/api/shipping", headers=auth_headers("b@example.com")).json() == []

    def test_missing_field(self, client, auth_headers):
        payload = dict(self.ADDRESS, city="  ")
        r = client.post("/api/shipping", json=payload, headers=auth_headers())
        assert r.status_code == 400


def test_education_is_public(client):
    r = client.get("/api/education")
    assert r.status_code == 200
    topics = [c["topic"] for c in r.json()["content"]]
    assert topics == ["Recycling Basics", "Composting", "Plastic Reduction"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "ecotrack"}


def test_unexpected_error_renders_json(client, auth_headers, monkeypatch):
    headers = auth_headers()

    def broken(self, email):
        raise RuntimeError("boom")

    monkeypatch.setattr(Ledger, "get_balance", broken)
    quiet = TestClient(app, raise_server_exceptions=False)
    r = quiet.get("/api/rewards/points", headers=headers)
    assert r.status_code == 500
    assert r.json() == {"message": "Internal server error."}
