"""Tests for joining the community and membership status."""
from gomeal.config import get_settings
from gomeal.main import app
from tests.conftest import DEFAULT_COMMUNITY, create_member, join_default_community, register_user


class TestJoinCommunity:

    def test_status_before_join(self, client):
        user = register_user(client, "new@example.com")
        resp = client.get("/api/community/status", headers=user["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"status": "UNAPPLIED", "communityId": None, "communityName": None}

    def test_join_auto_approves(self, client):
        user = register_user(client, "a@example.com")
        membership = join_default_community(client, user["headers"])
        assert membership["status"] == "APPROVED"
        assert membership["communityName"] == "KING"

        status = client.get("/api/community/status", headers=user["headers"]).json()
        assert status["status"] == "APPROVED"
        assert status["communityId"] == membership["communityId"]

    def test_join_is_idempotent(self, client):
        user = register_user(client, "a@example.com")
        first = join_default_community(client, user["headers"])
        second = join_default_community(client, user["headers"])
        assert first["id"] == second["id"]

    def test_join_pending_without_auto_approve(self, client):
        app.dependency_overrides[get_settings] = lambda: get_settings().model_copy(
            update={"AUTO_APPROVE_MEMBERS": False}
        )
        user = register_user(client, "p@example.com")
        assert join_default_community(client, user["headers"])["status"] == "PENDING"

    def test_join_unknown_code(self, client):
        user = register_user(client, "a@example.com")
        resp = client.post("/api/community/join", json={"communityName": "KING", "communityCode": "NOPECODE"},
                           headers=user["headers"])
        assert resp.status_code == 404

    def test_join_name_mismatch(self, client):
        user = register_user(client, "a@example.com")
        resp = client.post("/api/community/join", json={"communityName": "QUEEN", "communityCode": "KINGCODE"},
                           headers=user["headers"])
        assert resp.status_code == 400

    def test_join_code_must_be_eight_characters(self, client):
        user = register_user(client, "a@example.com")
        resp = client.post("/api/community/join", json={"communityName": "KING", "communityCode": "SHORT"},
                           headers=user["headers"])
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid input"

    def test_join_requires_auth(self, client):
        assert client.post("/api/community/join", json=DEFAULT_COMMUNITY).status_code == 401


class TestMembershipGate:

    def test_like_without_membership_is_join_required(self, client):
        user = register_user(client, "lonely@example.com")
        resp = client.post("/api/likes", json={"targetUserId": "someone", "answer": "YES"}, headers=user["headers"])
        assert resp.status_code == 400
        assert resp.json()["detail"]["action"] == "JOIN_REQUIRED"
        assert resp.json()["detail"]["status"] == "UNAPPLIED"


class TestReactionCounts:

    def test_counts_hearts_and_stars(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        c = create_member(client, "c@example.com", "C")
        community_id = client.get("/api/community/status", headers=a["headers"]).json()["communityId"]

        client.post("/api/likes", json={"targetUserId": a["user"]["id"], "answer": "YES"}, headers=b["headers"])
        client.post("/api/super-likes", json={"targetUserId": a["user"]["id"]}, headers=c["headers"])

        resp = client.get(f"/api/community/{community_id}/me/reaction-counts", headers=a["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"received": {"hearts": 2, "stars": 1}}

    def test_counts_unknown_community(self, client):
        a = create_member(client, "a@example.com", "A")
        resp = client.get("/api/community/not-a-community/me/reaction-counts", headers=a["headers"])
        assert resp.status_code == 404
