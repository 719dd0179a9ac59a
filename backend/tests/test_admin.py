"""Tests for admin-only member management."""
from gomeal.config import get_settings
from gomeal.main import app
from gomeal.models.like import Like, Match
from gomeal.models.user import User
from tests.conftest import create_member, join_default_community, make_match, register_admin, register_user


def _manual_approval():
    return get_settings().model_copy(update={"AUTO_APPROVE_MEMBERS": False})


class TestAdminAccess:

    def test_member_cannot_use_admin_routes(self, client):
        member = create_member(client, "m@example.com")
        assert client.get("/api/admin/join-requests", headers=member["headers"]).status_code == 403

    def test_admin_login(self, client):
        register_admin(client, "boss@example.com")
        resp = client.post("/api/admin/login", json={"email": "boss@example.com", "password": "password123"})
        assert resp.status_code == 200
        assert resp.json()["user"]["isAdmin"] is True

    def test_admin_login_rejects_members(self, client):
        register_user(client, "m@example.com")
        resp = client.post("/api/admin/login", json={"email": "m@example.com", "password": "password123"})
        assert resp.status_code == 403


class TestJoinRequests:

    def test_approve_pending_request(self, client):
        app.dependency_overrides[get_settings] = _manual_approval
        admin = register_admin(client)
        user = register_user(client, "p@example.com", name="Pending")
        join_default_community(client, user["headers"])

        requests = client.get("/api/admin/join-requests", headers=admin["headers"]).json()
        assert [r["email"] for r in requests] == ["p@example.com"]

        resp = client.post(f"/api/admin/join-requests/{requests[0]['id']}/approve", headers=admin["headers"])
        assert resp.status_code == 200
        assert resp.json()["status"] == "APPROVED"
        assert client.get("/api/community/status", headers=user["headers"]).json()["status"] == "APPROVED"
        assert client.get("/api/admin/join-requests", headers=admin["headers"]).json() == []

    def test_reject_pending_request(self, client):
        app.dependency_overrides[get_settings] = _manual_approval
        admin = register_admin(client)
        user = register_user(client, "p@example.com")
        membership = join_default_community(client, user["headers"])

        resp = client.post(f"/api/admin/join-requests/{membership['id']}/reject", headers=admin["headers"])
        assert resp.json()["status"] == "REJECTED"
        assert client.get("/api/community/status", headers=user["headers"]).json()["status"] == "REJECTED"

    def test_approve_unknown_request(self, client):
        admin = register_admin(client)
        assert client.post("/api/admin/join-requests/missing/approve", headers=admin["headers"]).status_code == 404


class TestMemberManagement:

    def test_promote(self, client):
        admin = register_admin(client)
        user = register_user(client, "u@example.com")
        resp = client.post("/api/admin/promote", json={"userId": user["user"]["id"]}, headers=admin["headers"])
        assert resp.status_code == 200
        assert resp.json()["isAdmin"] is True

    def test_remove_member_drops_likes_and_matches(self, client, db):
        admin = register_admin(client)
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        make_match(client, a, b)

        resp = client.post("/api/admin/remove-member", json={"userId": a["user"]["id"]}, headers=admin["headers"])
        assert resp.status_code == 200
        assert resp.json() == {"removed": 1}
        assert db.query(Match).count() == 0
        assert db.query(Like).count() == 0
        assert client.get("/api/community/status", headers=a["headers"]).json()["status"] == "UNAPPLIED"

    def test_delete_member(self, client, db):
        admin = register_admin(client)
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        make_match(client, a, b)

        resp = client.delete(f"/api/admin/members/{a['user']['id']}", headers=admin["headers"])
        assert resp.status_code == 204
        assert db.query(User).filter(User.user_id == a["user"]["id"]).first() is None
        assert db.query(Match).count() == 0

    def test_admin_cannot_delete_self(self, client):
        admin = register_admin(client)
        resp = client.delete(f"/api/admin/members/{admin['user']['id']}", headers=admin["headers"])
        assert resp.status_code == 400
