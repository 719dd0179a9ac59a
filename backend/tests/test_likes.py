"""Tests for likes, matches on mutual YES, and super-likes."""
from gomeal.models.like import Like, Match
from gomeal.models.user import User
from tests.conftest import create_member, make_match, register_admin


def _like(client, sender, target, answer="YES"):
    return client.post("/api/likes", json={"targetUserId": target["user"]["id"], "answer": answer},
                       headers=sender["headers"])


class TestSubmitLike:

    def test_one_sided_yes_is_not_a_match(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        resp = _like(client, a, b)
        assert resp.status_code == 200
        assert resp.json()["matched"] is False

    def test_mutual_yes_creates_one_match(self, client, db):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        _like(client, a, b)
        resp = _like(client, b, a)
        body = resp.json()
        assert body["matched"] is True
        assert body["matchId"]
        assert body["partnerName"] == "A"

        matches = db.query(Match).all()
        assert len(matches) == 1
        assert matches[0].user1_id < matches[0].user2_id

    def test_yes_then_no_is_not_a_match(self, client, db):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        _like(client, a, b)
        assert _like(client, b, a, "NO").json()["matched"] is False
        assert db.query(Match).count() == 0

    def test_duplicate_answer_is_rejected(self, client, db):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        assert _like(client, a, b).status_code == 200
        resp = _like(client, a, b)
        assert resp.status_code == 409
        assert db.query(Like).count() == 1

    def test_cannot_like_self(self, client):
        a = create_member(client, "a@example.com", "A")
        assert _like(client, a, a).status_code == 400

    def test_target_must_share_community(self, client):
        a = create_member(client, "a@example.com", "A")
        resp = client.post("/api/likes", json={"targetUserId": "ghost", "answer": "YES"}, headers=a["headers"])
        assert resp.status_code == 400

    def test_invalid_answer(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        assert _like(client, a, b, "MAYBE").status_code == 400

    def test_new_match_notifies_line_linked_users(self, client, db, line_client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        db.query(User).filter(User.user_id == a["user"]["id"]).update({User.line_user_id: "U-line-a"})
        db.commit()

        make_match(client, a, b)
        assert [to for to, _ in line_client.pushes] == ["U-line-a"]
        assert "B" in line_client.pushes[0][1][0]["text"]


class TestUpdateLike:

    def test_change_no_to_yes_creates_match(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        _like(client, a, b, "NO")
        _like(client, b, a, "YES")
        resp = client.patch(f"/api/likes/{b['user']['id']}", json={"answer": "YES"}, headers=a["headers"])
        assert resp.status_code == 200
        assert resp.json()["matched"] is True

    def test_cannot_switch_to_no_when_matched(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        make_match(client, a, b)
        resp = client.patch(f"/api/likes/{b['user']['id']}", json={"answer": "NO"}, headers=a["headers"])
        assert resp.status_code == 400

    def test_update_without_answer(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        resp = client.patch(f"/api/likes/{b['user']['id']}", json={"answer": "YES"}, headers=a["headers"])
        assert resp.status_code == 404


class TestNextCandidate:

    def test_returns_unanswered_member(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        resp = client.get("/api/likes/next-candidate", headers=a["headers"])
        assert resp.json()["candidate"]["id"] == b["user"]["id"]

    def test_none_left(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        _like(client, a, b, "NO")
        assert client.get("/api/likes/next-candidate", headers=a["headers"]).json() == {"candidate": None}

    def test_admins_are_never_candidates(self, client):
        a = create_member(client, "a@example.com", "A")
        admin = register_admin(client)
        client.post("/api/dev/approve-me", headers=admin["headers"])
        assert client.get("/api/likes/next-candidate", headers=a["headers"]).json()["candidate"] is None


class TestSuperLikes:

    def test_super_like_counts_as_yes_and_matches(self, client, db):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        _like(client, b, a)
        resp = client.post("/api/super-likes", json={"targetUserId": b["user"]["id"]}, headers=a["headers"])
        assert resp.status_code == 200
        assert resp.json()["superLike"]["toUserId"] == b["user"]["id"]
        assert resp.json()["like"]["matched"] is True
        assert db.query(Match).count() == 1

    def test_super_like_overrides_previous_no(self, client, db):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        _like(client, a, b, "NO")
        client.post("/api/super-likes", json={"targetUserId": b["user"]["id"]}, headers=a["headers"])
        like = db.query(Like).filter(Like.from_user_id == a["user"]["id"]).one()
        assert like.answer.value == "YES"

    def test_one_super_like_per_sender(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        c = create_member(client, "c@example.com", "C")
        client.post("/api/super-likes", json={"targetUserId": b["user"]["id"]}, headers=a["headers"])
        client.post("/api/super-likes", json={"targetUserId": b["user"]["id"]}, headers=a["headers"])
        client.post("/api/super-likes", json={"targetUserId": c["user"]["id"]}, headers=a["headers"])

        sent = client.get("/api/super-likes", headers=a["headers"]).json()["sent"]
        assert sent["toUserId"] == c["user"]["id"]
        assert client.get("/api/super-likes", headers=b["headers"]).json()["received"] == []
        received = client.get("/api/super-likes", headers=c["headers"]).json()["received"]
        assert [r["fromUserId"] for r in received] == [a["user"]["id"]]

    def test_delete_super_like(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        client.post("/api/super-likes", json={"targetUserId": b["user"]["id"]}, headers=a["headers"])
        assert client.delete(f"/api/super-likes/{b['user']['id']}", headers=a["headers"]).status_code == 204
        assert client.delete(f"/api/super-likes/{b['user']['id']}", headers=a["headers"]).status_code == 404
        assert client.get("/api/super-likes", headers=a["headers"]).json()["sent"] is None
