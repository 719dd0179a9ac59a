"""Tests for the member list and the relationship board."""
from tests.conftest import create_member, make_match, register_admin, register_user


def _like(client, user, target, answer="YES"):
    return client.post("/api/likes", json={"targetUserId": target["user"]["id"], "answer": answer},
                       headers=user["headers"])


class TestMembers:

    def test_lists_other_members_with_my_answer(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        c = create_member(client, "c@example.com", "C")
        register_admin(client)
        _like(client, a, b, "YES")
        _like(client, a, c, "NO")

        members = client.get("/api/members/", headers=a["headers"]).json()["members"]
        by_id = {m["id"]: m for m in members}
        assert a["user"]["id"] not in by_id
        assert by_id[b["user"]["id"]]["myLikeStatus"] == "YES"
        assert by_id[c["user"]["id"]]["myLikeStatus"] == "NO"
        assert all(not m["isMutualLike"] for m in members)
        assert len(members) == 2

    def test_mutual_like_flag(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        make_match(client, a, b)
        members = client.get("/api/members/", headers=a["headers"]).json()["members"]
        assert members[0]["isMutualLike"] is True

    def test_mutual_like_hidden_without_availability(self, client):
        a = create_member(client, "a@example.com", "A", with_availability=False)
        b = create_member(client, "b@example.com", "B")
        make_match(client, a, b)
        members = client.get("/api/members/", headers=a["headers"]).json()["members"]
        assert members[0]["isMutualLike"] is False

    def test_non_member_sees_empty_list(self, client):
        create_member(client, "a@example.com", "A")
        outsider = register_user(client, "out@example.com", "Out")
        assert client.get("/api/members/", headers=outsider["headers"]).json() == {"members": []}


class TestRelationships:

    def test_board_sections(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        c = create_member(client, "c@example.com", "C")
        d = create_member(client, "d@example.com", "D")
        match_id = make_match(client, a, b)
        _like(client, a, c, "YES")
        _like(client, c, a, "NO")
        _like(client, a, d, "NO")

        board = client.get("/api/members/relationships", headers=a["headers"]).json()
        assert [card["matchId"] for card in board["matches"]] == [match_id]
        assert board["matches"][0]["canToggleToNo"] is False

        awaiting = board["awaitingResponse"]
        assert [card["targetUserId"] for card in awaiting] == [c["user"]["id"]]
        assert awaiting[0]["partnerAnswer"] == "NO"
        assert awaiting[0]["canToggleToNo"] is True
        assert awaiting[0]["likedByMe"] is True

        rejected = board["rejected"]
        assert [card["targetUserId"] for card in rejected] == [d["user"]["id"]]
        assert rejected[0]["partnerAnswer"] == "UNANSWERED"
        assert rejected[0]["canToggleToYes"] is True

    def test_super_like_replaces_heart(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        client.post("/api/super-likes", json={"targetUserId": b["user"]["id"]}, headers=a["headers"])
        card = client.get("/api/members/relationships", headers=a["headers"]).json()["awaitingResponse"][0]
        assert card["superLikedByMe"] is True
        assert card["likedByMe"] is False

    def test_admin_gets_empty_board(self, client):
        admin = register_admin(client)
        board = client.get("/api/members/relationships", headers=admin["headers"]).json()
        assert board == {"matches": [], "awaitingResponse": [], "rejected": []}
