"""Tests for the group-meal lifecycle: capacity, invitations and participant transitions."""
from datetime import date, timedelta

from gomeal.models.user import User
from tests.conftest import assert_capacity_invariant, create_member, register_admin

MEAL_DATE = date.today() + timedelta(days=7)


def _create_meal(client, host, capacity=3, **overrides):
    body = {
        "title": "Friday ramen",
        "capacity": capacity,
        "schedule": {"date": MEAL_DATE.isoformat(), "timeBand": "LUNCH", "meetingTime": "12:00"},
    }
    body.update(overrides)
    resp = client.post("/api/group-meals/", json=body, headers=host["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()


def _invite(client, host, meal_id, *users):
    return client.post(f"/api/group-meals/{meal_id}/invite",
                       json={"userIds": [u["user"]["id"] for u in users]}, headers=host["headers"])


def _respond(client, user, meal_id, action):
    return client.post(f"/api/group-meals/{meal_id}/respond", json={"action": action}, headers=user["headers"])


class TestCreateGroupMeal:

    def test_create_nested(self, client):
        host = create_member(client, "host@example.com", "Host")
        meal = _create_meal(client, host, budget=1200)
        assert meal["status"] == "OPEN"
        assert meal["weekday"] == MEAL_DATE.strftime("%a").upper()
        assert meal["timeSlot"] == "DAY"
        assert meal["budget"] == "UNDER_1500"
        assert meal["schedule"]["meetingTime"] == "12:00"
        assert meal["joinedCount"] == 1
        assert meal["remainingSlots"] == 2
        assert meal["myStatus"] == "JOINED"
        assert meal["participants"][0]["isHost"] is True

    def test_create_flat(self, client):
        host = create_member(client, "host@example.com", "Host")
        resp = client.post("/api/group-meals/", json={
            "capacity": 4,
            "date": MEAL_DATE.isoformat(),
            "timeBand": "DINNER",
            "placeName": "Izakaya",
            "budget": "OVER_2000",
        }, headers=host["headers"])
        assert resp.status_code == 201
        body = resp.json()
        assert body["title"] == ""
        assert body["timeSlot"] == "NIGHT"
        assert body["schedule"]["place"]["name"] == "Izakaya"

    def test_capacity_bounds(self, client):
        host = create_member(client, "host@example.com", "Host")
        for capacity in (2, 11):
            resp = client.post("/api/group-meals/", json={
                "capacity": capacity, "schedule": {"date": MEAL_DATE.isoformat(), "timeBand": "LUNCH"},
            }, headers=host["headers"])
            assert resp.status_code == 400

    def test_meeting_time_outside_band(self, client):
        host = create_member(client, "host@example.com", "Host")
        resp = client.post("/api/group-meals/", json={
            "capacity": 3,
            "schedule": {"date": MEAL_DATE.isoformat(), "timeBand": "LUNCH", "meetingTime": "19:00"},
        }, headers=host["headers"])
        assert resp.status_code == 400

    def test_band_change_revalidates_stored_meeting_time(self, client):
        host = create_member(client, "host@example.com", "Host")
        meal = _create_meal(client, host)
        resp = client.patch(f"/api/group-meals/{meal['id']}", json={"schedule": {"timeBand": "DINNER"}},
                            headers=host["headers"])
        assert resp.status_code == 400
        detail = client.get(f"/api/group-meals/{meal['id']}", headers=host["headers"]).json()
        assert detail["timeSlot"] == "DAY"
        assert detail["schedule"]["meetingTime"] == "12:00"

        resp = client.patch(f"/api/group-meals/{meal['id']}",
                            json={"schedule": {"timeBand": "DINNER", "meetingTime": "19:30"}}, headers=host["headers"])
        assert resp.status_code == 200
        assert resp.json()["schedule"]["timeBand"] == "DINNER"
        assert resp.json()["schedule"]["meetingTime"] == "19:30"

    def test_meet_mode_requires_url(self, client):
        host = create_member(client, "host@example.com", "Host")
        resp = client.post("/api/group-meals/", json={
            "capacity": 3, "mode": "MEET", "schedule": {"date": MEAL_DATE.isoformat(), "timeBand": "LUNCH"},
        }, headers=host["headers"])
        assert resp.status_code == 400

    def test_list_and_filter_by_mode(self, client):
        host = create_member(client, "host@example.com", "Host")
        _create_meal(client, host)
        _create_meal(client, host, mode="MEET", meetUrl="https://meet.example.com/abc")
        assert len(client.get("/api/group-meals/", headers=host["headers"]).json()) == 2
        meet = client.get("/api/group-meals/?mode=MEET", headers=host["headers"]).json()
        assert [m["mode"] for m in meet] == ["MEET"]


class TestCapacity:

    def test_capacity_three_fills_then_rejects(self, client, db):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        c = create_member(client, "c@example.com", "C")
        d = create_member(client, "d@example.com", "D")
        meal = _create_meal(client, host, capacity=3)

        resp = _invite(client, host, meal["id"], b, c)
        assert resp.status_code == 200
        assert sorted(resp.json()["invitedUserIds"]) == sorted([b["user"]["id"], c["user"]["id"]])

        assert _respond(client, b, meal["id"], "ACCEPT").json()["status"] == "JOINED"
        result = _respond(client, c, meal["id"], "ACCEPT").json()
        assert result["groupMealStatus"] == "FULL"
        assert_capacity_invariant(db, meal["id"])

        resp = client.post(f"/api/group-meals/{meal['id']}/join", headers=d["headers"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "No remaining capacity"

    def test_invite_beyond_capacity(self, client):
        host = create_member(client, "host@example.com", "Host")
        guests = [create_member(client, f"g{i}@example.com", f"G{i}") for i in range(3)]
        meal = _create_meal(client, host, capacity=3)
        resp = _invite(client, host, meal["id"], *guests)
        assert resp.status_code == 400

    def test_reinvite_is_idempotent(self, client, db):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host, capacity=3)
        _invite(client, host, meal["id"], b)
        resp = _invite(client, host, meal["id"], b)
        assert resp.json()["invitedUserIds"] == []
        assert resp.json()["remainingSlots"] == 1
        assert_capacity_invariant(db, meal["id"])

    def test_leave_reopens_seat(self, client, db):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        c = create_member(client, "c@example.com", "C")
        meal = _create_meal(client, host, capacity=3)
        client.post(f"/api/group-meals/{meal['id']}/join", headers=b["headers"])
        assert client.post(f"/api/group-meals/{meal['id']}/join", headers=c["headers"]).json()["groupMealStatus"] == "FULL"

        resp = client.post(f"/api/group-meals/{meal['id']}/leave", headers=b["headers"])
        assert resp.json() == {"userId": b["user"]["id"], "status": "CANCELLED", "groupMealStatus": "OPEN"}
        assert_capacity_invariant(db, meal["id"])

    def test_capacity_cannot_drop_below_active(self, client):
        host = create_member(client, "host@example.com", "Host")
        guests = [create_member(client, f"g{i}@example.com", f"G{i}") for i in range(3)]
        meal = _create_meal(client, host, capacity=5)
        _invite(client, host, meal["id"], *guests)
        resp = client.patch(f"/api/group-meals/{meal['id']}", json={"capacity": 3}, headers=host["headers"])
        assert resp.status_code == 400
        resp = client.patch(f"/api/group-meals/{meal['id']}", json={"capacity": 4}, headers=host["headers"])
        assert resp.status_code == 200
        assert resp.json()["status"] == "FULL"


class TestHostRules:

    def test_host_cannot_invite_self(self, client):
        host = create_member(client, "host@example.com", "Host")
        meal = _create_meal(client, host)
        assert _invite(client, host, meal["id"], host).status_code == 400

    def test_host_cannot_decline_or_leave(self, client):
        host = create_member(client, "host@example.com", "Host")
        meal = _create_meal(client, host)
        assert _respond(client, host, meal["id"], "DECLINE").status_code == 400
        assert client.post(f"/api/group-meals/{meal['id']}/leave", headers=host["headers"]).status_code == 400
        resp = client.patch(f"/api/group-meals/{meal['id']}/participant/status", json={"status": "CANCELLED"},
                            headers=host["headers"])
        assert resp.status_code == 400

    def test_only_host_invites(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        c = create_member(client, "c@example.com", "C")
        meal = _create_meal(client, host)
        assert _invite(client, b, meal["id"], c).status_code == 403

    def test_admins_cannot_be_invited(self, client):
        host = create_member(client, "host@example.com", "Host")
        admin = register_admin(client)
        meal = _create_meal(client, host)
        assert _invite(client, host, meal["id"], admin).status_code == 400

    def test_admin_can_delete_any_meal(self, client):
        host = create_member(client, "host@example.com", "Host")
        admin = register_admin(client)
        meal = _create_meal(client, host)
        assert client.delete(f"/api/group-meals/{meal['id']}", headers=admin["headers"]).status_code == 204
        assert client.get(f"/api/group-meals/{meal['id']}", headers=host["headers"]).status_code == 404

    def test_member_cannot_delete(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host)
        assert client.delete(f"/api/group-meals/{meal['id']}", headers=b["headers"]).status_code == 403


class TestParticipantTransitions:

    def test_decline_invitation(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host)
        _invite(client, host, meal["id"], b)
        assert _respond(client, b, meal["id"], "DECLINE").json()["status"] == "DECLINED"
        detail = client.get(f"/api/group-meals/{meal['id']}", headers=b["headers"]).json()
        assert detail["myStatus"] == "NONE"
        assert detail["remainingSlots"] == 2

    def test_decline_without_invitation(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host)
        assert _respond(client, b, meal["id"], "DECLINE").status_code == 404

    def test_join_twice(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host)
        client.post(f"/api/group-meals/{meal['id']}/join", headers=b["headers"])
        assert client.post(f"/api/group-meals/{meal['id']}/join", headers=b["headers"]).status_code == 400

    def test_late_then_leave(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host)
        client.post(f"/api/group-meals/{meal['id']}/join", headers=b["headers"])
        resp = client.patch(f"/api/group-meals/{meal['id']}/participant/status", json={"status": "LATE"},
                            headers=b["headers"])
        assert resp.json()["status"] == "LATE"
        assert client.post(f"/api/group-meals/{meal['id']}/leave", headers=b["headers"]).json()["status"] == "CANCELLED"

    def test_list_shows_attending_only(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host)
        _invite(client, host, meal["id"], b)
        listed = client.get("/api/group-meals/", headers=b["headers"]).json()[0]
        assert [p["userId"] for p in listed["participants"]] == [host["user"]["id"]]
        assert listed["myStatus"] == "INVITED"


class TestInvitations:

    def test_candidates_sorted_by_slot_availability(self, client):
        host = create_member(client, "host@example.com", "Host")
        free = create_member(client, "free@example.com", "Free")
        busy = create_member(client, "busy@example.com", "Busy", with_availability=False)
        meal = _create_meal(client, host)
        client.put("/api/availability/", json=[
            {"weekday": MEAL_DATE.strftime("%a").upper(), "timeSlot": "DAY", "status": "AVAILABLE"},
        ], headers=free["headers"])

        candidates = client.get(f"/api/group-meals/{meal['id']}/candidates", headers=host["headers"]).json()
        assert [c["userId"] for c in candidates] == [free["user"]["id"], busy["user"]["id"]]
        assert candidates[0]["isAvailableForSlot"] is True

    def test_invite_notifies_line_users(self, client, db, line_client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        db.query(User).filter(User.user_id == b["user"]["id"]).update({User.line_user_id: "U-line-b"})
        db.commit()
        meal = _create_meal(client, host)
        _invite(client, host, meal["id"], b)
        assert [to for to, _ in line_client.pushes] == ["U-line-b"]

    def test_open_and_cancel_invitation(self, client):
        host = create_member(client, "host@example.com", "Host")
        b = create_member(client, "b@example.com", "B")
        meal = _create_meal(client, host)
        _invite(client, host, meal["id"], b)

        invitations = client.get(f"/api/group-meals/{meal['id']}/invitations", headers=host["headers"]).json()
        assert invitations[0]["openState"] == "SENT_UNOPENED"
        invitation_id = invitations[0]["id"]

        assert client.post(f"/api/group-meals/invitations/{invitation_id}/open",
                           headers=host["headers"]).status_code == 403
        assert client.post(f"/api/group-meals/invitations/{invitation_id}/open",
                           headers=b["headers"]).status_code == 204
        opened = client.get(f"/api/group-meals/{meal['id']}/invitations", headers=host["headers"]).json()[0]
        assert opened["openState"] == "OPENED"

        for _ in range(2):
            resp = client.post(f"/api/group-meals/invitations/{invitation_id}/cancel", headers=host["headers"])
            assert resp.status_code == 204
        cancelled = client.get(f"/api/group-meals/{meal['id']}/invitations", headers=host["headers"]).json()[0]
        assert cancelled["isCanceled"] is True
        assert cancelled["participantStatus"] == "CANCELLED"
        assert client.get(f"/api/group-meals/{meal['id']}", headers=host["headers"]).json()["remainingSlots"] == 2
