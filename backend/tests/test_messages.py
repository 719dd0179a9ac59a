"""Tests for LINE message builders and the notifier's rendering."""
import json

from gomeal.notifications import messages
from gomeal.notifications.dispatcher import LineNotifier, NotificationKind, NotificationRequest
from tests.conftest import RecordingLineClient


class TestBuilders:

    def test_availability_template_has_three_postbacks(self):
        msg = messages.build_availability_template("DAY")
        data = [a["data"] for a in msg["template"]["actions"]]
        assert data == ["availability:DAY:AVAILABLE", "availability:DAY:MEET_ONLY", "availability:DAY:UNAVAILABLE"]
        assert msg["altText"] == msg["template"]["text"]

    def test_auto_invite_postbacks(self):
        msg = messages.build_auto_group_meal_invite("g1", "MEET", ["Aki", "Ren"], "NIGHT", None, "http://app/")
        actions = [json.loads(a["data"]) for a in msg["template"]["actions"]]
        assert [a["action"] for a in actions] == ["GO", "NOT_GO"]
        assert {a["type"] for a in actions} == {"MEET_GROUP_MEAL_INVITE"}
        assert {a["groupMealId"] for a in actions} == {"g1"}
        assert "Akiさん、Renさん" in msg["template"]["text"]
        assert "http://app/login" in msg["template"]["text"]

    def test_alt_text_is_capped(self):
        msg = messages.buttons_template("x" * 500, [])
        assert len(msg["altText"]) == 400

    def test_reminder_prefers_meet_url(self):
        text = messages.build_reminder_message("", "DAY", "Shibuya", "https://meet.example.com/x")["text"]
        assert "Meet: https://meet.example.com/x" in text
        assert "Shibuya" not in text


class TestNotifier:

    def test_send_many_counts_render_failures(self):
        client = RecordingLineClient()
        notifier = LineNotifier(client, "http://localhost:3000")
        result = notifier.send_many([
            NotificationRequest("U1", NotificationKind.MATCH, {"partner_name": "Aki"}),
            NotificationRequest("U2", NotificationKind.GROUP_MEAL_INVITE, {}),
        ])
        assert (result.sent, result.failed) == (1, 1)
        assert [to for to, _ in client.pushes] == ["U1"]
        assert "Akiさん" in client.pushes[0][1][0]["text"]

    def test_reply_without_token_is_skipped(self):
        client = RecordingLineClient()
        assert LineNotifier(client, "http://localhost:3000").reply(None, messages.text_message("hi")) is False
        assert client.replies == []
