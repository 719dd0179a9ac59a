"""Tests for profile read/update, completion rate, image upload and visibility."""
import os
from types import SimpleNamespace

from gomeal.config import get_settings
from gomeal.services.profile_service import MAX_IMAGE_BYTES, compute_completion_rate
from tests.conftest import create_member, register_user

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestCompletionRate:

    def _profile(self, **fields):
        base = dict(
            profile_image_url=None, name="", favorite_meals=[], main_area=None, default_budget=None,
            bio=None, drinking_style=None, meal_style=None, go_meal_frequency=None, ng_foods=[],
        )
        base.update(fields)
        return SimpleNamespace(**base)

    def test_empty_profile(self):
        assert compute_completion_rate(self._profile()) == 0

    def test_whitespace_does_not_count(self):
        assert compute_completion_rate(self._profile(name="   ", bio=" ")) == 0

    def test_partial_profile(self):
        profile = self._profile(name="Aki", favorite_meals=["ramen"], main_area="Shibuya")
        assert compute_completion_rate(profile) == 30

    def test_full_profile(self):
        profile = self._profile(
            profile_image_url="/x.png", name="Aki", favorite_meals=["ramen"], main_area="Shibuya",
            default_budget="UNDER_1500", bio="hi", drinking_style="SOMETIMES", meal_style="TALK",
            go_meal_frequency="WEEKLY", ng_foods=["natto"],
        )
        assert compute_completion_rate(profile) == 100


class TestMyProfile:

    def test_get_after_register(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.get("/api/profile", headers=user["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Aki"
        assert body["completionRate"] == 10

    def test_update_fields(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.put("/api/profile", json={
            "name": "  Aki T  ", "favoriteMeals": ["ramen", "sushi"], "mainArea": "Shibuya", "hobbies": None,
        }, headers=user["headers"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Aki T"
        assert body["favoriteMeals"] == ["ramen", "sushi"]
        assert body["hobbies"] == []
        assert body["completionRate"] == 30

    def test_too_many_favorite_meals(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.put("/api/profile", json={"favoriteMeals": ["a", "b", "c", "d"]}, headers=user["headers"])
        assert resp.status_code == 400

    def test_long_bio_rejected(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.put("/api/profile", json={"bio": "x" * 501}, headers=user["headers"])
        assert resp.status_code == 400


class TestProfileImage:

    def test_upload_png(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.post("/api/profile/image", files={"image": ("me.png", PNG_BYTES, "image/png")},
                           headers=user["headers"])
        assert resp.status_code == 200
        url = resp.json()["profileImageUrl"]
        prefix = get_settings().PROFILE_IMAGE_URL_PREFIX.rstrip("/")
        assert url.startswith(f"{prefix}/{user['user']['id']}/")
        assert url.endswith(".png")
        stored = os.path.join(get_settings().PROFILE_IMAGE_DIR, user["user"]["id"], url.rsplit("/", 1)[-1])
        assert os.path.exists(stored)

    def test_unsupported_type(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.post("/api/profile/image", files={"image": ("me.gif", b"GIF89a", "image/gif")},
                           headers=user["headers"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Unsupported image type"

    def test_too_large(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.post("/api/profile/image",
                           files={"image": ("big.jpg", b"\xff" * (MAX_IMAGE_BYTES + 1), "image/jpeg")},
                           headers=user["headers"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "File too large"

    def test_oversized_upload_is_not_stored(self, client):
        user = register_user(client, "aki@example.com", "Aki")
        resp = client.post("/api/profile/image",
                           files={"image": ("big.png", b"\x89" * (MAX_IMAGE_BYTES * 2), "image/png")},
                           headers=user["headers"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "File too large"
        assert not os.path.exists(os.path.join(get_settings().PROFILE_IMAGE_DIR, user["user"]["id"]))


class TestProfileVisibility:

    def test_member_sees_member(self, client):
        a = create_member(client, "a@example.com", "A")
        b = create_member(client, "b@example.com", "B")
        resp = client.get(f"/api/users/{b['user']['id']}/profile", headers=a["headers"])
        assert resp.status_code == 200
        assert resp.json()["name"] == "B"

    def test_outsider_forbidden(self, client):
        a = create_member(client, "a@example.com", "A")
        outsider = register_user(client, "out@example.com", "Out")
        resp = client.get(f"/api/users/{a['user']['id']}/profile", headers=outsider["headers"])
        assert resp.status_code == 403

    def test_own_profile_without_community(self, client):
        outsider = register_user(client, "out@example.com", "Out")
        resp = client.get(f"/api/users/{outsider['user']['id']}/profile", headers=outsider["headers"])
        assert resp.status_code == 200

    def test_unknown_user(self, client):
        a = create_member(client, "a@example.com", "A")
        assert client.get("/api/users/ghost/profile", headers=a["headers"]).status_code == 404
