"""Tests for the affinity-based partition used by auto group meals."""
from types import SimpleNamespace

from gomeal.services.auto_grouping import (
    MAX_GROUP_SIZE, affinity, group_candidates, profile_similarity, relationship_weight,
)


def _candidate(user_id, main_area=None, hobbies=None, favorite_meals=None):
    profile = SimpleNamespace(main_area=main_area, hobbies=hobbies or [], favorite_meals=favorite_meals or [])
    return SimpleNamespace(user_id=user_id, profile=profile)


def _pool(n):
    return [_candidate(f"u{i}") for i in range(n)]


class TestAffinity:

    def test_relationship_weight(self):
        a, b = _candidate("a"), _candidate("b")
        assert relationship_weight(a, b, set()) == 0
        assert relationship_weight(a, b, {("b", "a")}) == 1
        assert relationship_weight(a, b, {("a", "b"), ("b", "a")}) == 2

    def test_profile_similarity_caps(self):
        a = _candidate("a", "Shibuya", ["h1", "h2", "h3", "h4"], ["ramen", "sushi", "curry"])
        b = _candidate("b", "Shibuya", ["h1", "h2", "h3", "h4"], ["ramen", "sushi", "curry"])
        assert profile_similarity(a, b) == 2 + 3 + 2

    def test_missing_profile_scores_zero(self):
        a = SimpleNamespace(user_id="a", profile=None)
        assert profile_similarity(a, _candidate("b", "Shibuya")) == 0

    def test_likes_dominate_similarity(self):
        a = _candidate("a", "Shibuya", ["h1"], ["ramen"])
        b = _candidate("b")
        c = _candidate("c", "Shibuya", ["h1"], ["ramen"])
        assert affinity(a, b, {("a", "b")}) > affinity(a, c, set())


class TestGroupCandidates:

    def test_empty(self):
        assert group_candidates([]) == []

    def test_small_pool_is_one_group(self):
        assert group_candidates(_pool(4)) == [["u0", "u1", "u2", "u3"]]

    def test_every_candidate_lands_in_one_group(self):
        pool = _pool(17)
        groups = group_candidates(pool)
        flat = [uid for group in groups for uid in group]
        assert sorted(flat) == sorted(c.user_id for c in pool)
        assert all(len(group) <= MAX_GROUP_SIZE for group in groups)

    def test_seed_pulls_in_liked_candidate(self):
        pool = _pool(12)
        groups = group_candidates(pool, [("u0", "u11"), ("u11", "u0")])
        assert "u11" in groups[0]

    def test_trailing_singleton_kept_when_groups_full(self):
        groups = group_candidates(_pool(7))
        assert [len(g) for g in groups] == [6, 1]
