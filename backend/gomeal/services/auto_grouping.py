"""Affinity-based partition of a candidate pool into meal-sized groups.

Greedy and seed-order dependent: the first remaining candidate seeds a group
and pulls in the candidates with the highest affinity to it. A trailing
singleton is merged into the non-full group it fits best.
"""
from typing import Iterable, Optional, Protocol, Sequence

MAX_GROUP_SIZE = 6
MUTUAL_LIKE_WEIGHT = 2
ONE_WAY_LIKE_WEIGHT = 1
RELATIONSHIP_MULTIPLIER = 10


class ProfileLike(Protocol):
    main_area: Optional[str]
    hobbies: Optional[list]
    favorite_meals: Optional[list]


class Candidate(Protocol):
    user_id: str
    profile: Optional[ProfileLike]


LikeEdges = set[tuple[str, str]]


def relationship_weight(a: Candidate, b: Candidate, like_edges: LikeEdges) -> int:
    forward = (a.user_id, b.user_id) in like_edges
    backward = (b.user_id, a.user_id) in like_edges
    if forward and backward:
        return MUTUAL_LIKE_WEIGHT
    if forward or backward:
        return ONE_WAY_LIKE_WEIGHT
    return 0


def profile_similarity(a: Candidate, b: Candidate) -> int:
    pa, pb = a.profile, b.profile
    if pa is None or pb is None:
        return 0

    score = 0
    if pa.main_area and pb.main_area and pa.main_area == pb.main_area:
        score += 2

    hobbies_b = pb.hobbies or []
    shared_hobbies = [h for h in (pa.hobbies or []) if h in hobbies_b]
    score += min(len(shared_hobbies), 3)

    meals_b = pb.favorite_meals or []
    shared_meals = [m for m in (pa.favorite_meals or []) if m in meals_b]
    score += min(len(shared_meals), 2)
    return score


def affinity(a: Candidate, b: Candidate, like_edges: LikeEdges) -> int:
    return relationship_weight(a, b, like_edges) * RELATIONSHIP_MULTIPLIER + profile_similarity(a, b)


def group_candidates(candidates: Sequence[Candidate], like_edges: Iterable[tuple[str, str]] = ()) -> list[list[str]]:
    """Return groups of user ids; every candidate lands in exactly one group of at most six."""
    if not candidates:
        return []
    if len(candidates) <= MAX_GROUP_SIZE:
        return [[c.user_id for c in candidates]]

    edges: LikeEdges = set(like_edges)
    by_id = {c.user_id: c for c in candidates}
    pool = list(candidates)
    groups: list[list[str]] = []

    while pool:
        seed = pool.pop(0)
        members = [seed]
        pool.sort(key=lambda c: affinity(c, seed, edges), reverse=True)
        while len(members) < MAX_GROUP_SIZE and pool:
            members.append(pool.pop(0))
        groups.append([m.user_id for m in members])

    if len(groups) > 1 and len(groups[-1]) == 1:
        singleton_id = groups.pop()[0]
        singleton = by_id[singleton_id]
        best_index = -1
        best_score = float("-inf")
        for index, group in enumerate(groups):
            if len(group) >= MAX_GROUP_SIZE:
                continue
            score = sum(affinity(singleton, by_id[uid], edges) for uid in group) / len(group)
            if score > best_score:
                best_score = score
                best_index = index
        if best_index >= 0:
            groups[best_index].append(singleton_id)
        else:
            groups.append([singleton_id])

    return groups
