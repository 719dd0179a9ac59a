"""Relationship board: matched partners, pending YES answers and NO answers."""
from typing import Optional

from sqlalchemy.orm import Session

from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.like import Like, LikeAnswer, Match, SuperLike
from gomeal.models.user import User
from gomeal.services.match_service import list_matches_for_user


def reaction_flags(answer: LikeAnswer, super_liked: bool) -> dict:
    # A super-like replaces the plain heart on the card
    return {
        "liked_by_me": answer == LikeAnswer.YES and not super_liked,
        "super_liked_by_me": super_liked,
    }


def _card(
    relationship_id: str,
    target: Optional[User],
    target_user_id: str,
    my_answer: LikeAnswer,
    partner_answer: str,
    match: Optional[Match],
    super_liked: bool,
) -> dict:
    profile = target.profile if target else None
    matched = match is not None
    return {
        "id": relationship_id,
        "relationship_id": relationship_id,
        "target_user_id": target_user_id,
        "name": profile.name if profile else "",
        "favorite_meals": (profile.favorite_meals if profile else None) or [],
        "profile_image_url": profile.profile_image_url if profile else None,
        "matched": matched,
        "my_answer": my_answer.value,
        "partner_answer": partner_answer,
        "match_id": match.match_id if match else None,
        "matched_at": match.created_at if match else None,
        "can_toggle_to_yes": my_answer == LikeAnswer.NO,
        "can_toggle_to_no": my_answer == LikeAnswer.YES and not matched,
        **reaction_flags(my_answer, super_liked),
    }


def build_relationships(db: Session, membership: CommunityMembership) -> dict:
    user_id = membership.user_id
    community_id = membership.community_id
    matches = list_matches_for_user(db, community_id, user_id)
    likes_from = (
        db.query(Like)
        .filter(Like.from_user_id == user_id, Like.community_id == community_id)
        .order_by(Like.updated_at.desc())
        .all()
    )
    reverse = {
        like.from_user_id: like.answer
        for like in db.query(Like).filter(Like.to_user_id == user_id, Like.community_id == community_id)
    }
    super_liked_ids = {
        row[0]
        for row in db.query(SuperLike.to_user_id).filter(
            SuperLike.from_user_id == user_id, SuperLike.community_id == community_id
        )
    }

    match_cards = []
    for match in matches:
        partner_id = match.partner_id(user_id)
        card = _card(match.match_id, match.partner_of(user_id), partner_id, LikeAnswer.YES, "YES",
                     match, partner_id in super_liked_ids)
        match_cards.append(card)
    matched_ids = {card["target_user_id"] for card in match_cards}

    targets = {
        u.user_id: u
        for u in db.query(User).filter(User.user_id.in_([like.to_user_id for like in likes_from]))
    } if likes_from else {}

    awaiting, rejected = [], []
    for like in likes_from:
        if like.to_user_id in matched_ids:
            continue
        partner_answer = reverse.get(like.to_user_id)
        card = _card(
            like.like_id,
            targets.get(like.to_user_id),
            like.to_user_id,
            like.answer,
            partner_answer.value if partner_answer else "UNANSWERED",
            None,
            like.to_user_id in super_liked_ids,
        )
        if like.answer == LikeAnswer.YES:
            awaiting.append(card)
        else:
            rejected.append(card)

    return {"matches": match_cards, "awaiting_response": awaiting, "rejected": rejected}


def list_members(
    db: Session, membership: CommunityMembership, include_seed_users: bool, meets_availability: bool
) -> list[dict]:
    """Other approved members with the caller's answer. Mutual likes stay hidden until availability is set."""
    user_id = membership.user_id
    rows = (
        db.query(CommunityMembership)
        .join(User, User.user_id == CommunityMembership.user_id)
        .filter(
            CommunityMembership.community_id == membership.community_id,
            CommunityMembership.status == MembershipStatus.approved,
            CommunityMembership.user_id != user_id,
            User.is_admin.is_(False),
        )
        .order_by(CommunityMembership.created_at.asc())
        .all()
    )
    others = [
        m.user for m in rows
        if include_seed_users or not (m.user.profile and m.user.profile.is_seed_member)
    ]
    if not others:
        return []

    other_ids = [u.user_id for u in others]
    mine = {
        like.to_user_id: like.answer
        for like in db.query(Like).filter(
            Like.community_id == membership.community_id,
            Like.from_user_id == user_id,
            Like.to_user_id.in_(other_ids),
        )
    }
    theirs = {
        like.from_user_id: like.answer
        for like in db.query(Like).filter(
            Like.community_id == membership.community_id,
            Like.from_user_id.in_(other_ids),
            Like.to_user_id == user_id,
        )
    }

    members = []
    for user in others:
        profile = user.profile
        my_answer = mine.get(user.user_id)
        mutual = my_answer == LikeAnswer.YES and theirs.get(user.user_id) == LikeAnswer.YES
        members.append({
            "id": user.user_id,
            "name": profile.name if profile else None,
            "favorite_meals": (profile.favorite_meals if profile else None) or [],
            "profile_image_url": profile.profile_image_url if profile else None,
            "my_like_status": my_answer.value if my_answer else "NONE",
            "is_mutual_like": mutual and meets_availability,
        })
    return members


def reaction_counts(db: Session, community_id: str, user_id: str) -> dict:
    hearts = (
        db.query(Like)
        .filter(Like.community_id == community_id, Like.to_user_id == user_id, Like.answer == LikeAnswer.YES)
        .count()
    )
    stars = (
        db.query(SuperLike)
        .filter(SuperLike.community_id == community_id, SuperLike.to_user_id == user_id)
        .count()
    )
    return {"received": {"hearts": hearts, "stars": stars}}
