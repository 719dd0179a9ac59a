"""Like / Match engine.

A Like is a directed YES/NO answer, unique per (from, to, community). When a
YES meets a reciprocal YES, one Match row is created for the sorted user-id
pair. Creation is an upsert on the pair's unique key so concurrent reciprocal
likes converge on a single row.
"""
import logging
import random
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gomeal.exceptions import AlreadyAnsweredError
from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.like import Like, LikeAnswer, Match, SuperLike
from gomeal.models.user import User, Profile
from gomeal.services.membership_service import ensure_same_community

logger = logging.getLogger(__name__)


@dataclass
class LikeOutcome:
    like: Like
    match: Optional[Match] = None
    match_created: bool = False


def sorted_pair(a: str, b: str) -> tuple[str, str]:
    first, second = sorted([a, b])
    return first, second


def find_match(db: Session, community_id: str, a: str, b: str) -> Optional[Match]:
    user1_id, user2_id = sorted_pair(a, b)
    return (
        db.query(Match)
        .filter(Match.community_id == community_id, Match.user1_id == user1_id, Match.user2_id == user2_id)
        .first()
    )


def create_or_find_match_if_reciprocal_yes(
    db: Session, community_id: str, from_user_id: str, to_user_id: str
) -> tuple[Optional[Match], bool]:
    """Return (match, created). No match unless ``to_user_id`` already answered YES."""
    reciprocal = (
        db.query(Like)
        .filter(
            Like.from_user_id == to_user_id,
            Like.to_user_id == from_user_id,
            Like.community_id == community_id,
            Like.answer == LikeAnswer.YES,
        )
        .first()
    )
    if reciprocal is None:
        return None, False

    existing = find_match(db, community_id, from_user_id, to_user_id)
    if existing is not None:
        return existing, False

    user1_id, user2_id = sorted_pair(from_user_id, to_user_id)
    savepoint = db.begin_nested()
    try:
        match = Match(user1_id=user1_id, user2_id=user2_id, community_id=community_id)
        db.add(match)
        savepoint.commit()
    except IntegrityError:
        # The reciprocal request inserted the same pair first
        savepoint.rollback()
        return find_match(db, community_id, from_user_id, to_user_id), False
    logger.info("Created match %s between %s and %s", match.match_id, user1_id, user2_id)
    return match, True


def get_like(db: Session, community_id: str, from_user_id: str, to_user_id: str) -> Optional[Like]:
    return (
        db.query(Like)
        .filter(Like.from_user_id == from_user_id, Like.to_user_id == to_user_id, Like.community_id == community_id)
        .first()
    )


def submit_like(db: Session, membership: CommunityMembership, target_user_id: str, answer: LikeAnswer) -> LikeOutcome:
    """Record a first answer; a second answer for the same target is a conflict."""
    ensure_same_community(db, membership, target_user_id)
    if get_like(db, membership.community_id, membership.user_id, target_user_id) is not None:
        raise AlreadyAnsweredError()

    like = Like(
        from_user_id=membership.user_id,
        to_user_id=target_user_id,
        community_id=membership.community_id,
        answer=answer,
    )
    db.add(like)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise AlreadyAnsweredError()

    outcome = LikeOutcome(like=like)
    if answer == LikeAnswer.YES:
        outcome.match, outcome.match_created = create_or_find_match_if_reciprocal_yes(
            db, membership.community_id, membership.user_id, target_user_id
        )
    db.commit()
    logger.info("User %s answered %s to %s", membership.user_id, answer.value, target_user_id)
    return outcome


def update_like(db: Session, membership: CommunityMembership, target_user_id: str, answer: LikeAnswer) -> LikeOutcome:
    """Change an existing answer. NO is refused once the pair is matched."""
    ensure_same_community(db, membership, target_user_id)
    like = get_like(db, membership.community_id, membership.user_id, target_user_id)
    if like is None:
        raise HTTPException(status_code=404, detail="You have not answered this member yet")

    current_match = find_match(db, membership.community_id, membership.user_id, target_user_id)
    if answer == LikeAnswer.NO and current_match is not None:
        raise HTTPException(status_code=400, detail="You cannot answer NO to a matched member")
    if like.answer == answer:
        return LikeOutcome(like=like, match=current_match)

    like.answer = answer
    outcome = LikeOutcome(like=like, match=current_match)
    if answer == LikeAnswer.YES:
        outcome.match, outcome.match_created = create_or_find_match_if_reciprocal_yes(
            db, membership.community_id, membership.user_id, target_user_id
        )
    db.commit()
    db.refresh(like)
    logger.info("User %s changed answer for %s to %s", membership.user_id, target_user_id, answer.value)
    return outcome


def upsert_yes_like(db: Session, community_id: str, from_user_id: str, to_user_id: str) -> Like:
    like = get_like(db, community_id, from_user_id, to_user_id)
    if like is None:
        like = Like(from_user_id=from_user_id, to_user_id=to_user_id, community_id=community_id, answer=LikeAnswer.YES)
        db.add(like)
    else:
        like.answer = LikeAnswer.YES
    db.flush()
    return like


def submit_super_like(db: Session, membership: CommunityMembership, target_user_id: str) -> tuple[SuperLike, LikeOutcome]:
    """Keep at most one super-like per sender per community; it also counts as a YES like."""
    ensure_same_community(db, membership, target_user_id)
    current = (
        db.query(SuperLike)
        .filter(SuperLike.from_user_id == membership.user_id, SuperLike.community_id == membership.community_id)
        .first()
    )
    if current is not None and current.to_user_id != target_user_id:
        db.delete(current)
        db.flush()
        current = None
    if current is None:
        current = SuperLike(
            from_user_id=membership.user_id, to_user_id=target_user_id, community_id=membership.community_id
        )
        db.add(current)

    like = upsert_yes_like(db, membership.community_id, membership.user_id, target_user_id)
    outcome = LikeOutcome(like=like)
    outcome.match, outcome.match_created = create_or_find_match_if_reciprocal_yes(
        db, membership.community_id, membership.user_id, target_user_id
    )
    db.commit()
    db.refresh(current)
    logger.info("User %s super-liked %s", membership.user_id, target_user_id)
    return current, outcome


def delete_super_like(db: Session, membership: CommunityMembership, target_user_id: str) -> None:
    super_like = (
        db.query(SuperLike)
        .filter(
            SuperLike.from_user_id == membership.user_id,
            SuperLike.to_user_id == target_user_id,
            SuperLike.community_id == membership.community_id,
        )
        .first()
    )
    if super_like is None:
        raise HTTPException(status_code=404, detail="Super-like not found")
    db.delete(super_like)
    db.commit()
    logger.info("User %s withdrew super-like for %s", membership.user_id, target_user_id)


def pick_next_candidate(
    db: Session, membership: CommunityMembership, include_seed_users: bool, rng: Optional[random.Random] = None
) -> Optional[User]:
    """A random approved member the caller has not answered yet."""
    answered = select(Like.to_user_id).where(
        Like.from_user_id == membership.user_id, Like.community_id == membership.community_id
    )
    query = (
        db.query(User)
        .join(CommunityMembership, CommunityMembership.user_id == User.user_id)
        .outerjoin(Profile, Profile.user_id == User.user_id)
        .filter(
            CommunityMembership.community_id == membership.community_id,
            CommunityMembership.status == MembershipStatus.approved,
            User.user_id != membership.user_id,
            User.is_admin.is_(False),
            User.user_id.notin_(answered),
        )
    )
    if not include_seed_users:
        query = query.filter(or_(Profile.is_seed_member.is_(False), Profile.user_id.is_(None)))
    candidates = query.all()
    if not candidates:
        return None
    return (rng or random).choice(candidates)


def list_matches_for_user(db: Session, community_id: str, user_id: str) -> list[Match]:
    return (
        db.query(Match)
        .filter(Match.community_id == community_id, or_(Match.user1_id == user_id, Match.user2_id == user_id))
        .order_by(Match.created_at.desc())
        .all()
    )


def get_match_for_member(db: Session, membership: CommunityMembership, match_id: str) -> Match:
    match = db.query(Match).filter(Match.match_id == match_id).first()
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")
    if match.community_id != membership.community_id or membership.user_id not in (match.user1_id, match.user2_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return match


def delete_pair_state(db: Session, community_id: str, user_id: str) -> None:
    """Remove every like and match touching ``user_id`` in a community (caller commits)."""
    db.query(Like).filter(
        Like.community_id == community_id,
        or_(Like.from_user_id == user_id, Like.to_user_id == user_id),
    ).delete(synchronize_session=False)
    db.query(SuperLike).filter(
        SuperLike.community_id == community_id,
        or_(SuperLike.from_user_id == user_id, SuperLike.to_user_id == user_id),
    ).delete(synchronize_session=False)
    for match in db.query(Match).filter(
        Match.community_id == community_id,
        or_(Match.user1_id == user_id, Match.user2_id == user_id),
    ):
        db.delete(match)
