"""Daily auto-grouped meals built from today's availability."""
import logging
import uuid
from collections import Counter
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from gomeal.models.availability import TimeSlot
from gomeal.models.community import Community
from gomeal.models.group_meal import GroupMeal, GroupMealParticipant, GroupMealStatus, GroupMealMode, ParticipantStatus
from gomeal.models.like import Like, LikeAnswer
from gomeal.models.pair_meal import TimeBand
from gomeal.models.user import Profile
from gomeal.notifications.dispatcher import NotificationKind, NotificationRequest
from gomeal.services import dates
from gomeal.services.auto_grouping import group_candidates
from gomeal.services.availability_service import AutoGroupCandidate, availability_split

logger = logging.getLogger(__name__)

MIN_GROUP_SIZE = 2
TITLES = {GroupMealMode.REAL: "リアルでGO飯", GroupMealMode.MEET: "MeetでGO飯"}


def _area_of(profile: Optional[Profile]) -> Optional[str]:
    if profile is None:
        return None
    return profile.main_area or next(iter(profile.sub_areas or []), None)


def most_common_area(profiles: list[Optional[Profile]]) -> Optional[str]:
    areas = [area for area in (_area_of(p) for p in profiles) if area]
    if not areas:
        return None
    # Counter keeps first-seen order on ties
    return Counter(areas).most_common(1)[0][0]


def build_talk_topics(profiles: list[Optional[Profile]]) -> list[str]:
    """Up to three conversation starters from shared hobbies, meals and area."""
    valid = [p for p in profiles if p is not None]
    if not valid:
        return []
    hobbies: Counter = Counter()
    meals: Counter = Counter()
    for profile in valid:
        hobbies.update(h.strip() for h in (profile.hobbies or []) if h and h.strip())
        meals.update(m.strip() for m in (profile.favorite_meals or []) if m and m.strip())

    topics = []
    top_hobbies = [h for h, _ in hobbies.most_common(2)]
    if top_hobbies:
        topics.append("趣味: " + "、".join(top_hobbies))
    top_meals = [m for m, _ in meals.most_common(2)]
    if top_meals:
        topics.append("好きなご飯: " + "、".join(top_meals))
    if len(topics) < 3:
        area = most_common_area(valid)
        if area:
            topics.append(f"よく行くエリア: {area}")
    return topics[:3]


def fetch_like_edges(db: Session, community_id: str, user_ids: list[str]) -> set[tuple[str, str]]:
    rows = (
        db.query(Like.from_user_id, Like.to_user_id)
        .filter(
            Like.community_id == community_id,
            Like.answer == LikeAnswer.YES,
            Like.from_user_id.in_(user_ids),
            Like.to_user_id.in_(user_ids),
        )
        .all()
    )
    return {(row[0], row[1]) for row in rows}


def candidates_for_mode(
    available: list[AutoGroupCandidate], meet_only: list[AutoGroupCandidate], mode: GroupMealMode
) -> list[AutoGroupCandidate]:
    if mode == GroupMealMode.REAL:
        return available
    # Enough people for a real meal means Meet is only for the MEET_ONLY crowd
    if len(available) >= MIN_GROUP_SIZE:
        return meet_only
    return available + meet_only


def _create_meal(
    db: Session,
    community_id: str,
    members: list[AutoGroupCandidate],
    mode: GroupMealMode,
    day: date,
    time_band: TimeBand,
    frontend_url: str,
) -> GroupMeal:
    host = members[0]
    profiles = [m.profile for m in members]
    meal = GroupMeal(
        community_id=community_id,
        host_user_id=host.user_id,
        host_membership_id=host.membership_id,
        title=TITLES[mode],
        date=day,
        weekday=dates.weekday_for_date(day),
        time_slot=dates.time_band_to_slot(time_band),
        capacity=len(members),
        status=GroupMealStatus.OPEN,
        mode=mode,
        expires_at=dates.compute_expires_at(day, time_band),
    )
    if mode == GroupMealMode.REAL:
        meal.meeting_place = most_common_area(profiles)
        meal.talk_topics = []
    else:
        meal.meeting_place = "Online"
        meal.meet_url = f"{frontend_url.rstrip('/')}/meet/{uuid.uuid4()}"
        meal.talk_topics = build_talk_topics(profiles)
    db.add(meal)
    db.flush()
    for index, member in enumerate(members):
        db.add(GroupMealParticipant(
            group_meal_id=meal.group_meal_id,
            user_id=member.user_id,
            status=ParticipantStatus.PENDING,
            is_host=index == 0,
            is_creator=index == 0,
        ))
    return meal


def _invite_requests(meal: GroupMeal, members: list[AutoGroupCandidate]) -> list[NotificationRequest]:
    names = [(m.profile.name if m.profile and m.profile.name else "メンバー") for m in members]
    requests = []
    for member in members:
        if not member.line_user_id:
            continue
        requests.append(NotificationRequest(
            line_user_id=member.line_user_id,
            kind=NotificationKind.AUTO_GROUP_MEAL_INVITE,
            params={
                "group_meal_id": meal.group_meal_id,
                "mode": meal.mode.value,
                "member_names": names,
                "time_slot": meal.time_slot.value,
                "place_label": meal.meeting_place,
            },
        ))
    return requests


def create_auto_group_meals(
    db: Session, mode: GroupMealMode, frontend_url: str, day: Optional[date] = None
) -> tuple[list[GroupMeal], list[NotificationRequest]]:
    """Group today's available members of every community into meals.

    Returns the created meals and the invite notifications to send once
    the caller has committed.
    """
    day = day or dates.today_in_jst()
    weekday = dates.weekday_for_date(day)
    created: list[GroupMeal] = []
    requests: list[NotificationRequest] = []

    for community in db.query(Community).all():
        for time_band in (TimeBand.LUNCH, TimeBand.DINNER):
            time_slot: TimeSlot = dates.time_band_to_slot(time_band)
            available, meet_only = availability_split(db, community.community_id, weekday, time_slot)
            pool = candidates_for_mode(available, meet_only, mode)
            if len(pool) < MIN_GROUP_SIZE:
                continue

            edges = fetch_like_edges(db, community.community_id, [c.user_id for c in pool])
            by_id = {c.user_id: c for c in pool}
            for group in group_candidates(pool, edges):
                if len(group) < MIN_GROUP_SIZE:
                    continue
                members = [by_id[uid] for uid in group]
                meal = _create_meal(db, community.community_id, members, mode, day, time_band, frontend_url)
                created.append(meal)
                requests.extend(_invite_requests(meal, members))
                logger.info("Auto-grouped %s meal %s with %d members in community %s",
                            mode.value, meal.group_meal_id, len(members), community.community_id)

    db.commit()
    return created, requests
