"""Builds the NotificationRequests emitted by matches, invites and the daily LINE jobs."""
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from gomeal.models.community import Community, CommunityMembership, MembershipStatus
from gomeal.models.group_meal import GroupMeal, GroupMealStatus, ParticipantStatus
from gomeal.models.like import Match
from gomeal.models.user import User
from gomeal.notifications.dispatcher import NotificationKind, NotificationRequest
from gomeal.services import dates


def match_requests(match: Match) -> list[NotificationRequest]:
    """One MATCH message per side, naming the other side."""
    requests = []
    for user, partner in ((match.user1, match.user2), (match.user2, match.user1)):
        if user is None or not user.line_user_id:
            continue
        requests.append(NotificationRequest(
            line_user_id=user.line_user_id,
            kind=NotificationKind.MATCH,
            params={"partner_name": partner.display_name if partner else ""},
        ))
    return requests


def group_meal_invite_requests(db: Session, meal: GroupMeal, user_ids: list[str]) -> list[NotificationRequest]:
    if not user_ids:
        return []
    host_name = meal.host.display_name if meal.host else ""
    requests = []
    for user in db.query(User).filter(User.user_id.in_(user_ids)):
        if not user.line_user_id:
            continue
        requests.append(NotificationRequest(
            line_user_id=user.line_user_id,
            kind=NotificationKind.GROUP_MEAL_INVITE,
            params={
                "title": meal.title,
                "date": f"{meal.date.month}/{meal.date.day}",
                "time_slot": meal.time_slot.value,
                "host_name": host_name,
            },
        ))
    return requests


def daily_availability_requests(db: Session, community: Optional[Community]) -> list[NotificationRequest]:
    """Lunch availability prompt for every LINE-linked approved member."""
    if community is None:
        return []
    users = (
        db.query(User)
        .join(CommunityMembership, CommunityMembership.user_id == User.user_id)
        .filter(
            CommunityMembership.community_id == community.community_id,
            CommunityMembership.status == MembershipStatus.approved,
            User.line_user_id.isnot(None),
        )
        .all()
    )
    return [
        NotificationRequest(line_user_id=u.line_user_id, kind=NotificationKind.DAILY_AVAILABILITY,
                            params={"time_slot": "DAY"})
        for u in users
    ]


def reminder_requests(db: Session, day: Optional[date] = None) -> list[NotificationRequest]:
    """Reminders for every non-cancelled participant of the day's open meals."""
    day = day or dates.today_in_jst()
    meals = (
        db.query(GroupMeal)
        .filter(GroupMeal.date == day, GroupMeal.status.in_([GroupMealStatus.OPEN, GroupMealStatus.FULL]))
        .all()
    )
    skipped = (ParticipantStatus.CANCELLED, ParticipantStatus.DECLINED, ParticipantStatus.NOT_GO)
    requests = []
    for meal in meals:
        for participant in meal.participants:
            if participant.status in skipped or participant.user is None or not participant.user.line_user_id:
                continue
            requests.append(NotificationRequest(
                line_user_id=participant.user.line_user_id,
                kind=NotificationKind.GROUP_MEAL_REMINDER,
                params={
                    "title": meal.title or "GO飯",
                    "time_slot": meal.time_slot.value,
                    "place_label": meal.place_name or meal.meeting_place,
                    "meet_url": meal.meet_url,
                },
            ))
    return requests
