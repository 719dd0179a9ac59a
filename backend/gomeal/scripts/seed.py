"""Populate the default community with sample members.

Usage: python -m gomeal.scripts.seed
"""
import logging

from sqlalchemy.orm import Session

from gomeal.config import get_settings
from gomeal.database import Base, SessionLocal, engine
from gomeal.models.availability import AvailabilitySlot, AvailabilityStatus, TimeSlot, Weekday
from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.user import Profile, User
from gomeal.security import hash_password
from gomeal.services.membership_service import ensure_default_community

logger = logging.getLogger(__name__)

SEED_PASSWORD = "password123"

SEED_MEMBERS = [
    {"email": "sakura@example.com", "name": "さくら", "favorite_meals": ["ラーメン", "カレー"], "main_area": "渋谷"},
    {"email": "haruto@example.com", "name": "はると", "favorite_meals": ["寿司"], "main_area": "新宿"},
    {"email": "yui@example.com", "name": "ゆい", "favorite_meals": ["パスタ", "カフェ"], "main_area": "恵比寿"},
    {"email": "sota@example.com", "name": "そうた", "favorite_meals": ["焼肉"], "main_area": "渋谷"},
    {"email": "mio@example.com", "name": "みお", "favorite_meals": ["定食", "そば"], "main_area": "池袋"},
]

# Weekday lunches every member is free for
SEED_AVAILABLE = [Weekday.MON, Weekday.WED, Weekday.FRI]


def seed_members(db: Session) -> int:
    """Create missing seed members. Returns how many were added."""
    community = ensure_default_community(db, get_settings())
    created = 0
    for entry in SEED_MEMBERS:
        if db.query(User).filter(User.email == entry["email"]).first():
            continue
        user = User(email=entry["email"], password_hash=hash_password(SEED_PASSWORD))
        user.profile = Profile(
            name=entry["name"],
            favorite_meals=entry["favorite_meals"],
            main_area=entry["main_area"],
            is_seed_member=True,
        )
        db.add(user)
        db.flush()
        db.add(CommunityMembership(
            user_id=user.user_id,
            community_id=community.community_id,
            status=MembershipStatus.approved,
        ))
        for weekday in SEED_AVAILABLE:
            db.add(AvailabilitySlot(
                user_id=user.user_id,
                weekday=weekday,
                time_slot=TimeSlot.DAY,
                status=AvailabilityStatus.AVAILABLE,
            ))
        created += 1
    db.commit()
    return created


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_members(db)
    finally:
        db.close()
    logger.info("Seeded %d member(s)", created)


if __name__ == "__main__":
    main()
