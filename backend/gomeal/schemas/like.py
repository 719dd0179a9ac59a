"""Pydantic schemas for likes, super-likes, members and relationships."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from gomeal.models.like import LikeAnswer
from gomeal.schemas.base import CamelModel


class LikeRequest(CamelModel):
    target_user_id: str = Field(min_length=1)
    answer: LikeAnswer


class LikeUpdateRequest(CamelModel):
    answer: LikeAnswer


class LikeResult(CamelModel):
    matched: bool
    match_id: Optional[str] = None
    matched_at: Optional[datetime] = None
    partner_name: Optional[str] = None
    partner_bio: Optional[str] = None
    partner_favorite_meals: Optional[list[str]] = None


class CandidateOut(CamelModel):
    id: str
    name: str = ""
    favorite_meals: list[str] = []
    hobbies: list[str] = []
    main_area: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None


class NextCandidateOut(CamelModel):
    candidate: Optional[CandidateOut] = None


class SuperLikeRequest(CamelModel):
    target_user_id: str = Field(min_length=1)


class SuperLikeOut(CamelModel):
    id: str
    from_user_id: str
    to_user_id: str
    created_at: Optional[datetime] = None


class SuperLikeResult(CamelModel):
    super_like: SuperLikeOut
    like: LikeResult


class SuperLikesOut(CamelModel):
    sent: Optional[SuperLikeOut] = None
    received: list[SuperLikeOut] = []


class MemberOut(CamelModel):
    id: str
    name: Optional[str] = None
    favorite_meals: list[str] = []
    profile_image_url: Optional[str] = None
    my_like_status: str
    is_mutual_like: bool


class MembersOut(CamelModel):
    members: list[MemberOut]


class RelationshipCard(CamelModel):
    id: str
    relationship_id: str
    target_user_id: str
    name: str
    favorite_meals: list[str] = []
    profile_image_url: Optional[str] = None
    matched: bool
    my_answer: str
    partner_answer: str
    match_id: Optional[str] = None
    matched_at: Optional[datetime] = None
    can_toggle_to_yes: bool
    can_toggle_to_no: bool
    liked_by_me: bool
    super_liked_by_me: bool


class RelationshipsOut(CamelModel):
    matches: list[RelationshipCard] = []
    awaiting_response: list[RelationshipCard] = []
    rejected: list[RelationshipCard] = []
