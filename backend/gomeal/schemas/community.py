"""Pydantic schemas for communities and memberships."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from gomeal.schemas.base import CamelModel


class JoinCommunityRequest(CamelModel):
    community_name: str = Field(min_length=1, max_length=100)
    community_code: str = Field(min_length=8, max_length=8)


class MembershipOut(CamelModel):
    id: str
    community_id: str
    community_name: str
    status: str


class CommunityStatusOut(CamelModel):
    status: str
    community_id: Optional[str] = None
    community_name: Optional[str] = None


class ReceivedReactions(CamelModel):
    hearts: int
    stars: int


class ReactionCountsOut(CamelModel):
    received: ReceivedReactions


class JoinRequestOut(CamelModel):
    id: str
    user_id: str
    community_id: str
    name: str
    email: str
    requested_at: Optional[datetime] = None


class MembershipDecisionOut(CamelModel):
    id: str
    status: str


class PromoteRequest(CamelModel):
    user_id: str


class RemoveMemberRequest(CamelModel):
    user_id: str
    community_id: Optional[str] = None


class RemoveMemberOut(CamelModel):
    removed: int
