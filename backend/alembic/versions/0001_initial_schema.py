"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for GO飯:
users, profiles, communities, community_memberships, likes, super_likes,
matches, availability_slots, group_meals, group_meal_participants,
group_meal_invitations, group_meal_chat_messages, pair_meals.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False, server_default=""),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("line_user_id", sa.String(64), nullable=True, unique=True),
        sa.Column("line_display_name", sa.String(100), nullable=True),
        sa.Column("line_picture_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, server_default=""),
        sa.Column("favorite_meals", sa.JSON, nullable=False),
        sa.Column("hobbies", sa.JSON, nullable=False),
        sa.Column("main_area", sa.String(50), nullable=True),
        sa.Column("sub_areas", sa.JSON, nullable=False),
        sa.Column("default_budget", sa.String(20), nullable=True),
        sa.Column("drinking_style", sa.String(30), nullable=True),
        sa.Column("meal_style", sa.String(30), nullable=True),
        sa.Column("go_meal_frequency", sa.String(30), nullable=True),
        sa.Column("ng_foods", sa.JSON, nullable=False),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        sa.Column("is_seed_member", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- communities ---
    op.create_table(
        "communities",
        sa.Column("community_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("invite_code", sa.String(8), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- community_memberships ---
    op.create_table(
        "community_memberships",
        sa.Column("membership_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("community_id", sa.String(36), sa.ForeignKey("communities.community_id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "community_id", name="uq_membership_user_community"),
    )

    # --- likes ---
    op.create_table(
        "likes",
        sa.Column("like_id", sa.String(36), primary_key=True),
        sa.Column("from_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("to_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("community_id", sa.String(36), sa.ForeignKey("communities.community_id"), nullable=False),
        sa.Column("answer", sa.String(10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("from_user_id", "to_user_id", "community_id", name="uq_like_pair_community"),
    )

    # --- super_likes ---
    op.create_table(
        "super_likes",
        sa.Column("super_like_id", sa.String(36), primary_key=True),
        sa.Column("from_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("to_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("community_id", sa.String(36), sa.ForeignKey("communities.community_id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("from_user_id", "community_id", name="uq_super_like_sender_community"),
    )

    # --- matches ---
    op.create_table(
        "matches",
        sa.Column("match_id", sa.String(36), primary_key=True),
        sa.Column("user1_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("user2_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("community_id", sa.String(36), sa.ForeignKey("communities.community_id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user1_id", "user2_id", "community_id", name="uq_match_pair_community"),
        sa.CheckConstraint("user1_id < user2_id", name="ck_match_sorted_pair"),
    )

    # --- availability_slots ---
    op.create_table(
        "availability_slots",
        sa.Column("slot_id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("weekday", sa.String(3), nullable=False),
        sa.Column("time_slot", sa.String(5), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="UNAVAILABLE"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "weekday", "time_slot", name="uq_availability_user_slot"),
    )

    # --- group_meals ---
    op.create_table(
        "group_meals",
        sa.Column("group_meal_id", sa.String(36), primary_key=True),
        sa.Column("community_id", sa.String(36), sa.ForeignKey("communities.community_id"), nullable=False),
        sa.Column("host_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("host_membership_id", sa.String(36),
                  sa.ForeignKey("community_memberships.membership_id"), nullable=True),
        sa.Column("title", sa.String(100), nullable=False, server_default=""),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("weekday", sa.String(3), nullable=False),
        sa.Column("time_slot", sa.String(5), nullable=False),
        sa.Column("meeting_time_minutes", sa.Integer, nullable=True),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="OPEN"),
        sa.Column("mode", sa.String(10), nullable=False, server_default="REAL"),
        sa.Column("budget", sa.String(20), nullable=True),
        sa.Column("meeting_place", sa.String(255), nullable=True),
        sa.Column("place_name", sa.String(255), nullable=True),
        sa.Column("place_address", sa.String(255), nullable=True),
        sa.Column("place_latitude", sa.Float, nullable=True),
        sa.Column("place_longitude", sa.Float, nullable=True),
        sa.Column("place_google_place_id", sa.String(255), nullable=True),
        sa.Column("meet_url", sa.String(500), nullable=True),
        sa.Column("talk_topics", sa.JSON, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- group_meal_participants ---
    op.create_table(
        "group_meal_participants",
        sa.Column("participant_id", sa.String(36), primary_key=True),
        sa.Column("group_meal_id", sa.String(36), sa.ForeignKey("group_meals.group_meal_id"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="INVITED"),
        sa.Column("is_host", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("is_creator", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("group_meal_id", "user_id", name="uq_participant_meal_user"),
    )

    # --- group_meal_invitations ---
    op.create_table(
        "group_meal_invitations",
        sa.Column("invitation_id", sa.String(36), primary_key=True),
        sa.Column("group_meal_id", sa.String(36), sa.ForeignKey("group_meals.group_meal_id"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("invited_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("is_canceled", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_opened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_opened_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("group_meal_id", "user_id", name="uq_invitation_meal_user"),
    )

    # --- group_meal_chat_messages ---
    op.create_table(
        "group_meal_chat_messages",
        sa.Column("message_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("group_meal_id", sa.String(36), sa.ForeignKey("group_meals.group_meal_id"), nullable=False),
        sa.Column("sender_user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_group_meal_chat_messages_group_meal_id", "group_meal_chat_messages", ["group_meal_id"]
    )

    # --- pair_meals ---
    op.create_table(
        "pair_meals",
        sa.Column("pair_meal_id", sa.String(36), primary_key=True),
        sa.Column("match_id", sa.String(36), sa.ForeignKey("matches.match_id"), nullable=False),
        sa.Column("member_a_id", sa.String(36), sa.ForeignKey("community_memberships.membership_id"), nullable=False),
        sa.Column("member_b_id", sa.String(36), sa.ForeignKey("community_memberships.membership_id"), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("time_band", sa.String(10), nullable=False),
        sa.Column("meeting_time_minutes", sa.Integer, nullable=True),
        sa.Column("place_name", sa.String(255), nullable=True),
        sa.Column("place_address", sa.String(255), nullable=True),
        sa.Column("place_latitude", sa.Float, nullable=True),
        sa.Column("place_longitude", sa.Float, nullable=True),
        sa.Column("place_google_place_id", sa.String(255), nullable=True),
        sa.Column("restaurant_name", sa.String(255), nullable=True),
        sa.Column("restaurant_address", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="CONFIRMED"),
        sa.Column("created_by_member_id", sa.String(36),
                  sa.ForeignKey("community_memberships.membership_id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("pair_meals")
    op.drop_index("ix_group_meal_chat_messages_group_meal_id", table_name="group_meal_chat_messages")
    op.drop_table("group_meal_chat_messages")
    op.drop_table("group_meal_invitations")
    op.drop_table("group_meal_participants")
    op.drop_table("group_meals")
    op.drop_table("availability_slots")
    op.drop_table("matches")
    op.drop_table("super_likes")
    op.drop_table("likes")
    op.drop_table("community_memberships")
    op.drop_table("communities")
    op.drop_table("profiles")
    op.drop_table("users")
