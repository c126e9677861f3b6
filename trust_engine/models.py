"""SQLAlchemy ORM models for profiles, vouches and the moderation tables."""

import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import DECIMAL, Boolean, DateTime, Integer


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# PG ENUMs
# ---------------------------------------------------------------------------


class UserRole(str, enum.Enum):
    """Member roles, declared low to high."""

    standard = "standard"
    business_user = "business_user"
    sme = "sme"
    sme_admin = "sme_admin"
    admin = "admin"


class ActionKind(str, enum.Enum):
    helpful_vote = "helpful_vote"
    accepted_answer = "accepted_answer"
    review = "review"
    comment = "comment"
    citation = "citation"
    bounty_credit = "bounty_credit"
    reaction_scientific_insight = "reaction_scientific_insight"
    reaction_experiential_wisdom = "reaction_experiential_wisdom"
    reaction_potential_concern = "reaction_potential_concern"
    reaction_groundbreaking_idea = "reaction_groundbreaking_idea"
    reaction_tried_and_true = "reaction_tried_and_true"


class QueueStatus(str, enum.Enum):
    pending = "pending"
    restored = "restored"
    purged = "purged"


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        Index("idx_profiles_user_role", "user_role"),
        Index("idx_profiles_reputation", "reputation_score"),
        CheckConstraint(
            "user_role IN ('standard','business_user','sme','sme_admin','admin')",
            name="ck_profile_user_role",
        ),
        CheckConstraint("reputation_score >= 0", name="ck_profile_reputation_non_negative"),
    )

    # Identity key supplied by the authentication provider
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    display_name: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    reputation_score: Mapped[float] = mapped_column(
        DECIMAL(12, 2), nullable=False, server_default=text("0")
    )
    # NULL on rows that predate the role column; see role_from_legacy_flags
    role: Mapped[str | None] = mapped_column("user_role", Text)
    is_sme: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    is_verified_expert: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    badge_type: Mapped[str | None] = mapped_column(Text)
    needs_expert_review: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Vouches
# ---------------------------------------------------------------------------


class Vouch(Base):
    __tablename__ = "vouches"
    __table_args__ = (
        UniqueConstraint("voucher_id", "target_id", name="uq_vouch_pair"),
        CheckConstraint("voucher_id <> target_id", name="ck_vouch_not_self"),
        Index("idx_vouches_target", "target_id"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    voucher_id: Mapped[str] = mapped_column(
        Text, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    target_id: Mapped[str] = mapped_column(
        Text, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Reputation event log (append-only)
# ---------------------------------------------------------------------------


class ReputationEvent(Base):
    __tablename__ = "reputation_events"
    __table_args__ = (
        UniqueConstraint(
            "profile_id", "action_kind", "source_type", "source_id",
            name="uq_reputation_event_source",
        ),
        CheckConstraint("weight >= 0", name="ck_reputation_event_weight"),
        Index("idx_reputation_events_profile", "profile_id"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    profile_id: Mapped[str] = mapped_column(
        Text, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    action_kind: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[float] = mapped_column(DECIMAL(10, 2), nullable=False)
    source_type: Mapped[str] = mapped_column(Text, nullable=False)
    source_id: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Reviews & moderation queue
# ---------------------------------------------------------------------------


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        Index("idx_reviews_product", "product_id"),
        Index("idx_reviews_author", "author_id"),
        Index("idx_reviews_flagged", "is_flagged"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    author_id: Mapped[str] = mapped_column(
        Text, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    citation: Mapped[str | None] = mapped_column(Text)
    is_flagged: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    flag_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    moderation_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


class ModerationQueueEntry(Base):
    __tablename__ = "moderation_queue"
    __table_args__ = (
        Index("idx_moderation_queue_status", "status"),
        CheckConstraint(
            "status IN ('pending','restored','purged')", name="ck_moderation_queue_status"
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    review_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[str | None] = mapped_column(Text)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    flag_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )
    reason: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'pending'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class KeywordBlacklistEntry(Base):
    __tablename__ = "keyword_blacklist"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    keyword: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )
    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Spam reports
# ---------------------------------------------------------------------------


class SpamReport(Base):
    __tablename__ = "spam_reports"
    __table_args__ = (
        UniqueConstraint("reporter_id", "reported_id", name="uq_spam_report_pair"),
        Index("idx_spam_reports_reported", "reported_id"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    reporter_id: Mapped[str] = mapped_column(
        Text, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    reported_id: Mapped[str] = mapped_column(
        Text, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Admin audit log
# ---------------------------------------------------------------------------


class AdminLog(Base):
    __tablename__ = "admin_logs"
    __table_args__ = (
        Index("idx_admin_logs_admin", "admin_id"),
        Index("idx_admin_logs_target", "target_type", "target_id"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    admin_id: Mapped[str] = mapped_column(Text, nullable=False)
    action_type: Mapped[str] = mapped_column(Text, nullable=False)
    target_type: Mapped[str] = mapped_column(Text, nullable=False)
    target_id: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)
    metadata_: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
