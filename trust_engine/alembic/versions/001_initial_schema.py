"""Initial trust engine schema.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reputation_score", sa.DECIMAL(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("user_role", sa.Text(), nullable=True),
        sa.Column("is_sme", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_verified_expert", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("badge_type", sa.Text(), nullable=True),
        sa.Column("needs_expert_review", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "user_role IN ('standard','business_user','sme','sme_admin','admin')",
            name="ck_profile_user_role",
        ),
        sa.CheckConstraint("reputation_score >= 0", name="ck_profile_reputation_non_negative"),
    )
    op.create_index("idx_profiles_user_role", "profiles", ["user_role"])
    op.create_index("idx_profiles_reputation", "profiles", ["reputation_score"])

    # --- vouches ---
    op.create_table(
        "vouches",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("voucher_id", sa.Text(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("target_id", sa.Text(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("voucher_id", "target_id", name="uq_vouch_pair"),
        sa.CheckConstraint("voucher_id <> target_id", name="ck_vouch_not_self"),
    )
    op.create_index("idx_vouches_target", "vouches", ["target_id"])

    # --- reputation_events ---
    op.create_table(
        "reputation_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("profile_id", sa.Text(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action_kind", sa.Text(), nullable=False),
        sa.Column("weight", sa.DECIMAL(10, 2), nullable=False),
        sa.Column("source_type", sa.Text(), nullable=False),
        sa.Column("source_id", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint(
            "profile_id", "action_kind", "source_type", "source_id",
            name="uq_reputation_event_source",
        ),
        sa.CheckConstraint("weight >= 0", name="ck_reputation_event_weight"),
    )
    op.create_index("idx_reputation_events_profile", "reputation_events", ["profile_id"])

    # --- reviews ---
    op.create_table(
        "reviews",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("author_id", sa.Text(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("citation", sa.Text(), nullable=True),
        sa.Column("is_flagged", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("flag_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("moderation_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_reviews_product", "reviews", ["product_id"])
    op.create_index("idx_reviews_author", "reviews", ["author_id"])
    op.create_index("idx_reviews_flagged", "reviews", ["is_flagged"])

    # --- moderation_queue ---
    op.create_table(
        "moderation_queue",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("review_id", UUID(as_uuid=True), sa.ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("flag_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('pending','restored','purged')", name="ck_moderation_queue_status"
        ),
    )
    op.create_index("idx_moderation_queue_status", "moderation_queue", ["status"])

    # --- keyword_blacklist ---
    op.create_table(
        "keyword_blacklist",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("keyword", sa.Text(), nullable=False, unique=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    # --- spam_reports ---
    op.create_table(
        "spam_reports",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("reporter_id", sa.Text(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reported_id", sa.Text(), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("reporter_id", "reported_id", name="uq_spam_report_pair"),
    )
    op.create_index("idx_spam_reports_reported", "spam_reports", ["reported_id"])

    # --- admin_logs ---
    op.create_table(
        "admin_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("admin_id", sa.Text(), nullable=False),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column("target_type", sa.Text(), nullable=False),
        sa.Column("target_id", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("metadata", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_admin_logs_admin", "admin_logs", ["admin_id"])
    op.create_index("idx_admin_logs_target", "admin_logs", ["target_type", "target_id"])


def downgrade() -> None:
    op.drop_table("admin_logs")
    op.drop_table("spam_reports")
    op.drop_table("keyword_blacklist")
    op.drop_table("moderation_queue")
    op.drop_table("reviews")
    op.drop_table("reputation_events")
    op.drop_table("vouches")
    op.drop_table("profiles")
