"""Pydantic v2 request/response schemas for all endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from trust_engine.models import ActionKind, UserRole


# ---------------------------------------------------------------------------
# Profiles & reputation
# ---------------------------------------------------------------------------


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str | None
    reputation_score: float
    role: str | None
    badge_type: str | None
    needs_expert_review: bool
    is_banned: bool
    created_at: datetime


class ReputationResponse(BaseModel):
    user_id: str
    score: float
    tier: int
    tier_name: str
    needs_expert_review: bool
    is_sme: bool


class ReputationActionRequest(BaseModel):
    action_kind: ActionKind
    source_type: str = Field(..., min_length=1, max_length=50)
    source_id: str = Field(..., min_length=1, max_length=200)
    weight: float | None = Field(default=None, ge=0)


class ExpertReviewResolveRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class TierResponse(BaseModel):
    tier: int
    name: str
    min_score: float


# ---------------------------------------------------------------------------
# Vouching
# ---------------------------------------------------------------------------


class VouchRequest(BaseModel):
    target_id: str = Field(..., min_length=1)


class VouchResponse(BaseModel):
    accepted: bool
    vouch_count: int
    promoted: bool
    message: str
    duplicate: bool = False


class VouchDataResponse(BaseModel):
    vouch_count: int
    has_vouched: bool


# ---------------------------------------------------------------------------
# Moderation & credibility
# ---------------------------------------------------------------------------


class ModerateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=20000)
    context_id: str | None = None


class ModerationVerdictResponse(BaseModel):
    is_safe: bool
    reason: str | None = None
    confidence: str = "high"
    credibility_adjusted: bool = False
    categories: list[str] = Field(default_factory=list)


class CredibilityResponse(BaseModel):
    score: int
    tier: str
    priority: str
    factor: float
    relaxes_borderline: bool
    factors: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Citations
# ---------------------------------------------------------------------------


class CitationValidateRequest(BaseModel):
    citation: str = Field(..., max_length=2000)


class CitationValidationResponse(BaseModel):
    is_valid: bool
    format: str | None = None
    domain: str | None = None
    reason: str | None = None


class ApprovedDomainsResponse(BaseModel):
    domains: list[str]


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class ReviewCreateRequest(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., min_length=1, max_length=20000)
    citation: str | None = Field(default=None, max_length=2000)


class ReviewSubmissionResponse(BaseModel):
    review_id: str
    is_flagged: bool
    reason: str | None = None
    standing: ReputationResponse | None = None


class ModerationQueueEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    review_id: UUID
    author_id: str | None
    content: str
    flag_count: int
    reason: str | None
    status: str
    created_at: datetime
    resolved_at: datetime | None


# ---------------------------------------------------------------------------
# Spam reports & admin
# ---------------------------------------------------------------------------


class SpamReportRequest(BaseModel):
    reported_id: str = Field(..., min_length=1)
    reason: str | None = Field(default=None, max_length=1000)


class SpamReportResponse(BaseModel):
    success: bool
    duplicate: bool


class RoleChangeRequest(BaseModel):
    new_role: UserRole
    reason: str | None = Field(default=None, max_length=500)


class BanRequest(BaseModel):
    banned: bool = True
    reason: str | None = Field(default=None, max_length=500)


class AdminReasonRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class BlacklistKeywordRequest(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=200)
    reason: str | None = Field(default=None, max_length=500)


class BlacklistKeywordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    keyword: str
    reason: str | None
    is_active: bool


class BlacklistSnapshotResponse(BaseModel):
    keywords: list[str]
    loaded_at: datetime
