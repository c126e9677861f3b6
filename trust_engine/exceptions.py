"""Typed failures raised by the trust engine.

Every error carries a human-readable ``message`` and a machine-readable
``error_type``. The API layer maps the families below to HTTP statuses;
nothing in the services knows about status codes.
"""


class TrustEngineError(Exception):
    """Base exception for trust engine errors."""

    def __init__(self, message: str, error_type: str = "trust_engine_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(TrustEngineError):
    """Raised when caller input is malformed."""

    def __init__(self, message: str, error_type: str = "validation_error"):
        super().__init__(message, error_type)


class SelfVouchError(ValidationError):
    def __init__(self):
        super().__init__("You cannot vouch for yourself", "self_vouch")


class SelfReportError(ValidationError):
    def __init__(self):
        super().__init__("You cannot report yourself", "self_report")


class CitationRejectedError(ValidationError):
    """Raised when an attached citation fails validation."""

    def __init__(self, citation: str, reason: str):
        super().__init__(f"Citation rejected: {reason}", "citation_rejected")
        self.citation = citation
        self.reason = reason


class InvalidWeightError(ValidationError):
    def __init__(self, weight: float):
        super().__init__(
            f"Reputation weight must be non-negative, got {weight}",
            "invalid_weight",
        )
        self.weight = weight


# ---------------------------------------------------------------------------
# Authentication / authorization
# ---------------------------------------------------------------------------


class AuthenticationRequiredError(TrustEngineError):
    def __init__(self, message: str = "You must be logged in to do this"):
        super().__init__(message, "authentication_required")


class AuthorizationError(TrustEngineError):
    """Raised when the acting member may not perform an action."""

    def __init__(self, message: str, error_type: str = "authorization_error"):
        super().__init__(message, error_type)


class InsufficientRoleError(AuthorizationError):
    def __init__(self, actual_role: str, required_role: str, action: str | None = None):
        doing = f" to {action}" if action else ""
        super().__init__(
            f"Role '{required_role}' or higher is required{doing} (current role: '{actual_role}')",
            "insufficient_role",
        )
        self.actual_role = actual_role
        self.required_role = required_role


class BannedUserError(AuthorizationError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} is banned", "user_banned")
        self.user_id = user_id


# ---------------------------------------------------------------------------
# Lookup / state
# ---------------------------------------------------------------------------


class NotFoundError(TrustEngineError):
    def __init__(self, message: str, error_type: str = "not_found"):
        super().__init__(message, error_type)


class ProfileNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"Profile '{user_id}' not found", "profile_not_found")
        self.user_id = user_id


class ReviewNotFoundError(NotFoundError):
    def __init__(self, review_id: str):
        super().__init__(f"Review '{review_id}' not found", "review_not_found")
        self.review_id = review_id


class VouchTargetIneligibleError(TrustEngineError):
    """Raised when the vouch target is already at or above the SME tier."""

    def __init__(self, target_id: str, target_role: str):
        super().__init__(
            f"User {target_id} already holds the '{target_role}' role and cannot receive vouches",
            "vouch_target_ineligible",
        )
        self.target_id = target_id
        self.target_role = target_role


class ReputationRecomputeError(TrustEngineError):
    """Raised when the action history cannot be read; stored values are untouched."""

    def __init__(self, user_id: str, cause: str):
        super().__init__(
            f"Could not recompute reputation for {user_id}: {cause}",
            "reputation_recompute_failed",
        )
        self.user_id = user_id
