"""Plan limits and quota arithmetic."""

from .plans import (
    MINUTE_DIMENSIONS,
    PLAN_LIMITS,
    QUOTA_ALLOWED,
    PlanTier,
    QuotaAllowed,
    QuotaDecision,
    QuotaDenied,
    QuotaDimension,
    QuotaRequest,
    check_quota,
    evaluate_quota,
    get_plan_limits,
    merge_requests,
)

__all__ = [
    "MINUTE_DIMENSIONS",
    "PLAN_LIMITS",
    "QUOTA_ALLOWED",
    "PlanTier",
    "QuotaAllowed",
    "QuotaDecision",
    "QuotaDenied",
    "QuotaDimension",
    "QuotaRequest",
    "check_quota",
    "evaluate_quota",
    "get_plan_limits",
    "merge_requests",
]
