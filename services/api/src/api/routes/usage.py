"""Usage endpoints: plan usage summary and text-to-speech activity."""

from fastapi import APIRouter, Depends, Query

from shared.db.models import User

from ..constants import (
    RECENT_ACTIVITY_DEFAULT_LIMIT,
    RECENT_ACTIVITY_MAX_LIMIT,
    USAGE_HISTORY_DEFAULT_DAYS,
    USAGE_HISTORY_MAX_DAYS,
)
from ..dependencies import get_current_account, get_usage_service
from ..models import (
    ActivityItem,
    ApiResponse,
    UsageHistoryPoint,
    UsageSummaryResponse,
    VoiceUsageItem,
)
from ..services.usage_service import UsageService

router = APIRouter(prefix="/api", tags=["Usage"])


@router.get(
    "/usage",
    response_model=ApiResponse[UsageSummaryResponse],
    summary="Current period usage against plan limits",
)
async def get_usage(
    user: User = Depends(get_current_account),
    usage: UsageService = Depends(get_usage_service),
) -> ApiResponse[UsageSummaryResponse]:
    return ApiResponse.of(await usage.summary(user))


@router.get(
    "/usage/history",
    response_model=ApiResponse[list[UsageHistoryPoint]],
    summary="Daily text-to-speech characters and generations",
)
async def get_usage_history(
    days: int = Query(default=USAGE_HISTORY_DEFAULT_DAYS, ge=1, le=USAGE_HISTORY_MAX_DAYS),
    user: User = Depends(get_current_account),
    usage: UsageService = Depends(get_usage_service),
) -> ApiResponse[list[UsageHistoryPoint]]:
    return ApiResponse.of(await usage.history(user, days=days))


@router.get(
    "/usage/voices",
    response_model=ApiResponse[list[VoiceUsageItem]],
    summary="Text-to-speech generations per voice",
)
async def get_usage_by_voice(
    user: User = Depends(get_current_account),
    usage: UsageService = Depends(get_usage_service),
) -> ApiResponse[list[VoiceUsageItem]]:
    return ApiResponse.of(await usage.by_voice(user))


@router.get(
    "/usage/activity",
    response_model=ApiResponse[list[ActivityItem]],
    summary="Latest text-to-speech generations",
)
async def get_recent_activity(
    limit: int = Query(default=RECENT_ACTIVITY_DEFAULT_LIMIT, ge=1, le=RECENT_ACTIVITY_MAX_LIMIT),
    user: User = Depends(get_current_account),
    usage: UsageService = Depends(get_usage_service),
) -> ApiResponse[list[ActivityItem]]:
    return ApiResponse.of(await usage.recent_activity(user, limit=limit))
