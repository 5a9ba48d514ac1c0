"""Service wiring for route handlers.

Each dependency can be replaced through ``app.dependency_overrides``,
which is how tests swap in fake stores and providers.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.blob import ArtifactStore, get_artifact_store
from shared.config import get_settings
from shared.db.connection import get_session
from shared.db.models import User
from shared.telemetry import AnalyticsClient, get_analytics

from ..providers import ProviderGateway, ProviderName, get_provider_gateway
from ..services.generation_ledger import GenerationLedger
from ..services.library_service import LibraryService
from ..services.pipeline import GenerationPipeline
from ..services.quota_ledger import QuotaLedger
from ..services.usage_service import UsageService
from .auth import AuthenticatedUser, require_auth


def get_store() -> ArtifactStore:
    return get_artifact_store()


def get_gateway() -> ProviderGateway:
    return get_provider_gateway()


def get_analytics_client() -> AnalyticsClient:
    return get_analytics()


def get_default_provider() -> ProviderName:
    return ProviderName(get_settings().providers.default)


def get_quota_ledger(session: AsyncSession = Depends(get_session)) -> QuotaLedger:
    return QuotaLedger(session)


async def get_current_account(
    auth_user: AuthenticatedUser = Depends(require_auth),
    quota: QuotaLedger = Depends(get_quota_ledger),
) -> User:
    """Load the caller's account, creating it on first access."""
    return await quota.get_or_create_account(
        auth_user.external_id,
        email=auth_user.email,
        display_name=auth_user.name,
    )


def get_pipeline(
    session: AsyncSession = Depends(get_session),
    quota: QuotaLedger = Depends(get_quota_ledger),
    gateway: ProviderGateway = Depends(get_gateway),
    store: ArtifactStore = Depends(get_store),
    analytics: AnalyticsClient = Depends(get_analytics_client),
) -> GenerationPipeline:
    return GenerationPipeline(
        quota=quota,
        gateway=gateway,
        store=store,
        records=GenerationLedger(session),
        analytics=analytics,
    )


def get_library_service(
    session: AsyncSession = Depends(get_session),
    store: ArtifactStore = Depends(get_store),
    gateway: ProviderGateway = Depends(get_gateway),
    analytics: AnalyticsClient = Depends(get_analytics_client),
) -> LibraryService:
    return LibraryService(session, store, gateway=gateway, analytics=analytics)


def get_usage_service(quota: QuotaLedger = Depends(get_quota_ledger)) -> UsageService:
    return UsageService(quota)
