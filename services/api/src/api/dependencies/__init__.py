"""FastAPI dependencies."""

from .auth import AuthenticatedUser, require_auth
from .services import (
    get_analytics_client,
    get_current_account,
    get_default_provider,
    get_gateway,
    get_library_service,
    get_pipeline,
    get_quota_ledger,
    get_store,
    get_usage_service,
)

__all__ = [
    "AuthenticatedUser",
    "get_analytics_client",
    "get_current_account",
    "get_default_provider",
    "get_gateway",
    "get_library_service",
    "get_pipeline",
    "get_quota_ledger",
    "get_store",
    "get_usage_service",
    "require_auth",
]
