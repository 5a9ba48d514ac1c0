"""Liveness, health and readiness probes.

Mounted both at the root (for the container platform) and under ``/api``
(for the web client, which only proxies that prefix).
"""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from shared.config import Settings, get_settings
from shared.db.connection import get_db
from shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(BaseModel):
    """Overall status plus one flag per dependency."""

    status: Literal["healthy", "degraded"]
    version: str
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: dict[str, bool] = Field(default_factory=dict)


class ReadinessStatus(BaseModel):
    ready: bool
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: dict[str, bool] = Field(default_factory=dict)


def storage_configured(settings: Settings) -> bool:
    """Whether the selected artifact backend has the credentials it needs."""
    if settings.storage.backend == "azure":
        azure = settings.azure_storage
        return bool(azure.connection_string or (azure.use_managed_identity and azure.account_url))
    b2 = settings.b2
    return all((b2.key_id, b2.app_key, b2.bucket_id, b2.bucket_name))


def provider_checks(settings: Settings) -> dict[str, bool]:
    keys = {
        "elevenlabs": settings.elevenlabs.api_key,
        "minimax": settings.minimax.api_key,
        "noiz": settings.noiz.api_key,
    }
    return {f"provider_{name}": bool(key) for name, key in keys.items()}


async def database_reachable() -> bool:
    try:
        await get_db().connect()
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return False
    return True


async def _database_ok(request: Request) -> tuple[bool, bool]:
    """(initialized at startup, reachable now)."""
    initialized = bool(getattr(request.app.state, "db_initialized", False))
    return initialized, initialized and await database_reachable()


@router.get("/health", response_model=HealthStatus, summary="Health check")
async def health_check(request: Request) -> HealthStatus:
    """Dependency report. Only the database degrades the overall status;
    storage and provider credentials are informational.
    """
    settings = get_settings()
    _, database = await _database_ok(request)
    checks = {
        "api": True,
        "database": database,
        "artifact_store": storage_configured(settings),
        **provider_checks(settings),
    }
    return HealthStatus(
        status="healthy" if database else "degraded",
        version=getattr(request.app, "version", settings.service_version),
        checks=checks,
    )


@router.get("/health/ready", response_model=ReadinessStatus, summary="Readiness check")
async def readiness_check(request: Request) -> ReadinessStatus:
    initialized, reachable = await _database_ok(request)
    checks = {
        "api": True,
        "database_init": initialized,
        "database_connection": reachable,
        "artifact_store": storage_configured(get_settings()),
    }
    return ReadinessStatus(ready=all(checks.values()), checks=checks)


@router.get("/health/live", summary="Liveness check")
async def liveness_check() -> dict[str, str]:
    return {"status": "ok"}
