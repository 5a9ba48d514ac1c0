"""Pipeline Orchestrator: one compensatable transaction per generation.

Steps run strictly in order::

    validate -> check quota -> call provider -> upload artifacts
             -> persist record -> commit quota -> analytics -> response

Nothing durable exists before the upload step. From there on every
failure unwinds what the run created: a failed record write removes the
uploaded artifacts, a failed quota commit removes the record and the
artifacts. When the unwinding itself fails, the error raised names both
failures so orphaned artifacts can be traced.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from shared.blob import ArtifactKey, ArtifactStore, StoredArtifact
from shared.db.models import generate_uuid, utcnow
from shared.logging import LogContext, get_logger
from shared.quota import QuotaDenied, QuotaRequest
from shared.telemetry import (
    USAGE_LIMIT_HIT,
    AnalyticsClient,
    add_span_event,
    get_tracer,
    record_exception_on_span,
)

from ..errors import PersistenceError, ProviderError, QuotaExceededError
from ..providers import ProviderGateway, ProviderName, ProviderRequest, ProviderResult
from .generation_ledger import GenerationLedger, RecordKind, record_spec
from .quota_ledger import QuotaLedger

logger = get_logger(__name__)
tracer = get_tracer(__name__)


@dataclass
class ArtifactUpload:
    """One object a job wants stored.

    ``name`` identifies the upload to ``build_record``; ``suffix`` becomes
    the ``_<suffix>`` part of the storage key.
    """

    name: str
    content: bytes
    extension: str = "mp3"
    content_type: str = "audio/mpeg"
    suffix: str | None = None


@dataclass
class RunContext:
    """Identity and ids fixed at the start of a run."""

    user_id: Any
    external_id: str
    plan: str
    record_id: UUID | str
    created_at: datetime


class GenerationJob(ABC):
    """A generation feature expressed as pipeline steps.

    Subclasses hold the validated request and describe what to charge,
    what to send to the provider, what to store and what to persist.
    """

    kind: RecordKind
    feature: str
    event_name: str
    provider: ProviderName | None = None

    def validate(self) -> None:
        """Raise ``ValidationError`` for unusable input."""

    @abstractmethod
    def quota_requests(self) -> list[QuotaRequest]:
        """Dimensions known before the provider call."""

    @abstractmethod
    def provider_request(self) -> ProviderRequest:
        """The request sent to the Provider Gateway."""

    def measured_quota_requests(self, result: ProviderResult) -> list[QuotaRequest]:
        """Dimensions only known from the provider result, e.g. minutes."""
        return []

    @abstractmethod
    def artifacts(self, result: ProviderResult) -> list[ArtifactUpload]:
        """Objects to upload. Must not be empty."""

    @abstractmethod
    def build_record(
        self,
        ctx: RunContext,
        result: ProviderResult,
        stored: dict[str, StoredArtifact],
    ) -> Any:
        """The generation record referencing the stored artifacts."""

    def event_properties(self, ctx: RunContext, result: ProviderResult, record: Any) -> dict:
        return {"recordId": str(ctx.record_id)}

    @abstractmethod
    def build_response(self, ctx: RunContext, result: ProviderResult, record: Any) -> Any:
        """The typed success payload."""


def retrieval_url(kind: RecordKind, record_id: UUID | str) -> str:
    """Proxy path serving a record's audio; the bucket itself is private."""
    return f"/api/{kind.value}/{record_id}/audio"


class GenerationPipeline:
    """Runs generation jobs against the ledgers, gateway and store."""

    def __init__(
        self,
        quota: QuotaLedger,
        gateway: ProviderGateway,
        store: ArtifactStore,
        records: GenerationLedger,
        analytics: AnalyticsClient | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], UUID | str] = generate_uuid,
    ):
        self.quota = quota
        self.gateway = gateway
        self.store = store
        self.records = records
        self.analytics = analytics
        self.clock = clock
        self.id_factory = id_factory

    async def run(self, job: GenerationJob, user: Any) -> Any:
        """Execute a job end to end.

        Args:
            job: The feature job.
            user: The caller's account.

        Returns:
            Whatever ``job.build_response`` returns.

        Raises:
            ValidationError: Invalid input; nothing happened.
            QuotaExceededError: A dimension would exceed the plan limit.
            ProviderError: The provider call failed; nothing was stored.
            ArtifactStoreError: An upload failed and partial uploads were removed.
            PersistenceError: A write failed after upload; compensation ran.
        """
        job.validate()

        # Read once: a failed write later in the run expires ORM state
        ctx = RunContext(
            user_id=user.user_id,
            external_id=user.external_id,
            plan=user.plan,
            record_id=self.id_factory(),
            created_at=self.clock(),
        )
        spec = record_spec(job.kind)

        with LogContext(feature=job.feature, user_id=ctx.external_id), tracer.start_as_current_span(
            f"pipeline.{job.feature}",
            attributes={
                "feature": job.feature,
                "user.id": ctx.external_id,
                "record.id": str(ctx.record_id),
            },
        ) as span:
            requests = list(job.quota_requests())
            decision = await self.quota.check_all(user, requests)
            if isinstance(decision, QuotaDenied):
                self._deny(job, ctx, decision)
            add_span_event(span, "quota_checked")

            try:
                result = await self.gateway.invoke(job.provider_request(), job.provider)
            except ProviderError as e:
                record_exception_on_span(span, e, {"provider": e.provider})
                logger.exception(
                    "Provider call failed",
                    provider=e.provider,
                    upstream_status=e.upstream_status,
                    record_id=str(ctx.record_id),
                )
                raise
            add_span_event(span, "provider_invoked", {"bytes": len(result.content)})

            measured = list(job.measured_quota_requests(result))
            if measured:
                requests = requests + measured
                decision = await self.quota.check_all(user, requests)
                if isinstance(decision, QuotaDenied):
                    self._deny(job, ctx, decision)

            stored = await self._upload_all(job, ctx, job.artifacts(result))
            add_span_event(span, "artifacts_uploaded", {"count": len(stored)})

            try:
                record = job.build_record(ctx, result, stored)
                await self.records.create(record)
            except Exception as e:
                cleanup_errors = await self._remove_artifacts(stored.values(), ctx)
                error = PersistenceError(
                    f"Failed to persist {spec.label} after uploading {spec.artifact_label}",
                    e,
                    cleanup_errors,
                )
                record_exception_on_span(span, error, {"step": "persist_record"})
                logger.exception(
                    "Record persistence failed",
                    record_id=str(ctx.record_id),
                    cleanup_failed=bool(cleanup_errors),
                )
                raise error from e
            add_span_event(span, "record_persisted")

            try:
                await self.quota.commit(user, requests, resource_id=str(ctx.record_id))
            except Exception as e:
                cleanup_errors = await self._delete_record(job.kind, ctx)
                cleanup_errors += await self._remove_artifacts(stored.values(), ctx)
                if isinstance(e, QuotaExceededError) and not cleanup_errors:
                    self._capture_limit_hit(job, ctx, e.denial)
                    raise
                error = PersistenceError("Failed to update user usage", e, cleanup_errors)
                record_exception_on_span(span, error, {"step": "commit_quota"})
                logger.exception(
                    "Quota commit failed",
                    record_id=str(ctx.record_id),
                    cleanup_failed=bool(cleanup_errors),
                )
                raise error from e
            add_span_event(span, "quota_committed")

            self._capture(
                ctx.external_id,
                job.event_name,
                lambda: job.event_properties(ctx, result, record),
            )
            logger.info("Generation completed", record_id=str(ctx.record_id))
            return job.build_response(ctx, result, record)

    def _deny(self, job: GenerationJob, ctx: RunContext, denial: QuotaDenied) -> None:
        self._capture_limit_hit(job, ctx, denial)
        raise QuotaExceededError(denial)

    def _capture_limit_hit(self, job: GenerationJob, ctx: RunContext, denial: QuotaDenied) -> None:
        logger.info(
            "Usage limit hit",
            dimension=denial.dimension.value,
            attempted=denial.attempted,
            limit=denial.limit,
        )
        self._capture(
            ctx.external_id,
            USAGE_LIMIT_HIT,
            {
                "feature": job.feature,
                "plan": ctx.plan,
                "limitType": denial.dimension.value,
                "attempted": denial.attempted,
                "limit": denial.limit,
            },
        )

    def _capture(
        self,
        distinct_id: str,
        event: str,
        properties: dict | Callable[[], dict],
    ) -> None:
        """Send an analytics event; never fails the caller.

        ``properties`` may be a callable so that building the payload is
        covered by the same guard as sending it.
        """
        if self.analytics is None:
            return
        try:
            if callable(properties):
                properties = properties()
            self.analytics.capture(distinct_id, event, properties)
        except Exception:
            logger.warning("Analytics capture failed", analytics_event=event, exc_info=True)

    async def _upload_all(
        self,
        job: GenerationJob,
        ctx: RunContext,
        uploads: list[ArtifactUpload],
    ) -> dict[str, StoredArtifact]:
        """Upload every artifact concurrently.

        If any upload fails the successful ones are removed before the
        failure propagates. Uploads are shielded so a disconnecting
        caller does not leave half-written objects behind: on
        cancellation the in-flight uploads are allowed to finish, the ones
        that landed are removed, and the cancellation is re-raised.
        """
        artifact_kind = record_spec(job.kind).artifact_kind
        keys = [
            ArtifactKey(
                kind=artifact_kind,
                user_id=ctx.external_id,
                record_id=ctx.record_id,
                extension=upload.extension,
                suffix=upload.suffix,
                created_at=ctx.created_at,
            )
            for upload in uploads
        ]
        pending = asyncio.gather(
            *(
                self.store.upload(key, upload.content, upload.content_type)
                for key, upload in zip(keys, uploads)
            ),
            return_exceptions=True,
        )
        try:
            results = await asyncio.shield(pending)
        except asyncio.CancelledError:
            outcomes = await pending
            landed = [o for o in outcomes if not isinstance(o, BaseException)]
            logger.warning(
                "Run cancelled during upload",
                record_id=str(ctx.record_id),
                uploaded=len(landed),
            )
            await self._remove_artifacts(landed, ctx)
            raise

        stored: dict[str, StoredArtifact] = {}
        failures: list[tuple[str, BaseException]] = []
        for key, upload, outcome in zip(keys, uploads, results):
            if isinstance(outcome, BaseException):
                failures.append((key.path, outcome))
            else:
                stored[upload.name] = outcome

        if not failures:
            return stored

        for path, failure in failures:
            logger.error("Artifact upload failed", path=path, error=str(failure))
        cleanup_errors = await self._remove_artifacts(stored.values(), ctx)
        first = failures[0][1]
        if cleanup_errors:
            label = record_spec(job.kind).artifact_label
            raise PersistenceError(f"Failed to upload {label}", first, cleanup_errors) from first
        raise first

    async def _remove_artifacts(
        self,
        artifacts: Any,
        ctx: RunContext,
    ) -> list[str]:
        """Remove uploaded artifacts, returning a description of each failure."""
        errors = []
        for artifact in artifacts:
            try:
                await self.store.remove(artifact.path, artifact.file_id)
            except Exception as e:
                errors.append(f"delete {artifact.path}: {e}")
                logger.error(
                    "Orphaned artifact",
                    path=artifact.path,
                    file_id=artifact.file_id,
                    record_id=str(ctx.record_id),
                    error=str(e),
                )
            else:
                logger.info("Compensated artifact", path=artifact.path)
        return errors

    async def _delete_record(self, kind: RecordKind, ctx: RunContext) -> list[str]:
        try:
            await self.records.delete_by_id(kind, ctx.record_id)
        except Exception as e:
            logger.error(
                "Failed to delete record during cleanup",
                record_id=str(ctx.record_id),
                error=str(e),
            )
            return [f"delete record {ctx.record_id}: {e}"]
        return []
