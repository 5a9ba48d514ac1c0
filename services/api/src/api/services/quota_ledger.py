"""Quota Ledger: per-user, per-period consumption against plan limits.

Counters live in one ``UsageCounter`` row per user and calendar month.
Checks read that row; commits apply every dimension of a run in a single
conditional UPDATE so two concurrent runs can never push a counter past
its limit.
"""

import calendar
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.db.models import UsageCounter, UsageRecord, User, utcnow
from shared.logging import get_logger
from shared.quota import (
    MINUTE_DIMENSIONS,
    PlanTier,
    QuotaDecision,
    QuotaDenied,
    QuotaDimension,
    QuotaRequest,
    check_quota,
    evaluate_quota,
    get_plan_limits,
    merge_requests,
)

from ..errors import QuotaExceededError

logger = get_logger(__name__)


def period_bounds(today: date) -> tuple[date, date]:
    """First and last day of the UTC calendar month containing ``today``."""
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def usage_percentage(used: float, limit: float) -> int:
    """Share of a limit consumed, capped at 100 and 0 for a zero limit."""
    if limit <= 0:
        return 0
    return min(100, round(used / limit * 100))


@dataclass
class DimensionUsage:
    dimension: QuotaDimension
    used: float
    limit: float
    percentage: int


@dataclass
class UsageSummary:
    """Current-period usage for the usage dashboard."""

    plan: str
    period_start: date
    period_end: date
    days_elapsed: int
    days_remaining: int
    dimensions: list[DimensionUsage] = field(default_factory=list)
    average_daily_characters: float = 0.0
    average_daily_generations: float = 0.0

    def get(self, dimension: QuotaDimension) -> DimensionUsage | None:
        for item in self.dimensions:
            if item.dimension == dimension:
                return item
        return None


class QuotaLedger:
    """Reads and commits usage for one database session."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the ledger.

        Args:
            session: Database session.
            clock: Returns the current UTC time; selects the billing period.
        """
        self.session = session
        self.clock = clock

    def current_period(self) -> tuple[date, date]:
        return period_bounds(self.clock().date())

    async def get_or_create_account(
        self,
        external_id: str,
        email: str | None = None,
        display_name: str | None = None,
    ) -> User:
        """Find the account for an identity provider id, creating it on first use.

        New accounts start on the free plan.
        """
        user = await self._find_account(external_id)
        if user is not None:
            return user

        user = User(
            external_id=external_id,
            email=email,
            display_name=display_name,
            plan=PlanTier.FREE.value,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            # Another request created the account first
            await self.session.rollback()
            existing = await self._find_account(external_id)
            if existing is None:
                raise
            return existing

        logger.info("Created user account", external_id=external_id, plan=user.plan)
        return user

    async def _find_account(self, external_id: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.external_id == external_id)
        )
        return result.scalar_one_or_none()

    async def get_usage(self, user: User) -> UsageCounter:
        """Get the usage counters for the current period, creating the row lazily."""
        period_start, _ = self.current_period()
        counter = await self._find_counter(user.user_id, period_start)
        if counter is not None:
            return counter

        counter = UsageCounter(user_id=user.user_id, period_start=period_start)
        self.session.add(counter)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            existing = await self._find_counter(user.user_id, period_start)
            if existing is None:
                raise
            return existing

        logger.debug(
            "Opened usage period",
            user_id=str(user.user_id),
            period_start=period_start.isoformat(),
        )
        return counter

    async def _find_counter(
        self,
        user_id: Any,
        period_start: date,
        refresh: bool = False,
    ) -> UsageCounter | None:
        query = select(UsageCounter).where(
            UsageCounter.user_id == user_id,
            UsageCounter.period_start == period_start,
        )
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    def usage_map(counter: UsageCounter) -> dict[QuotaDimension, float]:
        return {dimension: getattr(counter, dimension.value) for dimension in QuotaDimension}

    async def check_and_reserve(
        self,
        user: User,
        dimension: QuotaDimension,
        amount: float,
    ) -> QuotaDecision:
        """Check whether ``amount`` more of one dimension fits the plan.

        Nothing is written; the increment is applied by ``commit``.
        """
        counter = await self.get_usage(user)
        limits = get_plan_limits(user.plan)
        return check_quota(
            used=getattr(counter, dimension.value),
            amount=amount,
            limit=limits.get(dimension, 0),
            dimension=dimension,
        )

    async def check_all(
        self,
        user: User,
        requests: Iterable[QuotaRequest],
    ) -> QuotaDecision:
        """Check every dimension of a run; the first breach wins."""
        counter = await self.get_usage(user)
        return evaluate_quota(
            self.usage_map(counter),
            get_plan_limits(user.plan),
            requests,
        )

    async def commit(
        self,
        user: User,
        requests: Iterable[QuotaRequest],
        resource_id: str | None = None,
    ) -> None:
        """Apply every increment of a run atomically.

        Args:
            user: Account to charge.
            requests: Increments to apply; repeated dimensions are summed.
            resource_id: Generation record the usage belongs to.

        Raises:
            QuotaExceededError: If a concurrent run consumed the headroom.
                No counter is changed.
            SQLAlchemyError: If the database write fails. The session is
                rolled back.
        """
        merged = [r for r in merge_requests(requests) if r.amount > 0]
        if not merged:
            return

        user_id = user.user_id
        limits = get_plan_limits(user.plan)
        counter = await self.get_usage(user)
        counter_id = counter.usage_counter_id
        period_start = counter.period_start

        values: dict[str, Any] = {"updated_at": self.clock()}
        conditions = [UsageCounter.usage_counter_id == counter_id]
        for request in merged:
            column = getattr(UsageCounter, request.dimension.value)
            amount = _column_amount(request)
            values[request.dimension.value] = column + amount
            conditions.append(column + amount <= limits.get(request.dimension, 0))

        statement = (
            update(UsageCounter)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self.session.execute(statement)
            if result.rowcount == 0:
                fresh = await self._find_counter(user_id, period_start, refresh=True)
                denial = _denial_for(fresh, limits, merged)
                await self.session.rollback()
                logger.warning(
                    "Quota commit rejected",
                    user_id=str(user_id),
                    dimension=denial.dimension.value,
                    attempted=denial.attempted,
                    limit=denial.limit,
                )
                raise QuotaExceededError(denial)

            for request in merged:
                self.session.add(
                    UsageRecord(
                        user_id=user_id,
                        dimension=request.dimension.value,
                        amount=request.amount,
                        resource_id=resource_id,
                    )
                )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

        logger.info(
            "Usage committed",
            user_id=str(user_id),
            resource_id=resource_id,
            dimensions={r.dimension.value: r.amount for r in merged},
        )

    async def usage_summary(self, user: User) -> UsageSummary:
        """Per-dimension usage for the current period."""
        counter = await self.get_usage(user)
        limits = get_plan_limits(user.plan)
        period_start, period_end = self.current_period()
        today = self.clock().date()
        days_elapsed = (today - period_start).days + 1
        days_remaining = (period_end - today).days

        dimensions = []
        for dimension in QuotaDimension:
            used = getattr(counter, dimension.value)
            limit = limits.get(dimension, 0)
            dimensions.append(
                DimensionUsage(
                    dimension=dimension,
                    used=used,
                    limit=limit,
                    percentage=usage_percentage(used, limit),
                )
            )

        return UsageSummary(
            plan=user.plan,
            period_start=period_start,
            period_end=period_end,
            days_elapsed=days_elapsed,
            days_remaining=days_remaining,
            dimensions=dimensions,
            average_daily_characters=round(counter.characters / days_elapsed, 1),
            average_daily_generations=round(counter.generations / days_elapsed, 1),
        )


def _column_amount(request: QuotaRequest) -> float | int:
    if request.dimension in MINUTE_DIMENSIONS:
        return float(request.amount)
    return int(request.amount) if float(request.amount).is_integer() else request.amount


def _denial_for(
    counter: UsageCounter | None,
    limits: dict[QuotaDimension, float],
    requests: list[QuotaRequest],
) -> QuotaDenied:
    """Work out which dimension blocked a rejected commit."""
    usage = QuotaLedger.usage_map(counter) if counter is not None else {}
    decision = evaluate_quota(usage, limits, requests)
    if isinstance(decision, QuotaDenied):
        return decision
    # The row changed again between the update and this read
    first = requests[0]
    return QuotaDenied(
        dimension=first.dimension,
        attempted=usage.get(first.dimension, 0) + first.amount,
        limit=limits.get(first.dimension, 0),
    )
