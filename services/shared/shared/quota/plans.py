"""Plan tiers, quota dimensions and the pure quota check.

Limits are per billing period (calendar month, UTC). Changing what a tier
allows is a matter of editing ``PLAN_LIMITS``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum


class PlanTier(str, Enum):
    """Subscription plan tiers."""

    FREE = "free"
    STARTER = "starter"
    CREATOR = "creator"
    PRO = "pro"


class QuotaDimension(str, Enum):
    """A metered resource. Values double as usage counter column names."""

    CHARACTERS = "characters"
    GENERATIONS = "generations"
    TRANSCRIPTIONS = "transcriptions"
    TRANSCRIPTION_MINUTES = "transcription_minutes"
    SOUND_EFFECTS = "sound_effects"
    MUSIC_GENERATIONS = "music_generations"
    VOICE_CONVERSIONS = "voice_conversions"
    VOICE_CONVERSION_MINUTES = "voice_conversion_minutes"
    VOICE_ISOLATIONS = "voice_isolations"
    VOICE_ISOLATION_MINUTES = "voice_isolation_minutes"
    DUBBINGS = "dubbings"
    DUBBING_MINUTES = "dubbing_minutes"
    DIALOGUE_GENERATIONS = "dialogue_generations"
    DIALOGUE_CHARACTERS = "dialogue_characters"
    CLONED_VOICES = "cloned_voices"


# Dimensions measured in minutes; all others are whole units
MINUTE_DIMENSIONS = frozenset({
    QuotaDimension.TRANSCRIPTION_MINUTES,
    QuotaDimension.VOICE_CONVERSION_MINUTES,
    QuotaDimension.VOICE_ISOLATION_MINUTES,
    QuotaDimension.DUBBING_MINUTES,
})

D = QuotaDimension

PLAN_LIMITS: dict[PlanTier, dict[QuotaDimension, float]] = {
    PlanTier.FREE: {
        D.CHARACTERS: 10_000,
        D.GENERATIONS: 10,
        D.TRANSCRIPTIONS: 3,
        D.TRANSCRIPTION_MINUTES: 5,
        D.SOUND_EFFECTS: 10,
        D.MUSIC_GENERATIONS: 3,
        D.VOICE_CONVERSIONS: 3,
        D.VOICE_CONVERSION_MINUTES: 3,
        D.VOICE_ISOLATIONS: 3,
        D.VOICE_ISOLATION_MINUTES: 3,
        D.DUBBINGS: 2,
        D.DUBBING_MINUTES: 5,
        D.DIALOGUE_GENERATIONS: 5,
        D.DIALOGUE_CHARACTERS: 3_000,
        D.CLONED_VOICES: 0,
    },
    PlanTier.STARTER: {
        D.CHARACTERS: 22_000,
        D.GENERATIONS: 50,
        D.TRANSCRIPTIONS: 15,
        D.TRANSCRIPTION_MINUTES: 30,
        D.SOUND_EFFECTS: 100,
        D.MUSIC_GENERATIONS: 15,
        D.VOICE_CONVERSIONS: 15,
        D.VOICE_CONVERSION_MINUTES: 20,
        D.VOICE_ISOLATIONS: 15,
        D.VOICE_ISOLATION_MINUTES: 20,
        D.DUBBINGS: 10,
        D.DUBBING_MINUTES: 30,
        D.DIALOGUE_GENERATIONS: 30,
        D.DIALOGUE_CHARACTERS: 15_000,
        D.CLONED_VOICES: 3,
    },
    PlanTier.CREATOR: {
        D.CHARACTERS: 93_000,
        D.GENERATIONS: 200,
        D.TRANSCRIPTIONS: 50,
        D.TRANSCRIPTION_MINUTES: 90,
        D.SOUND_EFFECTS: 300,
        D.MUSIC_GENERATIONS: 50,
        D.VOICE_CONVERSIONS: 50,
        D.VOICE_CONVERSION_MINUTES: 60,
        D.VOICE_ISOLATIONS: 50,
        D.VOICE_ISOLATION_MINUTES: 60,
        D.DUBBINGS: 25,
        D.DUBBING_MINUTES: 90,
        D.DIALOGUE_GENERATIONS: 80,
        D.DIALOGUE_CHARACTERS: 50_000,
        D.CLONED_VOICES: 10,
    },
    PlanTier.PRO: {
        D.CHARACTERS: 500_000,
        D.GENERATIONS: 1_000,
        D.TRANSCRIPTIONS: 200,
        D.TRANSCRIPTION_MINUTES: 300,
        D.SOUND_EFFECTS: 800,
        D.MUSIC_GENERATIONS: 250,
        D.VOICE_CONVERSIONS: 200,
        D.VOICE_CONVERSION_MINUTES: 200,
        D.VOICE_ISOLATIONS: 200,
        D.VOICE_ISOLATION_MINUTES: 200,
        D.DUBBINGS: 100,
        D.DUBBING_MINUTES: 300,
        D.DIALOGUE_GENERATIONS: 300,
        D.DIALOGUE_CHARACTERS: 200_000,
        D.CLONED_VOICES: 30,
    },
}


@dataclass(frozen=True)
class QuotaRequest:
    """A planned increment of one dimension."""

    dimension: QuotaDimension
    amount: float

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Quota amount must be non-negative, got {self.amount}")


@dataclass(frozen=True)
class QuotaAllowed:
    """Every requested dimension fits under its limit."""

    allowed = True


@dataclass(frozen=True)
class QuotaDenied:
    """A dimension that would exceed its limit."""

    dimension: QuotaDimension
    attempted: float
    limit: float

    allowed = False


QuotaDecision = QuotaAllowed | QuotaDenied

QUOTA_ALLOWED = QuotaAllowed()


def get_plan_limits(plan: PlanTier | str) -> dict[QuotaDimension, float]:
    """Get the limit table for a plan, falling back to the free tier.

    Args:
        plan: Plan tier or its string value.

    Returns:
        Mapping of dimension to limit.
    """
    try:
        return PLAN_LIMITS[PlanTier(plan)]
    except ValueError:
        return PLAN_LIMITS[PlanTier.FREE]


def merge_requests(requests: Iterable[QuotaRequest]) -> list[QuotaRequest]:
    """Sum amounts for repeated dimensions, keeping first-seen order."""
    totals: dict[QuotaDimension, float] = {}
    for request in requests:
        totals[request.dimension] = totals.get(request.dimension, 0) + request.amount
    return [QuotaRequest(dimension, amount) for dimension, amount in totals.items()]


def check_quota(
    used: float,
    amount: float,
    limit: float,
    dimension: QuotaDimension,
) -> QuotaDecision:
    """Check one dimension.

    Args:
        used: Amount already consumed this period.
        amount: Planned increment.
        limit: Plan limit for the dimension.
        dimension: The dimension being checked.

    Returns:
        QuotaAllowed if ``used + amount`` stays within ``limit``,
        otherwise QuotaDenied with the attempted total.
    """
    if amount < 0:
        raise ValueError(f"Quota amount must be non-negative, got {amount}")
    attempted = used + amount
    if attempted > limit:
        return QuotaDenied(dimension=dimension, attempted=attempted, limit=limit)
    return QUOTA_ALLOWED


def evaluate_quota(
    usage: Mapping[QuotaDimension, float],
    limits: Mapping[QuotaDimension, float],
    requests: Iterable[QuotaRequest],
) -> QuotaDecision:
    """Check every dimension a request touches.

    Dimensions are checked in request order and the first breach is
    reported. Nothing is mutated.

    Args:
        usage: Current consumption per dimension.
        limits: Plan limits per dimension.
        requests: Planned increments.

    Returns:
        QuotaAllowed if every dimension fits, else the first QuotaDenied.
    """
    for request in merge_requests(requests):
        decision = check_quota(
            used=usage.get(request.dimension, 0),
            amount=request.amount,
            limit=limits.get(request.dimension, 0),
            dimension=request.dimension,
        )
        if isinstance(decision, QuotaDenied):
            return decision
    return QUOTA_ALLOWED
