"""Tests for plan limits and the pure quota check."""

import pytest

from shared.quota import (
    PLAN_LIMITS,
    QuotaAllowed,
    QuotaDenied,
    QuotaDimension,
    QuotaRequest,
    PlanTier,
    check_quota,
    evaluate_quota,
    get_plan_limits,
    merge_requests,
)


# ============================================================================
# check_quota
# ============================================================================


class TestCheckQuota:
    """Tests for the single-dimension check."""

    def test_allows_increment_within_limit(self):
        """9,990 used plus 5 stays under a 10,000 character limit."""
        decision = check_quota(9_990, 5, 10_000, QuotaDimension.CHARACTERS)
        assert isinstance(decision, QuotaAllowed)
        assert decision.allowed is True

    def test_denies_increment_over_limit(self):
        """9,990 used plus 20 breaches the limit and reports the attempt."""
        decision = check_quota(9_990, 20, 10_000, QuotaDimension.CHARACTERS)
        assert isinstance(decision, QuotaDenied)
        assert decision.allowed is False
        assert decision.dimension == QuotaDimension.CHARACTERS
        assert decision.attempted == 10_010
        assert decision.limit == 10_000

    def test_exact_limit_is_allowed(self):
        """Reaching the limit exactly is still allowed."""
        decision = check_quota(9, 1, 10, QuotaDimension.GENERATIONS)
        assert decision.allowed is True

    def test_zero_limit_denies_any_use(self):
        """A zero limit blocks the first unit."""
        decision = check_quota(0, 1, 0, QuotaDimension.CLONED_VOICES)
        assert isinstance(decision, QuotaDenied)
        assert decision.attempted == 1

    def test_zero_amount_is_allowed_at_limit(self):
        """A zero increment never breaches."""
        assert check_quota(10, 0, 10, QuotaDimension.GENERATIONS).allowed is True

    def test_negative_amount_rejected(self):
        """Negative increments are programming errors."""
        with pytest.raises(ValueError):
            check_quota(0, -1, 10, QuotaDimension.GENERATIONS)


# ============================================================================
# evaluate_quota
# ============================================================================


class TestEvaluateQuota:
    """Tests for multi-dimension evaluation."""

    def test_all_dimensions_fit(self):
        """Every touched dimension under its limit is allowed."""
        usage = {QuotaDimension.GENERATIONS: 2, QuotaDimension.CHARACTERS: 100}
        limits = get_plan_limits(PlanTier.FREE)
        decision = evaluate_quota(
            usage,
            limits,
            [
                QuotaRequest(QuotaDimension.GENERATIONS, 1),
                QuotaRequest(QuotaDimension.CHARACTERS, 500),
            ],
        )
        assert decision.allowed is True

    def test_reports_first_breached_dimension(self):
        """The first breach in request order is reported."""
        usage = {QuotaDimension.DIALOGUE_GENERATIONS: 5}
        limits = get_plan_limits(PlanTier.FREE)
        decision = evaluate_quota(
            usage,
            limits,
            [
                QuotaRequest(QuotaDimension.DIALOGUE_GENERATIONS, 1),
                QuotaRequest(QuotaDimension.DIALOGUE_CHARACTERS, 10_000),
            ],
        )
        assert isinstance(decision, QuotaDenied)
        assert decision.dimension == QuotaDimension.DIALOGUE_GENERATIONS
        assert decision.attempted == 6

    def test_missing_usage_counts_as_zero(self):
        """Dimensions without a usage entry start at zero."""
        decision = evaluate_quota(
            {},
            {QuotaDimension.SOUND_EFFECTS: 1},
            [QuotaRequest(QuotaDimension.SOUND_EFFECTS, 1)],
        )
        assert decision.allowed is True

    def test_repeated_dimension_is_summed(self):
        """Two requests on one dimension are checked as their total."""
        decision = evaluate_quota(
            {QuotaDimension.CHARACTERS: 0},
            {QuotaDimension.CHARACTERS: 10},
            [
                QuotaRequest(QuotaDimension.CHARACTERS, 6),
                QuotaRequest(QuotaDimension.CHARACTERS, 6),
            ],
        )
        assert isinstance(decision, QuotaDenied)
        assert decision.attempted == 12

    def test_does_not_mutate_usage(self):
        """Evaluation is a pure read."""
        usage = {QuotaDimension.GENERATIONS: 3}
        evaluate_quota(usage, {QuotaDimension.GENERATIONS: 10}, [QuotaRequest(QuotaDimension.GENERATIONS, 1)])
        assert usage == {QuotaDimension.GENERATIONS: 3}


# ============================================================================
# Plan table
# ============================================================================


class TestPlanLimits:
    """Tests for the plan limit table."""

    def test_free_plan_text_limits(self):
        """The free tier allows 10,000 characters and 10 generations."""
        limits = get_plan_limits("free")
        assert limits[QuotaDimension.CHARACTERS] == 10_000
        assert limits[QuotaDimension.GENERATIONS] == 10

    def test_unknown_plan_falls_back_to_free(self):
        """An unrecognised plan string is treated as free."""
        assert get_plan_limits("enterprise") is PLAN_LIMITS[PlanTier.FREE]

    @pytest.mark.parametrize("tier", list(PlanTier))
    def test_every_tier_defines_every_dimension(self, tier):
        """No dimension is left without a limit on any tier."""
        assert set(PLAN_LIMITS[tier]) == set(QuotaDimension)

    def test_tiers_are_non_decreasing(self):
        """Higher tiers never allow less than lower ones."""
        order = [PlanTier.FREE, PlanTier.STARTER, PlanTier.CREATOR, PlanTier.PRO]
        for lower, higher in zip(order, order[1:]):
            for dimension in QuotaDimension:
                assert PLAN_LIMITS[lower][dimension] <= PLAN_LIMITS[higher][dimension]


class TestQuotaRequest:
    """Tests for request construction helpers."""

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            QuotaRequest(QuotaDimension.CHARACTERS, -5)

    def test_merge_keeps_first_seen_order(self):
        merged = merge_requests([
            QuotaRequest(QuotaDimension.GENERATIONS, 1),
            QuotaRequest(QuotaDimension.CHARACTERS, 10),
            QuotaRequest(QuotaDimension.GENERATIONS, 2),
        ])
        assert merged == [
            QuotaRequest(QuotaDimension.GENERATIONS, 3),
            QuotaRequest(QuotaDimension.CHARACTERS, 10),
        ]
