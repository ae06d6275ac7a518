"""
Unit tests for change planning.

Covers the greedy fast path, the bounded search, reserve protection and
the drawer fallbacks.
"""

from decimal import Decimal
from itertools import product

import pytest

from core.value_objects import ChangePlan, HopperInventory
from domain.change_calculator import (
    AMOUNT_LIMIT_REASON,
    INSUFFICIENT_COINS_REASON,
    INVALID_AMOUNT_REASON,
    RESERVE_BREACH_REASON,
    ChangeCalculator,
    _is_canonical,
    calculate_optimal_change,
    format_change_plan,
    normalize_hoppers,
)


def hopper(denomination, available, low_threshold=0):
    return HopperInventory(Decimal(denomination), available, low_threshold)


def plan_counts(plan):
    return {str(line.denomination): line.quantity for line in plan.denominations}


def brute_force_min_coins(amount_cents, channels, allowed=None):
    """Smallest coin count over every combination, None if impossible."""
    best = None
    for counts in product(*(range(available + 1) for _, available in channels)):
        if sum(count * cents for count, (cents, _) in zip(counts, channels)) != amount_cents:
            continue
        if allowed is not None and not allowed(counts):
            continue
        total = sum(counts)
        if best is None or total < best:
            best = total
    return best


# =============================================================================
# Reference Scenarios
# =============================================================================


class TestScenarios:
    """Tests for the documented reference scenarios."""

    def test_mixed_hoppers_use_one_coin_each(self):
        """1.30 from 0.10/0.20/1.00 hoppers uses three coins."""
        hoppers = [hopper("0.10", 5, 2), hopper("0.20", 3, 1), hopper("1.00", 10, 2)]

        plan = calculate_optimal_change(Decimal("1.30"), hoppers)

        assert plan.feasible is True
        assert plan.use_drawer is False
        assert plan.total_coins == 3
        assert [(line.denomination, line.quantity) for line in plan.denominations] == [
            (Decimal("1.00"), 1),
            (Decimal("0.20"), 1),
            (Decimal("0.10"), 1),
        ]
        assert plan.reason is None

    def test_plan_emptying_critical_hopper_is_flagged(self):
        """Only the reserve-breaking plan exists, so it is returned with a reason."""
        plan = calculate_optimal_change(Decimal("2.00"), [hopper("0.20", 10, 8)])

        assert plan.feasible is True
        assert plan.total_coins == 10
        assert plan.reason == RESERVE_BREACH_REASON

    def test_zero_amount(self):
        """Zero change is feasible with no coins."""
        plan = calculate_optimal_change(Decimal("0.00"), [hopper("1.00", 10)])

        assert plan == ChangePlan.empty()
        assert plan.feasible is True
        assert plan.total_coins == 0
        assert plan.denominations == ()


# =============================================================================
# Reserve Protection
# =============================================================================


class TestReserveProtection:
    """Tests for keeping critical denominations above their threshold."""

    def test_greedy_rejected_when_alternative_keeps_reserve(self):
        """Greedy would leave 7 x 0.20 below the threshold of 8."""
        hoppers = [hopper("0.20", 10, 8), hopper("0.10", 20, 0)]

        plan = calculate_optimal_change("0.60", hoppers)

        assert plan.feasible is True
        assert plan.reason is None
        assert plan_counts(plan) == {"0.20": 2, "0.10": 2}

    def test_non_critical_denominations_may_be_emptied(self):
        """Thresholds only bind critical denominations."""
        plan = calculate_optimal_change("5.00", [hopper("1.00", 5, 4)])

        assert plan_counts(plan) == {"1.00": 5}
        assert plan.reason is None

    def test_custom_critical_denominations(self):
        """Critical denominations are configurable."""
        calculator = ChangeCalculator(critical_denominations=["1.00"])

        plan = calculator.calculate("2.00", [hopper("1.00", 3, 2), hopper("0.50", 4)])

        assert plan_counts(plan) == {"1.00": 1, "0.50": 2}

    def test_reserve_respecting_plans_are_minimal(self):
        """Matches exhaustive search over plans that keep the reserve."""
        channels = [(20, 5, 3), (10, 4, 2), (5, 4, 1)]
        hoppers = [hopper(Decimal(cents) / 100, available, low) for cents, available, low in channels]
        calculator = ChangeCalculator(critical_denominations=["0.05", "0.10", "0.20"])

        def keeps_reserve(counts):
            return all(
                available - count >= low
                for count, (_, available, low) in zip(counts, channels)
                if count
            )

        simple = [(cents, available) for cents, available, _ in channels]
        for amount in range(5, 200, 5):
            plan = calculator.calculate(Decimal(amount) / 100, hoppers)
            protected = brute_force_min_coins(amount, simple, keeps_reserve)
            unprotected = brute_force_min_coins(amount, simple)

            if protected is not None:
                assert plan.reason is None, amount
                assert plan.total_coins == protected, amount
            elif unprotected is not None:
                assert plan.reason == RESERVE_BREACH_REASON, amount
                assert plan.total_coins == unprotected, amount
            else:
                assert plan.use_drawer is True, amount


# =============================================================================
# Optimality
# =============================================================================


class TestOptimality:
    """Tests for minimal coin counts under stock limits."""

    @pytest.fixture
    def calculator(self):
        return ChangeCalculator(critical_denominations=[])

    def test_non_canonical_set_beats_greedy(self, calculator):
        """0.30 from 0.25/0.10/0.01 is three 0.10 coins, not 0.25 + 5 x 0.01."""
        hoppers = [hopper("0.25", 5), hopper("0.10", 5), hopper("0.01", 10)]

        plan = calculator.calculate("0.30", hoppers)

        assert plan_counts(plan) == {"0.10": 3}

    def test_stock_limited_greedy_dead_end(self, calculator):
        """Taking the single 0.50 leaves 0.10 that 0.20 coins cannot pay."""
        plan = calculator.calculate("0.60", [hopper("0.50", 1), hopper("0.20", 5)])

        assert plan_counts(plan) == {"0.20": 3}

    @pytest.mark.parametrize(
        "channels",
        [
            [(25, 3), (10, 4), (1, 4)],
            [(50, 1), (20, 4), (10, 2)],
            [(30, 3), (20, 3), (5, 2)],
            [(100, 2), (50, 2), (20, 3), (10, 3), (5, 4)],
        ],
    )
    def test_matches_exhaustive_search(self, calculator, channels):
        """Feasibility, exact sum and minimal count for every amount."""
        hoppers = [hopper(Decimal(cents) / 100, available) for cents, available in channels]
        stock = {Decimal(cents) / 100: available for cents, available in channels}

        for amount in range(1, 301):
            plan = calculator.calculate(Decimal(amount) / 100, hoppers)
            best = brute_force_min_coins(amount, channels)

            if best is None:
                assert plan.feasible is False, amount
                assert plan.use_drawer is True, amount
                continue

            assert plan.feasible is True, amount
            assert plan.total_amount == Decimal(amount) / 100, amount
            assert plan.total_coins == best, amount
            for line in plan.denominations:
                assert line.quantity <= stock[line.denomination], amount

    def test_large_amount_with_many_coins(self, calculator):
        """Large stocks stay fast and exact."""
        hoppers = [hopper("0.05", 5000), hopper("0.20", 5000), hopper("0.50", 3)]

        plan = calculator.calculate("999.95", hoppers)

        assert plan.feasible is True
        assert plan.total_amount == Decimal("999.95")
        assert plan_counts(plan) == {"0.50": 3, "0.20": 4992, "0.05": 1}

    def test_large_notes_with_small_coins(self, calculator):
        """A 10000.00 channel next to cent coins still plans exactly."""
        hoppers = [hopper("10000.00", 1), hopper("0.05", 10), hopper("0.01", 10)]

        plan = calculator.calculate("0.12", hoppers)

        assert plan_counts(plan) == {"0.05": 2, "0.01": 2}

    def test_canonicity_range_bounded_by_ceiling(self):
        """Systems needing a table beyond the ceiling are left to the DP."""
        assert _is_canonical((1_000_000, 5, 1), 100_000) is False
        assert _is_canonical((100, 50, 20, 10, 5, 1), 100_000) is True
        assert _is_canonical((25, 10, 1), 100_000) is False


# =============================================================================
# Drawer Fallback
# =============================================================================


class TestDrawerFallback:
    """Tests for plans that fall back to a manual payout."""

    def test_not_enough_value(self):
        """Total stock below the amount."""
        plan = calculate_optimal_change("5.00", [hopper("1.00", 2), hopper("0.50", 3)])

        assert plan.feasible is False
        assert plan.use_drawer is True
        assert plan.reason == INSUFFICIENT_COINS_REASON
        assert plan.denominations == ()

    def test_no_hoppers(self):
        """An empty snapshot cannot pay anything."""
        plan = calculate_optimal_change("0.10", [])

        assert plan.use_drawer is True

    def test_unreachable_remainder(self):
        """0.05 cannot be built from 0.10 coins."""
        plan = calculate_optimal_change("0.15", [hopper("0.10", 10)])

        assert plan.use_drawer is True
        assert plan.reason == INSUFFICIENT_COINS_REASON

    @pytest.mark.parametrize("amount", ["abc", "-1.00", float("nan"), None])
    def test_invalid_amount(self, amount):
        """Invalid amounts never raise."""
        plan = calculate_optimal_change(amount, [hopper("1.00", 10)])

        assert plan.use_drawer is True
        assert plan.reason == INVALID_AMOUNT_REASON

    def test_amount_over_limit(self):
        """Amounts above the configured limit go to the drawer."""
        calculator = ChangeCalculator(max_change_amount="10.00")

        plan = calculator.calculate("10.01", [hopper("1.00", 100)])

        assert plan.use_drawer is True
        assert plan.reason == AMOUNT_LIMIT_REASON


# =============================================================================
# Input Handling
# =============================================================================


class TestInputHandling:
    """Tests for amount parsing and hopper normalization."""

    def test_float_amount_rounds_to_cents(self):
        """1.3 is exactly 130 cents."""
        plan = calculate_optimal_change(1.3, [hopper("1.00", 1), hopper("0.10", 3)])

        assert plan_counts(plan) == {"1.00": 1, "0.10": 3}

    def test_half_cent_rounds_up(self):
        """0.105 rounds to 0.11."""
        plan = calculate_optimal_change("0.105", [hopper("0.10", 1), hopper("0.01", 5)])

        assert plan.total_amount == Decimal("0.11")

    def test_unsorted_and_duplicate_hoppers(self):
        """Duplicate channels are merged and sorted largest first."""
        hoppers = [
            hopper("0.10", 2, 1),
            hopper("1.00", 1),
            hopper("0.10", 3, 1),
            hopper("0.00", 50),
            hopper("-0.50", 5),
            hopper("0.50", 0),
        ]

        normalized = normalize_hoppers(hoppers)

        assert [(h.denomination, h.available, h.low_threshold) for h in normalized] == [
            (Decimal("1.00"), 1, 0),
            (Decimal("0.10"), 5, 2),
        ]

    def test_merged_duplicates_are_usable(self):
        """Stock from duplicate channels adds up."""
        plan = calculate_optimal_change("0.50", [hopper("0.10", 3), hopper("0.10", 2)])

        assert plan_counts(plan) == {"0.10": 5}

    def test_input_is_not_mutated(self):
        """The snapshot passed in is left untouched."""
        hoppers = [hopper("0.20", 3), hopper("1.00", 1)]
        before = list(hoppers)

        calculate_optimal_change("1.20", hoppers)

        assert hoppers == before


# =============================================================================
# Formatting
# =============================================================================


class TestFormatChangePlan:
    """Tests for plan display strings."""

    def test_format_coins(self):
        plan = calculate_optimal_change("1.30", [hopper("1.00", 2), hopper("0.20", 2), hopper("0.10", 5)])

        assert format_change_plan(plan) == "RM1.00 x 1 + RM0.20 x 1 + RM0.10 x 1 (3 coins)"

    def test_format_custom_symbol(self):
        plan = calculate_optimal_change("2.00", [hopper("1.00", 5)])

        assert format_change_plan(plan, currency_symbol="$") == "$1.00 x 2 (2 coins)"

    def test_format_drawer(self):
        assert format_change_plan(ChangePlan.drawer("Out of coins")) == "Drawer payout: Out of coins"

    def test_format_empty(self):
        assert format_change_plan(ChangePlan.empty()) == "No change due"

    def test_to_dict(self):
        plan = calculate_optimal_change("0.30", [hopper("0.20", 1), hopper("0.10", 1)])

        assert plan.to_dict() == {
            "denominations": [
                {"denomination": "0.20", "quantity": 1},
                {"denomination": "0.10", "quantity": 1},
            ],
            "total_coins": 2,
            "feasible": True,
            "use_drawer": False,
        }
