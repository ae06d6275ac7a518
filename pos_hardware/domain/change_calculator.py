"""
Change Calculator - Inventory-constrained change planning.

Computes the coin/note dispensing plan with the fewest pieces that pays a
change amount exactly from the hoppers, while keeping critical small
denominations above their low threshold whenever possible.

All arithmetic is done in integer cents.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from math import gcd
from typing import Iterable, Optional, Sequence

from core.value_objects import (
    Amount,
    ChangePlan,
    DenominationQuantity,
    HopperInventory,
    Money,
)
from infrastructure.settings import get_settings
from loggers import logger


INSUFFICIENT_COINS_REASON = "Insufficient coins in hoppers"
INVALID_AMOUNT_REASON = "Invalid change amount"
AMOUNT_LIMIT_REASON = "Change amount exceeds hopper limit"
RESERVE_BREACH_REASON = "Critical denominations dispensed below low threshold"


# =============================================================================
# Hopper Normalization
# =============================================================================


@dataclass(frozen=True)
class _Channel:
    """A merged hopper channel in cents."""

    cents: int
    available: int
    low_threshold: int

    @property
    def denomination(self) -> Decimal:
        return Money(cents=self.cents).amount


def _merge_channels(hoppers: Iterable[HopperInventory]) -> list[_Channel]:
    merged: dict[int, list[int]] = {}
    for hopper in hoppers:
        try:
            cents = Money.from_amount(hopper.denomination).cents
        except ValueError:
            logger.warning(f"Ignoring hopper with invalid denomination: {hopper.denomination!r}")
            continue
        if cents <= 0 or hopper.available <= 0:
            continue
        counts = merged.setdefault(cents, [0, 0])
        counts[0] += int(hopper.available)
        counts[1] += max(0, int(hopper.low_threshold))

    return [
        _Channel(cents=cents, available=available, low_threshold=threshold)
        for cents, (available, threshold) in sorted(merged.items(), reverse=True)
    ]


def normalize_hoppers(hoppers: Iterable[HopperInventory]) -> list[HopperInventory]:
    """
    Merge duplicate denominations and sort largest first.

    Channels with a non-positive denomination or no stock are dropped.
    Available counts and low thresholds of duplicate channels are summed.
    """
    return [
        HopperInventory(
            denomination=channel.denomination,
            available=channel.available,
            low_threshold=channel.low_threshold,
        )
        for channel in _merge_channels(hoppers)
    ]


# =============================================================================
# Algorithms
# =============================================================================


def _greedy(amount: int, channels: Sequence[_Channel]) -> tuple[Optional[list[int]], bool]:
    """
    Largest-first fill limited by stock.

    Returns:
        Per-channel counts (None if the amount is not reached) and whether
        any channel ran out of stock before its greedy share was taken.
    """
    counts = [0] * len(channels)
    remaining = amount
    cap_limited = False

    for index, channel in enumerate(channels):
        if remaining == 0:
            break
        wanted = remaining // channel.cents
        taken = min(wanted, channel.available)
        if taken < wanted:
            cap_limited = True
        counts[index] = taken
        remaining -= taken * channel.cents

    if remaining != 0:
        return None, cap_limited
    return counts, cap_limited


def _bounded_min_coins(
    amount: int,
    cents: Sequence[int],
    caps: Sequence[int],
) -> Optional[list[int]]:
    """
    Exact minimum piece count with at most ``caps[i]`` pieces of ``cents[i]``.

    Bounded coin change solved one denomination at a time. For each
    denomination ``d`` the amounts sharing a residue modulo ``d`` form a
    sequence; using ``k <= cap`` pieces moves ``k`` steps along it, so the
    best predecessor is a sliding-window minimum over the last ``cap + 1``
    entries. Each layer costs O(amount).

    Returns:
        Per-denomination counts, or None if the amount is unreachable.
    """
    unreachable = amount + 1
    best = [0] + [unreachable] * amount
    layers: list[list[int]] = []

    for denomination, cap in zip(cents, caps):
        taken = [0] * (amount + 1)
        layers.append(taken)
        if cap <= 0 or denomination > amount:
            continue

        current = best[:]
        for residue in range(denomination):
            window: deque[tuple[int, int]] = deque()
            for step, value in enumerate(range(residue, amount + 1, denomination)):
                if best[value] < unreachable:
                    key = best[value] - step
                    while window and window[-1][1] >= key:
                        window.pop()
                    window.append((step, key))
                while window and window[0][0] < step - cap:
                    window.popleft()
                if window:
                    start, key = window[0]
                    candidate = key + step
                    if candidate < current[value]:
                        current[value] = candidate
                        taken[value] = step - start
        best = current

    if best[amount] >= unreachable:
        return None

    counts = [0] * len(cents)
    remaining = amount
    for index in range(len(cents) - 1, -1, -1):
        count = layers[index][remaining]
        counts[index] = count
        remaining -= count * cents[index]
    return counts


@lru_cache(maxsize=64)
def _is_canonical(cents: tuple[int, ...], ceiling: int) -> bool:
    """
    Check whether unlimited greedy is optimal for every amount.

    Uses the Kozen-Zaks bound: for a system containing a unit coin, a
    counterexample exists below the sum of the two largest coins.
    ``cents`` is sorted largest first. Systems whose search range exceeds
    ``ceiling`` cents are reported as not canonical and left to the DP.
    """
    if len(cents) <= 2:
        # Fewer larger pieces always means fewer pieces in total
        return True

    divisor = 0
    for value in cents:
        divisor = gcd(divisor, value)
    scaled = tuple(value // divisor for value in cents)
    if scaled[-1] != 1:
        return False

    limit = scaled[0] + scaled[1]
    if limit > ceiling:
        return False
    best = [0] + [limit + 1] * limit
    for value in range(1, limit + 1):
        best[value] = min(best[value - coin] + 1 for coin in scaled if coin <= value)
    for value in range(1, limit + 1):
        remaining, pieces = value, 0
        for coin in scaled:
            pieces += remaining // coin
            remaining %= coin
        if pieces != best[value]:
            return False
    return True


# =============================================================================
# Change Calculator
# =============================================================================


class ChangeCalculator:
    """
    Plans change dispensing from hopper inventory.

    Pure and stateless apart from configuration: every call receives its
    own hopper snapshot and never mutates it.
    """

    def __init__(
        self,
        critical_denominations: Optional[Iterable[Amount]] = None,
        max_change_amount: Optional[Amount] = None,
    ) -> None:
        """
        Initialize the calculator.

        Args:
            critical_denominations: Denominations that must stay above their
                low threshold when an alternative plan exists.
            max_change_amount: Largest change amount that will be planned.
        """
        settings = get_settings().change
        if critical_denominations is None:
            critical_denominations = settings.critical_denominations
        if max_change_amount is None:
            max_change_amount = settings.max_change_amount

        self._critical_cents = frozenset(
            Money.from_amount(value).cents for value in critical_denominations
        )
        self._max_cents = Money.from_amount(max_change_amount).cents

    def calculate(self, change_amount: Amount, hoppers: Iterable[HopperInventory]) -> ChangePlan:
        """
        Compute the change plan for an amount.

        Never raises: invalid amounts and impossible plans come back as a
        drawer-payout plan.

        Args:
            change_amount: Change due in currency units.
            hoppers: Snapshot of the hopper inventory.

        Returns:
            The dispensing plan.
        """
        try:
            amount = Money.from_amount(change_amount).cents
        except ValueError as e:
            logger.warning(f"Rejecting change amount {change_amount!r}: {e}")
            return ChangePlan.drawer(INVALID_AMOUNT_REASON)

        if amount == 0:
            return ChangePlan.empty()

        if amount > self._max_cents:
            logger.warning(f"Change amount {Money(cents=amount)} exceeds limit {Money(cents=self._max_cents)}")
            return ChangePlan.drawer(AMOUNT_LIMIT_REASON)

        channels = _merge_channels(hoppers)

        greedy, cap_limited = _greedy(amount, channels)
        if greedy is not None and not self._depletes_reserve(greedy, channels):
            if not cap_limited and _is_canonical(tuple(c.cents for c in channels), self._max_cents):
                return self._build_plan(greedy, channels)

        cents = [channel.cents for channel in channels]
        full_caps = [channel.available for channel in channels]
        reserved_caps = [self._reserved_cap(channel) for channel in channels]

        counts = _bounded_min_coins(amount, cents, reserved_caps)
        if counts is not None:
            return self._build_plan(counts, channels)

        if reserved_caps != full_caps:
            counts = _bounded_min_coins(amount, cents, full_caps)
            if counts is not None:
                logger.warning(f"Change {Money(cents=amount)} dips into critical coin reserves")
                return self._build_plan(counts, channels, reason=RESERVE_BREACH_REASON)

        logger.info(f"No hopper combination for {Money(cents=amount)}, falling back to drawer")
        return ChangePlan.drawer(INSUFFICIENT_COINS_REASON)

    def _reserved_cap(self, channel: _Channel) -> int:
        if channel.cents in self._critical_cents:
            return max(0, channel.available - channel.low_threshold)
        return channel.available

    def _depletes_reserve(self, counts: Sequence[int], channels: Sequence[_Channel]) -> bool:
        """Check if a plan leaves a critical denomination below its threshold."""
        for count, channel in zip(counts, channels):
            if count and channel.cents in self._critical_cents:
                if channel.available - count < channel.low_threshold:
                    return True
        return False

    @staticmethod
    def _build_plan(
        counts: Sequence[int],
        channels: Sequence[_Channel],
        reason: Optional[str] = None,
    ) -> ChangePlan:
        lines = tuple(
            DenominationQuantity(denomination=channel.denomination, quantity=count)
            for count, channel in zip(counts, channels)
            if count > 0
        )
        return ChangePlan(
            denominations=lines,
            total_coins=sum(line.quantity for line in lines),
            feasible=True,
            use_drawer=False,
            reason=reason,
        )


# =============================================================================
# Module-level helpers
# =============================================================================


def calculate_optimal_change(
    change_amount: Amount,
    hoppers: Iterable[HopperInventory],
) -> ChangePlan:
    """Compute a change plan with the configured critical denominations."""
    return ChangeCalculator().calculate(change_amount, hoppers)


def format_change_plan(plan: ChangePlan, currency_symbol: Optional[str] = None) -> str:
    """Render a change plan for display."""
    if plan.use_drawer:
        return f"Drawer payout: {plan.reason or 'Manual change required'}"
    if not plan.denominations:
        return "No change due"

    symbol = get_settings().change.currency_symbol if currency_symbol is None else currency_symbol
    parts = [f"{symbol}{line.denomination:.2f} x {line.quantity}" for line in plan.denominations]
    return " + ".join(parts) + f" ({plan.total_coins} coins)"
