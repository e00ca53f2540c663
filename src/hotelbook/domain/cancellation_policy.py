"""Tiered cancellation policy.

- Free Cancellation: 7+ days before check-in (100% refund)
- Partial Refund: 3 to 6 days before check-in (50% refund)
- Non-Refundable: under 3 days before check-in (no refund)

Days are whole 24h days, truncated towards the past: 6 days 23 hours is 6.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from hotelbook.domain.models import CancellationQuote

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class RefundTier:
    min_days: int
    refund_percentage: int
    policy: str


# Evaluated in order, first match wins.
REFUND_TIERS: tuple[RefundTier, ...] = (
    RefundTier(min_days=7, refund_percentage=100, policy="Free Cancellation"),
    RefundTier(min_days=3, refund_percentage=50, policy="Partial Refund (50%)"),
)

NON_REFUNDABLE = "Non-Refundable"


def days_until(check_in: datetime, now: datetime) -> int:
    """Floor of (check_in - now) in whole days."""
    return (check_in - now) // timedelta(days=1)


def _refund_amount(total_price: Decimal, percentage: int) -> Decimal:
    if percentage == 100:
        return Decimal(total_price)
    amount = Decimal(total_price) * Decimal(percentage) / Decimal(100)
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


def evaluate_cancellation_policy(
    check_in: datetime,
    total_price: Decimal,
    now: datetime,
) -> CancellationQuote:
    """Compute the refund a cancellation at `now` would receive.

    Pure: the same inputs always yield the same quote. Used for disclosure
    before cancelling and, once, authoritatively when cancelling.

    Args:
        check_in: Reservation check-in instant.
        total_price: Price paid for the stay.
        now: Reference instant of the (possible) cancellation.

    Returns:
        CancellationQuote with policy label, refund percentage and amount, and
        the deadline of the tier that applies.
    """
    days = days_until(check_in, now)

    for tier in REFUND_TIERS:
        if days >= tier.min_days:
            return CancellationQuote(
                policy=tier.policy,
                refund_percentage=tier.refund_percentage,
                refund_amount=_refund_amount(total_price, tier.refund_percentage),
                deadline=check_in - timedelta(days=tier.min_days),
                days_until_check_in=days,
            )

    return CancellationQuote(
        policy=NON_REFUNDABLE,
        refund_percentage=0,
        refund_amount=Decimal("0.00"),
        deadline=check_in,
        days_until_check_in=days,
    )


def cancellation_deadlines(check_in: datetime) -> dict[str, datetime]:
    """Deadlines of every tier for a check-in, for display alongside a quote."""
    return {
        "free_deadline": check_in - timedelta(days=7),
        "partial_deadline": check_in - timedelta(days=3),
        "check_in": check_in,
    }
