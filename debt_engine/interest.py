"""
Interest Accrual Module

Pure functions computing simple (non-compounding) interest over a date
range under an interest policy.

MONTHLY policies charge 1/N of the monthly rate per day, where N is the
actual length of the calendar month the day falls in, so a full calendar
month always accrues exactly principal x monthly_rate. DAILY policies
charge principal x daily_rate per day regardless of month length.

Grace days are a separate stage (apply_grace_period); the month walk never
looks at them.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Tuple
import logging

from .currency import Number, to_decimal
from .dates import DateLike, as_date, add_days, days_between, month_segments
from .policies import InterestPolicy, InterestMode

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass(frozen=True)
class AccrualPeriod:
    """One priced slice of an accrual range"""
    start: date                 # Inclusive
    end: date                   # Exclusive
    principal: Decimal          # Balance the slice was priced on
    rate: Decimal               # Effective daily rate for the slice
    days: int
    interest: Decimal


@dataclass
class AccrualResult:
    """Total interest plus the slices it was built from"""
    total_interest: Decimal = ZERO
    periods: List[AccrualPeriod] = field(default_factory=list)

    def extend(self, other: 'AccrualResult') -> None:
        self.total_interest += other.total_interest
        self.periods.extend(other.periods)


def accrue(
    principal: Number,
    policy: Optional[InterestPolicy],
    from_date: DateLike,
    to_date: DateLike
) -> Decimal:
    """
    Interest owed on principal over [from_date, to_date)

    Args:
        principal: Outstanding principal the interest is charged on
        policy: Interest policy, None for interest-free loans
        from_date: Accrual start (inclusive)
        to_date: Accrual end (exclusive), usually "today"

    Returns:
        Un-rounded Decimal interest, never negative
    """
    return accrue_with_breakdown(principal, policy, from_date, to_date).total_interest


def accrue_with_breakdown(
    principal: Number,
    policy: Optional[InterestPolicy],
    from_date: DateLike,
    to_date: DateLike
) -> AccrualResult:
    """Same as accrue, keeping the per-slice breakdown"""
    principal = to_decimal(principal)
    start = as_date(from_date)
    end = as_date(to_date)

    if policy is None or principal <= ZERO or end <= start:
        return AccrualResult()

    if policy.mode == InterestMode.DAILY:
        result = _accrue_daily(principal, policy.rate, start, end)
    elif policy.mode == InterestMode.MONTHLY:
        result = _accrue_monthly(principal, policy.rate, start, end)
    else:
        raise ValueError(f"Unsupported interest mode: {policy.mode}")

    logger.debug(
        f"Accrued {result.total_interest} on {principal} "
        f"{policy.mode.value} {start.isoformat()}..{end.isoformat()}"
    )
    return result


def _accrue_daily(principal: Decimal, daily_rate: Decimal, start: date, end: date) -> AccrualResult:
    days = days_between(start, end)
    interest = principal * daily_rate * days
    period = AccrualPeriod(
        start=start,
        end=end,
        principal=principal,
        rate=daily_rate,
        days=days,
        interest=interest
    )
    return AccrualResult(total_interest=interest, periods=[period])


def _accrue_monthly(principal: Decimal, monthly_rate: Decimal, start: date, end: date) -> AccrualResult:
    result = AccrualResult()

    for segment_start, segment_end, month_length in month_segments(start, end):
        days = days_between(segment_start, segment_end)
        # Divide last: a full month must come out as exactly principal x rate
        interest = principal * monthly_rate * days / month_length
        result.periods.append(AccrualPeriod(
            start=segment_start,
            end=segment_end,
            principal=principal,
            rate=monthly_rate / month_length,
            days=days,
            interest=interest
        ))
        result.total_interest += interest

    return result


def apply_grace_period(accrual_start: DateLike, policy: Optional[InterestPolicy]) -> date:
    """
    Grace stage of the accrual pipeline: effective_from = accrual_start + grace_days

    Callers that want grace suppression pass the returned date to accrue.
    """
    start = as_date(accrual_start)
    if policy is None or not policy.grace_days:
        return start
    return add_days(start, policy.grace_days)


def accrue_with_payments(
    initial_principal: Number,
    principal_payments: Iterable[Tuple[DateLike, Number]],
    policy: Optional[InterestPolicy],
    from_date: DateLike,
    to_date: DateLike
) -> AccrualResult:
    """
    Interest over a range during which principal was paid down

    The range is cut at every payment date inside (from_date, to_date];
    each window is priced on the principal outstanding during it.

    Args:
        initial_principal: Principal outstanding at from_date
        principal_payments: (payment_date, principal_paid) pairs, any order
        policy: Interest policy, None for interest-free loans
        from_date: Range start
        to_date: Range end

    Returns:
        AccrualResult across all windows
    """
    remaining = to_decimal(initial_principal)
    range_start = as_date(from_date)
    period_start = range_start
    end = as_date(to_date)
    result = AccrualResult()

    ordered = sorted(
        ((as_date(paid_on), to_decimal(amount)) for paid_on, amount in principal_payments),
        key=lambda payment: payment[0]
    )

    for paid_on, principal_paid in ordered:
        # Payments outside the range are already reflected in initial_principal or lie in the future
        if paid_on <= range_start or paid_on > end:
            continue
        if paid_on > period_start:
            result.extend(accrue_with_breakdown(remaining, policy, period_start, paid_on))
            period_start = paid_on
        remaining = max(ZERO, remaining - principal_paid)

    if period_start < end and remaining > ZERO:
        result.extend(accrue_with_breakdown(remaining, policy, period_start, end))

    return result
