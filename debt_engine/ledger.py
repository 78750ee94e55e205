"""
Ledger Replay Module

Derives "current" accrued interest from a loan's stored payment ledger
instead of a running counter. The interest clock restarts at the most
recent payment, however that payment was split between interest and
principal.

Also provides a full replay of the ledger from the original principal and
an explicit per-loan cache for callers that re-render often.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import threading

from .dates import DateLike, as_date
from .interest import accrue, apply_grace_period
from .loans import Loan, PaymentAllocation, ledger_order

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def sort_ledger(allocations: Iterable[PaymentAllocation], newest_first: bool = False) -> List[PaymentAllocation]:
    """Allocations in ledger order (payment date, then creation order)"""
    return sorted(allocations, key=ledger_order, reverse=newest_first)


def accrual_start_date(loan: Loan, allocations: Sequence[PaymentAllocation]) -> date:
    """Most recent payment date, or the loan start when nothing was paid yet"""
    if not allocations:
        return loan.start_date
    latest = sort_ledger(allocations, newest_first=True)[0]
    return latest.payment_date


def accrued_interest_as_of(
    loan: Loan,
    allocations: Sequence[PaymentAllocation],
    today: DateLike,
    apply_grace_days: bool = False
) -> Decimal:
    """
    Interest accrued on the remaining principal since the last settlement point

    Args:
        loan: Loan record (remaining principal and policy are read)
        allocations: This loan's payment allocations, any order
        today: Caller-supplied "now"; the system clock is never read
        apply_grace_days: Push the accrual start forward by the policy's grace days

    Returns:
        Un-rounded interest. Loans without a policy return their cached
        accrued_interest unchanged.
    """
    if loan.interest_policy is None:
        return loan.accrued_interest

    start = accrual_start_date(loan, allocations)
    if apply_grace_days:
        start = apply_grace_period(start, loan.interest_policy)

    return accrue(loan.remaining_principal, loan.interest_policy, start, today)


def display_interest(
    loan: Loan,
    allocations: Sequence[PaymentAllocation],
    today: DateLike,
    apply_grace_days: bool = False
) -> Decimal:
    """Computed interest, never shown below the stored snapshot"""
    computed = accrued_interest_as_of(loan, allocations, today, apply_grace_days)
    return max(computed, loan.accrued_interest)


def outstanding_interest(
    loan: Loan,
    allocations: Sequence[PaymentAllocation],
    today: DateLike,
    apply_grace_days: bool = False
) -> Decimal:
    """
    Interest owed as of today: unpaid interest carried at the last payment
    plus what accrued since then

    Agrees with replay(...).outstanding_interest when the stored snapshot
    was written by applying the ledger's allocations.
    """
    if loan.interest_policy is None:
        return loan.accrued_interest
    return loan.accrued_interest + accrued_interest_as_of(loan, allocations, today, apply_grace_days)


@dataclass(frozen=True)
class LedgerEntry:
    """One window of a replayed ledger, closed by a payment (or by as_of)"""
    window_start: date
    window_end: date
    principal_before: Decimal
    interest_accrued: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    principal_after: Decimal
    interest_carried: Decimal           # Accrued but unpaid at window_end
    payment_id: Optional[str] = None    # None for the open window


@dataclass
class LedgerStatement:
    """Full re-derivation of a loan's history"""
    loan_id: str
    as_of: date
    entries: List[LedgerEntry] = field(default_factory=list)

    @property
    def remaining_principal(self) -> Decimal:
        return self.entries[-1].principal_after if self.entries else ZERO

    @property
    def outstanding_interest(self) -> Decimal:
        return self.entries[-1].interest_carried if self.entries else ZERO

    @property
    def total_interest_accrued(self) -> Decimal:
        return sum((entry.interest_accrued for entry in self.entries), ZERO)


def replay(
    loan: Loan,
    allocations: Sequence[PaymentAllocation],
    as_of: DateLike
) -> LedgerStatement:
    """
    Rebuild a loan's history from its original principal

    Each allocation closes a window priced on the principal outstanding
    during it; the final open window runs from the last payment to as_of.
    Allocations dated after as_of are ignored.
    """
    end = as_date(as_of)
    statement = LedgerStatement(loan_id=loan.id, as_of=end)

    principal = loan.principal
    carried = ZERO
    window_start = loan.start_date

    for allocation in sort_ledger(allocations):
        paid_on = allocation.payment_date
        if paid_on > end:
            break

        accrued = accrue(principal, loan.interest_policy, window_start, paid_on)
        owed = carried + accrued
        principal_after = max(ZERO, principal - allocation.principal_paid)
        carried = max(ZERO, owed - allocation.interest_paid)

        statement.entries.append(LedgerEntry(
            window_start=window_start,
            window_end=paid_on,
            principal_before=principal,
            interest_accrued=accrued,
            interest_paid=allocation.interest_paid,
            principal_paid=allocation.principal_paid,
            principal_after=principal_after,
            interest_carried=carried,
            payment_id=allocation.payment.id
        ))

        principal = principal_after
        window_start = max(window_start, paid_on)

    accrued = accrue(principal, loan.interest_policy, window_start, end)
    statement.entries.append(LedgerEntry(
        window_start=window_start,
        window_end=max(window_start, end),
        principal_before=principal,
        interest_accrued=accrued,
        interest_paid=ZERO,
        principal_paid=ZERO,
        principal_after=principal,
        interest_carried=carried + accrued
    ))

    return statement


class AccruedInterestCache:
    """
    Per-loan cache of outstanding interest

    Holds one (as_of, value) entry per loan; asking for another date
    replaces it. Recording a payment must call invalidate for every loan it
    touched; the cached value is never consulted as a source of truth.
    """

    def __init__(self, apply_grace_days: bool = False):
        self.apply_grace_days = apply_grace_days
        self._entries: Dict[str, Tuple[date, Decimal]] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(
        self,
        loan: Loan,
        allocations: Sequence[PaymentAllocation],
        today: DateLike
    ) -> Decimal:
        """Outstanding interest as of today, computed on first request"""
        as_of = as_date(today)
        with self._lock:
            cached = self._entries.get(loan.id)
            if cached is not None and cached[0] == as_of:
                self.hits += 1
                return cached[1]

            self.misses += 1
            value = outstanding_interest(loan, allocations, as_of, self.apply_grace_days)
            self._entries[loan.id] = (as_of, value)
            return value

    def invalidate(self, loan_id: str) -> None:
        """Drop the cached value for a loan"""
        with self._lock:
            if self._entries.pop(loan_id, None) is not None:
                logger.debug(f"Invalidated accrued interest cache for loan {loan_id}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Tuple[str, date]) -> bool:
        loan_id, as_of = key
        with self._lock:
            cached = self._entries.get(loan_id)
            return cached is not None and cached[0] == as_of
