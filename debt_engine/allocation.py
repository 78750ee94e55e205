"""
Payment Allocation Module

Splits an incoming payment across one or more loans following a waterfall
strategy. Money is never over-applied or silently dropped: whatever exceeds
the targets' combined obligations is returned as the unallocated remainder.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple
from enum import Enum
import logging

from .currency import Number, to_decimal
from .dates import DateLike, as_date
from .exceptions import AllocationError

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


class AllocationStrategy(Enum):
    """Order in which obligations absorb a payment"""
    INTEREST_FIRST = "interest_first"     # Interest, then principal, per loan in given order
    PRINCIPAL_FIRST = "principal_first"   # Principal, then interest
    FIFO = "fifo"                         # Oldest loan first, interest-first within each

    @classmethod
    def parse(cls, value) -> 'AllocationStrategy':
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


@dataclass(frozen=True)
class AllocationTarget:
    """A loan's outstanding obligations at the moment of payment"""
    loan_id: str
    remaining_principal: Decimal
    accrued_interest: Decimal
    start_date: Optional[date] = None   # Origination, used by FIFO

    def __post_init__(self):
        object.__setattr__(self, 'remaining_principal', to_decimal(self.remaining_principal))
        object.__setattr__(self, 'accrued_interest', to_decimal(self.accrued_interest))
        if self.start_date is not None:
            object.__setattr__(self, 'start_date', as_date(self.start_date))

    @property
    def total_due(self) -> Decimal:
        return max(ZERO, self.remaining_principal) + max(ZERO, self.accrued_interest)


@dataclass(frozen=True)
class LoanAllocation:
    """Amounts of a payment applied to one loan"""
    loan_id: str
    principal_paid: Decimal
    interest_paid: Decimal

    def __post_init__(self):
        object.__setattr__(self, 'principal_paid', to_decimal(self.principal_paid))
        object.__setattr__(self, 'interest_paid', to_decimal(self.interest_paid))

    @property
    def total(self) -> Decimal:
        return self.principal_paid + self.interest_paid


@dataclass
class AllocationResult:
    """Per-loan allocations and what could not be applied"""
    allocations: List[LoanAllocation] = field(default_factory=list)
    unallocated_remainder: Decimal = ZERO

    @property
    def total_principal_paid(self) -> Decimal:
        return sum((a.principal_paid for a in self.allocations), ZERO)

    @property
    def total_interest_paid(self) -> Decimal:
        return sum((a.interest_paid for a in self.allocations), ZERO)

    @property
    def total_allocated(self) -> Decimal:
        return self.total_principal_paid + self.total_interest_paid

    def for_loan(self, loan_id: str) -> Optional[LoanAllocation]:
        for allocation in self.allocations:
            if allocation.loan_id == loan_id:
                return allocation
        return None


def _take(available: Decimal, owed: Decimal) -> Decimal:
    return min(available, max(ZERO, owed))


def _fifo_order(targets: Sequence[AllocationTarget]) -> List[AllocationTarget]:
    # Stable: equal or missing start dates keep their given order, undated last
    return sorted(targets, key=lambda t: (t.start_date is None, t.start_date or date.min))


def allocate(
    payment_amount: Number,
    targets: Iterable[AllocationTarget],
    strategy: AllocationStrategy = AllocationStrategy.INTEREST_FIRST
) -> AllocationResult:
    """
    Split a payment across loans

    Args:
        payment_amount: Amount received
        targets: Loans to service, in priority order (FIFO re-sorts by age)
        strategy: Waterfall to apply

    Returns:
        AllocationResult; loans that receive nothing are left out
    """
    amount = to_decimal(payment_amount)
    strategy = AllocationStrategy.parse(strategy)
    result = AllocationResult()

    if amount <= ZERO:
        return result

    ordered = list(targets)
    if strategy == AllocationStrategy.FIFO:
        ordered = _fifo_order(ordered)

    remaining = amount
    for target in ordered:
        if remaining <= ZERO:
            break

        if strategy == AllocationStrategy.PRINCIPAL_FIRST:
            principal_paid = _take(remaining, target.remaining_principal)
            remaining -= principal_paid
            interest_paid = _take(remaining, target.accrued_interest)
            remaining -= interest_paid
        else:
            interest_paid = _take(remaining, target.accrued_interest)
            remaining -= interest_paid
            principal_paid = _take(remaining, target.remaining_principal)
            remaining -= principal_paid

        if interest_paid > ZERO or principal_paid > ZERO:
            result.allocations.append(LoanAllocation(
                loan_id=target.loan_id,
                principal_paid=principal_paid,
                interest_paid=interest_paid
            ))

    result.unallocated_remainder = remaining
    if remaining > ZERO:
        logger.warning(f"Payment of {amount} exceeds obligations; {remaining} left unallocated")

    return result


def validate_allocations(
    payment_amount: Number,
    allocations: Iterable[LoanAllocation]
) -> Tuple[Decimal, Decimal]:
    """
    Check manually entered allocations against their payment

    Returns:
        (total_allocated, unallocated_remainder)

    Raises:
        AllocationError: On negative amounts or allocations exceeding the payment
    """
    amount = to_decimal(payment_amount)
    total = ZERO
    seen = set()
    for allocation in allocations:
        if allocation.loan_id in seen:
            raise AllocationError(f"Loan {allocation.loan_id} allocated more than once")
        seen.add(allocation.loan_id)
        if allocation.principal_paid < ZERO or allocation.interest_paid < ZERO:
            raise AllocationError(f"Negative allocation for loan {allocation.loan_id}")
        total += allocation.total

    if total > amount:
        raise AllocationError(f"Allocations total {total} exceeds payment amount {amount}")

    return total, amount - total
