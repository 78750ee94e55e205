"""
Loan Module

Loan, payment and payment-allocation records plus the pure lifecycle
operations applied to them: applying an allocation, deriving status from
the due date, and summarizing a loan's payment history. Nothing here
mutates its inputs; every operation returns new records.
"""

from decimal import Decimal
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, List, Optional, Tuple
from enum import Enum

from .currency import Number, to_decimal
from .dates import DateLike, as_date, days_between
from .policies import InterestPolicy

ZERO = Decimal('0')


class LoanStatus(Enum):
    """Loan lifecycle states"""
    OPEN = "OPEN"           # Accruing, not yet due
    OVERDUE = "OVERDUE"     # Past due date; interest keeps accruing
    CLOSED = "CLOSED"       # Principal fully repaid


@dataclass
class Loan:
    """Loan with its interest policy and current balances"""
    id: str
    principal: Decimal                      # Original amount lent, immutable
    start_date: date                        # Interest accrues from here
    remaining_principal: Optional[Decimal] = None
    accrued_interest: Decimal = ZERO        # Cached snapshot, not the source of truth
    due_date: Optional[date] = None         # Display only, never affects interest
    interest_policy: Optional[InterestPolicy] = None
    status: LoanStatus = LoanStatus.OPEN

    def __post_init__(self):
        self.principal = to_decimal(self.principal)
        self.start_date = as_date(self.start_date)
        if self.due_date is not None:
            self.due_date = as_date(self.due_date)

        if self.remaining_principal is None:
            self.remaining_principal = self.principal
        self.remaining_principal = to_decimal(self.remaining_principal)
        self.accrued_interest = to_decimal(self.accrued_interest)

        if self.principal < ZERO:
            raise ValueError("Principal must be non-negative")
        if self.remaining_principal < ZERO or self.remaining_principal > self.principal:
            raise ValueError("Remaining principal must be between 0 and the original principal")
        if self.accrued_interest < ZERO:
            raise ValueError("Accrued interest must be non-negative")

    @classmethod
    def open(
        cls,
        loan_id: str,
        principal: Number,
        start_date: DateLike,
        interest_policy: Optional[InterestPolicy] = None,
        due_date: Optional[DateLike] = None
    ) -> 'Loan':
        """Create a fresh loan: nothing repaid, no interest accrued yet"""
        principal = to_decimal(principal)
        if principal <= ZERO:
            raise ValueError("Principal must be greater than 0")
        return cls(
            id=loan_id,
            principal=principal,
            start_date=start_date,
            remaining_principal=principal,
            accrued_interest=ZERO,
            due_date=due_date,
            interest_policy=interest_policy,
            status=LoanStatus.OPEN
        )

    @property
    def is_closed(self) -> bool:
        return self.status == LoanStatus.CLOSED

    @property
    def has_interest(self) -> bool:
        return self.interest_policy is not None


@dataclass(frozen=True)
class Payment:
    """Money received from the borrower"""
    id: str
    amount: Decimal
    payment_date: date
    note: Optional[str] = None
    sequence: int = 0                       # Creation order, breaks same-day ties

    def __post_init__(self):
        object.__setattr__(self, 'amount', to_decimal(self.amount))
        object.__setattr__(self, 'payment_date', as_date(self.payment_date))
        if self.amount < ZERO:
            raise ValueError("Payment amount must be non-negative")


@dataclass(frozen=True)
class PaymentAllocation:
    """Portion of one payment applied to one loan"""
    payment: Payment
    loan_id: str
    principal_paid: Decimal = ZERO
    interest_paid: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, 'principal_paid', to_decimal(self.principal_paid))
        object.__setattr__(self, 'interest_paid', to_decimal(self.interest_paid))
        if self.principal_paid < ZERO or self.interest_paid < ZERO:
            raise ValueError("Allocated amounts must be non-negative")
        if self.total > self.payment.amount:
            raise ValueError(
                f"Allocation {self.total} exceeds payment amount {self.payment.amount}"
            )

    @property
    def total(self) -> Decimal:
        return self.principal_paid + self.interest_paid

    @property
    def payment_date(self) -> date:
        return self.payment.payment_date


def ledger_order(allocation: PaymentAllocation) -> Tuple[date, int]:
    """Sort key: payment date, then creation order"""
    return allocation.payment.payment_date, allocation.payment.sequence


def apply_allocation(loan: Loan, allocation: PaymentAllocation) -> Loan:
    """
    Loan state after an allocation is applied

    Principal and the cached interest snapshot are reduced (never below
    zero); the loan closes once no principal remains.

    Args:
        loan: Loan before the payment
        allocation: Allocation targeting this loan

    Returns:
        New Loan; the input is left untouched
    """
    if allocation.loan_id != loan.id:
        raise ValueError(f"Allocation for loan {allocation.loan_id} applied to loan {loan.id}")

    remaining = max(ZERO, loan.remaining_principal - allocation.principal_paid)
    accrued = max(ZERO, loan.accrued_interest - allocation.interest_paid)
    status = LoanStatus.CLOSED if remaining <= ZERO else LoanStatus.OPEN

    return replace(loan, remaining_principal=remaining, accrued_interest=accrued, status=status)


def derive_status(loan: Loan, today: DateLike) -> LoanStatus:
    """Status implied by balances and due date as of today"""
    if loan.remaining_principal <= ZERO:
        return LoanStatus.CLOSED
    if loan.due_date is not None and loan.due_date < as_date(today):
        return LoanStatus.OVERDUE
    return LoanStatus.OPEN


def days_overdue(loan: Loan, today: DateLike) -> int:
    """Days past the due date; 0 for loans without one or already closed"""
    if loan.due_date is None or loan.remaining_principal <= ZERO:
        return 0
    return days_between(loan.due_date, today)


@dataclass
class PaymentSummary:
    """Totals paid against a loan"""
    allocations: List[PaymentAllocation] = field(default_factory=list)
    total_principal_paid: Decimal = ZERO
    total_interest_paid: Decimal = ZERO

    @property
    def total_paid(self) -> Decimal:
        return self.total_principal_paid + self.total_interest_paid

    @property
    def last_payment_date(self) -> Optional[date]:
        if not self.allocations:
            return None
        return self.allocations[-1].payment_date


def summarize_payments(allocations: Iterable[PaymentAllocation]) -> PaymentSummary:
    """Totals of a loan's allocations, listed in ledger order"""
    ordered = sorted(allocations, key=ledger_order)
    return PaymentSummary(
        allocations=ordered,
        total_principal_paid=sum((a.principal_paid for a in ordered), ZERO),
        total_interest_paid=sum((a.interest_paid for a in ordered), ZERO)
    )
