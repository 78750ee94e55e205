"""
Payment Quote Module

What-if calculation for a single loan: interest due on a chosen payment
date and how a proposed amount would be split, interest first. Used to
preview a payment before it is recorded.
"""

from decimal import Decimal
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Sequence

from .allocation import AllocationStrategy, AllocationTarget, allocate
from .currency import Currency, Money, Number, to_decimal
from .dates import DateLike, as_date, next_anchor_date
from .ledger import outstanding_interest
from .loans import Loan, PaymentAllocation
from .policies import InterestMode

ZERO = Decimal('0')


@dataclass(frozen=True)
class PaymentQuote:
    """Amounts due on a date and the split of a proposed payment"""
    loan_id: str
    payment_date: date
    amount: Decimal
    interest_due: Decimal
    principal_due: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    unallocated: Decimal
    next_cycle_date: Optional[date] = None
    currency: Currency = Currency.THB

    @property
    def total_due(self) -> Decimal:
        return self.interest_due + self.principal_due

    @property
    def new_remaining_principal(self) -> Decimal:
        return self.principal_due - self.principal_paid

    @property
    def outstanding_interest(self) -> Decimal:
        return self.interest_due - self.interest_paid

    @property
    def is_full_payment(self) -> bool:
        return self.amount >= self.total_due

    @property
    def is_principal_clear(self) -> bool:
        return self.new_remaining_principal <= ZERO

    def to_dict(self, currency: Optional[Currency] = None) -> Dict[str, object]:
        """Rounded, display-ready view, in the quote's currency unless overridden"""
        currency = currency or self.currency

        def money(value: Decimal) -> str:
            return str(Money(value, currency).amount)

        return {
            "loan_id": self.loan_id,
            "payment_date": self.payment_date.isoformat(),
            "amount": money(self.amount),
            "interest_due": money(self.interest_due),
            "principal_due": money(self.principal_due),
            "total_due": money(self.total_due),
            "interest_paid": money(self.interest_paid),
            "principal_paid": money(self.principal_paid),
            "new_remaining_principal": money(self.new_remaining_principal),
            "outstanding_interest": money(self.outstanding_interest),
            "unallocated": money(self.unallocated),
            "is_full_payment": self.is_full_payment,
            "is_principal_clear": self.is_principal_clear,
            "next_cycle_date": self.next_cycle_date.isoformat() if self.next_cycle_date else None,
            "currency": currency.code,
        }


def quote_payment(
    loan: Loan,
    allocations: Sequence[PaymentAllocation],
    payment_date: DateLike,
    amount: Number = ZERO,
    apply_grace_days: bool = False,
    currency: Currency = Currency.THB
) -> PaymentQuote:
    """
    Preview paying a loan on a given date

    Args:
        loan: Loan to pay
        allocations: The loan's existing allocations
        payment_date: Date picked for the payment, may be in the future
        amount: Proposed payment, 0 to only see what is due
        apply_grace_days: Honour the policy's grace days
        currency: Currency the quote is displayed in

    Returns:
        PaymentQuote
    """
    paid_on = as_date(payment_date)
    interest_due = outstanding_interest(loan, allocations, paid_on, apply_grace_days)

    target = AllocationTarget(
        loan_id=loan.id,
        remaining_principal=loan.remaining_principal,
        accrued_interest=interest_due,
        start_date=loan.start_date
    )
    result = allocate(amount, [target], AllocationStrategy.INTEREST_FIRST)
    split = result.for_loan(loan.id)

    next_cycle = None
    policy = loan.interest_policy
    if policy is not None and policy.mode == InterestMode.MONTHLY:
        next_cycle = next_anchor_date(paid_on, policy.anchor_day)

    return PaymentQuote(
        loan_id=loan.id,
        payment_date=paid_on,
        amount=max(ZERO, to_decimal(amount)),
        interest_due=interest_due,
        principal_due=loan.remaining_principal,
        interest_paid=split.interest_paid if split else ZERO,
        principal_paid=split.principal_paid if split else ZERO,
        unallocated=result.unallocated_remainder,
        next_cycle_date=next_cycle,
        currency=currency
    )
