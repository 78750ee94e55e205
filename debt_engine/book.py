"""
Loan Book Module

Caller-side bookkeeping around the pure engine: keeps loans and their
payment allocations in a record store and records new payments.

Recording a payment is a read-compute-write cycle. It runs under a lock per
touched loan (acquired in sorted id order) and a storage transaction, so
two concurrent payments against the same loan cannot both allocate from the
same stale balance.
"""

from decimal import Decimal
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List, Optional, Sequence
from contextlib import ExitStack
import logging
import threading
import uuid

from .allocation import (
    AllocationStrategy, AllocationTarget, LoanAllocation, allocate, validate_allocations
)
from .compliance import LegalRateChecker
from .config import EngineConfig, get_config
from .currency import Currency, Number, to_decimal
from .dates import DateLike, as_date, days_between
from .exceptions import ConfigurationError, LoanNotFoundError
from .ledger import AccruedInterestCache, LedgerStatement, replay, sort_ledger
from .loans import (
    Loan, LoanStatus, Payment, PaymentAllocation, PaymentSummary,
    apply_allocation, derive_status, summarize_payments
)
from .logging_config import log_action
from .policies import policy_from_dict
from .quotes import PaymentQuote, quote_payment
from .storage import StorageInterface

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


@dataclass
class PaymentReceipt:
    """Outcome of recording one payment"""
    payment: Payment
    allocations: List[PaymentAllocation] = field(default_factory=list)
    unallocated_remainder: Decimal = ZERO

    @property
    def total_allocated(self) -> Decimal:
        return sum((a.total for a in self.allocations), ZERO)


class LoanBook:
    """
    Loans and payment history backed by a StorageInterface
    """

    def __init__(self, storage: StorageInterface, config: Optional[EngineConfig] = None):
        self.storage = storage
        self.config = config or get_config()

        try:
            self.default_strategy = AllocationStrategy.parse(self.config.default_allocation_strategy)
        except ValueError:
            raise ConfigurationError(
                f"Unknown allocation strategy: {self.config.default_allocation_strategy}"
            )
        try:
            self.currency = Currency[self.config.currency.upper()]
        except KeyError:
            raise ConfigurationError(f"Unknown currency: {self.config.currency}")
        self.rate_checker = LegalRateChecker(to_decimal(self.config.legal_ceiling_percent))
        self.interest_cache = AccruedInterestCache(apply_grace_days=self.config.apply_grace_days)

        self.loans_table = "loans"
        self.payments_table = "payments"
        self.allocations_table = "payment_allocations"

        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def add_loan(self, loan: Loan) -> Loan:
        """Store a loan; non-compliant policies are logged, not rejected"""
        if loan.interest_policy is not None:
            self.rate_checker.check_policy(loan.interest_policy, policy_name=f"policy of loan {loan.id}")

        self._save_loan(loan)
        self.interest_cache.invalidate(loan.id)
        log_action(logger, "info", f"Loan {loan.id} added", loan_id=loan.id, action="loan_added",
                   extra={"principal": str(loan.principal), "start_date": loan.start_date.isoformat()})
        return loan

    def get_loan(self, loan_id: str) -> Loan:
        data = self.storage.load(self.loans_table, loan_id)
        if data is None:
            raise LoanNotFoundError(loan_id)
        return self._loan_from_dict(data)

    def get_loans(self) -> List[Loan]:
        loans = [self._loan_from_dict(data) for data in self.storage.load_all(self.loans_table)]
        return sorted(loans, key=lambda loan: (loan.start_date, loan.id))

    def get_allocations(self, loan_id: str) -> List[PaymentAllocation]:
        """A loan's allocations in ledger order"""
        records = self.storage.find(self.allocations_table, {"loan_id": loan_id})
        return sort_ledger(self._allocation_from_dict(data) for data in records)

    def accrued_interest(self, loan_id: str, today: DateLike) -> Decimal:
        """Interest owed as of today: carried unpaid interest plus accrual since the last payment"""
        loan = self.get_loan(loan_id)
        return self.interest_cache.get(loan, self.get_allocations(loan_id), today)

    def quote(self, loan_id: str, payment_date: DateLike, amount: Number = ZERO) -> PaymentQuote:
        loan = self.get_loan(loan_id)
        return quote_payment(loan, self.get_allocations(loan_id), payment_date, amount,
                             apply_grace_days=self.config.apply_grace_days,
                             currency=self.currency)

    def statement(self, loan_id: str, as_of: DateLike) -> LedgerStatement:
        loan = self.get_loan(loan_id)
        return replay(loan, self.get_allocations(loan_id), as_of)

    def payment_summary(self, loan_id: str) -> PaymentSummary:
        self.get_loan(loan_id)
        return summarize_payments(self.get_allocations(loan_id))

    def record_payment(
        self,
        amount: Number,
        payment_date: DateLike,
        loan_ids: Optional[Sequence[str]] = None,
        strategy: Optional[AllocationStrategy] = None,
        note: Optional[str] = None
    ) -> PaymentReceipt:
        """
        Record a payment and allocate it automatically

        Args:
            amount: Amount received
            payment_date: Date of payment
            loan_ids: Loans to service, in priority order (defaults to every non-closed loan)
            strategy: Waterfall to use (defaults to the configured strategy)
            note: Free text stored with the payment

        Returns:
            PaymentReceipt with the appended allocations
        """
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError("Payment amount must be greater than 0")
        strategy = AllocationStrategy.parse(strategy) if strategy else self.default_strategy
        paid_on = as_date(payment_date)

        if loan_ids is None:
            loan_ids = [loan.id for loan in self.get_loans() if not loan.is_closed]
        else:
            # A loan named twice is still one allocation target
            loan_ids = list(dict.fromkeys(loan_ids))

        with self._locked(loan_ids):
            with self.storage.atomic():
                loans = [self.get_loan(loan_id) for loan_id in loan_ids]
                targets = []
                interest_due = {}
                for loan in loans:
                    if loan.is_closed:
                        continue
                    due = self._current_interest(loan, paid_on)
                    interest_due[loan.id] = due
                    targets.append(AllocationTarget(
                        loan_id=loan.id,
                        remaining_principal=loan.remaining_principal,
                        accrued_interest=due,
                        start_date=loan.start_date
                    ))

                result = allocate(amount, targets, strategy)
                receipt = self._apply(
                    amount, paid_on, note,
                    {loan.id: loan for loan in loans}, interest_due, result.allocations
                )
                receipt.unallocated_remainder = result.unallocated_remainder

            self._after_payment(receipt, strategy.value)
        return receipt

    def record_manual_payment(
        self,
        amount: Number,
        payment_date: DateLike,
        allocations: Sequence[LoanAllocation],
        note: Optional[str] = None
    ) -> PaymentReceipt:
        """
        Record a payment split by hand

        Raises:
            AllocationError: If the split exceeds the payment
            LoanNotFoundError: If an allocation names an unknown loan
        """
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError("Payment amount must be greater than 0")
        _, remainder = validate_allocations(amount, allocations)
        paid_on = as_date(payment_date)
        loan_ids = [allocation.loan_id for allocation in allocations]

        with self._locked(loan_ids):
            with self.storage.atomic():
                loans = {loan_id: self.get_loan(loan_id) for loan_id in loan_ids}
                interest_due = {
                    loan_id: self._current_interest(loan, paid_on) for loan_id, loan in loans.items()
                }
                receipt = self._apply(amount, paid_on, note, loans, interest_due, list(allocations))
                receipt.unallocated_remainder = remainder

            self._after_payment(receipt, "manual")
        return receipt

    def refresh_statuses(self, today: DateLike) -> Dict[str, LoanStatus]:
        """Persist OVERDUE/OPEN/CLOSED as implied by due dates; returns changed loans"""
        changed = {}
        for loan_id in [loan.id for loan in self.get_loans()]:
            with self._locked([loan_id]):
                loan = self.get_loan(loan_id)
                status = derive_status(loan, today)
                if status == loan.status:
                    continue
                self._save_loan(replace(loan, status=status))
            changed[loan_id] = status
            if status == LoanStatus.OVERDUE:
                log_action(logger, "warning",
                           f"Loan {loan_id} overdue by {days_between(loan.due_date, today)} days",
                           loan_id=loan_id, action="loan_overdue")
        return changed

    def _current_interest(self, loan: Loan, as_of: date) -> Decimal:
        return self.interest_cache.get(loan, self.get_allocations(loan.id), as_of)

    def _apply(
        self,
        amount: Decimal,
        paid_on: date,
        note: Optional[str],
        loans: Dict[str, Loan],
        interest_due: Dict[str, Decimal],
        allocations: Sequence[LoanAllocation]
    ) -> PaymentReceipt:
        payment = Payment(
            id=str(uuid.uuid4()),
            amount=amount,
            payment_date=paid_on,
            note=note,
            sequence=self.storage.count(self.payments_table)
        )
        self.storage.save(self.payments_table, payment.id, self._payment_to_dict(payment))

        receipt = PaymentReceipt(payment=payment)
        for split in allocations:
            loan = loans[split.loan_id]
            allocation = PaymentAllocation(
                payment=payment,
                loan_id=loan.id,
                principal_paid=split.principal_paid,
                interest_paid=split.interest_paid
            )
            record_id = f"{payment.id}:{loan.id}"
            self.storage.save(self.allocations_table, record_id, self._allocation_to_dict(allocation))

            # Snapshot the interest owed at payment time before settling it
            snapshot = replace(loan, accrued_interest=interest_due[loan.id])
            self._save_loan(apply_allocation(snapshot, allocation))
            receipt.allocations.append(allocation)

        return receipt

    def _after_payment(self, receipt: PaymentReceipt, method: str) -> None:
        for allocation in receipt.allocations:
            self.interest_cache.invalidate(allocation.loan_id)

        log_action(
            logger, "info",
            f"Payment {receipt.payment.id} of {receipt.payment.amount} recorded",
            action="payment_recorded",
            extra={
                "method": method,
                "payment_date": receipt.payment.payment_date.isoformat(),
                "loans": [a.loan_id for a in receipt.allocations],
                "allocated": str(receipt.total_allocated),
                "unallocated": str(receipt.unallocated_remainder),
            }
        )

    def _locked(self, loan_ids: Sequence[str]) -> ExitStack:
        stack = ExitStack()
        for loan_id in sorted(set(loan_ids)):
            with self._locks_guard:
                lock = self._locks.setdefault(loan_id, threading.RLock())
            stack.enter_context(lock)
        return stack

    def _save_loan(self, loan: Loan) -> None:
        self.storage.save(self.loans_table, loan.id, self._loan_to_dict(loan))

    def _loan_to_dict(self, loan: Loan) -> Dict:
        return {
            'id': loan.id,
            'principal': str(loan.principal),
            'remaining_principal': str(loan.remaining_principal),
            'accrued_interest': str(loan.accrued_interest),
            'start_date': loan.start_date.isoformat(),
            'due_date': loan.due_date.isoformat() if loan.due_date else None,
            'interest_policy': loan.interest_policy.to_record() if loan.interest_policy else None,
            'status': loan.status.value
        }

    def _loan_from_dict(self, data: Dict) -> Loan:
        return Loan(
            id=data['id'],
            principal=Decimal(data['principal']),
            start_date=date.fromisoformat(data['start_date']),
            remaining_principal=Decimal(data['remaining_principal']),
            accrued_interest=Decimal(data['accrued_interest']),
            due_date=date.fromisoformat(data['due_date']) if data.get('due_date') else None,
            interest_policy=policy_from_dict(data.get('interest_policy')),
            status=LoanStatus(data['status'])
        )

    def _payment_to_dict(self, payment: Payment) -> Dict:
        return {
            'id': payment.id,
            'amount': str(payment.amount),
            'payment_date': payment.payment_date.isoformat(),
            'note': payment.note,
            'sequence': payment.sequence
        }

    def _payment_from_dict(self, data: Dict) -> Payment:
        return Payment(
            id=data['id'],
            amount=Decimal(data['amount']),
            payment_date=date.fromisoformat(data['payment_date']),
            note=data.get('note'),
            sequence=data.get('sequence', 0)
        )

    def _allocation_to_dict(self, allocation: PaymentAllocation) -> Dict:
        return {
            'loan_id': allocation.loan_id,
            'payment': self._payment_to_dict(allocation.payment),
            'principal_paid': str(allocation.principal_paid),
            'interest_paid': str(allocation.interest_paid)
        }

    def _allocation_from_dict(self, data: Dict) -> PaymentAllocation:
        return PaymentAllocation(
            payment=self._payment_from_dict(data['payment']),
            loan_id=data['loan_id'],
            principal_paid=Decimal(data['principal_paid']),
            interest_paid=Decimal(data['interest_paid'])
        )
