"""
Debt Engine

Interest accrual and payment allocation for personal debt bookkeeping.
Pure Decimal arithmetic, explicit "today", replayable from the payment ledger.
"""

from .dates import days_between, days_in_month
from .policies import (
    InterestMode, InterestPolicy, MonthlyInterestPolicy, DailyInterestPolicy,
    policy_from_record
)
from .interest import accrue, accrue_with_breakdown, apply_grace_period
from .ledger import accrual_start_date, accrued_interest_as_of, display_interest
from .allocation import AllocationStrategy, AllocationTarget, allocate
from .compliance import LegalRateChecker, classify
from .exceptions import (
    DebtEngineError, ConfigurationError, AllocationError, LoanNotFoundError
)

__version__ = "1.0.0"

__all__ = [
    "days_between", "days_in_month",
    "InterestMode", "InterestPolicy", "MonthlyInterestPolicy", "DailyInterestPolicy",
    "policy_from_record",
    "accrue", "accrue_with_breakdown", "apply_grace_period",
    "accrual_start_date", "accrued_interest_as_of", "display_interest",
    "AllocationStrategy", "AllocationTarget", "allocate",
    "LegalRateChecker", "classify",
    "DebtEngineError", "ConfigurationError", "AllocationError", "LoanNotFoundError",
]
