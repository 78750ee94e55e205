"""
Compliance Module

Advisory check of an interest policy's annualized rate against the
statutory personal-loan ceiling (15% per year). The result is a flag for
the surrounding application to warn with; nothing is ever blocked here.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Optional
import logging

from .currency import Number, to_decimal
from .policies import InterestPolicy, InterestMode

logger = logging.getLogger(__name__)

DEFAULT_CEILING_PERCENT = Decimal('15')    # Personal loans, percent per year

MONTHS_PER_YEAR = Decimal('12')
DAYS_PER_YEAR = Decimal('365')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class RateClassification:
    """Annualized rate of a policy and whether it is within the ceiling"""
    annualized_rate_percent: Decimal
    is_compliant: bool
    ceiling_percent: Decimal = DEFAULT_CEILING_PERCENT

    @property
    def excess_percent(self) -> Decimal:
        """Percentage points above the ceiling (0 when compliant)"""
        return max(Decimal('0'), self.annualized_rate_percent - self.ceiling_percent)


def annualized_rate_percent(policy: Optional[InterestPolicy]) -> Decimal:
    """Yearly rate in percent: monthly x 12 or daily x 365"""
    if policy is None:
        return Decimal('0')
    if policy.mode == InterestMode.MONTHLY:
        return policy.rate * HUNDRED * MONTHS_PER_YEAR
    return policy.rate * HUNDRED * DAYS_PER_YEAR


def classify(
    policy: Optional[InterestPolicy],
    ceiling_percent: Number = DEFAULT_CEILING_PERCENT
) -> RateClassification:
    """
    Classify a policy against the legal ceiling

    Args:
        policy: Policy to check; None (interest-free) is always compliant
        ceiling_percent: Maximum annualized rate in percent

    Returns:
        RateClassification
    """
    ceiling = to_decimal(ceiling_percent)
    rate = annualized_rate_percent(policy)
    return RateClassification(
        annualized_rate_percent=rate,
        is_compliant=rate <= ceiling,
        ceiling_percent=ceiling
    )


class LegalRateChecker:
    """
    Legal ceiling bound to a configured limit
    """

    def __init__(self, ceiling_percent: Number = DEFAULT_CEILING_PERCENT):
        self.ceiling_percent = to_decimal(ceiling_percent)
        if self.ceiling_percent < Decimal('0'):
            raise ValueError("Ceiling must be non-negative")

    @property
    def max_monthly_rate(self) -> Decimal:
        """Largest compliant monthly fraction (0.0125 for a 15% ceiling)"""
        return self.ceiling_percent / HUNDRED / MONTHS_PER_YEAR

    @property
    def max_daily_rate(self) -> Decimal:
        """Largest compliant daily fraction (~0.00041 for a 15% ceiling)"""
        return self.ceiling_percent / HUNDRED / DAYS_PER_YEAR

    def classify(self, policy: Optional[InterestPolicy]) -> RateClassification:
        return classify(policy, self.ceiling_percent)

    def check_policy(self, policy: Optional[InterestPolicy], policy_name: str = "policy") -> RateClassification:
        """Classify and log a warning when the policy exceeds the ceiling"""
        classification = self.classify(policy)
        if not classification.is_compliant:
            logger.warning(
                f"Interest {policy_name} annualizes to {classification.annualized_rate_percent}% "
                f"which exceeds the legal ceiling of {self.ceiling_percent}%"
            )
        return classification
