"""
Test suite for compliance module

Tests annualization of interest policies and classification against the
legal personal-loan ceiling.
"""

import pytest
import logging
from decimal import Decimal

from debt_engine.compliance import (
    DEFAULT_CEILING_PERCENT, LegalRateChecker, annualized_rate_percent, classify
)
from debt_engine.policies import MonthlyInterestPolicy, DailyInterestPolicy


class TestAnnualizedRate:
    """Test conversion of policy rates to yearly percent"""

    def test_monthly_rate(self):
        policy = MonthlyInterestPolicy(monthly_rate=Decimal('0.0125'))
        assert annualized_rate_percent(policy) == Decimal('15')

    def test_daily_rate(self):
        policy = DailyInterestPolicy(daily_rate=Decimal('0.0005'))
        assert annualized_rate_percent(policy) == Decimal('18.25')

    def test_interest_free(self):
        assert annualized_rate_percent(None) == Decimal('0')


class TestClassify:
    """Test the legal ceiling boundary"""

    def test_boundary_is_compliant(self):
        result = classify(MonthlyInterestPolicy(monthly_rate=Decimal('0.0125')))
        assert result.is_compliant
        assert result.annualized_rate_percent == Decimal('15')
        assert result.excess_percent == Decimal('0')

    def test_just_above_boundary(self):
        result = classify(MonthlyInterestPolicy(monthly_rate=Decimal('0.0126')))
        assert not result.is_compliant
        assert result.annualized_rate_percent == Decimal('15.12')
        assert result.excess_percent == Decimal('0.12')

    def test_daily_boundary(self):
        assert classify(DailyInterestPolicy(daily_rate=Decimal('0.00041'))).is_compliant
        assert not classify(DailyInterestPolicy(daily_rate=Decimal('0.00042'))).is_compliant

    def test_custom_ceiling(self):
        policy = MonthlyInterestPolicy(monthly_rate=Decimal('0.02'))
        assert not classify(policy).is_compliant
        assert classify(policy, ceiling_percent=Decimal('28')).is_compliant

    def test_no_policy_is_compliant(self):
        assert classify(None).is_compliant


class TestLegalRateChecker:
    """Test checker bound to a configured ceiling"""

    def test_max_rates(self):
        checker = LegalRateChecker()
        assert checker.ceiling_percent == DEFAULT_CEILING_PERCENT
        assert checker.max_monthly_rate == Decimal('0.0125')
        assert checker.max_daily_rate.quantize(Decimal('0.00001')) == Decimal('0.00041')

    def test_negative_ceiling_rejected(self):
        with pytest.raises(ValueError):
            LegalRateChecker(Decimal('-1'))

    def test_check_policy_warns(self, caplog):
        checker = LegalRateChecker()
        with caplog.at_level(logging.WARNING, logger="debt_engine.compliance"):
            result = checker.check_policy(MonthlyInterestPolicy(monthly_rate=Decimal('0.03')), "loan L1")

        assert not result.is_compliant
        assert "exceeds the legal ceiling" in caplog.text

    def test_compliant_policy_is_silent(self, caplog):
        checker = LegalRateChecker()
        with caplog.at_level(logging.WARNING, logger="debt_engine.compliance"):
            checker.check_policy(MonthlyInterestPolicy(monthly_rate=Decimal('0.01')))
        assert caplog.text == ""
