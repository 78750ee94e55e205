"""
Test suite for interest policy module

Tests policy variants, validation and conversion from flat records.
Mismatched mode and rate data must fail fast.
"""

import pytest
from decimal import Decimal

from debt_engine.exceptions import ConfigurationError
from debt_engine.policies import (
    InterestMode, InterestPolicy, MonthlyInterestPolicy, DailyInterestPolicy,
    policy_from_record, policy_from_dict
)


class TestPolicyVariants:
    """Test MONTHLY and DAILY policies"""

    def test_monthly_policy(self):
        policy = MonthlyInterestPolicy(monthly_rate=Decimal('0.015'), anchor_day=5)
        assert policy.mode == InterestMode.MONTHLY
        assert policy.rate == Decimal('0.015')
        assert policy.anchor_day == 5
        assert policy.grace_days == 0

    def test_daily_policy(self):
        policy = DailyInterestPolicy(daily_rate="0.0005", grace_days=3)
        assert policy.mode == InterestMode.DAILY
        assert policy.rate == Decimal('0.0005')
        assert policy.grace_days == 3

    def test_float_rate_keeps_its_digits(self):
        policy = MonthlyInterestPolicy(monthly_rate=0.015)
        assert policy.monthly_rate == Decimal('0.015')

    def test_rate_out_of_range(self):
        with pytest.raises(ValueError, match="between 0 and 1"):
            MonthlyInterestPolicy(monthly_rate=Decimal('1.5'))
        with pytest.raises(ValueError, match="between 0 and 1"):
            DailyInterestPolicy(daily_rate=Decimal('-0.001'))

    def test_anchor_day_out_of_range(self):
        with pytest.raises(ValueError):
            MonthlyInterestPolicy(monthly_rate=Decimal('0.01'), anchor_day=0)
        with pytest.raises(ValueError):
            MonthlyInterestPolicy(monthly_rate=Decimal('0.01'), anchor_day=32)

    def test_negative_grace_days(self):
        with pytest.raises(ValueError):
            DailyInterestPolicy(daily_rate=Decimal('0.001'), grace_days=-1)

    def test_base_policy_is_abstract(self):
        with pytest.raises(TypeError):
            InterestPolicy()
        assert isinstance(DailyInterestPolicy(daily_rate=Decimal('0.001')), InterestPolicy)

    def test_policies_are_immutable(self):
        policy = DailyInterestPolicy(daily_rate=Decimal('0.001'))
        with pytest.raises(Exception):
            policy.daily_rate = Decimal('0.002')


class TestPolicyFromRecord:
    """Test building policies from persisted records"""

    def test_monthly_record(self):
        policy = policy_from_record("MONTHLY", monthly_rate="0.02", anchor_day=10)
        assert isinstance(policy, MonthlyInterestPolicy)
        assert policy.monthly_rate == Decimal('0.02')
        assert policy.anchor_day == 10

    def test_anchor_day_defaults_to_first(self):
        policy = policy_from_record(InterestMode.MONTHLY, monthly_rate="0.02")
        assert policy.anchor_day == 1

    def test_lowercase_mode_accepted(self):
        policy = policy_from_record("daily", daily_rate="0.001")
        assert isinstance(policy, DailyInterestPolicy)

    def test_monthly_without_monthly_rate_fails(self):
        """Corrupted data must not silently mean zero interest"""
        with pytest.raises(ConfigurationError):
            policy_from_record("MONTHLY", daily_rate="0.001")

    def test_daily_without_daily_rate_fails(self):
        with pytest.raises(ConfigurationError):
            policy_from_record("DAILY", monthly_rate="0.01")

    def test_both_rates_populated_fails(self):
        with pytest.raises(ConfigurationError):
            policy_from_record("MONTHLY", monthly_rate="0.01", daily_rate="0.001")

    def test_unknown_mode_fails(self):
        with pytest.raises(ConfigurationError):
            policy_from_record("WEEKLY", monthly_rate="0.01")

    def test_record_round_trip(self):
        policy = MonthlyInterestPolicy(monthly_rate=Decimal('0.0125'), anchor_day=28, grace_days=2)
        record = policy.to_record()
        assert record["mode"] == "MONTHLY"
        assert record["daily_rate"] is None
        assert policy_from_dict(record) == policy

    def test_none_record_is_interest_free(self):
        assert policy_from_dict(None) is None
