"""
Tests for pydantic input schemas
"""

import pytest
from decimal import Decimal
from datetime import date
from pydantic import ValidationError

from debt_engine.allocation import AllocationStrategy
from debt_engine.policies import InterestMode, MonthlyInterestPolicy, DailyInterestPolicy
from debt_engine.schemas import (
    InterestPolicyModel, AllocationItemModel, AutoAllocateRequest, ManualPaymentRequest
)


class TestInterestPolicyModel:
    """Test interest policy input validation"""

    def test_monthly_to_policy(self):
        model = InterestPolicyModel(mode="MONTHLY", monthly_rate="0.0125", anchor_day=15)
        policy = model.to_policy()
        assert policy == MonthlyInterestPolicy(monthly_rate=Decimal('0.0125'), anchor_day=15)

    def test_daily_to_policy(self):
        model = InterestPolicyModel(mode=InterestMode.DAILY, daily_rate="0.0005", grace_days=3)
        policy = model.to_policy()
        assert isinstance(policy, DailyInterestPolicy)
        assert policy.grace_days == 3

    def test_rate_bounds(self):
        with pytest.raises(ValidationError):
            InterestPolicyModel(mode="MONTHLY", monthly_rate="1.01")
        with pytest.raises(ValidationError):
            InterestPolicyModel(mode="DAILY", daily_rate="-0.1")

    def test_anchor_day_bounds(self):
        with pytest.raises(ValidationError):
            InterestPolicyModel(mode="MONTHLY", monthly_rate="0.01", anchor_day=32)

    def test_negative_grace_days(self):
        with pytest.raises(ValidationError):
            InterestPolicyModel(mode="DAILY", daily_rate="0.001", grace_days=-1)

    def test_rate_must_match_mode(self):
        with pytest.raises(ValidationError):
            InterestPolicyModel(mode="MONTHLY", daily_rate="0.001")
        with pytest.raises(ValidationError):
            InterestPolicyModel(mode="DAILY", monthly_rate="0.01", daily_rate="0.001")

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            InterestPolicyModel(mode="WEEKLY", monthly_rate="0.01")

    def test_from_policy(self):
        policy = MonthlyInterestPolicy(monthly_rate=Decimal('0.02'), anchor_day=10)
        assert InterestPolicyModel.from_policy(policy).to_policy() == policy


class TestPaymentRequests:
    """Test payment input validation"""

    def test_auto_allocate_request(self):
        request = AutoAllocateRequest(amount="1500.50", payment_date="2024-02-01", method="fifo")
        assert request.amount == Decimal('1500.50')
        assert request.payment_date == date(2024, 2, 1)
        assert request.method == AllocationStrategy.FIFO
        assert request.loan_ids is None

    def test_default_method(self):
        request = AutoAllocateRequest(amount="10", payment_date=date(2024, 2, 1))
        assert request.method == AllocationStrategy.INTEREST_FIRST

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            AutoAllocateRequest(amount="0", payment_date="2024-02-01")

    def test_unknown_method(self):
        with pytest.raises(ValidationError):
            AutoAllocateRequest(amount="10", payment_date="2024-02-01", method="lifo")

    def test_allocation_item(self):
        item = AllocationItemModel(loan_id="L1", principal_paid="90", interest_paid="10")
        allocation = item.to_allocation()
        assert allocation.loan_id == "L1"
        assert allocation.total == Decimal('100')

    def test_allocation_item_rejects_negative(self):
        with pytest.raises(ValidationError):
            AllocationItemModel(loan_id="L1", principal_paid="-1")

    def test_manual_payment_request(self):
        request = ManualPaymentRequest(
            amount="100",
            payment_date="2024-02-01",
            allocations=[{"loan_id": "A", "principal_paid": "60"}, {"loan_id": "B", "interest_paid": "40"}]
        )
        allocations = request.to_allocations()
        assert [a.loan_id for a in allocations] == ["A", "B"]
        assert sum(a.total for a in allocations) == Decimal('100')

    def test_manual_payment_exceeding_amount(self):
        with pytest.raises(ValidationError):
            ManualPaymentRequest(
                amount="100",
                payment_date="2024-02-01",
                allocations=[{"loan_id": "A", "principal_paid": "101"}]
            )
