"""
Pydantic schemas for validating engine inputs
"""

from decimal import Decimal
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from .allocation import AllocationStrategy, LoanAllocation
from .policies import InterestMode, InterestPolicy, policy_from_record


class InterestPolicyModel(BaseModel):
    mode: InterestMode = Field(..., description="Interest mode (MONTHLY or DAILY)")
    monthly_rate: Optional[Decimal] = Field(None, ge=0, le=1, description="Monthly fraction, 0.0125 = 1.25%")
    daily_rate: Optional[Decimal] = Field(None, ge=0, le=1, description="Daily fraction, 0.00041 = 0.041%")
    anchor_day: Optional[int] = Field(None, ge=1, le=31)
    grace_days: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_rate_matches_mode(self) -> 'InterestPolicyModel':
        if self.mode == InterestMode.MONTHLY and self.monthly_rate is None:
            raise ValueError("monthly_rate is required for MONTHLY policies")
        if self.mode == InterestMode.DAILY and self.daily_rate is None:
            raise ValueError("daily_rate is required for DAILY policies")
        if self.monthly_rate is not None and self.daily_rate is not None:
            raise ValueError("Only the rate of the policy's own mode may be set")
        return self

    def to_policy(self) -> InterestPolicy:
        return policy_from_record(
            mode=self.mode,
            monthly_rate=self.monthly_rate,
            daily_rate=self.daily_rate,
            anchor_day=self.anchor_day,
            grace_days=self.grace_days
        )

    @classmethod
    def from_policy(cls, policy: InterestPolicy) -> 'InterestPolicyModel':
        return cls(**policy.to_record())


# Payment schemas
class AllocationItemModel(BaseModel):
    loan_id: str = Field(..., min_length=1)
    principal_paid: Decimal = Field(Decimal('0'), ge=0)
    interest_paid: Decimal = Field(Decimal('0'), ge=0)

    def to_allocation(self) -> LoanAllocation:
        return LoanAllocation(
            loan_id=self.loan_id,
            principal_paid=self.principal_paid,
            interest_paid=self.interest_paid
        )


class AutoAllocateRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_date: date
    method: AllocationStrategy = AllocationStrategy.INTEREST_FIRST
    loan_ids: Optional[List[str]] = Field(None, description="Loans to service, all open loans if omitted")
    note: Optional[str] = None


class ManualPaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_date: date
    allocations: List[AllocationItemModel] = Field(..., min_length=1)
    note: Optional[str] = None

    @model_validator(mode="after")
    def check_total(self) -> 'ManualPaymentRequest':
        total = sum((item.principal_paid + item.interest_paid for item in self.allocations), Decimal('0'))
        if total > self.amount:
            raise ValueError(f"Allocations total {total} exceeds payment amount {self.amount}")
        return self

    def to_allocations(self) -> List[LoanAllocation]:
        return [item.to_allocation() for item in self.allocations]
