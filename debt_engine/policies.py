"""
Interest Policy Module

Immutable descriptions of how a loan accrues interest. MONTHLY and DAILY
are separate variants so a policy can never carry the wrong rate for its
mode. Flat persisted records are converted with policy_from_record, which
fails fast on inconsistent data instead of silently meaning "no interest".
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from enum import Enum

from .currency import Number, to_decimal
from .exceptions import ConfigurationError


class InterestMode(Enum):
    """Interest calculation strategies"""
    MONTHLY = "MONTHLY"   # Monthly rate, prorated by actual month length
    DAILY = "DAILY"       # Flat daily rate


def _validate_rate(name: str, rate: Decimal) -> None:
    if rate < Decimal('0') or rate > Decimal('1'):
        raise ValueError(f"{name} must be between 0 and 1 (0-100%)")


def _validate_grace_days(grace_days: int) -> None:
    if grace_days < 0:
        raise ValueError("grace_days must be non-negative")


class InterestPolicy(ABC):
    """Base for interest policy variants"""

    grace_days: int

    @property
    @abstractmethod
    def mode(self) -> InterestMode:
        pass

    @property
    @abstractmethod
    def rate(self) -> Decimal:
        """The variant's own rate (monthly or daily fraction)"""
        pass

    def to_record(self) -> Dict[str, Any]:
        """Flatten to the persisted record shape accepted by policy_from_record"""
        return {
            "mode": self.mode.value,
            "monthly_rate": str(self.rate) if self.mode == InterestMode.MONTHLY else None,
            "daily_rate": str(self.rate) if self.mode == InterestMode.DAILY else None,
            "anchor_day": getattr(self, "anchor_day", None),
            "grace_days": self.grace_days,
        }


@dataclass(frozen=True)
class MonthlyInterestPolicy(InterestPolicy):
    """Monthly rate charged per calendar month, prorated by days in that month"""
    monthly_rate: Decimal               # e.g. 0.015 for 1.5% per month
    anchor_day: int = 1                 # Nominal cycle day of month
    grace_days: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'monthly_rate', to_decimal(self.monthly_rate))
        _validate_rate("monthly_rate", self.monthly_rate)
        if not 1 <= self.anchor_day <= 31:
            raise ValueError("anchor_day must be between 1 and 31")
        _validate_grace_days(self.grace_days)

    @property
    def mode(self) -> InterestMode:
        return InterestMode.MONTHLY

    @property
    def rate(self) -> Decimal:
        return self.monthly_rate


@dataclass(frozen=True)
class DailyInterestPolicy(InterestPolicy):
    """Flat daily rate, simple interest"""
    daily_rate: Decimal                 # e.g. 0.0005 for 0.05% per day
    grace_days: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'daily_rate', to_decimal(self.daily_rate))
        _validate_rate("daily_rate", self.daily_rate)
        _validate_grace_days(self.grace_days)

    @property
    def mode(self) -> InterestMode:
        return InterestMode.DAILY

    @property
    def rate(self) -> Decimal:
        return self.daily_rate


def policy_from_record(
    mode: Union[InterestMode, str],
    monthly_rate: Optional[Number] = None,
    daily_rate: Optional[Number] = None,
    anchor_day: Optional[int] = None,
    grace_days: Optional[int] = 0
) -> InterestPolicy:
    """
    Build a policy variant from a flat persisted record

    Args:
        mode: MONTHLY or DAILY
        monthly_rate: Monthly fraction, required for MONTHLY only
        daily_rate: Daily fraction, required for DAILY only
        anchor_day: Cycle day (MONTHLY), defaults to 1
        grace_days: Days without interest after accrual start

    Returns:
        MonthlyInterestPolicy or DailyInterestPolicy

    Raises:
        ConfigurationError: If the mode does not match the populated rate field
    """
    try:
        mode = InterestMode(mode.upper() if isinstance(mode, str) else mode)
    except ValueError:
        raise ConfigurationError(f"Unknown interest mode: {mode!r}")

    grace_days = grace_days or 0

    if mode == InterestMode.MONTHLY:
        if monthly_rate is None:
            raise ConfigurationError("MONTHLY policy has no monthly_rate")
        if daily_rate is not None:
            raise ConfigurationError("MONTHLY policy must not carry a daily_rate")
        return MonthlyInterestPolicy(
            monthly_rate=to_decimal(monthly_rate),
            anchor_day=anchor_day or 1,
            grace_days=grace_days
        )

    if daily_rate is None:
        raise ConfigurationError("DAILY policy has no daily_rate")
    if monthly_rate is not None:
        raise ConfigurationError("DAILY policy must not carry a monthly_rate")
    return DailyInterestPolicy(daily_rate=to_decimal(daily_rate), grace_days=grace_days)


def policy_from_dict(data: Optional[Dict[str, Any]]) -> Optional[InterestPolicy]:
    """Inverse of InterestPolicy.to_record; None means an interest-free loan"""
    if data is None:
        return None
    return policy_from_record(
        mode=data.get("mode"),
        monthly_rate=data.get("monthly_rate"),
        daily_rate=data.get("daily_rate"),
        anchor_day=data.get("anchor_day"),
        grace_days=data.get("grace_days", 0)
    )
