"""
Exceptions Module

Error kinds surfaced by the engine. Calculations degrade to zero rather than
raise; these are reserved for corrupted input data and caller mistakes.
"""

from typing import Optional


class DebtEngineError(Exception):
    """Base exception for all debt engine errors"""


class ConfigurationError(DebtEngineError):
    """Interest policy or settings are internally inconsistent"""


class AllocationError(DebtEngineError):
    """Payment allocations do not fit the payment they claim to split"""


class LoanNotFoundError(DebtEngineError):
    """Referenced loan does not exist in the book"""

    def __init__(self, loan_id: str, message: Optional[str] = None):
        self.loan_id = loan_id
        super().__init__(message or f"Loan {loan_id} not found")
