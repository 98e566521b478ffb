"""Two-tier expense validation: local required-field checks, then the compliance judge"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from ..models import ExpenseFieldSet, ReceiptDocument
from .core import ComplianceVerdict

logger = logging.getLogger(__name__)

MISSING_DOCUMENT_MESSAGE = "A supporting invoice/receipt image is required."
MISSING_FIELDS_MESSAGE = (
    "All fields are required. Please ensure the AI has extracted all data "
    "or fill it in manually."
)
JUDGE_UNAVAILABLE_MESSAGE = (
    "Could not perform AI validation due to a system error. Please try again."
)
NON_COMPLIANT_FALLBACK_MESSAGE = "Expense does not comply with the expense policy."

ComplianceJudge = Callable[[ExpenseFieldSet, ReceiptDocument], Awaitable[ComplianceVerdict]]


class ValidationTier(str, Enum):
    """Which validation tier produced the violations"""

    REQUIRED_FIELDS = "required_fields"
    POLICY = "policy"


@dataclass(frozen=True)
class ValidationOutcome:
    """Ordered violation reasons; empty means compliant"""

    violations: Tuple[str, ...] = ()
    tier: ValidationTier = ValidationTier.POLICY

    @property
    def is_compliant(self) -> bool:
        return not self.violations

    @property
    def from_required_fields(self) -> bool:
        return self.tier == ValidationTier.REQUIRED_FIELDS and bool(self.violations)


def check_required_fields(
    fields: ExpenseFieldSet,
    document: Optional[ReceiptDocument],
    allow_zero_amount: bool = False,
) -> List[str]:
    """Synchronous pre-check; no network involved.

    A zero amount counts as missing unless ``allow_zero_amount`` is set.
    """
    if document is None:
        return [MISSING_DOCUMENT_MESSAGE]

    amount_missing = fields.amount is None if allow_zero_amount else not fields.amount
    if (
        fields.date is None
        or amount_missing
        or fields.category is None
        or not fields.title
        or not fields.comment.strip()
    ):
        return [MISSING_FIELDS_MESSAGE]
    return []


async def validate_expense(
    fields: ExpenseFieldSet,
    document: Optional[ReceiptDocument],
    judge: ComplianceJudge,
    allow_zero_amount: bool = False,
) -> ValidationOutcome:
    """Validate an expense, failing closed on every path

    Args:
        fields: current field set
        document: the receipt, if one was chosen
        judge: async compliance judge
        allow_zero_amount: accept 0 as a filled-in amount

    Returns:
        the validation outcome
    """
    missing = check_required_fields(fields, document, allow_zero_amount=allow_zero_amount)
    if missing:
        return ValidationOutcome(tuple(missing), ValidationTier.REQUIRED_FIELDS)

    try:
        verdict = await judge(fields, document)
    except Exception as e:
        logger.error(f"Compliance judge failed: {e}", exc_info=True)
        return ValidationOutcome((JUDGE_UNAVAILABLE_MESSAGE,))

    if verdict.is_valid is True:
        return ValidationOutcome()
    return ValidationOutcome((verdict.reason or NON_COMPLIANT_FALLBACK_MESSAGE,))


__all__ = [
    "ComplianceJudge",
    "JUDGE_UNAVAILABLE_MESSAGE",
    "MISSING_DOCUMENT_MESSAGE",
    "MISSING_FIELDS_MESSAGE",
    "NON_COMPLIANT_FALLBACK_MESSAGE",
    "ValidationOutcome",
    "ValidationTier",
    "check_required_fields",
    "validate_expense",
]
