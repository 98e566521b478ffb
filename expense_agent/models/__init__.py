"""Data models - core data structures of the expense report tool

Layout:
- base.py: field sets, receipts, entries, reports and enums
- constants.py: currencies, project codes, demo reports
- serialization.py: JSON helpers
"""

from .base import (
    ExpenseCategory,
    ExpenseEntry,
    ExpenseFieldSet,
    ExpenseReport,
    ReceiptDocument,
    ReportStatus,
    is_supported_media_type,
    normalize_amount,
    parse_expense_date,
)
from .constants import (
    CURRENCIES,
    DEFAULT_CURRENCY,
    DEFAULT_PROJECT_CODE,
    EXPENSE_CATEGORIES,
    PROJECT_CODES,
    Currency,
    ProjectCode,
    currency_symbol,
    sample_reports,
)

__all__ = [
    "ExpenseCategory",
    "ReportStatus",
    "ReceiptDocument",
    "ExpenseFieldSet",
    "ExpenseEntry",
    "ExpenseReport",
    "is_supported_media_type",
    "normalize_amount",
    "parse_expense_date",
    "Currency",
    "ProjectCode",
    "CURRENCIES",
    "PROJECT_CODES",
    "DEFAULT_CURRENCY",
    "DEFAULT_PROJECT_CODE",
    "EXPENSE_CATEGORIES",
    "currency_symbol",
    "sample_reports",
]
