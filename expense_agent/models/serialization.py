"""Serialization helpers - JSON encoding and payload decoding"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping

from .base import (
    ExpenseCategory,
    ExpenseEntry,
    ExpenseFieldSet,
    ExpenseReport,
    ReceiptDocument,
    normalize_amount,
    parse_expense_date,
)


# ==================== JSON encoder ====================

class ExpenseJSONEncoder(json.JSONEncoder):
    """JSON encoder aware of dates, enums and the expense dataclasses"""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, bytes):
            return None
        elif is_dataclass(obj):
            return to_dict(obj)
        elif isinstance(obj, (set, tuple)):
            return list(obj)
        return super().default(obj)


# ==================== Serialization ====================

def document_to_dict(document: ReceiptDocument) -> Dict[str, Any]:
    """Receipt metadata; the binary content is never serialised."""
    return {
        "document_id": document.document_id,
        "reference": document.reference,
        "media_type": document.media_type,
        "size": document.size,
    }


def field_set_to_dict(field_set: ExpenseFieldSet) -> Dict[str, Any]:
    return {
        "date": field_set.date.isoformat() if field_set.date else None,
        "amount": field_set.amount,
        "merchant": field_set.merchant,
        "title": field_set.title,
        "category": field_set.category.value if field_set.category else None,
        "comment": field_set.comment,
        "people_count": field_set.people_count,
    }


def entry_to_dict(entry: ExpenseEntry) -> Dict[str, Any]:
    return {
        "entry_id": entry.entry_id,
        "project_code": entry.project_code,
        "overridden": entry.overridden,
        "fields": field_set_to_dict(entry.fields),
        "receipt": document_to_dict(entry.receipt),
    }


def report_to_dict(report: ExpenseReport) -> Dict[str, Any]:
    return {
        "report_id": report.report_id,
        "name": report.name,
        "status": report.status.value,
        "currency": report.currency,
        "total_amount": report.total_amount,
        "entries": [entry_to_dict(entry) for entry in report.entries],
    }


def to_dict(obj: Any) -> Dict[str, Any]:
    """Convert one of the expense dataclasses into a JSON-friendly dict

    Args:
        obj: dataclass instance

    Returns:
        dict representation
    """
    if isinstance(obj, ExpenseReport):
        return report_to_dict(obj)
    if isinstance(obj, ExpenseEntry):
        return entry_to_dict(obj)
    if isinstance(obj, ExpenseFieldSet):
        return field_set_to_dict(obj)
    if isinstance(obj, ReceiptDocument):
        return document_to_dict(obj)
    if not is_dataclass(obj):
        raise TypeError(f"Expected dataclass, got {type(obj)}")
    return json.loads(json.dumps(asdict(obj), cls=ExpenseJSONEncoder))


def to_json(obj: Any, indent: int = 2) -> str:
    return json.dumps(obj, cls=ExpenseJSONEncoder, ensure_ascii=False, indent=indent)


# ==================== Decoding ====================

def field_set_from_payload(data: Mapping[str, Any]) -> ExpenseFieldSet:
    """Build a field set from an AI payload (``expense_title``/``numberOfPeople`` keys)

    Unknown categories fall back to office expenses, a missing amount becomes 0
    and a missing or invalid people count becomes 1.
    """
    try:
        category = ExpenseCategory.parse(data.get("category"))
    except ValueError:
        category = ExpenseCategory.OFFICE

    amount = normalize_amount(data.get("amount")) or 0.0
    try:
        people_count = int(data.get("numberOfPeople", data.get("people_count")) or 1)
    except (TypeError, ValueError):
        people_count = 1

    return ExpenseFieldSet(
        date=parse_expense_date(data.get("date")),
        amount=max(amount, 0.0),
        merchant=str(data.get("merchant") or ""),
        title=str(data.get("expense_title", data.get("title")) or ""),
        category=category,
        comment=str(data.get("comment") or ""),
        people_count=people_count if people_count >= 1 else 1,
    )


__all__ = [
    "ExpenseJSONEncoder",
    "document_to_dict",
    "entry_to_dict",
    "field_set_from_payload",
    "field_set_to_dict",
    "report_to_dict",
    "to_dict",
    "to_json",
]
