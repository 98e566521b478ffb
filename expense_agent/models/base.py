"""Base models - core data structures and enums of the expense system"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4


class ExpenseCategory(str, Enum):
    """Policy categories an expense can be filed under"""
    FOOD = "Food Expense"
    TRAVEL = "Travel"
    ACCOMMODATION = "Accommodation"
    OFFICE = "Other office expenses"

    @classmethod
    def parse(cls, value: Any) -> "ExpenseCategory":
        """Accept a member, its value or its member name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            cleaned = value.strip()
            for member in cls:
                if cleaned == member.value or cleaned.upper() == member.name:
                    return member
            for member in cls:
                if cleaned.lower() == member.value.lower():
                    return member
        raise ValueError(f"Unknown expense category: {value!r}")

    @property
    def tracks_headcount(self) -> bool:
        """Whether the people count matters (shared meals and rides)."""
        return self in (ExpenseCategory.FOOD, ExpenseCategory.TRAVEL)


class ReportStatus(str, Enum):
    """Report lifecycle"""
    DRAFT = "draft"
    OPEN = "open"
    SUBMITTED = "submitted"


def normalize_amount(value: Any) -> Optional[float]:
    """Normalise an amount to a float, dropping currency symbols and separators"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r"[₹$€£,\s]", "", value)
        if not cleaned:
            return None
        match = re.search(r"[-+]?\d+(?:\.\d+)?", cleaned)
        if match:
            try:
                return float(match.group())
            except ValueError:
                return None
        return None
    return None


def parse_expense_date(value: Any) -> Optional[date]:
    """Parse the usual receipt date formats into a calendar date"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        candidates = [
            "%Y-%m-%d",
            "%Y/%m/%d",
            "%Y%m%d",
            "%Y-%m-%d %H:%M:%S",
            "%Y/%m/%d %H:%M:%S",
            "%Y-%m-%d %H:%M",
            "%Y-%m-%dT%H:%M:%S",
            "%Y-%m-%dT%H:%M:%S.%f",
            "%d-%m-%Y",
            "%d/%m/%Y",
        ]
        for fmt in candidates:
            try:
                return datetime.strptime(cleaned, fmt).date()
            except ValueError:
                continue
    return None


MEDIA_TYPE_PDF = "application/pdf"


def is_supported_media_type(media_type: Optional[str]) -> bool:
    """Only images and PDFs can be analysed."""
    if not media_type:
        return False
    media_type = media_type.strip().lower()
    return media_type.startswith("image/") or media_type == MEDIA_TYPE_PDF


@dataclass(frozen=True)
class ReceiptDocument:
    """An uploaded receipt (image or PDF); immutable once chosen"""

    content: bytes = field(repr=False)
    media_type: str
    filename: str = ""
    document_id: str = field(default_factory=lambda: uuid4().hex[:12])

    @property
    def reference(self) -> str:
        return self.filename or f"receipt-{self.document_id}"

    @property
    def is_image(self) -> bool:
        return self.media_type.lower().startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.media_type.lower() == MEDIA_TYPE_PDF

    @property
    def size(self) -> int:
        return len(self.content)


TEXT_FIELDS = ("merchant", "title", "comment")


@dataclass
class ExpenseFieldSet:
    """Structured fields of an expense, extracted by the AI or typed in by hand"""

    date: Optional[date] = None
    amount: Optional[float] = None  # non-negative, currency of the report
    merchant: str = ""
    title: str = ""
    category: Optional[ExpenseCategory] = None
    comment: str = ""  # mandatory before saving
    people_count: int = 1

    @classmethod
    def manual_defaults(cls, today: Optional[date] = None) -> "ExpenseFieldSet":
        """Seed used when extraction fails so the user can fill in the rest."""
        return cls(
            date=today or date.today(),
            amount=0.0,
            merchant="",
            title="",
            category=ExpenseCategory.OFFICE,
            comment="",
            people_count=1,
        )

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def update(self, name: str, value: Any) -> None:
        """Coerce and assign a single field.

        Raises:
            ValueError: unknown field, negative amount or unknown category
        """
        if name == "amount":
            amount = normalize_amount(value)
            if amount is not None and amount < 0:
                raise ValueError("Amount cannot be negative.")
            self.amount = amount
        elif name == "people_count":
            try:
                count = int(value)
            except (TypeError, ValueError):
                count = 1
            self.people_count = count if count >= 1 else 1
        elif name == "date":
            self.date = parse_expense_date(value)
        elif name == "category":
            self.category = None if value in (None, "") else ExpenseCategory.parse(value)
        elif name in TEXT_FIELDS:
            setattr(self, name, "" if value is None else str(value))
        else:
            raise ValueError(f"Unknown expense field: {name}")

    def copy(self) -> "ExpenseFieldSet":
        return replace(self)

    def to_payload(self) -> Dict[str, Any]:
        """Field snapshot in the shape the AI prompts describe."""
        return {
            "date": self.date.isoformat() if self.date else None,
            "amount": self.amount,
            "merchant": self.merchant,
            "expense_title": self.title,
            "category": self.category.value if self.category else None,
            "comment": self.comment,
            "numberOfPeople": self.people_count or 1,
        }

    def to_record(self, project_code: str, currency: str) -> Dict[str, Any]:
        """Record shape expected by the workflow webhooks."""
        return {
            "Project Code": project_code,
            "Date": self.date.isoformat() if self.date else None,
            "Amount": self.amount,
            "Currency": currency,
            "Merchant": self.merchant,
            "Expense Category": self.category.value if self.category else None,
            "Title": self.title,
            "Comment": self.comment,
            "Number of People": self.people_count or 1,
        }


def new_entry_id() -> str:
    return f"ent-{uuid4().hex[:12]}"


def new_report_id() -> str:
    return f"rep-{uuid4().hex[:12]}"


@dataclass(frozen=True)
class ExpenseEntry:
    """A saved expense line; append-only within its report"""

    fields: ExpenseFieldSet
    project_code: str
    receipt: ReceiptDocument
    entry_id: str = field(default_factory=new_entry_id)
    overridden: bool = False  # saved through an approved override

    def to_record(self, currency: str) -> Dict[str, Any]:
        return self.fields.to_record(self.project_code, currency)


@dataclass(frozen=True)
class ExpenseReport:
    """A named collection of entries with its own currency and status"""

    name: str
    currency: str
    status: ReportStatus = ReportStatus.DRAFT
    entries: Tuple[ExpenseEntry, ...] = ()
    report_id: str = field(default_factory=new_report_id)

    @property
    def can_accept_entries(self) -> bool:
        return self.status != ReportStatus.SUBMITTED

    @property
    def total_amount(self) -> float:
        return sum(entry.fields.amount or 0.0 for entry in self.entries)

    def with_status(self, status: ReportStatus) -> "ExpenseReport":
        return replace(self, status=status)

    def with_entry(self, entry: ExpenseEntry) -> "ExpenseReport":
        """Append an entry; a report with entries is always open."""
        return replace(self, entries=self.entries + (entry,), status=ReportStatus.OPEN)

    def renamed(self, name: str) -> "ExpenseReport":
        return replace(self, name=name)

    def find_entry(self, entry_id: str) -> Optional[ExpenseEntry]:
        for entry in self.entries:
            if entry.entry_id == entry_id:
                return entry
        return None


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
    "new_entry_id",
    "new_report_id",
]
