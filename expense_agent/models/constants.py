"""Reference data: currencies, project codes and the demo report set"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from .base import (
    ExpenseCategory,
    ExpenseEntry,
    ExpenseFieldSet,
    ExpenseReport,
    ReceiptDocument,
    ReportStatus,
)


@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    symbol: str


@dataclass(frozen=True)
class ProjectCode:
    code: str
    name: str


CURRENCIES: Tuple[Currency, ...] = (
    Currency("INR", "Indian Rupee", "₹"),
    Currency("USD", "United States Dollar", "$"),
    Currency("EUR", "Euro", "€"),
    Currency("GBP", "British Pound", "£"),
)

PROJECT_CODES: Tuple[ProjectCode, ...] = (
    ProjectCode("PROJ-001", "Project Alpha"),
    ProjectCode("PROJ-002", "Project Bravo"),
    ProjectCode("PROJ-003", "Project Charlie"),
    ProjectCode("MKT-001", "Marketing Campaign Q3"),
    ProjectCode("R&D-001", "Research & Development"),
)

DEFAULT_CURRENCY = CURRENCIES[0].code
DEFAULT_PROJECT_CODE = PROJECT_CODES[0].code

EXPENSE_CATEGORIES: Tuple[ExpenseCategory, ...] = tuple(ExpenseCategory)


def find_currency(code: str) -> Optional[Currency]:
    for currency in CURRENCIES:
        if currency.code == code:
            return currency
    return None


def currency_symbol(code: str) -> str:
    """Symbol for a currency code, falling back to the code itself."""
    currency = find_currency(code)
    return currency.symbol if currency else code


def is_known_project_code(code: str) -> bool:
    return any(project.code == code for project in PROJECT_CODES)


def _placeholder_receipt(seed: str) -> ReceiptDocument:
    return ReceiptDocument(
        content=b"",
        media_type="image/jpeg",
        filename=f"https://picsum.photos/seed/{seed}/400/600",
        document_id=seed,
    )


def _sample_entry(
    entry_id: str,
    seed: str,
    project_code: str,
    **values,
) -> ExpenseEntry:
    return ExpenseEntry(
        entry_id=entry_id,
        fields=ExpenseFieldSet(**values),
        project_code=project_code,
        receipt=_placeholder_receipt(seed),
    )


def sample_reports() -> List[ExpenseReport]:
    """Demo reports used to seed an empty workbench"""
    return [
        ExpenseReport(
            report_id="rep-1",
            name="Mumbai Conference Trip",
            status=ReportStatus.OPEN,
            currency="INR",
            entries=(
                _sample_entry(
                    "ent-1a", "receipt1", "PROJ-001",
                    title="Flight (BOM-DEL)",
                    merchant="Vistara Airlines",
                    amount=7550.75,
                    date=date(2023, 7, 20),
                    category=ExpenseCategory.TRAVEL,
                    comment="Flight to Delhi for client meeting.",
                ),
                _sample_entry(
                    "ent-1b", "receipt2", "PROJ-001",
                    title="Client Dinner at Taj",
                    merchant="The Taj Mahal Palace",
                    amount=7800.50,
                    date=date(2023, 7, 21),
                    category=ExpenseCategory.FOOD,
                    comment="Dinner with client to discuss Q3 project goals.",
                    people_count=2,
                ),
                _sample_entry(
                    "ent-1c", "receipt4", "PROJ-001",
                    title="Beverages at Namdhari Agro Fresh",
                    merchant="NAMDHARI AGRO FRESH PVT LTD",
                    amount=310.00,
                    date=date(2023, 7, 22),
                    category=ExpenseCategory.FOOD,
                    comment="Water and beverages for the team during conference.",
                ),
            ),
        ),
        ExpenseReport(
            report_id="rep-2",
            name="Team Lunch & Supplies",
            status=ReportStatus.OPEN,
            currency="INR",
        ),
        ExpenseReport(
            report_id="rep-3",
            name="Draft Report for Q4 Marketing",
            status=ReportStatus.DRAFT,
            currency="USD",
        ),
        ExpenseReport(
            report_id="rep-4",
            name="Software Subscriptions",
            status=ReportStatus.SUBMITTED,
            currency="USD",
            entries=(
                _sample_entry(
                    "ent-4a", "receipt3", "R&D-001",
                    title="Figma License Renewal",
                    merchant="Figma Inc.",
                    amount=150.00,
                    date=date(2023, 8, 1),
                    category=ExpenseCategory.OFFICE,
                    comment="Annual license renewal for the design team.",
                ),
            ),
        ),
    ]


__all__ = [
    "Currency",
    "ProjectCode",
    "CURRENCIES",
    "PROJECT_CODES",
    "DEFAULT_CURRENCY",
    "DEFAULT_PROJECT_CODE",
    "EXPENSE_CATEGORIES",
    "currency_symbol",
    "find_currency",
    "is_known_project_code",
    "sample_reports",
]
