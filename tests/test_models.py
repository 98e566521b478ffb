from datetime import date

import pytest

from expense_agent.config import get_settings
from expense_agent.models import (
    ExpenseCategory,
    ExpenseEntry,
    ExpenseFieldSet,
    ExpenseReport,
    ReportStatus,
    normalize_amount,
    parse_expense_date,
    sample_reports,
)
from expense_agent.models.serialization import field_set_from_payload, report_to_dict

from .helpers import make_fields


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("₹1,250.50", 1250.5),
        ("$ 12", 12.0),
        (7, 7.0),
        ("", None),
        ("n/a", None),
        (True, None),
    ],
)
def test_normalize_amount(raw, expected):
    assert normalize_amount(raw) == expected


@pytest.mark.parametrize("raw", ["2024-06-03", "2024/06/03", "03/06/2024", "2024-06-03T10:15:00"])
def test_parse_expense_date(raw):
    assert parse_expense_date(raw) == date(2024, 6, 3)


def test_category_parse_accepts_values_and_names():
    assert ExpenseCategory.parse("Food Expense") == ExpenseCategory.FOOD
    assert ExpenseCategory.parse("travel") == ExpenseCategory.TRAVEL
    assert ExpenseCategory.parse("ACCOMMODATION") == ExpenseCategory.ACCOMMODATION
    with pytest.raises(ValueError):
        ExpenseCategory.parse("Gifts")


def test_field_update_coercion():
    fields = ExpenseFieldSet()
    fields.update("amount", "₹99")
    fields.update("people_count", 0)
    fields.update("date", "2024-01-31")
    fields.update("category", "Travel")

    assert fields.amount == 99.0
    assert fields.people_count == 1
    assert fields.date == date(2024, 1, 31)
    assert fields.category == ExpenseCategory.TRAVEL

    with pytest.raises(ValueError):
        fields.update("vendor", "x")
    with pytest.raises(ValueError):
        fields.update("amount", -3)


def test_payload_decoding_defaults():
    fields = field_set_from_payload({"category": "Snacks", "numberOfPeople": "abc"})

    assert fields.category == ExpenseCategory.OFFICE
    assert fields.amount == 0.0
    assert fields.people_count == 1
    assert fields.date is None


def test_report_with_entry_is_a_new_open_report(receipt):
    report = ExpenseReport(name="Trip", currency="USD")
    entry = ExpenseEntry(fields=make_fields(amount=12.5), project_code="PROJ-001", receipt=receipt)

    updated = report.with_entry(entry)

    assert report.entries == ()
    assert report.status == ReportStatus.DRAFT
    assert updated.status == ReportStatus.OPEN
    assert updated.total_amount == 12.5
    assert updated.find_entry(entry.entry_id) is entry
    assert report_to_dict(updated)["entries"][0]["receipt"]["media_type"] == "image/jpeg"


def test_sample_reports_cover_every_status():
    statuses = {report.status for report in sample_reports()}
    assert statuses == set(ReportStatus)


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("EXPENSE_AI_API_KEY", "env-key")
    monkeypatch.setenv("OVERRIDE_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("OVERRIDE_CODE_TTL", "not-a-number")
    monkeypatch.setenv("ALLOW_ZERO_AMOUNT", "true")
    get_settings.cache_clear()
    try:
        settings = get_settings(str(tmp_path / "missing.env"))
    finally:
        get_settings.cache_clear()

    assert settings.api_key == "env-key"
    assert settings.has_credentials
    assert settings.override_max_attempts == 3
    assert settings.override_code_ttl is None
    assert settings.allow_zero_amount is True
