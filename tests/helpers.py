"""Factories and fake collaborators shared by the tests."""

from datetime import date

from expense_agent.agent.core import ComplianceVerdict
from expense_agent.config import Settings
from expense_agent.models import ExpenseCategory, ExpenseFieldSet


def make_settings(**overrides) -> Settings:
    values = dict(
        api_key="test-key",
        base_url="https://llm.example.test/v1/",
        vision_model="test-vision",
        submission_webhook_url="https://hooks.example.test/submit",
        otp_webhook_url="https://hooks.example.test/otp",
    )
    values.update(overrides)
    return Settings(**values)


def make_fields(**overrides) -> ExpenseFieldSet:
    values = dict(
        date=date(2024, 6, 3),
        amount=450.0,
        merchant="Cafe Coffee Day",
        title="Client lunch",
        category=ExpenseCategory.FOOD,
        comment="Lunch with client team",
        people_count=2,
    )
    values.update(overrides)
    return ExpenseFieldSet(**values)


class FakeJudge:
    """Records calls and returns the configured verdict."""

    def __init__(self, verdict=None, error=None):
        self.verdict = verdict or ComplianceVerdict(is_valid=True)
        self.error = error
        self.calls = []

    async def __call__(self, fields, document):
        self.calls.append(fields.copy())
        if self.error is not None:
            raise self.error
        return self.verdict


class FakeExtractor:
    def __init__(self, fields=None, error=None):
        self.fields = fields or make_fields()
        self.error = error
        self.calls = []

    async def __call__(self, document):
        self.calls.append(document)
        if self.error is not None:
            raise self.error
        return self.fields.copy()


class FakeCodeSender:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def __call__(self, code, fields, project_code, currency):
        self.sent.append((code, fields, project_code, currency))
        if self.error is not None:
            raise self.error


