import pytest

from expense_agent.models import ReceiptDocument

from .helpers import make_fields, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def receipt():
    return ReceiptDocument(content=b"\xff\xd8fake-jpeg", media_type="image/jpeg", filename="lunch.jpg")


@pytest.fixture
def fields():
    return make_fields()
