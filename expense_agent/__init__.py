"""
Expense report assistant
Receipt extraction, policy validation and override approval on top of a
multimodal AI agent

Quickstart::

    import asyncio
    from expense_agent import ExpenseAgent, ReceiptDocument

    async def main():
        agent = ExpenseAgent()
        with open("receipt.jpg", "rb") as f:
            document = ReceiptDocument(content=f.read(), media_type="image/jpeg")
        fields = await agent.extract_fields(document)
        verdict = await agent.judge_compliance(fields, document)
        print(fields, verdict)

    asyncio.run(main())
"""

from .agent import EntryDraft, ExpenseAgent, ExpenseWorkbench
from .config import Settings, get_settings, load_env
from .models import ExpenseEntry, ExpenseFieldSet, ExpenseReport, ReceiptDocument
from .multimodal import (
    OpenAIAPIError,
    analyze_document,
    create_client,
    invoke_with_client,
    multimodal_completion as vision_completion,
)

load_env()

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "OpenAIAPIError",
    "EntryDraft",
    "ExpenseAgent",
    "ExpenseEntry",
    "ExpenseFieldSet",
    "ExpenseReport",
    "ExpenseWorkbench",
    "ReceiptDocument",
    "analyze_document",
    "create_client",
    "get_settings",
    "invoke_with_client",
    "load_env",
    "vision_completion",
    "__version__",
]
