"""Agent core - receipt extraction and policy compliance backed by the vision model"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import json5

from ..config import Settings, get_settings
from ..models import ExpenseFieldSet, ReceiptDocument
from ..models.serialization import field_set_from_payload, to_json
from ..multimodal.client import create_client
from ..multimodal.vision import analyze_document
from .prompts import build_extraction_prompt, build_validation_prompt

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = (
    "Could not analyze the receipt. Please enter the information manually."
)


class ExtractionError(Exception):
    """The extraction gateway could not turn a receipt into fields."""


class ComplianceError(Exception):
    """The compliance judge could not produce a verdict."""


@dataclass
class ComplianceVerdict:
    """Policy verdict for one expense"""
    is_valid: bool
    reason: str = ""


class ExpenseAgent:
    """Generative-AI gateway for receipts.

    Wraps the two model calls the entry form depends on: field extraction
    and policy compliance. Both calls raise on failure; callers decide how
    to degrade.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        """Initialise the agent

        Args:
            settings: configuration (defaults to the cached environment settings)
            client: optional OpenAI client, reused across calls
        """
        self.settings = settings or get_settings()
        self.client = client
        self.logger = logging.getLogger(f"{__name__}.ExpenseAgent")

    def _get_client(self) -> Any:
        """Create the OpenAI client on first use."""
        if self.client is None:
            self.client = create_client(self.settings)
        return self.client

    async def extract_fields(self, document: ReceiptDocument) -> ExpenseFieldSet:
        """Extract expense fields from a receipt

        Args:
            document: uploaded receipt

        Returns:
            extracted field set

        Raises:
            ExtractionError: the model call or the response parsing failed
        """
        try:
            self.logger.info(f"Extracting fields from {document.reference} ({document.media_type})")
            response = await analyze_document(
                document.content,
                document.media_type,
                build_extraction_prompt(),
                client=self._get_client(),
                model=self.settings.vision_model,
                response_format="json_object",
            )
            data = self._parse_llm_response(response)
            if not data:
                raise ValueError("empty extraction response")

            category = data.get("category")
            field_set = field_set_from_payload(data)
            if field_set.category is not None and category != field_set.category.value:
                self.logger.warning(
                    f"Model returned category {category!r}; using {field_set.category.value!r}"
                )
            return field_set

        except Exception as e:
            self.logger.error(f"Receipt extraction failed: {e}", exc_info=True)
            raise ExtractionError(EXTRACTION_FAILED_MESSAGE) from e

    async def judge_compliance(
        self,
        fields: ExpenseFieldSet,
        document: ReceiptDocument,
        today: Optional[date] = None,
    ) -> ComplianceVerdict:
        """Judge an expense against the company policy

        Args:
            fields: the current field set
            document: the receipt the fields belong to
            today: reference date for the monthly cutoff rule

        Returns:
            the verdict; anything but an explicit ``isValid: true`` fails

        Raises:
            ComplianceError: the model call or the response parsing failed
        """
        try:
            expense_json = json.dumps(fields.to_payload(), ensure_ascii=False)
            response = await analyze_document(
                document.content,
                document.media_type,
                build_validation_prompt(today),
                extra_text=[f"Expense Data JSON: {expense_json}"],
                client=self._get_client(),
                model=self.settings.vision_model,
                response_format="json_object",
            )
            data = self._parse_llm_response(response)
            if "isValid" not in data:
                raise ValueError(f"verdict without isValid: {data}")

        except Exception as e:
            self.logger.error(f"Compliance check failed: {e}", exc_info=True)
            raise ComplianceError(str(e)) from e

        verdict = ComplianceVerdict(
            is_valid=data.get("isValid") is True,
            reason=str(data.get("reason") or ""),
        )
        self.logger.info(f"Compliance verdict: valid={verdict.is_valid}, reason={verdict.reason}")
        return verdict

    def _parse_llm_response(self, response: Any) -> Dict[str, Any]:
        """Parse a model response carrying JSON

        Args:
            response: API response (dict from ``model_dump``) or raw text

        Returns:
            parsed dict, empty when nothing could be parsed
        """
        try:
            if isinstance(response, dict):
                if 'choices' in response:
                    content = response['choices'][0]['message']['content']
                else:
                    return response
            else:
                content = str(response)

            if content is None:
                return {}

            # JSON may come wrapped in a markdown fence
            if '```json' in content:
                start = content.find('```json') + 7
                end = content.find('```', start)
                json_str = content[start:end].strip()
            elif '```' in content:
                start = content.find('```') + 3
                end = content.find('```', start)
                json_str = content[start:end].strip()
            else:
                json_str = content

            parsed = json5.loads(json_str)
            if isinstance(parsed, dict):
                return parsed
            return {"data": parsed}

        except Exception as e:
            self.logger.error(f"Failed to parse response: {e}, raw content: {response}")
            return {}


async def _run_demo(receipt_path: Path, mime_type: Optional[str]) -> None:
    """Extract and validate one receipt file"""
    from .validation import validate_expense

    media_type = mime_type or mimetypes.guess_type(str(receipt_path))[0] or "image/png"
    document = ReceiptDocument(
        content=receipt_path.expanduser().read_bytes(),
        media_type=media_type,
        filename=receipt_path.name,
    )
    agent = ExpenseAgent()

    try:
        fields = await agent.extract_fields(document)
    except ExtractionError as e:
        print(f"Extraction failed: {e}")
        return

    outcome = await validate_expense(
        fields,
        document,
        agent.judge_compliance,
        allow_zero_amount=agent.settings.allow_zero_amount,
    )

    print("=== Extracted fields ===")
    print(to_json(fields))
    print("=== Validation ===")
    print(to_json({"compliant": outcome.is_compliant, "violations": list(outcome.violations)}))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Extract and validate an expense receipt.")
    parser.add_argument("receipt", type=Path, help="receipt image or PDF")
    parser.add_argument("--mime", default=None, help="override the detected media type")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    asyncio.run(_run_demo(args.receipt, args.mime))


if __name__ == "__main__":
    main()


__all__ = [
    "ComplianceError",
    "ComplianceVerdict",
    "EXTRACTION_FAILED_MESSAGE",
    "ExpenseAgent",
    "ExtractionError",
]
