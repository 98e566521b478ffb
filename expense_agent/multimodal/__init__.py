"""OpenAI 风格的多模态客户端封装，用于票据识别。"""

from __future__ import annotations

from ..config import Settings, get_settings
from .client import OpenAIAPIError, create_client, invoke_with_client
from .vision import analyze_document, encode_document_to_base64, multimodal_completion

__all__ = [
    "Settings",
    "OpenAIAPIError",
    "create_client",
    "analyze_document",
    "encode_document_to_base64",
    "get_settings",
    "multimodal_completion",
    "invoke_with_client",
]
