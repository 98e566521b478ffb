"""基于 OpenAI 客户端的视觉多模态封装：发送票据图片或 PDF 及指令。"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Union

from ..config import get_settings
from .client import create_client, invoke_with_client


def encode_document_to_base64(document: Union[str, Path, bytes]) -> str:
    """
    Encode document content to a base64 string suitable for a data URL.

    Parameters
    ----------
    document:
        Path to the receipt file or its raw bytes.
    """
    if isinstance(document, (str, Path)):
        data = Path(document).expanduser().read_bytes()
    else:
        data = document
    return base64.b64encode(data).decode("utf-8")


def _resolve_response_format(
    response_format: Optional[Union[str, Dict[str, Any]]]
) -> Optional[Dict[str, Any]]:
    """将字符串形式的 response_format 转换为接口要求的字典。"""
    if response_format is None:
        return None
    if isinstance(response_format, str):
        return {"type": response_format}
    if isinstance(response_format, dict):
        return response_format
    raise TypeError("response_format must be a string or a dict.")


async def multimodal_completion(
    messages: Iterable[Dict[str, Any]],
    *,
    client: Optional[Any] = None,
    model: Optional[str] = None,
    response_format: Optional[Union[str, Dict[str, Any]]] = None,
    **params: Any,
) -> Dict[str, Any]:
    """
    Obtain a response from the configured vision model.

    Messages follow the chat completion structure but may include
    image content dictionaries such as::

        {
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": "data:image/png;base64,<...>"}},
                {"type": "text", "text": "Extract the receipt fields."}
            ]
        }

    Parameters
    ----------
    response_format:
        ``"text"`` for plain text or ``"json_object"`` for a JSON answer.
    """
    settings = get_settings()
    payload: Dict[str, Any] = {
        "model": model or settings.vision_model,
        "messages": list(messages),
        **params,
    }

    resolved_format = _resolve_response_format(response_format)
    if resolved_format is not None:
        payload["response_format"] = resolved_format

    active_client = client or create_client(settings=settings)
    response = await invoke_with_client(
        active_client.chat.completions.create,
        **payload,
    )
    return response.model_dump()


async def analyze_document(
    content: bytes,
    mime_type: str,
    prompt: str,
    *,
    extra_text: Optional[Sequence[str]] = None,
    client: Optional[Any] = None,
    model: Optional[str] = None,
    **params: Any,
) -> Dict[str, Any]:
    """
    Analyse a receipt document with the vision model.

    Parameters
    ----------
    content:
        Raw bytes of the image or PDF.
    mime_type:
        Media type of ``content``; used in the data URL.
    prompt:
        Instructions for the model.
    extra_text:
        Additional text parts appended after the prompt (e.g. field JSON).
    params:
        Forwarded to :func:`multimodal_completion`.
    """
    if not content:
        raise ValueError("Document content is empty.")

    data_url = f"data:{mime_type};base64,{encode_document_to_base64(content)}"
    parts: list[Dict[str, Any]] = [
        {"type": "image_url", "image_url": {"url": data_url}},
        {"type": "text", "text": prompt},
    ]
    for text in extra_text or ():
        parts.append({"type": "text", "text": text})

    messages = [{"role": "user", "content": parts}]
    return await multimodal_completion(
        messages,
        client=client,
        model=model,
        **params,
    )


__all__ = ["analyze_document", "multimodal_completion", "encode_document_to_base64"]
