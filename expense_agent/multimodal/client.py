"""OpenAI 客户端封装，适配兼容 OpenAI 协议的生成式 AI 接口。"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from openai import OpenAI, OpenAIError

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OpenAIAPIError(Exception):
    """统一封装 AI 接口返回的异常，与 SDK 异常类型无关。"""

    status: Optional[int]
    message: str
    request_id: Optional[str] = None
    details: Optional[Any] = None

    @property
    def is_transient(self) -> bool:
        """限流、服务端错误或连接问题，可重试。"""
        return self.status is None or self.status == 429 or self.status >= 500

    def __str__(self) -> str:  # pragma: no cover - trivial
        code = self.status if self.status is not None else "-"
        return f"[{code}] {self.message}"


def _normalise_base_url(base_url: str) -> str:
    # 确保 base_url 以 / 结尾，相对路径才能正确拼接
    return base_url if base_url.endswith("/") else f"{base_url}/"


def _wrap_openai_error(exc: OpenAIError) -> OpenAIAPIError:
    """将 OpenAI 异常转换为自定义异常，便于统一处理。"""
    return OpenAIAPIError(
        status=getattr(exc, "status_code", None),
        message=getattr(exc, "message", None) or str(exc),
        request_id=getattr(exc, "request_id", None),
        details=getattr(exc, "body", None),
    )


def create_client(
    settings: Optional[Settings] = None,
    *,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> OpenAI:
    """根据配置初始化同步 OpenAI 客户端。

    Raises:
        ValueError: 未配置 API Key
    """
    settings = settings or get_settings()
    if not settings.has_credentials:
        raise ValueError(
            "EXPENSE_AI_API_KEY is not set; configure it in the environment or a .env file."
        )

    return OpenAI(
        api_key=settings.api_key,
        base_url=_normalise_base_url(base_url or settings.base_url),
        timeout=timeout if timeout is not None else settings.http_timeout,
        max_retries=settings.max_retries,
    )


async def invoke_with_client(
    func: Callable[..., T],
    /,
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    在线程池中执行同步 OpenAI 请求，并统一异常处理。

    Parameters
    ----------
    func:
        An OpenAI client method such as ``client.chat.completions.create``.
    args, kwargs:
        Forwarded to the target method.

    Raises
    ------
    OpenAIAPIError
        When the SDK raises any ``OpenAIError``.
    """

    def _runner() -> T:
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        except OpenAIError as exc:
            error = _wrap_openai_error(exc)
            logger.warning(f"AI endpoint call failed {error} (transient={error.is_transient})")
            raise error from exc
        finally:
            logger.debug(f"AI endpoint call took {time.perf_counter() - started:.2f}s")

    return await asyncio.to_thread(_runner)


__all__ = ["OpenAI", "OpenAIAPIError", "create_client", "invoke_with_client"]
