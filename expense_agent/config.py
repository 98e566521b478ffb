"""Configuration utilities for environment-based settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_env(dotenv_path: Optional[str] = None) -> None:
    """Load environment variables from a .env file without overriding existing values."""
    path = Path(dotenv_path or ".env")
    load_dotenv(dotenv_path=str(path), override=False)


# AI 接口默认超时（秒）
DEFAULT_HTTP_TIMEOUT = 120.0
DEFAULT_WEBHOOK_TIMEOUT = 30.0
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_VISION_MODEL = "gemini-2.5-flash"
DEFAULT_MAX_RETRIES = 2


@dataclass(frozen=True)
class Settings:
    """Structured configuration values for the AI gateway and the webhooks."""

    api_key: str
    base_url: str
    vision_model: str
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    # 外部工作流 Webhook 配置
    submission_webhook_url: str = ""
    otp_webhook_url: str = ""
    webhook_timeout: float = DEFAULT_WEBHOOK_TIMEOUT
    # 违规放行验证码策略，None 表示不限次数且不过期
    override_max_attempts: Optional[int] = None
    override_code_ttl: Optional[float] = None
    allow_zero_amount: bool = False
    seed_sample_reports: bool = False

    @property
    def has_credentials(self) -> bool:
        """检查是否配置了 AI 接口凭据"""
        return bool(self.api_key)


def _positive_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _positive_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _non_negative_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "")
    if not raw:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Return cached settings, ensuring environment variables are loaded once."""
    load_env(dotenv_path)
    return Settings(
        api_key=os.getenv("EXPENSE_AI_API_KEY", ""),
        base_url=os.getenv("EXPENSE_AI_BASE_URL", DEFAULT_BASE_URL),
        vision_model=os.getenv("EXPENSE_AI_VISION_MODEL", DEFAULT_VISION_MODEL),
        http_timeout=_positive_float("EXPENSE_AI_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        max_retries=_non_negative_int("EXPENSE_AI_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        submission_webhook_url=os.getenv("SUBMISSION_WEBHOOK_URL", ""),
        otp_webhook_url=os.getenv("OTP_WEBHOOK_URL", ""),
        webhook_timeout=_positive_float("WEBHOOK_TIMEOUT", DEFAULT_WEBHOOK_TIMEOUT),
        override_max_attempts=_positive_int("OVERRIDE_MAX_ATTEMPTS", None),
        override_code_ttl=_positive_float("OVERRIDE_CODE_TTL", None),
        allow_zero_amount=_flag("ALLOW_ZERO_AMOUNT"),
        seed_sample_reports=_flag("SEED_SAMPLE_REPORTS"),
    )
