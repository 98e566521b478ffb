"""Override sub-flow - one-time passcode approval of a failed compliance check"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

CODE_LENGTH = 4

INVALID_CODE_MESSAGE = "Invalid OTP. Please try again."
ATTEMPTS_EXHAUSTED_MESSAGE = "Too many incorrect OTP attempts. Please request a new override."
CODE_EXPIRED_MESSAGE = "The OTP has expired. Please request a new override."


class OverrideError(Exception):
    """An override action is not allowed in the current state."""


class OverrideState(str, Enum):
    """Override sub-flow states"""
    NO_REQUEST = "no_request"
    CODE_SENT = "code_sent"
    APPROVED = "approved"


def generate_override_code() -> str:
    """Random 4-digit code in 1000-9999."""
    return str(1000 + secrets.randbelow(9000))


@dataclass
class OverrideSession:
    """State of one override attempt.

    ``max_attempts`` and ``code_ttl`` are optional policy knobs; left unset
    the code never expires and retries are unlimited.
    """

    state: OverrideState = OverrideState.NO_REQUEST
    generated_code: Optional[str] = None
    submitted_code: str = ""
    last_error: Optional[str] = None
    attempts: int = 0
    issued_at: Optional[float] = None
    sending: bool = False

    max_attempts: Optional[int] = None
    code_ttl: Optional[float] = None
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    @property
    def is_active(self) -> bool:
        """An approved override permits saving despite policy violations."""
        return self.state == OverrideState.APPROVED

    @property
    def awaiting_code(self) -> bool:
        return self.state == OverrideState.CODE_SENT

    def issue(self, code: str) -> None:
        """Record a freshly generated code and show the code input."""
        if self.state == OverrideState.APPROVED:
            raise OverrideError("Override is already approved.")
        if len(code) != CODE_LENGTH or not code.isdigit():
            raise OverrideError(f"Override code must be {CODE_LENGTH} digits.")
        self.state = OverrideState.CODE_SENT
        self.generated_code = code
        self.submitted_code = ""
        self.last_error = None
        self.attempts = 0
        self.issued_at = self.clock()

    def enter(self, value: str) -> bool:
        """Take the user's input; compares automatically once 4 characters are in.

        Returns:
            True if the override is now approved
        """
        if self.state == OverrideState.APPROVED:
            return True
        if self.state != OverrideState.CODE_SENT or self.generated_code is None:
            raise OverrideError("No override code has been requested.")

        value = (value or "").strip()[:CODE_LENGTH]
        self.submitted_code = value
        if len(value) < CODE_LENGTH:
            return False

        if self._expired():
            self._drop_code(CODE_EXPIRED_MESSAGE)
            return False

        if secrets.compare_digest(value.encode("utf-8"), self.generated_code.encode("utf-8")):
            self.state = OverrideState.APPROVED
            self.last_error = None
            return True

        self.attempts += 1
        if self.max_attempts is not None and self.attempts >= self.max_attempts:
            self._drop_code(ATTEMPTS_EXHAUSTED_MESSAGE)
            return False

        self.submitted_code = ""
        self.last_error = INVALID_CODE_MESSAGE
        return False

    def reset(self) -> None:
        """Back to NO_REQUEST with everything cleared."""
        self.state = OverrideState.NO_REQUEST
        self.generated_code = None
        self.submitted_code = ""
        self.last_error = None
        self.attempts = 0
        self.issued_at = None
        self.sending = False

    def _expired(self) -> bool:
        if self.code_ttl is None or self.issued_at is None:
            return False
        return self.clock() - self.issued_at > self.code_ttl

    def _drop_code(self, message: str) -> None:
        self.reset()
        self.last_error = message

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "is_active": self.is_active,
            "code_requested": self.generated_code is not None,
            "submitted_code": self.submitted_code,
            "error": self.last_error,
            "sending": self.sending,
            "attempts": self.attempts,
        }


__all__ = [
    "ATTEMPTS_EXHAUSTED_MESSAGE",
    "CODE_EXPIRED_MESSAGE",
    "CODE_LENGTH",
    "INVALID_CODE_MESSAGE",
    "OverrideError",
    "OverrideSession",
    "OverrideState",
    "generate_override_code",
]
