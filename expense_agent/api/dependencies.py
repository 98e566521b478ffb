"""Shared API dependencies."""

from __future__ import annotations

from typing import Optional

from ..agent.workbench import ExpenseWorkbench

# One workbench per process; all requests share it
_workbench: Optional[ExpenseWorkbench] = None


def get_workbench() -> ExpenseWorkbench:
    global _workbench
    if _workbench is None:
        _workbench = ExpenseWorkbench()
    return _workbench


__all__ = ["get_workbench"]
