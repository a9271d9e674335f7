#!/usr/bin/env python3
"""
Dispatch Results
Tagged result type returned at the dispatcher boundary: Ok, Warning or Error
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


SUCCESS_MARK = "✅"
WARNING_MARK = "⚠️"
ERROR_MARK = "❌"


class ResultStatus(Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class ErrorKind(Enum):
    """Why a dispatch failed"""
    UNKNOWN_CAPABILITY = "unknown_capability"
    MISSING_PARAMETER = "missing_parameter"
    CAPABILITY_FAILURE = "capability_failure"  # the function raised
    REPORTED_FAILURE = "reported_failure"  # the function returned an error marker


@dataclass
class ToolResult:
    """
    Outcome of one capability dispatch.

    `message` holds the capability output for Ok results and the
    explanation for Warning/Error results. `verified` is None when no
    post-execution check ran.
    """
    status: ResultStatus
    message: str
    kind: Optional[ErrorKind] = None
    verified: Optional[bool] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, value: str) -> 'ToolResult':
        return cls(ResultStatus.OK, value)

    @classmethod
    def warning(cls, message: str) -> 'ToolResult':
        return cls(ResultStatus.WARNING, message)

    @classmethod
    def error(cls, kind: ErrorKind, message: str) -> 'ToolResult':
        return cls(ResultStatus.ERROR, message, kind=kind)

    @property
    def is_ok(self) -> bool:
        return self.status is ResultStatus.OK

    @property
    def is_warning(self) -> bool:
        return self.status is ResultStatus.WARNING

    @property
    def is_error(self) -> bool:
        return self.status is ResultStatus.ERROR

    @property
    def icon(self) -> str:
        if self.is_error:
            return ERROR_MARK
        if self.is_warning:
            return WARNING_MARK
        return SUCCESS_MARK

    def render(self) -> str:
        """Render with the sentinel marker the model expects"""
        if self.is_ok:
            return self.message
        if self.message.lstrip().startswith(self.icon):
            return self.message
        return f"{self.icon} {self.message}"

    def summary(self, width: int = 80) -> str:
        """One-line compact form for logs and progress display"""
        first = self.render().strip().splitlines()[0] if self.message.strip() else self.icon
        if len(first) > width:
            first = first[:width - 3] + "..."
        return first


def classify_output(output: str) -> ToolResult:
    """
    Classify a capability's own output string by its sentinel marker.
    Error wins over warning, and a success marker overrides a warning.
    """
    text = "" if output is None else str(output)
    if ERROR_MARK in text:
        return ToolResult.error(ErrorKind.REPORTED_FAILURE, text)
    if WARNING_MARK in text and SUCCESS_MARK not in text:
        return ToolResult.warning(text)
    return ToolResult.ok(text)


def status_icon(text: str) -> str:
    """Icon for a rendered result string"""
    if SUCCESS_MARK in text:
        return SUCCESS_MARK
    if ERROR_MARK in text:
        return ERROR_MARK
    if WARNING_MARK in text:
        return WARNING_MARK
    return SUCCESS_MARK
