#!/usr/bin/env python3
"""
Tool Executor
Dispatches parsed invocations to registered capabilities.
Normalizes parameter spelling, applies guardrails, records telemetry.
"""

import logging
import re
import time
from collections import deque
from typing import Any, Deque, Dict, Optional

from ..core.guardrails import GuardrailTable, redact_secrets
from ..core.results import ErrorKind, ToolResult, classify_output
from ..monitoring.telemetry import ExecutionTelemetry
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)

_CAMEL_HUMP = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake_case(key: str) -> str:
    """gameObjectName -> game_object_name, script-name -> script_name"""
    return _CAMEL_HUMP.sub(r"_\1", key.replace("-", "_")).lower()


def to_camel_case(key: str) -> str:
    """script_name -> scriptName"""
    parts = [p for p in key.replace("-", "_").split("_") if p]
    if not parts:
        return key
    return parts[0].lower() + "".join(p[:1].upper() + p[1:].lower() for p in parts[1:])


def normalize_parameters(params: Dict[str, Any]) -> Dict[str, str]:
    """
    Add snake_case and camelCase aliases for every supplied key.
    Explicitly supplied keys are never overwritten by an alias.
    """
    normalized: Dict[str, str] = {str(k): "" if v is None else str(v) for k, v in params.items()}
    for key, value in list(normalized.items()):
        snake = to_snake_case(key)
        normalized.setdefault(snake, value)
        normalized.setdefault(to_camel_case(snake), value)
    return normalized


class Dispatcher:
    """
    Central execution boundary between parsed directives and capabilities.
    Never raises: every outcome is a ToolResult.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        guardrails: Optional[GuardrailTable] = None,
        telemetry: Optional[ExecutionTelemetry] = None,
        post_checks_enabled: bool = True,
        max_history: int = 1000
    ):
        self.registry = registry
        self.guardrails = guardrails or GuardrailTable()
        self.telemetry = telemetry
        self.post_checks_enabled = post_checks_enabled
        self.execution_history: Deque[Dict[str, Any]] = deque(maxlen=max_history)

    def dispatch(self, name: str, params: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Execute a capability by name.

        Returns:
            ToolResult tagged Ok / Warning / Error
        """
        start = time.perf_counter()
        result = self._dispatch(name, params or {})
        duration = time.perf_counter() - start

        self._record(name, result, duration)
        return result

    def execute(self, name: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Execute and render with the sentinel marker convention"""
        return self.dispatch(name, params).render()

    def _dispatch(self, name: str, params: Dict[str, Any]) -> ToolResult:
        tool = self.registry.get_tool(name)
        if tool is None:
            logger.warning(f"[DISPATCH] Unknown tool: {name}")
            return ToolResult.error(ErrorKind.UNKNOWN_CAPABILITY, f"Unknown tool: {name}")

        normalized = normalize_parameters(params)

        missing = [p for p in tool.parameters if p not in normalized]
        if missing:
            return ToolResult.error(
                ErrorKind.MISSING_PARAMETER,
                f"Missing required parameter(s) for {name}: {', '.join(missing)}"
            )

        warning = self.guardrails.check_pre(name, normalized)
        if warning:
            logger.warning(f"[GUARDRAIL] {warning}")
            return ToolResult.warning(warning)

        try:
            output = tool.function(normalized)
        except Exception as e:
            logger.error(f"[DISPATCH] {name} raised {type(e).__name__}: {e}")
            return ToolResult.error(ErrorKind.CAPABILITY_FAILURE, f"Tool execution failed: {e}")
        finally:
            tool.mark_used()

        result = classify_output(output)
        if result.is_ok and self.post_checks_enabled:
            result.verified = self._verify(name, normalized)
        return result

    def _verify(self, name: str, params: Dict[str, str]) -> Optional[bool]:
        """Re-query state after a capability ran; log but never block"""
        verification = self.guardrails.verification_for(name)
        if verification is None:
            return None

        query_tool = self.registry.get_tool(verification.query)
        query_params = verification.build_params(params)
        if query_tool is None or query_params is None:
            return None

        try:
            output = str(query_tool.function(normalize_parameters(query_params)))
        except Exception as e:
            logger.warning(f"[GUARDRAIL] Verification {verification.query} for {name} raised: {e}")
            return False

        ok = verification.accepts(output, params)
        if not ok:
            logger.warning(
                f"[GUARDRAIL] {name} reported success but {verification.query} disagrees: "
                f"{redact_secrets(output)[:200]}"
            )
        return ok

    def _record(self, name: str, result: ToolResult, duration: float) -> None:
        entry = {
            "tool": name,
            "status": result.status.value,
            "icon": result.icon,
            "duration_sec": round(duration, 4),
            "verified": result.verified,
            "summary": redact_secrets(result.summary()),
        }
        self.execution_history.append(entry)

        logger.info(f"[DISPATCH] {result.icon} {name} ({duration * 1000:.0f}ms)")
        if self.telemetry:
            self.telemetry.record_dispatch(name, result, duration)

    def get_execution_stats(self) -> Dict[str, Any]:
        """Counts by status over the most recent dispatches (bounded history)"""
        total = len(self.execution_history)
        by_status: Dict[str, int] = {}
        for entry in self.execution_history:
            by_status[entry["status"]] = by_status.get(entry["status"], 0) + 1
        return {
            "total": total,
            "by_status": by_status,
            "success_rate": by_status.get("ok", 0) / total if total else 0.0,
        }
