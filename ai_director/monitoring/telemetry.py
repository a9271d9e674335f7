#!/usr/bin/env python3
"""
Telemetry
Dispatch metrics - timing, status icons, verification outcomes, jsonl event log
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.guardrails import redact_secrets
from ..core.results import ToolResult

logger = logging.getLogger(__name__)


@dataclass
class DispatchMetrics:
    """Metrics for a single capability dispatch"""
    tool: str
    status: str
    icon: str
    duration_sec: float
    verified: Optional[bool]
    summary: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ExecutionTelemetry:
    """
    Collects one record per dispatch.
    Optionally appends every event to a jsonl file.
    """

    def __init__(
        self,
        log_file: Optional[str] = None,
        enable_logging: bool = True,
        max_records: int = 1000
    ):
        self.log_file = log_file
        self.enable_logging = enable_logging and bool(log_file)
        self.max_records = max_records
        self.records: List[DispatchMetrics] = []

        if self.enable_logging:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> 'ExecutionTelemetry':
        return cls(
            log_file=section.get("log_file"),
            enable_logging=bool(section.get("enabled", True)),
        )

    def record_dispatch(self, tool: str, result: ToolResult, duration: float) -> DispatchMetrics:
        """Capability was dispatched"""
        metrics = DispatchMetrics(
            tool=tool,
            status=result.status.value,
            icon=result.icon,
            duration_sec=round(duration, 4),
            verified=result.verified,
            summary=redact_secrets(result.summary()),
            timestamp=datetime.now().isoformat(),
        )
        self.records.append(metrics)
        if len(self.records) > self.max_records:
            del self.records[:len(self.records) - self.max_records]

        self._log_event("dispatch", metrics.to_dict())
        return metrics

    def record_auto_action(self, trigger: str, tool: str, result: ToolResult) -> None:
        """Interceptor ran a follow-up on its own"""
        self._log_event("auto_action", {
            "trigger": trigger,
            "tool": tool,
            "status": result.status.value,
        })

    def record_healing(self, step_index: int, strategy: str, reason: str) -> None:
        """Self-healing decision for a failed plan step"""
        self._log_event("healing", {
            "step_index": step_index,
            "strategy": strategy,
            "reason": reason[:500],
        })

    def get_stats(self) -> Dict[str, Any]:
        """Aggregate view for the CLI"""
        total = len(self.records)
        by_status: Dict[str, int] = {}
        by_tool: Dict[str, int] = {}
        for record in self.records:
            by_status[record.status] = by_status.get(record.status, 0) + 1
            by_tool[record.tool] = by_tool.get(record.tool, 0) + 1

        durations = [r.duration_sec for r in self.records]
        unverified = sum(1 for r in self.records if r.verified is False)
        return {
            "dispatches": total,
            "by_status": by_status,
            "tool_usage": by_tool,
            "avg_duration_sec": round(sum(durations) / total, 4) if total else 0.0,
            "success_rate": round(by_status.get("ok", 0) / total * 100, 1) if total else 0,
            "verification_mismatches": unverified,
        }

    def recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.records[-limit:]]

    def _log_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Write event to log file"""
        if not self.enable_logging:
            return

        try:
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(json.dumps({
                    "event": event_type,
                    "timestamp": datetime.now().isoformat(),
                    **data
                }, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.warning(f"[TELEMETRY] Log error: {e}")

    def clear(self) -> None:
        self.records.clear()
