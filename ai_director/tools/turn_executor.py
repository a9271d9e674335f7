#!/usr/bin/env python3
"""
Turn Executor
Runs every directive in one model response, a group at a time, and
assembles the feedback text returned to the model.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..core.results import ToolResult
from ..memory.long_term import MemoryStore
from .call_parser import CallParser, Invocation, extract_thoughts
from .result_interceptor import InterceptionResult, ResultInterceptor
from .tool_executor import Dispatcher
from .tool_grouper import ExecutionGroup, ToolGrouper

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, ExecutionGroup, Invocation, ToolResult], None]


@dataclass
class InvocationOutcome:
    group_index: int
    invocation: Invocation
    result: ToolResult
    interception: Optional[InterceptionResult] = None

    @property
    def feedback(self) -> str:
        if self.interception is not None:
            return self.interception.enriched_text
        return self.result.render()


@dataclass
class TurnReport:
    """Everything that happened while executing one response"""
    groups: List[ExecutionGroup] = field(default_factory=list)
    outcomes: List[InvocationOutcome] = field(default_factory=list)
    thoughts: List[str] = field(default_factory=list)

    @property
    def had_directives(self) -> bool:
        return bool(self.outcomes)

    @property
    def error_count(self) -> int:
        return sum(1 for o in self.outcomes if o.result.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for o in self.outcomes if o.result.is_warning)

    def feedback_text(self) -> str:
        """Per-group blocks of `[name] result` lines, in execution order"""
        blocks = []
        for index, group in enumerate(self.groups):
            lines = [f"### {group.label}"]
            for outcome in self.outcomes:
                if outcome.group_index == index:
                    lines.append(f"[{outcome.invocation.name}] {outcome.feedback}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def summary(self) -> str:
        ok = len(self.outcomes) - self.error_count - self.warning_count
        return (
            f"{len(self.outcomes)} tool call(s) in {len(self.groups)} group(s): "
            f"{ok} ok, {self.warning_count} warning(s), {self.error_count} error(s)"
        )


class TurnExecutor:
    """
    parse -> group -> dispatch -> intercept -> remember

    Execution is strictly sequential; a later invocation sees the effects
    of every earlier one, including auto-actions.
    """

    def __init__(
        self,
        parser: CallParser,
        grouper: ToolGrouper,
        dispatcher: Dispatcher,
        interceptor: Optional[ResultInterceptor] = None,
        memory: Optional[MemoryStore] = None
    ):
        self.parser = parser
        self.grouper = grouper
        self.dispatcher = dispatcher
        self.interceptor = interceptor
        self.memory = memory

    @classmethod
    def from_context(cls, context) -> 'TurnExecutor':
        return cls(
            parser=context.parser,
            grouper=context.grouper,
            dispatcher=context.dispatcher,
            interceptor=context.interceptor,
            memory=context.memory,
        )

    def execute(self, text: str, on_progress: Optional[ProgressCallback] = None) -> TurnReport:
        report = TurnReport(thoughts=extract_thoughts(text))
        invocations = self.parser.parse(text)
        if not invocations:
            logger.debug("[TURN] No directives in response")
            return report

        report.groups = self.grouper.group(invocations)
        logger.info(f"[TURN] {len(invocations)} invocation(s) in {len(report.groups)} group(s)")

        for index, group in enumerate(report.groups):
            logger.info(f"[TURN] Group {index + 1}/{len(report.groups)}: {group.label}")
            for invocation in group.invocations:
                outcome = self._run(index, invocation)
                report.outcomes.append(outcome)
                if on_progress:
                    on_progress(index, group, invocation, outcome.result)

        logger.info(f"[TURN] {report.summary()}")
        return report

    def _run(self, group_index: int, invocation: Invocation) -> InvocationOutcome:
        params: Dict[str, str] = dict(invocation.parameters)
        result = self.dispatcher.dispatch(invocation.name, params)

        interception = None
        if self.interceptor is not None:
            interception = self.interceptor.intercept(invocation.name, result, params)

        if self.memory is not None:
            self.memory.record_outcome(invocation.name, result, params)

        return InvocationOutcome(group_index, invocation, result, interception)
