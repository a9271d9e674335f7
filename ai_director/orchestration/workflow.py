#!/usr/bin/env python3
"""
Workflow
State machine for a multi-step run, and the executor that drives a
TaskPlan through it with checkpoints and self-healing.
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import InvalidTransition, ReplanRequested
from ..monitoring.telemetry import ExecutionTelemetry
from ..tools.tool_executor import Dispatcher
from .self_healing import HealingStrategy, SelfHealingManager
from .task_plan import SubTask, TaskPlan

logger = logging.getLogger(__name__)


class WorkflowState(Enum):
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    VALIDATING = "validating"
    HEALING = "healing"
    REPLANNING = "replanning"
    COMPLETE = "complete"
    FAILED = "failed"


# Failed and Idle are reachable from anywhere
TRANSITIONS: Dict[WorkflowState, frozenset] = {
    WorkflowState.IDLE: frozenset({WorkflowState.PLANNING}),
    WorkflowState.PLANNING: frozenset({WorkflowState.EXECUTING}),
    WorkflowState.EXECUTING: frozenset({WorkflowState.VALIDATING, WorkflowState.HEALING, WorkflowState.COMPLETE}),
    WorkflowState.VALIDATING: frozenset({WorkflowState.EXECUTING, WorkflowState.HEALING, WorkflowState.COMPLETE}),
    WorkflowState.HEALING: frozenset({WorkflowState.EXECUTING, WorkflowState.REPLANNING}),
    WorkflowState.REPLANNING: frozenset({WorkflowState.EXECUTING}),
    WorkflowState.COMPLETE: frozenset(),
    WorkflowState.FAILED: frozenset(),
}

STATE_DESCRIPTIONS = {
    WorkflowState.IDLE: "Ready",
    WorkflowState.PLANNING: "Creating task plan...",
    WorkflowState.EXECUTING: "Executing step",
    WorkflowState.VALIDATING: "Validating result...",
    WorkflowState.HEALING: "Recovering from error...",
    WorkflowState.REPLANNING: "Revising plan...",
    WorkflowState.COMPLETE: "Task completed!",
    WorkflowState.FAILED: "Task failed",
}


@dataclass
class StateTransition:
    from_state: WorkflowState
    to_state: WorkflowState
    iteration: int
    reason: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


class WorkflowStateMachine:
    """Validated transitions with an iteration cap that forces FAILED"""

    def __init__(self, max_iterations: int = 50):
        self.max_iterations = max_iterations
        self.state = WorkflowState.IDLE
        self.iteration = 0
        self.history: List[StateTransition] = []
        self.listeners: List[Callable[[WorkflowState, WorkflowState], None]] = []

    @property
    def is_active(self) -> bool:
        return self.state not in (WorkflowState.IDLE, WorkflowState.COMPLETE, WorkflowState.FAILED)

    @property
    def can_continue(self) -> bool:
        return self.is_active and self.iteration < self.max_iterations

    @staticmethod
    def is_valid_transition(from_state: WorkflowState, to_state: WorkflowState) -> bool:
        if to_state in (WorkflowState.FAILED, WorkflowState.IDLE):
            return True
        return to_state in TRANSITIONS[from_state]

    def transition_to(self, new_state: WorkflowState, reason: str = "") -> WorkflowState:
        """
        Move to new_state and return the state actually entered.

        Raises:
            InvalidTransition: if the table forbids the move
        """
        if not self.is_valid_transition(self.state, new_state):
            raise InvalidTransition(f"{self.state.name} -> {new_state.name}")

        if self.iteration >= self.max_iterations and new_state is not WorkflowState.FAILED:
            logger.error(f"[WORKFLOW] Max iterations ({self.max_iterations}) reached; forcing FAILED")
            new_state = WorkflowState.FAILED
            reason = f"Max iterations exceeded ({self.max_iterations})"

        old_state = self.state
        self.state = new_state
        self.iteration += 1
        self.history.append(StateTransition(old_state, new_state, self.iteration, reason))
        logger.debug(f"[WORKFLOW] {old_state.name} -> {new_state.name} ({self.iteration}/{self.max_iterations}) {reason}")

        for listener in self.listeners:
            listener(old_state, new_state)
        return new_state

    def reset(self) -> None:
        self.state = WorkflowState.IDLE
        self.iteration = 0
        self.history.clear()

    def describe(self) -> str:
        text = STATE_DESCRIPTIONS[self.state]
        if self.state is WorkflowState.EXECUTING:
            text += f" ({self.iteration}/{self.max_iterations})"
        return text

    def progress(self) -> float:
        if not self.is_active:
            return 1.0 if self.state is WorkflowState.COMPLETE else 0.0
        return min(1.0, self.iteration / self.max_iterations)

    def is_near_iteration_limit(self) -> bool:
        return self.iteration >= self.max_iterations * 0.8

    def state_history(self) -> str:
        lines = [f"State History ({len(self.history)} transitions):"]
        for t in self.history:
            line = f"  [{t.iteration}] {t.from_state.name} -> {t.to_state.name}"
            if t.reason:
                line += f" ({t.reason})"
            lines.append(line)
        return "\n".join(lines)


@dataclass
class StepOutcome:
    """Result of attempting one plan step"""
    success: bool
    summary: str = ""
    capability: str = ""


StepRunner = Callable[[SubTask, int], Any]  # returns StepOutcome or an awaitable of one


class PlanExecutor:
    """
    Runs a plan step by step. Before each attempt a checkpoint is saved;
    failures go to the self-healing manager. REPLAN surfaces to the caller
    as ReplanRequested.
    """

    def __init__(
        self,
        healing: SelfHealingManager,
        state_machine: Optional[WorkflowStateMachine] = None,
        validator: Optional[Callable[[SubTask, StepOutcome], bool]] = None,
        telemetry: Optional[ExecutionTelemetry] = None
    ):
        self.healing = healing
        self.state_machine = state_machine or WorkflowStateMachine()
        self.validator = validator
        self.telemetry = telemetry

    async def run(self, plan: TaskPlan, run_step: StepRunner) -> WorkflowState:
        sm = self.state_machine
        if sm.state is not WorkflowState.IDLE:
            sm.transition_to(WorkflowState.IDLE, "new run")
        sm.transition_to(WorkflowState.PLANNING, plan.goal)

        while True:
            if sm.transition_to(WorkflowState.EXECUTING) is WorkflowState.FAILED:
                break
            if plan.is_complete:
                sm.transition_to(WorkflowState.COMPLETE, plan.progress_summary())
                break

            index = plan.current_step
            task = plan.sub_tasks[index]
            self.healing.save_checkpoint(plan, index, task.description)

            outcome = await self._attempt(run_step, task, index)
            if sm.transition_to(WorkflowState.VALIDATING) is WorkflowState.FAILED:
                break

            if outcome.success and (self.validator is None or self.validator(task, outcome)):
                plan.mark_current_step_complete(outcome.summary)
                self.healing.record_success(index)
                continue

            plan.mark_step_failed(outcome.summary)
            if sm.transition_to(WorkflowState.HEALING, outcome.summary[:80]) is WorkflowState.FAILED:
                break
            await self._heal(plan, index, outcome)

        logger.info(f"[WORKFLOW] Finished in state {sm.state.name}: {plan.progress_summary()}")
        return sm.state

    async def _attempt(self, run_step: StepRunner, task: SubTask, index: int) -> StepOutcome:
        try:
            outcome = run_step(task, index)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            logger.error(f"[WORKFLOW] Step {index} raised {type(e).__name__}: {e}")
            return StepOutcome(False, f"{type(e).__name__}: {e}")
        return outcome

    async def _heal(self, plan: TaskPlan, index: int, outcome: StepOutcome) -> None:
        decision = await self.healing.decide_healing(
            plan, outcome.summary, outcome.capability or "unknown", index
        )
        if self.telemetry:
            self.telemetry.record_healing(index, decision.strategy.value, decision.reason)
        logger.info(f"[WORKFLOW] Step {index}: {decision.strategy.name} ({decision.reason})")

        if decision.strategy is HealingStrategy.SKIP:
            plan.skip_current_step(decision.reason)
        elif decision.strategy is HealingStrategy.ROLLBACK:
            checkpoint = self.healing.rollback_to_step(index - 1)
            if checkpoint is not None:
                plan.restore(checkpoint.plan_snapshot)
        elif decision.strategy is HealingStrategy.REPLAN:
            self.state_machine.transition_to(WorkflowState.REPLANNING, decision.reason)
            raise ReplanRequested(index, decision.reason)
        # RETRY: leave current_step where it is


def dispatch_step_runner(dispatcher: Dispatcher) -> StepRunner:
    """
    Step runner that dispatches each of a sub-task's required capabilities
    with its suggested parameters, stopping at the first error.
    """
    def run(task: SubTask, index: int) -> StepOutcome:
        summaries = []
        for capability in task.required_capabilities:
            result = dispatcher.dispatch(capability, task.suggested_parameters)
            summaries.append(f"{capability}: {result.summary()}")
            if result.is_error:
                return StepOutcome(False, result.message, capability)
        return StepOutcome(True, "; ".join(summaries), ",".join(task.required_capabilities))
    return run
