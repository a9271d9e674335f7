#!/usr/bin/env python3
"""
Task Plan
A goal broken into ordered sub-tasks, plus the checkpoint snapshots
used to roll a plan back after a failed step.
"""

import copy
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class SubTask:
    """A single step within a task plan"""
    description: str
    required_capabilities: List[str] = field(default_factory=list)
    suggested_parameters: Dict[str, str] = field(default_factory=dict)
    completed: bool = False
    failed: bool = False
    result_summary: str = ""
    completed_at: Optional[str] = None

    def add_parameter(self, key: str, value: str) -> None:
        self.suggested_parameters[key] = value

    def parameters_hint(self) -> str:
        if not self.suggested_parameters:
            return ""
        return "Suggested parameters: " + ", ".join(
            f"{k}={v}" for k, v in self.suggested_parameters.items()
        )


@dataclass
class TaskPlan:
    """
    Ordered plan for one goal.
    Invariant: 0 <= current_step <= len(sub_tasks); terminal at equality.
    """
    goal: str
    sub_tasks: List[SubTask] = field(default_factory=list)
    current_step: int = 0
    strategy: str = ""
    complexity: int = 0
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_at: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.current_step >= len(self.sub_tasks)

    @property
    def progress(self) -> float:
        return self.current_step / len(self.sub_tasks) if self.sub_tasks else 0.0

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.sub_tasks if t.completed)

    @property
    def current_task(self) -> Optional[SubTask]:
        return self.sub_tasks[self.current_step] if self.current_step < len(self.sub_tasks) else None

    @property
    def next_task(self) -> Optional[SubTask]:
        nxt = self.current_step + 1
        return self.sub_tasks[nxt] if nxt < len(self.sub_tasks) else None

    def add_step(self, description: str, *capabilities: str) -> SubTask:
        task = SubTask(description, list(capabilities))
        self.sub_tasks.append(task)
        return task

    def mark_current_step_complete(self, result: str = "") -> None:
        if self.current_step >= len(self.sub_tasks):
            return
        task = self.sub_tasks[self.current_step]
        task.completed = True
        task.failed = False
        task.result_summary = result
        task.completed_at = datetime.now().isoformat()
        self._advance()

    def mark_step_failed(self, error: str) -> None:
        if self.current_step < len(self.sub_tasks):
            task = self.sub_tasks[self.current_step]
            task.failed = True
            task.result_summary = error

    def skip_current_step(self, reason: str = "") -> None:
        """Leave the current step failed and move on"""
        if self.current_step >= len(self.sub_tasks):
            return
        task = self.sub_tasks[self.current_step]
        task.failed = True
        if reason:
            task.result_summary = f"Skipped: {reason}"
        self._advance()

    def _advance(self) -> None:
        self.current_step = min(self.current_step + 1, len(self.sub_tasks))
        if self.is_complete:
            self.completed_at = datetime.now().isoformat()

    def snapshot(self) -> 'TaskPlan':
        """Independent deep copy"""
        return copy.deepcopy(self)

    def restore(self, snapshot: 'TaskPlan') -> None:
        """Overwrite this plan's state in place from a snapshot"""
        restored = copy.deepcopy(snapshot)
        self.goal = restored.goal
        self.sub_tasks = restored.sub_tasks
        self.current_step = min(restored.current_step, len(restored.sub_tasks))
        self.strategy = restored.strategy
        self.complexity = restored.complexity
        self.started_at = restored.started_at
        self.completed_at = restored.completed_at

    def progress_summary(self) -> str:
        return f"{self.completed_count}/{len(self.sub_tasks)} tasks completed ({self.progress:.0%})"

    def detailed_status(self) -> str:
        lines = [f"🎯 Goal: {self.goal}", f"📊 Progress: {self.progress_summary()}", ""]
        for i, task in enumerate(self.sub_tasks):
            if task.completed:
                icon = "✅"
            elif task.failed:
                icon = "❌"
            elif i == self.current_step:
                icon = "🔄"
            else:
                icon = "⏳"
            lines.append(f"{icon} {i + 1}. {task.description}")
            if task.result_summary:
                lines.append(f"   └─ {task.result_summary}")
        return "\n".join(lines)

    def to_prompt(self) -> str:
        """Plan text injected into the model's context"""
        lines = [f"PLAN ({self.strategy or 'custom'}) for: {self.goal}"]
        for i, task in enumerate(self.sub_tasks):
            marker = ">>" if i == self.current_step else "  "
            tools = f" [tools: {', '.join(task.required_capabilities)}]" if task.required_capabilities else ""
            lines.append(f"{marker} {i + 1}. {task.description}{tools}")
            hint = task.parameters_hint()
            if hint:
                lines.append(f"     {hint}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TaskPlan':
        data = dict(data)
        data["sub_tasks"] = [SubTask(**t) for t in data.get("sub_tasks", [])]
        plan = cls(**data)
        plan.current_step = max(0, min(plan.current_step, len(plan.sub_tasks)))
        return plan


@dataclass
class Checkpoint:
    """Snapshot of plan progress taken before a step attempt"""
    step_index: int
    plan_snapshot: TaskPlan
    description: str
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    completed_steps: List[int] = field(default_factory=list)

    @classmethod
    def capture(cls, plan: TaskPlan, step_index: int, description: str) -> 'Checkpoint':
        return cls(
            step_index=step_index,
            plan_snapshot=plan.snapshot(),
            description=description,
            completed_steps=[i for i, t in enumerate(plan.sub_tasks) if t.completed],
        )

    def summary(self) -> str:
        return (
            f"Checkpoint at step {self.step_index}: {self.description} "
            f"({len(self.completed_steps)} steps completed)"
        )
