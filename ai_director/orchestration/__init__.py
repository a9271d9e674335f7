"""
Orchestration module - Planning, Decomposition, Self-Healing, Workflow
"""

from .task_plan import TaskPlan, SubTask, Checkpoint
from .planner import Planner, PlanBucket
from .decomposer import TaskDecomposer
from .self_healing import SelfHealingManager, HealingStrategy, HealingDecision
from .workflow import WorkflowStateMachine, WorkflowState, PlanExecutor, StepOutcome

__all__ = [
    'TaskPlan',
    'SubTask',
    'Checkpoint',
    'Planner',
    'PlanBucket',
    'TaskDecomposer',
    'SelfHealingManager',
    'HealingStrategy',
    'HealingDecision',
    'WorkflowStateMachine',
    'WorkflowState',
    'PlanExecutor',
    'StepOutcome',
]
