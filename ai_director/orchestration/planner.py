#!/usr/bin/env python3
"""
Planner
Keyword-bucket heuristic that turns a goal into a canned step list,
plus a complexity estimate used to bound the number of steps.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .task_plan import SubTask, TaskPlan

logger = logging.getLogger(__name__)

Step = Tuple[str, Sequence[str]]  # (description, capabilities)


@dataclass(frozen=True)
class PlanBucket:
    """
    A strategy selected when every keyword set in `requires` has at least
    one member occurring (as a substring) in the lower-cased goal.
    """
    strategy: str
    requires: Tuple[Tuple[str, ...], ...]
    steps: Tuple[Step, ...] = field(default_factory=tuple)

    def matches(self, goal_lower: str) -> bool:
        return all(contains_any(goal_lower, keywords) for keywords in self.requires)


def contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(k in text for k in keywords)


# Checked in order; first match wins
PLAN_BUCKETS: Tuple[PlanBucket, ...] = (
    PlanBucket(
        "Player/Character Creation",
        (("create", "make", "add"), ("player", "character", "fps", "controller")),
        (
            ("Create GameObject for player", ("create_gameobject",)),
            ("Add required components (CharacterController, Rigidbody, etc.)", ("add_component",)),
            ("Create movement script", ("create_script",)),
            ("Create camera/look script", ("create_script",)),
            ("Attach scripts to player", ("attach_script",)),
            ("Configure input system", ()),
            ("Test basic movement", ("get_compilation_errors",)),
        ),
    ),
    PlanBucket(
        "AI/Enemy Creation",
        (("enemy", "ai", "npc"), ("create", "make")),
        (
            ("Create GameObject for AI", ("create_gameobject",)),
            ("Add NavMeshAgent component", ("add_component",)),
            ("Create AI behavior script", ("create_script",)),
            ("Set up patrol/chase logic", ("modify_script",)),
            ("Attach scripts", ("attach_script",)),
            ("Configure NavMesh", ()),
            ("Test AI behavior", ("get_compilation_errors",)),
        ),
    ),
    PlanBucket(
        "UI Creation",
        (("ui", "menu", "hud", "canvas"),),
        (
            ("Create Canvas", ("create_gameobject",)),
            ("Add UI elements (buttons, text, panels)", ("create_gameobject", "add_component")),
            ("Create UI controller script", ("create_script",)),
            ("Wire up button events", ("modify_script",)),
            ("Apply styling", ("set_component_property",)),
            ("Test UI interactions", ()),
        ),
    ),
    PlanBucket(
        "Script Creation",
        (("script", "code", "class"), ("create", "write", "generate")),
        (
            ("Analyze requirements", ()),
            ("Design class structure", ()),
            ("Generate script code", ("create_script",)),
            ("Validate syntax", ("get_compilation_errors",)),
            ("Add to project", ()),
            ("Test compilation", ("get_compilation_errors",)),
        ),
    ),
    PlanBucket(
        "Bug Fix",
        (("fix", "bug", "error", "issue", "problem"),),
        (
            ("Identify the problem", ("read_console",)),
            ("Analyze error messages", ("get_compilation_errors",)),
            ("Find root cause", ()),
            ("Propose solution", ()),
            ("Apply fix", ("modify_script",)),
            ("Verify fix works", ("get_compilation_errors",)),
            ("Test for side effects", ()),
        ),
    ),
    PlanBucket(
        "Code Improvement",
        (("refactor", "improve", "optimize", "clean"),),
        (
            ("Analyze current code", ()),
            ("Identify improvement areas", ()),
            ("Plan refactoring", ()),
            ("Apply changes incrementally", ("modify_script",)),
            ("Validate still works", ("get_compilation_errors",)),
            ("Check performance", ()),
        ),
    ),
    PlanBucket(
        "Scene Setup",
        (("scene", "level"), ("create", "setup")),
        (
            ("Create new scene", ()),
            ("Add lighting", ("create_gameobject",)),
            ("Create terrain/ground", ("create_gameobject",)),
            ("Add player spawn", ("create_gameobject",)),
            ("Place objects", ("create_gameobject", "set_position")),
            ("Configure scene settings", ()),
            ("Save scene", ()),
        ),
    ),
)

GENERIC_BUCKET = PlanBucket(
    "Generic Task Execution",
    (),
    (
        ("Understand task requirements", ()),
        ("Gather necessary information", ("get_scene_info",)),
        ("Plan approach", ()),
        ("Execute main steps", ()),
        ("Validate results", ()),
        ("Handle any issues", ()),
    ),
)

# (keywords, increment) applied once each when any keyword is present
COMPLEXITY_FACTORS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("complex", "advanced", "multiple", "many"), 2),
    (("fps", "multiplayer", "networking"), 3),
    (("ai", "pathfinding", "machine learning"), 2),
    (("physics", "ragdoll", "cloth"), 2),
    (("ui", "menu", "hud"), 1),
)

_AND_WORD = re.compile(r"\band\b")


class Planner:
    """Explainable heuristic planner"""

    def __init__(
        self,
        buckets: Sequence[PlanBucket] = PLAN_BUCKETS,
        base_complexity: int = 3,
        max_complexity: int = 10
    ):
        self.buckets = tuple(buckets)
        self.base_complexity = base_complexity
        self.max_complexity = max_complexity

    def classify(self, goal: str) -> PlanBucket:
        goal_lower = goal.lower()
        for bucket in self.buckets:
            if bucket.matches(goal_lower):
                return bucket
        return GENERIC_BUCKET

    def plan(self, goal: str) -> TaskPlan:
        bucket = self.classify(goal)
        plan = TaskPlan(
            goal=goal,
            sub_tasks=[SubTask(desc, list(caps)) for desc, caps in bucket.steps],
            strategy=bucket.strategy,
            complexity=self.estimate_complexity(goal),
        )
        logger.info(f"[PLANNER] Strategy '{plan.strategy}' with {len(plan.sub_tasks)} steps")
        return plan

    def estimate_complexity(self, goal: str) -> int:
        """Score in [1, max_complexity]"""
        goal_lower = goal.lower()
        complexity = self.base_complexity
        for keywords, increment in COMPLEXITY_FACTORS:
            if contains_any(goal_lower, keywords):
                complexity += increment
        complexity += len(_AND_WORD.findall(goal_lower))
        return max(1, min(complexity, self.max_complexity))

    def recommended_max_steps(self, goal: str) -> int:
        return 5 + self.estimate_complexity(goal)
