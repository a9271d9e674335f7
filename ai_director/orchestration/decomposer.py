#!/usr/bin/env python3
"""
Task Decomposer
Asks the decision oracle to break a goal into sub-tasks (JSON), with a
fixed three-step fallback when the oracle fails or answers badly.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from ..core.errors import OracleUnavailable
from ..core.llm_provider import DecisionOracle
from .task_plan import SubTask, TaskPlan

logger = logging.getLogger(__name__)

COMPLEX_KEYWORDS = (
    "fps", "controller", "system", "complete", "full", "entire",
    "menu", "inventory", "dialogue", "ai", "enemy", "game",
    "multi", "several", "bunch of",
)

SIMPLE_PATTERNS = (
    re.compile(r"^(what|explain)"),
    re.compile(r"^(show|list)"),
    re.compile(r"^(get|find)"),
    re.compile(r"^(delete|remove)\s+\w+$"),
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

DECOMPOSITION_PROMPT = """You are a task planning expert for a game editor. Break down the following user goal into 5-10 concrete, actionable sub-tasks.

USER GOAL: "{goal}"

For each sub-task:
1. Provide a clear description
2. List required tools (e.g., create_script, get_scene_info, attach_script)
3. Suggest key parameters if applicable

IMPORTANT:
- Keep sub-tasks atomic (one clear objective each)
- Order them logically (dependencies first)
- Include compilation/error checking steps
- Be specific about object names and script names

Respond in this EXACT JSON format:
{{
  "subTasks": [
    {{
      "description": "Check scene for existing player object",
      "requiredTools": ["get_scene_info"],
      "suggestedParameters": {{}}
    }},
    {{
      "description": "Create PlayerMovement script with WASD controls",
      "requiredTools": ["create_script"],
      "suggestedParameters": {{"script_name": "PlayerMovement"}}
    }}
  ]
}}

Only respond with valid JSON, nothing else."""


class TaskDecomposer:
    """Oracle-backed decomposition of large goals"""

    def __init__(self, oracle: Optional[DecisionOracle] = None):
        self.oracle = oracle

    def should_decompose(self, message: str) -> bool:
        lower = message.lower()
        has_complex_keyword = any(k in lower for k in COMPLEX_KEYWORDS)
        has_multiple_requests = len(re.split(r"and|,", lower)) > 2
        return has_complex_keyword or has_multiple_requests or len(message) > 100

    def is_simple_task(self, message: str) -> bool:
        lower = message.lower().strip()
        return any(p.search(lower) for p in SIMPLE_PATTERNS)

    async def decompose(self, goal: str) -> TaskPlan:
        if self.oracle is None:
            return self.fallback_plan(goal)

        try:
            response = await self.oracle.ask(DECOMPOSITION_PROMPT.format(goal=goal))
        except OracleUnavailable as e:
            logger.warning(f"[DECOMPOSER] Oracle unavailable: {e}")
            return self.fallback_plan(goal)
        except Exception as e:
            logger.error(f"[DECOMPOSER] Oracle failed ({type(e).__name__}): {e}")
            return self.fallback_plan(goal)

        plan = TaskPlan(goal=goal, sub_tasks=self.parse_response(response), strategy="Decomposed")
        logger.info(f"[DECOMPOSER] Created plan with {len(plan.sub_tasks)} sub-tasks")
        return plan

    def parse_response(self, response: str) -> List[SubTask]:
        """Sub-tasks from the oracle's JSON; one generic step if unusable"""
        match = _JSON_OBJECT.search(response or "")
        data: Any = None
        if match:
            try:
                data = json.loads(match.group(0))
            except json.JSONDecodeError as e:
                logger.warning(f"[DECOMPOSER] Invalid JSON: {e}")

        sub_tasks = []
        items = data.get("subTasks") if isinstance(data, dict) else None
        for item in items if isinstance(items, list) else []:
            task = self._parse_sub_task(item)
            if task:
                sub_tasks.append(task)

        if not sub_tasks:
            sub_tasks.append(SubTask("Complete the task", ["get_scene_info"]))
        return sub_tasks

    @staticmethod
    def _parse_sub_task(item: Any) -> Optional[SubTask]:
        if not isinstance(item, dict) or not str(item.get("description", "")).strip():
            return None
        tools = item.get("requiredTools") or []
        params: Dict[str, Any] = item.get("suggestedParameters") or {}
        return SubTask(
            description=str(item["description"]).strip(),
            required_capabilities=[str(t) for t in tools] if isinstance(tools, list) else [],
            suggested_parameters={str(k): str(v) for k, v in params.items()} if isinstance(params, dict) else {},
        )

    @staticmethod
    def fallback_plan(goal: str) -> TaskPlan:
        logger.info("[DECOMPOSER] Using fallback plan")
        plan = TaskPlan(goal=goal, strategy="Fallback")
        plan.add_step("Analyze scene", "get_scene_info")
        plan.add_step("Execute user request", "create_script", "create_gameobject")
        plan.add_step("Verify result", "get_compilation_errors")
        return plan
