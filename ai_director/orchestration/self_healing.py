#!/usr/bin/env python3
"""
Self-Healing Manager
Checkpoints plan progress and decides how to recover a failed step -
retry, skip, roll back, or ask for a new plan.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from ..core.errors import OracleUnavailable
from ..core.llm_provider import DecisionOracle
from .task_plan import Checkpoint, TaskPlan

logger = logging.getLogger(__name__)

MAX_CHECKPOINTS = 20
MAX_RETRIES_PER_STEP = 3


class HealingStrategy(Enum):
    """Possible recovery strategies, in answer-matching order"""
    RETRY = "retry"  # same step again
    SKIP = "skip"  # leave the step, continue
    ROLLBACK = "rollback"  # return to the previous checkpoint
    REPLAN = "replan"  # caller must build a new plan


@dataclass
class HealingDecision:
    """A decision on how to handle a failed step"""
    strategy: HealingStrategy
    reason: str
    consulted_oracle: bool = False


HEALING_PROMPT = """A workflow step has failed. Analyze the error and recommend a recovery strategy.

STEP: {step}
TOOL USED: {tool}
ERROR: {error}
RETRY COUNT: {retries}/{max_retries}

Available strategies:
1. RETRY - Try the same step again (maybe temporary issue)
2. SKIP - Skip this step and continue (if non-critical)
3. ROLLBACK - Go back to previous step (if dependency issue)
4. REPLAN - Revise entire plan (if fundamental issue)

Respond with ONLY ONE WORD: RETRY, SKIP, ROLLBACK, or REPLAN"""


def parse_strategy(answer: str) -> HealingStrategy:
    """First strategy name found in the answer; RETRY when none is"""
    upper = (answer or "").strip().upper()
    for strategy in HealingStrategy:
        if strategy.name in upper:
            return strategy
    return HealingStrategy.RETRY


class SelfHealingManager:
    """
    Bounded checkpoint stack plus a per-step retry counter.
    Pushing past the bound evicts the oldest checkpoint.
    """

    def __init__(
        self,
        oracle: Optional[DecisionOracle] = None,
        max_checkpoints: int = MAX_CHECKPOINTS,
        max_retries: int = MAX_RETRIES_PER_STEP
    ):
        self.oracle = oracle
        self.max_checkpoints = max_checkpoints
        self.max_retries = max_retries
        self._checkpoints: Deque[Checkpoint] = deque(maxlen=max_checkpoints)
        self.retry_counts: Dict[int, int] = {}  # step_index -> failures since last success
        self.decision_history: List[Dict[str, Any]] = []

    @classmethod
    def from_config(cls, section: Dict[str, Any], oracle: Optional[DecisionOracle] = None) -> 'SelfHealingManager':
        return cls(
            oracle=oracle,
            max_checkpoints=int(section.get("max_checkpoints", MAX_CHECKPOINTS)),
            max_retries=int(section.get("max_retries", MAX_RETRIES_PER_STEP)),
        )

    @property
    def checkpoint_count(self) -> int:
        return len(self._checkpoints)

    @property
    def can_rollback(self) -> bool:
        return bool(self._checkpoints)

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    def save_checkpoint(self, plan: TaskPlan, step_index: int, description: str = "") -> Checkpoint:
        checkpoint = Checkpoint.capture(plan, step_index, description)
        if len(self._checkpoints) == self.max_checkpoints:
            logger.debug(f"[HEALING] Evicting oldest checkpoint (step {self._checkpoints[0].step_index})")
        self._checkpoints.append(checkpoint)
        logger.debug(f"[HEALING] Checkpoint saved: {checkpoint.summary()}")
        return checkpoint

    def rollback_to_last_checkpoint(self) -> Optional[Checkpoint]:
        if not self._checkpoints:
            logger.warning("[HEALING] No checkpoints available for rollback")
            return None
        checkpoint = self._checkpoints.pop()
        logger.info(f"[HEALING] Rolled back to: {checkpoint.summary()}")
        return checkpoint

    def rollback_to_step(self, target_step: int) -> Optional[Checkpoint]:
        """Pop until a checkpoint at or before target_step; discards the rest"""
        while self._checkpoints:
            checkpoint = self._checkpoints.pop()
            if checkpoint.step_index <= target_step:
                logger.info(f"[HEALING] Rolled back to step {checkpoint.step_index}")
                return checkpoint
        return None

    def checkpoint_history(self) -> str:
        if not self._checkpoints:
            return "No checkpoints saved"
        now = datetime.now()
        lines = [f"Checkpoint History ({len(self._checkpoints)}):"]
        for i, cp in enumerate(self._checkpoints, 1):
            age = (now - datetime.fromisoformat(cp.created_at)).total_seconds()
            lines.append(f"  {i}. {cp.summary()} (age: {age:.1f}s)")
        return "\n".join(lines)

    def clear(self) -> None:
        self._checkpoints.clear()
        self.retry_counts.clear()
        logger.debug("[HEALING] All checkpoints cleared")

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def record_success(self, step_index: int) -> None:
        """Reset the step's retry counter"""
        self.retry_counts[step_index] = 0

    async def decide_healing(
        self,
        plan: TaskPlan,
        error: str,
        capability_used: str,
        step_index: int
    ) -> HealingDecision:
        """
        Choose a strategy for a failed step.

        The oracle is consulted at most once per call, and never once the
        step has reached max_retries.
        """
        retries = self.retry_counts.get(step_index, 0) + 1
        self.retry_counts[step_index] = retries

        if retries >= self.max_retries:
            logger.warning(f"[HEALING] Step {step_index} failed {retries} times; skipping")
            return self._decided(step_index, HealingDecision(
                HealingStrategy.SKIP,
                f"Max retries ({self.max_retries}) exceeded for this step",
            ))

        if self.oracle is None:
            return self._decided(step_index, self._fallback(retries, "no oracle configured"))

        step = plan.sub_tasks[step_index].description if 0 <= step_index < len(plan.sub_tasks) else "(unknown step)"
        prompt = HEALING_PROMPT.format(
            step=step,
            tool=capability_used,
            error=error,
            retries=retries,
            max_retries=self.max_retries,
        )

        try:
            answer = await self.oracle.ask(prompt)
        except OracleUnavailable as e:
            logger.warning(f"[HEALING] Oracle unavailable, using local rule: {e}")
            return self._decided(step_index, self._fallback(retries, str(e)))
        except Exception as e:
            logger.error(f"[HEALING] Oracle failed ({type(e).__name__}), using local rule: {e}")
            return self._decided(step_index, self._fallback(retries, str(e)))

        strategy = parse_strategy(answer)
        logger.info(f"[HEALING] Oracle recommends: {strategy.name}")
        return self._decided(step_index, HealingDecision(
            strategy,
            f"AI analysis of error: {error[:50]}...",
            consulted_oracle=True,
        ))

    @staticmethod
    def _fallback(retries: int, cause: str) -> HealingDecision:
        if retries < 2:
            return HealingDecision(HealingStrategy.RETRY, f"Fallback: retry ({cause})")
        return HealingDecision(HealingStrategy.SKIP, f"Fallback: skip ({cause})")

    def _decided(self, step_index: int, decision: HealingDecision) -> HealingDecision:
        self.decision_history.append({
            "step_index": step_index,
            "strategy": decision.strategy.value,
            "reason": decision.reason,
            "retries": self.retry_counts.get(step_index, 0),
            "timestamp": datetime.now().isoformat(),
        })
        return decision
