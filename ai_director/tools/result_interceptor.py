#!/usr/bin/env python3
"""
Result Interceptor
Inspects dispatch results and schedules follow-up checks on its own,
so "create X" directives verify themselves without the model asking.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..core.results import ToolResult
from ..core.waiting import wait_with_timeout
from ..monitoring.telemetry import ExecutionTelemetry
from .tool_executor import Dispatcher

logger = logging.getLogger(__name__)


class ActionPriority(Enum):
    CRITICAL = "critical"  # runs inline, same turn
    NORMAL = "normal"  # surfaced as a suggestion only


@dataclass
class AutoAction:
    """Follow-up invocation synthesized from a result"""
    capability: str
    parameters: Dict[str, str] = field(default_factory=dict)
    priority: ActionPriority = ActionPriority.NORMAL
    reason: str = ""
    wait_for_build: bool = False

    @property
    def is_critical(self) -> bool:
        return self.priority is ActionPriority.CRITICAL


class _TemplateParams(dict):
    def __missing__(self, key):
        return ""


def _fill(template: str, params: Dict[str, str]) -> str:
    try:
        return template.format_map(_TemplateParams(params))
    except (ValueError, IndexError):
        return template


@dataclass
class InterceptRule:
    """
    One row of the rule table.

    Applies when `capability` matches (None means every capability) and the
    result contains any of `contains_any` or matches `pattern`.
    """
    capability: Optional[str]
    contains_any: List[str] = field(default_factory=list)
    pattern: Optional[str] = None
    actions: List[AutoAction] = field(default_factory=list)
    observations: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    ignore_case: bool = False

    def __post_init__(self):
        self._regex = re.compile(self.pattern, re.IGNORECASE) if self.pattern else None

    def applies(self, capability: str, text: str) -> bool:
        if self.capability is not None and self.capability != capability:
            return False
        haystack = text.lower() if self.ignore_case else text
        for needle in self.contains_any:
            if (needle.lower() if self.ignore_case else needle) in haystack:
                return True
        return bool(self._regex and self._regex.search(text))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InterceptRule':
        actions = [
            AutoAction(
                capability=a["capability"],
                parameters={k: str(v) for k, v in (a.get("parameters") or {}).items()},
                priority=ActionPriority(a.get("priority", "normal")),
                reason=a.get("reason", ""),
                wait_for_build=bool(a.get("wait_for_build", False)),
            )
            for a in data.get("actions") or []
        ]
        return cls(
            capability=data.get("capability"),
            contains_any=list(data.get("contains_any") or []),
            pattern=data.get("pattern"),
            actions=actions,
            observations=list(data.get("observations") or []),
            suggestions=list(data.get("suggestions") or []),
            ignore_case=bool(data.get("ignore_case", False)),
        )


def _compile_check(reason: str) -> AutoAction:
    return AutoAction(
        capability="get_compilation_errors",
        priority=ActionPriority.CRITICAL,
        reason=reason,
        wait_for_build=True,
    )


def default_rules() -> List[InterceptRule]:
    """Built-in rule table"""
    return [
        InterceptRule(
            capability="create_and_attach_script",
            contains_any=["created", "Created"],
            actions=[_compile_check("Check compilation after script creation")],
            observations=["⚠️ Script created - confirm it compiles before using it"],
        ),
        InterceptRule(
            capability="create_script",
            contains_any=["created", "Created"],
            actions=[_compile_check("Check compilation after script creation")],
            observations=["⚠️ Script created - confirm it compiles before using it"],
        ),
        InterceptRule(
            capability="modify_script",
            contains_any=["modified", "updated", "Changed"],
            actions=[_compile_check("Check compilation after script modification")],
        ),
        InterceptRule(
            capability="attach_script",
            contains_any=["not found", "failed", "❌"],
            actions=[AutoAction(
                capability="read_console",
                parameters={"count": "20", "filterType": "error"},
                priority=ActionPriority.CRITICAL,
                reason="Script attachment failed - reading console errors",
            )],
            observations=["❌ Script '{script_name}' could not be attached - probably a compilation error"],
            suggestions=["Fix the console errors shown above, then attach the script again"],
        ),
        InterceptRule(
            capability="find_gameobjects",
            contains_any=["No GameObjects found", "not found"],
            observations=["ℹ️ Nothing matched - the scene may be empty or the search term wrong"],
            suggestions=["Run get_scene_info to list every object in the scene"],
        ),
        InterceptRule(
            capability="get_gameobject_info",
            contains_any=["not found", "❌"],
            observations=["⚠️ '{name}' is not in the scene"],
            suggestions=["Use find_gameobjects or get_scene_info to discover the real object names"],
        ),
        InterceptRule(
            capability="set_component_property",
            pattern=r"Component.*not found",
            observations=["⚠️ Component missing - it may not be attached yet"],
            suggestions=["Use get_gameobject_info to see which components are attached"],
        ),
        InterceptRule(
            capability="add_component",
            pattern=r"Added.*✅|✅.*Added",
            observations=["✅ Component added - its properties may still need configuring"],
        ),
        # Generic rules, every capability
        InterceptRule(
            capability=None,
            pattern=r"(NullReferenceException|null reference|object is null)",
            observations=["🐛 Null reference - check that objects and components are assigned"],
        ),
        InterceptRule(
            capability=None,
            pattern=r"(CS\d{4}|compilation error|syntax error)",
            actions=[AutoAction(
                capability="read_console",
                parameters={"filterType": "error"},
                priority=ActionPriority.NORMAL,
                reason="Read the console for compiler error details",
            )],
            observations=["❌ Compilation error - fix it before continuing"],
        ),
        InterceptRule(
            capability=None,
            pattern=r"(missing|requires|dependency|not installed)",
            observations=["📦 A dependency or requirement appears to be missing"],
        ),
        InterceptRule(
            capability=None,
            pattern=r"(permission|access denied|unauthorized)",
            observations=["🔒 Permission or access problem"],
        ),
    ]


@dataclass
class AutoActionResult:
    action: AutoAction
    result: ToolResult
    executed: bool = True


@dataclass
class InterceptionResult:
    """Original result plus everything the rule table added"""
    capability: str
    original_text: str
    enriched_text: str = ""
    auto_actions: List[AutoAction] = field(default_factory=list)
    observations: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    auto_results: List[AutoActionResult] = field(default_factory=list)

    @property
    def has_additions(self) -> bool:
        return bool(self.auto_actions or self.observations or self.suggestions)


class ResultInterceptor:
    """
    Rule-driven post-processing of dispatch results.
    Critical auto-actions run inline through the dispatcher; their results
    are not intercepted again.
    """

    def __init__(
        self,
        dispatcher: Optional[Dispatcher] = None,
        rules: Optional[List[InterceptRule]] = None,
        build_ready: Optional[Callable[[], bool]] = None,
        build_wait_sec: float = 20.0,
        build_poll_sec: float = 0.5,
        telemetry: Optional[ExecutionTelemetry] = None,
        wait: Callable[..., bool] = wait_with_timeout
    ):
        self.dispatcher = dispatcher
        self.rules = rules if rules is not None else default_rules()
        self.build_ready = build_ready
        self.build_wait_sec = build_wait_sec
        self.build_poll_sec = build_poll_sec
        self.telemetry = telemetry
        self._wait = wait

    @classmethod
    def from_config(
        cls,
        section: Dict[str, Any],
        dispatcher: Optional[Dispatcher] = None,
        **kwargs
    ) -> 'ResultInterceptor':
        configured = [InterceptRule.from_dict(r) for r in section.get("rules") or []]
        return cls(
            dispatcher=dispatcher,
            rules=configured or None,
            build_wait_sec=float(section.get("build_wait_sec", 20.0)),
            build_poll_sec=float(section.get("build_poll_sec", 0.5)),
            **kwargs
        )

    def add_rule(self, rule: InterceptRule) -> None:
        self.rules.append(rule)

    def analyze(
        self,
        capability: str,
        result: Union[str, ToolResult],
        params: Optional[Dict[str, str]] = None
    ) -> InterceptionResult:
        """Apply the rule table without executing anything"""
        text = result.render() if isinstance(result, ToolResult) else str(result)
        params = params or {}
        interception = InterceptionResult(capability=capability, original_text=text)

        for rule in self.rules:
            if not rule.applies(capability, text):
                continue
            for action in rule.actions:
                if any(a.capability == action.capability for a in interception.auto_actions):
                    continue
                interception.auto_actions.append(AutoAction(
                    capability=action.capability,
                    parameters={k: _fill(v, params) for k, v in action.parameters.items()},
                    priority=action.priority,
                    reason=_fill(action.reason, params),
                    wait_for_build=action.wait_for_build,
                ))
            for observation in rule.observations:
                _append_unique(interception.observations, _fill(observation, params))
            for suggestion in rule.suggestions:
                _append_unique(interception.suggestions, _fill(suggestion, params))

        for action in interception.auto_actions:
            if not action.is_critical:
                _append_unique(interception.suggestions, f"Run {action.capability}: {action.reason}")

        return interception

    def intercept(
        self,
        capability: str,
        result: Union[str, ToolResult],
        params: Optional[Dict[str, str]] = None
    ) -> InterceptionResult:
        """Analyze, run Critical auto-actions, build the enriched text"""
        interception = self.analyze(capability, result, params)

        for action in interception.auto_actions:
            if action.is_critical:
                outcome = self._run(capability, action)
                if outcome is not None:
                    interception.auto_results.append(outcome)

        interception.enriched_text = self.format_enriched(interception)
        return interception

    def _run(self, trigger: str, action: AutoAction) -> Optional[AutoActionResult]:
        if self.dispatcher is None or action.capability not in self.dispatcher.registry:
            logger.debug(f"[INTERCEPT] {action.capability} not registered; skipping auto-action")
            return None

        if action.wait_for_build and self.build_ready is not None:
            ready = self._wait(
                self.build_ready,
                max_wait=self.build_wait_sec,
                poll_interval=self.build_poll_sec,
            )
            if not ready:
                logger.warning(f"[INTERCEPT] Build not ready; {action.capability} not run")
                return AutoActionResult(
                    action=action,
                    result=ToolResult.warning(
                        f"Timed out after {self.build_wait_sec:g}s waiting for the build; "
                        f"{action.capability} was not run"
                    ),
                    executed=False,
                )

        logger.info(f"[INTERCEPT] {trigger} -> {action.capability} ({action.reason})")
        outcome = self.dispatcher.dispatch(action.capability, action.parameters)
        if self.telemetry:
            self.telemetry.record_auto_action(trigger, action.capability, outcome)
        return AutoActionResult(action=action, result=outcome)

    @staticmethod
    def format_enriched(interception: InterceptionResult) -> str:
        parts = [interception.original_text.rstrip()]

        if interception.auto_results:
            parts.append("")
            parts.append("🤖 Auto-Checks Performed:")
            for item in interception.auto_results:
                parts.append(f"   [{item.action.capability}] {item.action.reason}")
                for line in item.result.render().strip().splitlines() or [item.result.icon]:
                    parts.append(f"   {line}")

        if interception.observations:
            parts.append("")
            parts.append("🔍 Automatic Analysis:")
            parts.extend(f"   {obs}" for obs in interception.observations)

        if interception.suggestions:
            parts.append("")
            parts.append("💡 Suggested Next Steps:")
            parts.extend(f"   • {s}" for s in interception.suggestions)

        return "\n".join(parts)


def _append_unique(items: List[str], value: str) -> None:
    if value and value not in items:
        items.append(value)
