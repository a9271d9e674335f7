#!/usr/bin/env python3
"""
Tool Grouper
Partitions a parsed invocation sequence into execution groups.

Queries run alone; mutating calls that touch the same object are batched
(up to a size cap) so progress can be reported one object at a time.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .call_parser import Invocation

DEFAULT_QUERY_TOOLS = frozenset({
    "find_gameobjects",
    "get_scene_info",
    "get_component_property",
    "get_gameobject_info",
})

DEFAULT_TARGET_PARAMETERS = ("name", "gameobject_name", "material_name")

MAX_GROUP_SIZE = 5


@dataclass
class ExecutionGroup:
    """Invocations executed together, in order"""
    label: str
    target_key: Optional[str] = None
    invocations: List[Invocation] = field(default_factory=list)
    is_query: bool = False

    def __len__(self) -> int:
        return len(self.invocations)

    @property
    def tool_names(self) -> List[str]:
        return [inv.name for inv in self.invocations]


class ToolGrouper:
    """
    Two rules:
      1. A query invocation always forms its own group.
      2. Consecutive non-query invocations with the same target join one
         group until the target changes or the group is full.
    """

    def __init__(
        self,
        query_tools: Optional[Iterable[str]] = None,
        target_parameters: Optional[Iterable[str]] = None,
        max_group_size: int = MAX_GROUP_SIZE
    ):
        if max_group_size < 1:
            raise ValueError("max_group_size must be at least 1")
        self.query_tools = frozenset(query_tools) if query_tools is not None else DEFAULT_QUERY_TOOLS
        self.target_parameters = tuple(target_parameters or DEFAULT_TARGET_PARAMETERS)
        self.max_group_size = max_group_size

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> 'ToolGrouper':
        return cls(
            query_tools=section.get("query_tools"),
            target_parameters=section.get("target_parameters"),
            max_group_size=int(section.get("max_group_size", MAX_GROUP_SIZE)),
        )

    def is_query(self, invocation: Invocation) -> bool:
        return invocation.name in self.query_tools

    def extract_target(self, invocation: Invocation) -> Optional[str]:
        """First non-empty value among the target parameters"""
        for key in self.target_parameters:
            value = invocation.parameters.get(key)
            if value and value.strip():
                return value.strip()
        return None

    def group(self, invocations: List[Invocation]) -> List[ExecutionGroup]:
        groups: List[ExecutionGroup] = []
        current: Optional[ExecutionGroup] = None

        for inv in invocations:
            if self.is_query(inv):
                if current:
                    groups.append(current)
                    current = None
                groups.append(ExecutionGroup(
                    label=f"Query: {inv.name}",
                    target_key=None,
                    invocations=[inv],
                    is_query=True,
                ))
                continue

            target = self.extract_target(inv)
            if current and (current.target_key != target or len(current) >= self.max_group_size):
                groups.append(current)
                current = None

            if current is None:
                label = f"Object: {target}" if target else f"Operations: {inv.name}"
                current = ExecutionGroup(label=label, target_key=target)
            current.invocations.append(inv)

        if current:
            groups.append(current)

        return groups
