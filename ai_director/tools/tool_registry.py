#!/usr/bin/env python3
"""
Tool Registry
Explicit table of capabilities the model may invoke, keyed by name
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CapabilityFunction = Callable[[Dict[str, str]], str]


@dataclass
class CapabilityDescriptor:
    """Definition of an invokable capability"""
    name: str
    description: str
    function: CapabilityFunction
    parameters: List[str] = field(default_factory=list)  # required
    optional_parameters: List[str] = field(default_factory=list)
    example: str = ""
    category: str = "general"  # 'scene', 'script', 'query', 'asset', ...
    use_count: int = 0
    last_used: Optional[str] = None

    def mark_used(self) -> None:
        self.use_count += 1
        self.last_used = datetime.now().isoformat()


class ToolRegistry:
    """
    Registry of capabilities available to the model.
    Populated at startup; re-registering a name replaces it.
    """

    def __init__(self):
        self.tools: Dict[str, CapabilityDescriptor] = {}
        self._categories: Dict[str, List[str]] = {}  # category -> [names]

    def register(self, tool: CapabilityDescriptor) -> None:
        """Register (or replace) a capability"""
        previous = self.tools.get(tool.name)
        if previous and previous.category != tool.category:
            self._drop_from_category(previous)
        self.tools[tool.name] = tool

        names = self._categories.setdefault(tool.category, [])
        if tool.name not in names:
            names.append(tool.name)

        logger.debug(f"[TOOLS] {'Replaced' if previous else 'Registered'}: {tool.name}")

    def register_function(
        self,
        name: str,
        function: CapabilityFunction,
        description: str = "",
        parameters: Optional[List[str]] = None,
        **kwargs
    ) -> CapabilityDescriptor:
        """Shorthand for registering a plain function"""
        descriptor = CapabilityDescriptor(
            name=name,
            description=description or (function.__doc__ or "").strip().split("\n")[0],
            function=function,
            parameters=list(parameters or []),
            **kwargs
        )
        self.register(descriptor)
        return descriptor

    def unregister(self, name: str) -> bool:
        """Unregister a capability"""
        tool = self.tools.pop(name, None)
        if tool is None:
            return False
        self._drop_from_category(tool)
        logger.debug(f"[TOOLS] Unregistered: {name}")
        return True

    def _drop_from_category(self, tool: CapabilityDescriptor) -> None:
        if tool.category in self._categories:
            self._categories[tool.category] = [
                t for t in self._categories[tool.category] if t != tool.name
            ]
            if not self._categories[tool.category]:
                del self._categories[tool.category]

    def get_tool(self, name: str) -> Optional[CapabilityDescriptor]:
        """Get capability by name"""
        return self.tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)

    def list_all(self) -> List[CapabilityDescriptor]:
        return list(self.tools.values())

    def get_tools_by_category(self, category: str) -> List[CapabilityDescriptor]:
        return [self.tools[n] for n in self._categories.get(category, []) if n in self.tools]

    def describe(self) -> str:
        """
        Briefing text for the model: every capability with its parameters
        and an optional usage example, grouped by category.
        """
        lines = []
        for category in sorted(self._categories):
            lines.append(f"## {category.upper()}")
            for name in self._categories[category]:
                tool = self.tools[name]
                lines.append(f"- {tool.name}: {tool.description}")
                if tool.parameters:
                    lines.append(f"  Parameters: {', '.join(tool.parameters)}")
                if tool.optional_parameters:
                    lines.append(f"  Optional: {', '.join(tool.optional_parameters)}")
                if tool.example:
                    lines.append("  Example:")
                    lines.extend(f"    {line}" for line in tool.example.splitlines())
            lines.append("")
        return "\n".join(lines).rstrip()

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics"""
        return {
            "total_tools": len(self.tools),
            "categories": len(self._categories),
            "by_category": {cat: len(names) for cat, names in self._categories.items()},
            "most_used": sorted(
                [(t.name, t.use_count) for t in self.tools.values()],
                key=lambda x: x[1],
                reverse=True
            )[:5]
        }
