"""
Shared fixtures: an in-memory scene standing in for the game editor.
"""

from datetime import datetime, timedelta
from typing import Dict, List

import pytest

from ai_director.core.config import Config
from ai_director.core.guardrails import GuardrailTable
from ai_director.tools.tool_executor import Dispatcher
from ai_director.tools.tool_registry import ToolRegistry


class FakeScene:
    """Tiny editor model: named objects with components, scripts, a console"""

    def __init__(self):
        self.objects: Dict[str, List[str]] = {}
        self.scripts: Dict[str, str] = {}
        self.console: List[str] = []
        self.calls: List[str] = []

    def create_gameobject(self, params: Dict[str, str]) -> str:
        self.calls.append("create_gameobject")
        self.objects[params["name"]] = ["Transform"]
        return f"✅ Created GameObject '{params['name']}'"

    def get_gameobject_info(self, params: Dict[str, str]) -> str:
        self.calls.append("get_gameobject_info")
        name = params["name"]
        if name not in self.objects:
            return f"❌ GameObject '{name}' not found"
        return f"{name}: components = {', '.join(self.objects[name])}"

    def add_component(self, params: Dict[str, str]) -> str:
        self.calls.append("add_component")
        target = params["gameobject_name"]
        if target not in self.objects:
            return f"❌ GameObject '{target}' not found"
        self.objects[target].append(params["component_type"])
        return f"✅ Added {params['component_type']} to {target}"

    def set_position(self, params: Dict[str, str]) -> str:
        self.calls.append("set_position")
        return f"✅ Moved {params['name']}"

    def find_gameobjects(self, params: Dict[str, str]) -> str:
        self.calls.append("find_gameobjects")
        return ", ".join(sorted(self.objects)) or "No objects"

    def create_script(self, params: Dict[str, str]) -> str:
        self.calls.append("create_script")
        self.scripts[params["script_name"]] = params.get("script_content", "")
        return f"✅ Created script {params['script_name']}.cs"

    def get_compilation_errors(self, params: Dict[str, str]) -> str:
        self.calls.append("get_compilation_errors")
        return "✅ No compilation errors"

    def read_console(self, params: Dict[str, str]) -> str:
        self.calls.append("read_console")
        return "\n".join(self.console) or "Console is empty"

    def register_all(self, registry: ToolRegistry) -> ToolRegistry:
        registry.register_function("create_gameobject", self.create_gameobject, "Create an empty GameObject",
                                   ["name"], optional_parameters=["x", "y", "z"], category="scene")
        registry.register_function("get_gameobject_info", self.get_gameobject_info, "Describe a GameObject",
                                   ["name"], category="query")
        registry.register_function("add_component", self.add_component, "Attach a component",
                                   ["gameobject_name", "component_type"], category="scene")
        registry.register_function("set_position", self.set_position, "Move a GameObject",
                                   ["name"], optional_parameters=["x", "y", "z"], category="scene")
        registry.register_function("find_gameobjects", self.find_gameobjects, "List GameObjects",
                                   category="query")
        registry.register_function("create_script", self.create_script, "Create a C# script",
                                   ["script_name"], optional_parameters=["script_content"], category="script")
        registry.register_function("get_compilation_errors", self.get_compilation_errors,
                                   "Compiler diagnostics", category="query")
        registry.register_function("read_console", self.read_console, "Read console output",
                                   optional_parameters=["count", "filterType"], category="query")
        return registry


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def scene():
    return FakeScene()


@pytest.fixture
def registry(scene):
    return scene.register_all(ToolRegistry())


@pytest.fixture
def config():
    return Config({})


@pytest.fixture
def dispatcher(registry, config):
    return Dispatcher(registry, guardrails=GuardrailTable.from_config(config.get_section("guardrails")))


@pytest.fixture
def clock():
    return FakeClock()
