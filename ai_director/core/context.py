#!/usr/bin/env python3
"""
Agent Context
Explicitly constructed collaborators, passed to the entry points that
need them instead of living in module-level singletons.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from ..memory.long_term import MemoryStore
from ..memory.persistence import FileByteStore, InMemoryByteStore
from ..memory.semantic_search import SemanticSearch
from ..memory.vector_store import VectorIndex
from ..monitoring.telemetry import ExecutionTelemetry
from ..orchestration.decomposer import TaskDecomposer
from ..orchestration.planner import Planner
from ..orchestration.self_healing import SelfHealingManager
from ..orchestration.workflow import PlanExecutor, WorkflowStateMachine
from ..tools.call_parser import CallParser
from ..tools.result_interceptor import ResultInterceptor
from ..tools.tool_executor import Dispatcher
from ..tools.tool_grouper import ToolGrouper
from ..tools.tool_registry import ToolRegistry
from ..tools.turn_executor import TurnExecutor
from .config import Config
from .guardrails import GuardrailTable
from .llm_provider import DecisionOracle


@dataclass
class AgentContext:
    """Everything one director session works with"""
    config: Config
    registry: ToolRegistry
    parser: CallParser
    dispatcher: Dispatcher
    grouper: ToolGrouper
    interceptor: ResultInterceptor
    planner: Planner
    decomposer: TaskDecomposer
    healing: SelfHealingManager
    memory: MemoryStore
    vectors: VectorIndex
    semantic: SemanticSearch
    telemetry: ExecutionTelemetry
    oracle: Optional[DecisionOracle] = None

    @classmethod
    def create(
        cls,
        config: Optional[Config] = None,
        registry: Optional[ToolRegistry] = None,
        oracle: Optional[DecisionOracle] = None,
        build_ready: Optional[Callable[[], bool]] = None,
        persistent: bool = True
    ) -> 'AgentContext':
        """
        Wire a full context from configuration.
        With persistent=False all stores are kept in memory.
        """
        config = config or Config().load()
        if registry is None:
            registry = ToolRegistry()

        telemetry_section = config.get_section("telemetry")
        telemetry = ExecutionTelemetry.from_config(telemetry_section if persistent else {"enabled": False})

        dispatcher = Dispatcher(
            registry,
            guardrails=GuardrailTable.from_config(config.get_section("guardrails")),
            telemetry=telemetry,
            post_checks_enabled=bool(config.get("dispatcher.post_checks_enabled", True)),
        )

        dimensions = int(config.get("vector.dimensions", 128))
        if persistent:
            vector_store = FileByteStore(config.get("vector.path"))
            memory_store = FileByteStore(config.get("memory.path"))
        else:
            vector_store = InMemoryByteStore()
            memory_store = InMemoryByteStore()

        vectors = VectorIndex(vector_store, dimensions=dimensions)
        memory = MemoryStore(
            memory_store,
            capacity=int(config.get("memory.capacity", 1000)),
            vector_index=VectorIndex(dimensions=dimensions),
        )

        return cls(
            config=config,
            registry=registry,
            parser=CallParser.from_config(config.get_section("parser")),
            dispatcher=dispatcher,
            grouper=ToolGrouper.from_config(config.get_section("grouper")),
            interceptor=ResultInterceptor.from_config(
                config.get_section("interceptor"),
                dispatcher=dispatcher,
                build_ready=build_ready,
                telemetry=telemetry,
            ),
            planner=Planner(
                base_complexity=int(config.get("planner.base_complexity", 3)),
                max_complexity=int(config.get("planner.max_complexity", 10)),
            ),
            decomposer=TaskDecomposer(oracle),
            healing=SelfHealingManager.from_config(config.get_section("healing"), oracle),
            memory=memory,
            vectors=vectors,
            semantic=SemanticSearch(
                vectors,
                min_content_length=int(config.get("vector.min_content_length", 100)),
                search_threshold=float(config.get("vector.search_threshold", 0.1)),
                context_threshold=float(config.get("vector.context_threshold", 0.2)),
            ),
            telemetry=telemetry,
            oracle=oracle,
        )

    def plan_executor(self, validator=None) -> PlanExecutor:
        """Fresh executor sharing this context's healing manager and telemetry"""
        return PlanExecutor(
            self.healing,
            state_machine=WorkflowStateMachine(int(self.config.get("healing.max_iterations", 50))),
            validator=validator,
            telemetry=self.telemetry,
        )

    def turn_executor(self) -> TurnExecutor:
        return TurnExecutor.from_context(self)
