"""
Tools module - Registry, Call Parser, Dispatcher, Grouper, Interceptor
"""

from .tool_registry import ToolRegistry, CapabilityDescriptor
from .call_parser import CallParser, Invocation, DirectiveSyntax
from .tool_executor import Dispatcher
from .tool_grouper import ToolGrouper, ExecutionGroup
from .result_interceptor import ResultInterceptor, InterceptRule, AutoAction
from .turn_executor import TurnExecutor, TurnReport

__all__ = [
    'ToolRegistry',
    'CapabilityDescriptor',
    'CallParser',
    'Invocation',
    'DirectiveSyntax',
    'Dispatcher',
    'ToolGrouper',
    'ExecutionGroup',
    'ResultInterceptor',
    'InterceptRule',
    'AutoAction',
    'TurnExecutor',
    'TurnReport',
]
