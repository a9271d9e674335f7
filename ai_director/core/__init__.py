"""
Core module - Configuration, Results, Guardrails, Oracle, Waiting
"""

from .config import Config, config, get_config
from .errors import DirectorError, OracleUnavailable, ReplanRequested, InvalidTransition, PersistenceError
from .results import ToolResult, ResultStatus, ErrorKind, classify_output
from .guardrails import GuardrailTable, RangeRule, Verification, redact_secrets
from .llm_provider import DecisionOracle, OllamaOracle, CallableOracle, create_oracle
from .waiting import wait_with_timeout, await_with_timeout

__all__ = [
    'Config',
    'config',
    'get_config',
    'DirectorError',
    'OracleUnavailable',
    'ReplanRequested',
    'InvalidTransition',
    'PersistenceError',
    'ToolResult',
    'ResultStatus',
    'ErrorKind',
    'classify_output',
    'GuardrailTable',
    'RangeRule',
    'Verification',
    'redact_secrets',
    'DecisionOracle',
    'OllamaOracle',
    'CallableOracle',
    'create_oracle',
    'wait_with_timeout',
    'await_with_timeout',
]
