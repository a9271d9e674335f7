"""
Monitoring module - Telemetry and logging setup
"""

from .telemetry import ExecutionTelemetry, DispatchMetrics
from .logging_setup import configure_logging

__all__ = ['ExecutionTelemetry', 'DispatchMetrics', 'configure_logging']
