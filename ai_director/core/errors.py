"""
Exception hierarchy for the director core.

Capability failures never cross the dispatcher boundary as exceptions;
these classes cover the seams where callers are expected to react.
"""


class DirectorError(Exception):
    """Base class for all director errors"""


class OracleUnavailable(DirectorError):
    """The decision oracle could not produce an answer"""


class ReplanRequested(DirectorError):
    """Self-healing chose REPLAN; the caller must request a fresh plan"""

    def __init__(self, step_index: int, reason: str):
        super().__init__(f"Replan requested at step {step_index}: {reason}")
        self.step_index = step_index
        self.reason = reason


class InvalidTransition(DirectorError):
    """A workflow state change that the transition table forbids"""


class PersistenceError(DirectorError):
    """A byte store could not be read or written"""
