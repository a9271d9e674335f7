"""
Guardrails for Capability Dispatch

Provides capability-keyed sanity checks around every dispatch:
- Pre-execution numeric range checks (warn and skip, never raise)
- Post-execution verification queries (log on mismatch, never block)
- Secret redaction before results reach logs

Usage:
    from ai_director.core.guardrails import GuardrailTable, redact_secrets

    table = GuardrailTable.from_config(config.get_section("guardrails"))
    warning = table.check_pre("set_position", {"x": "99999"})
    if warning:
        ...  # skip execution, surface the warning
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class RangeRule:
    """A numeric envelope for one parameter of one capability."""
    parameter: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def check(self, params: Dict[str, str]) -> Optional[str]:
        """Return a warning message, or None when the value is acceptable."""
        raw = params.get(self.parameter)
        if raw is None or str(raw).strip() == "":
            return None
        try:
            value = float(str(raw).strip().rstrip("fF"))
        except ValueError:
            return f"Parameter '{self.parameter}' is not numeric: {raw!r}"
        if value != value:  # NaN
            return f"Parameter '{self.parameter}' is not a number"
        if self.minimum is not None and value < self.minimum:
            return f"Parameter '{self.parameter}'={value:g} is below {self.minimum:g}"
        if self.maximum is not None and value > self.maximum:
            return f"Parameter '{self.parameter}'={value:g} is above {self.maximum:g}"
        return None


@dataclass
class Verification:
    """
    A follow-up query that confirms a capability had its effect.

    `parameters` maps query parameter -> source parameter of the original call.
    The query output must not contain any of `expect_absent`, and must contain
    the value of `expect_contains_parameter` when that is set.
    """
    query: str
    parameters: Dict[str, str] = field(default_factory=dict)
    expect_absent: List[str] = field(default_factory=list)
    expect_contains_parameter: Optional[str] = None

    def build_params(self, params: Dict[str, str]) -> Optional[Dict[str, str]]:
        query_params = {}
        for query_key, source_key in self.parameters.items():
            if source_key not in params:
                return None
            query_params[query_key] = params[source_key]
        return query_params

    def accepts(self, output: str, params: Dict[str, str]) -> bool:
        lowered = output.lower()
        for marker in self.expect_absent:
            if marker.lower() in lowered:
                return False
        if self.expect_contains_parameter:
            expected = params.get(self.expect_contains_parameter)
            if expected and expected.lower() not in lowered:
                return False
        return True


# =============================================================================
# GUARDRAIL TABLE
# =============================================================================

class GuardrailTable:
    """
    Lookup tables keyed by capability name.
    Thresholds are configuration, not code.
    """

    def __init__(
        self,
        ranges: Optional[Dict[str, List[RangeRule]]] = None,
        verifications: Optional[Dict[str, Verification]] = None
    ):
        self.ranges: Dict[str, List[RangeRule]] = ranges or {}
        self.verifications: Dict[str, Verification] = verifications or {}

    @classmethod
    def from_config(cls, section: Dict[str, Any]) -> 'GuardrailTable':
        ranges = {
            name: [
                RangeRule(
                    parameter=rule["parameter"],
                    minimum=rule.get("min"),
                    maximum=rule.get("max"),
                )
                for rule in rules
            ]
            for name, rules in (section.get("ranges") or {}).items()
        }
        verifications = {
            name: Verification(
                query=item["query"],
                parameters=dict(item.get("parameters") or {}),
                expect_absent=list(item.get("expect_absent") or []),
                expect_contains_parameter=item.get("expect_contains_parameter"),
            )
            for name, item in (section.get("verifications") or {}).items()
        }
        return cls(ranges, verifications)

    def add_range(self, capability: str, rule: RangeRule) -> None:
        self.ranges.setdefault(capability, []).append(rule)

    def set_verification(self, capability: str, verification: Verification) -> None:
        self.verifications[capability] = verification

    def check_pre(self, capability: str, params: Dict[str, str]) -> Optional[str]:
        """
        Run the pre-execution range rules for a capability.

        Returns:
            Warning message joining every violation, or None when all pass
        """
        problems = [
            message for message in
            (rule.check(params) for rule in self.ranges.get(capability, []))
            if message
        ]
        if not problems:
            return None
        return f"Guardrail blocked {capability}: " + "; ".join(problems)

    def verification_for(self, capability: str) -> Optional[Verification]:
        return self.verifications.get(capability)


# =============================================================================
# SECRET REDACTION
# =============================================================================

SECRET_PATTERNS = [
    # API keys
    (r'(api[_-]?key\s*[:=]\s*)["\']?[\w-]{20,}["\']?', r'\1[REDACTED]'),

    # Passwords
    (r'(password\s*[:=]\s*)["\']?[^\s"\']+["\']?', r'\1[REDACTED]'),

    # Secrets and tokens
    (r'(secret\s*[:=]\s*)["\']?[\w-]{20,}["\']?', r'\1[REDACTED]'),
    (r'(token\s*[:=]\s*)["\']?[\w-]{20,}["\']?', r'\1[REDACTED]'),
    (r'(bearer\s+)[\w-]{20,}', r'\1[REDACTED]'),

    # Private keys
    (r'-----BEGIN\s+[\w\s]+PRIVATE\s+KEY-----.*?-----END\s+[\w\s]+PRIVATE\s+KEY-----',
     r'[PRIVATE_KEY_REDACTED]'),
]

_COMPILED_SECRETS = [
    (re.compile(pattern, re.IGNORECASE | re.DOTALL), replacement)
    for pattern, replacement in SECRET_PATTERNS
]


def redact_secrets(text: str) -> str:
    """
    Redact potential secrets from output before logging.

    Example:
        >>> redact_secrets("password: hunter2")
        'password: [REDACTED]'
    """
    result = text
    for pattern, replacement in _COMPILED_SECRETS:
        result = pattern.sub(replacement, result)
    return result
