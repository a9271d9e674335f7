#!/usr/bin/env python3
"""
Call Parser
Extracts structured tool invocations from free-form model output.

Wire format:

    [TOOL:create_gameobject]
    name: Crate
    x: 1
    [/TOOL]

A value runs until the next line that looks like a new key, so multi-line
payloads (script bodies, long text) need no escaping. Whether a line starts a
new key is decided by a small state machine; see `is_recognized_key`.

Known ambiguity: a payload line such as `note: something` inside a script
body satisfies the key heuristic and will start a new parameter.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

KEY_COLUMN_LIMIT = 50

# Keys accepted even though they do not start lowercase
KNOWN_KEYS = frozenset({
    "gameObjectName", "scriptName", "scriptContent", "componentType",
    "name", "parent", "gameobject_name", "script_name",
    "script_content", "component_type",
})

THOUGHT_OPEN = "[THOUGHT]"
THOUGHT_CLOSE = "[/THOUGHT]"


@dataclass(frozen=True)
class DirectiveSyntax:
    """Marker tokens for one directive dialect"""
    open_prefix: str = "[TOOL:"
    terminator: str = "]"
    close_token: str = "[/TOOL]"


TOOL_SYNTAX = DirectiveSyntax()
ACTION_SYNTAX = DirectiveSyntax("[ACTION:", "]", "[/ACTION]")


@dataclass(frozen=True)
class Invocation:
    """
    One parsed tool call.

    `span` is the (start, end) slice of the source text covering the whole
    block, markers included. It does not take part in equality.
    """
    name: str
    parameters: Dict[str, str] = field(default_factory=dict)
    span: Tuple[int, int] = field(default=(0, 0), compare=False)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.parameters.get(key, default)


class ParserState(Enum):
    AWAITING_KEY = "awaiting_key"
    ACCUMULATING_VALUE = "accumulating_value"


def split_key_line(line: str, key_column_limit: int = KEY_COLUMN_LIMIT) -> Optional[Tuple[str, str]]:
    """Split `key: value` when the separator sits inside the key column"""
    idx = line.find(":")
    if idx <= 0 or idx >= key_column_limit:
        return None
    key = line[:idx].strip()
    if not key:
        return None
    return key, line[idx + 1:].strip()


def is_recognized_key(key: str, known_keys: Iterable[str] = KNOWN_KEYS) -> bool:
    """
    Heuristic for "this token names a parameter": no whitespace, no
    parentheses, and either a lowercase first letter or an allow-listed key.
    """
    if not key:
        return False
    if any(ch.isspace() for ch in key) or "(" in key or ")" in key:
        return False
    return key[0].islower() or key in known_keys


def _flush(lines: List[str]) -> str:
    while lines and not lines[0].strip():
        lines.pop(0)
    return "\n".join(lines).rstrip()


class CallParser:
    """
    Directive parser.

    Usage:
        parser = CallParser()
        for inv in parser.parse(response_text):
            dispatcher.execute(inv.name, inv.parameters)
    """

    def __init__(
        self,
        syntax: DirectiveSyntax = TOOL_SYNTAX,
        key_column_limit: int = KEY_COLUMN_LIMIT,
        known_keys: Optional[Iterable[str]] = None
    ):
        self.syntax = syntax
        self.key_column_limit = key_column_limit
        self.known_keys = frozenset(known_keys) if known_keys is not None else KNOWN_KEYS

    @classmethod
    def from_config(cls, section: Dict[str, Any], syntax: DirectiveSyntax = TOOL_SYNTAX) -> 'CallParser':
        return cls(
            syntax=syntax,
            key_column_limit=int(section.get("key_column_limit", KEY_COLUMN_LIMIT)),
            known_keys=section.get("known_keys"),
        )

    def parse(self, text: str) -> List[Invocation]:
        """Extract every complete directive block, in document order"""
        syntax = self.syntax
        invocations: List[Invocation] = []
        pos = 0

        while True:
            start = text.find(syntax.open_prefix, pos)
            if start < 0:
                break

            name_start = start + len(syntax.open_prefix)
            name_end = text.find(syntax.terminator, name_start)
            if name_end < 0:
                logger.debug(f"[PARSER] Unterminated marker at {start}; stopping")
                break

            close = text.find(syntax.close_token, name_end + len(syntax.terminator))
            if close < 0:
                logger.debug(f"[PARSER] Missing {syntax.close_token} after {start}; stopping")
                break

            end = close + len(syntax.close_token)
            name = text[name_start:name_end].strip()
            body = text[name_end + len(syntax.terminator):close]

            if name:
                invocations.append(Invocation(name, self.parse_parameters(body), (start, end)))
            else:
                logger.debug(f"[PARSER] Skipping directive without a name at {start}")
            pos = end

        return invocations

    def parse_parameters(self, body: str) -> Dict[str, str]:
        """Run the key/value state machine over a directive interior"""
        params: Dict[str, str] = {}
        state = ParserState.AWAITING_KEY
        key = ""
        buffer: List[str] = []

        for raw in body.split("\n"):
            line = raw.rstrip("\r")

            if state is ParserState.AWAITING_KEY:
                if not line.strip():
                    continue
                split = split_key_line(line, self.key_column_limit)
                if split is None:
                    continue
                key, first = split
                buffer = [first]
                state = ParserState.ACCUMULATING_VALUE
                continue

            split = split_key_line(line, self.key_column_limit)
            if split is not None and is_recognized_key(split[0], self.known_keys):
                params[key] = _flush(buffer)
                key, first = split
                buffer = [first]
            else:
                buffer.append(line)

        if state is ParserState.ACCUMULATING_VALUE:
            params[key] = _flush(buffer)

        return params

    def render(self, invocation: Invocation) -> str:
        """Inverse of parse for values without leading/trailing whitespace"""
        syntax = self.syntax
        lines = [f"{syntax.open_prefix}{invocation.name}{syntax.terminator}"]
        for key, value in invocation.parameters.items():
            lines.append(f"{key}: {value}")
        lines.append(syntax.close_token)
        return "\n".join(lines)

    def has_directives(self, text: str) -> bool:
        return bool(self.parse(text))


# Default parser for module-level helpers
_default_parser = CallParser()


def parse(text: str, syntax: DirectiveSyntax = TOOL_SYNTAX) -> List[Invocation]:
    """Parse with default settings"""
    if syntax is TOOL_SYNTAX:
        return _default_parser.parse(text)
    return CallParser(syntax=syntax).parse(text)


def render(invocation: Invocation, syntax: DirectiveSyntax = TOOL_SYNTAX) -> str:
    if syntax is TOOL_SYNTAX:
        return _default_parser.render(invocation)
    return CallParser(syntax=syntax).render(invocation)


def splice(text: str, replacements: Sequence[Tuple[Invocation, str]]) -> str:
    """
    Replace each invocation's source span with new text.
    Applied right to left so earlier offsets stay valid.
    """
    result = text
    for invocation, replacement in sorted(replacements, key=lambda r: r[0].span[0], reverse=True):
        start, end = invocation.span
        result = result[:start] + replacement + result[end:]
    return result


def strip_directives(text: str, syntax: DirectiveSyntax = TOOL_SYNTAX) -> str:
    """Model text with every complete directive block removed"""
    blocks = parse(text, syntax)
    return splice(text, [(inv, "") for inv in blocks]).strip()


def extract_thoughts(text: str) -> List[str]:
    """Contents of each [THOUGHT]...[/THOUGHT] block"""
    thoughts = []
    pos = 0
    while True:
        start = text.find(THOUGHT_OPEN, pos)
        if start < 0:
            break
        end = text.find(THOUGHT_CLOSE, start + len(THOUGHT_OPEN))
        if end < 0:
            break
        thoughts.append(text[start + len(THOUGHT_OPEN):end].strip())
        pos = end + len(THOUGHT_CLOSE)
    return thoughts


def strip_thoughts(text: str) -> str:
    """Remove complete reasoning blocks"""
    result = []
    pos = 0
    while True:
        start = text.find(THOUGHT_OPEN, pos)
        if start < 0:
            break
        end = text.find(THOUGHT_CLOSE, start + len(THOUGHT_OPEN))
        if end < 0:
            break
        result.append(text[pos:start])
        pos = end + len(THOUGHT_CLOSE)
    result.append(text[pos:])
    return "".join(result).strip()
