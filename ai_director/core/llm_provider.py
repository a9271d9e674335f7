#!/usr/bin/env python3
"""
LLM Provider Abstraction
Decision oracle used by self-healing and task decomposition.
The core only needs an async ask(prompt) -> text call.
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx
import ollama

from .errors import OracleUnavailable

logger = logging.getLogger(__name__)


class ProviderType(Enum):
    """Supported oracle providers"""
    OLLAMA = "ollama"
    CALLABLE = "callable"


@dataclass
class LLMConfig:
    """Configuration for the oracle provider"""
    provider: ProviderType = ProviderType.OLLAMA
    model: str = "qwen3:1.7b"
    api_base: Optional[str] = None  # custom Ollama host
    timeout: float = 60.0
    max_tokens: int = 512
    temperature: float = 0.2
    system_prompt: str = "You are a concise decision assistant. Answer exactly as instructed."
    extra_params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LLMConfig':
        return cls(
            provider=ProviderType(data.get("provider", "ollama")),
            model=data.get("model", cls.model),
            api_base=data.get("host"),
            timeout=float(data.get("timeout_sec", cls.timeout)),
            temperature=float(data.get("temperature", cls.temperature)),
        )


class DecisionOracle(ABC):
    """Abstract oracle: one prompt in, one text answer out"""

    @abstractmethod
    async def ask(self, prompt: str) -> str:
        """
        Ask the oracle a question.

        Raises:
            OracleUnavailable: if no answer could be obtained
        """


class OllamaOracle(DecisionOracle):
    """Oracle backed by a local Ollama server"""

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or LLMConfig()
        self._client = ollama.AsyncClient(host=self.config.api_base) if self.config.api_base else ollama.AsyncClient()

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.config.system_prompt},
            {"role": "user", "content": prompt},
        ]

    async def ask(self, prompt: str) -> str:
        options = {
            "temperature": self.config.temperature,
            "num_predict": self.config.max_tokens,
            **self.config.extra_params,
        }
        try:
            response = await asyncio.wait_for(
                self._client.chat(
                    model=self.config.model,
                    messages=self._messages(prompt),
                    options=options,
                ),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError as e:
            raise OracleUnavailable(f"Ollama timed out after {self.config.timeout}s") from e
        except (ollama.ResponseError, httpx.HTTPError, ConnectionError, OSError) as e:
            raise OracleUnavailable(f"Ollama request failed: {e}") from e

        try:
            content = response["message"]["content"] or ""
        except (KeyError, TypeError) as e:
            raise OracleUnavailable(f"Ollama returned a malformed response: {e}") from e
        logger.debug(f"[ORACLE] {self.config.model} answered {len(content)} chars")
        return content


def _call_blocking(func: Callable[[str], Any], prompt: str) -> Any:
    # StopIteration cannot be set on an asyncio future
    try:
        return func(prompt)
    except StopIteration as e:
        raise OracleUnavailable("oracle has no more answers") from e


class CallableOracle(DecisionOracle):
    """Wrap any coroutine function (or plain function) as an oracle"""

    def __init__(self, func: Callable[[str], Any]):
        self.func = func
        self.calls: List[str] = []

    async def ask(self, prompt: str) -> str:
        self.calls.append(prompt)
        try:
            if inspect.iscoroutinefunction(self.func):
                answer = await self.func(prompt)
            else:
                # Blocking callables run off the event loop
                answer = await asyncio.to_thread(_call_blocking, self.func, prompt)
            if inspect.isawaitable(answer):
                answer = await answer
        except OracleUnavailable:
            raise
        except Exception as e:
            raise OracleUnavailable(str(e)) from e
        return str(answer)


def create_oracle(settings: Optional[Dict[str, Any]] = None) -> DecisionOracle:
    """Build an oracle from the `oracle` config section"""
    llm_config = LLMConfig.from_dict(settings or {})
    if llm_config.provider is ProviderType.OLLAMA:
        return OllamaOracle(llm_config)
    raise ValueError(f"Provider {llm_config.provider.value} needs an explicit function; use CallableOracle")
