"""
Tests for the decision oracle wrappers
"""

import asyncio
import threading

import httpx
import pytest

from ai_director.core.errors import OracleUnavailable
from ai_director.core.llm_provider import (
    CallableOracle,
    LLMConfig,
    OllamaOracle,
    ProviderType,
    create_oracle,
)


def test_sync_and_async_functions():
    """Test wrapping plain and coroutine functions"""
    async def async_answer(prompt):
        return "SKIP"

    assert asyncio.run(CallableOracle(lambda p: "RETRY").ask("q")) == "RETRY"
    assert asyncio.run(CallableOracle(async_answer).ask("q")) == "SKIP"


def test_answers_are_stringified_and_prompts_recorded():
    """Test answer stringification and prompt recording"""
    oracle = CallableOracle(lambda p: 42)

    assert asyncio.run(oracle.ask("what?")) == "42"
    assert oracle.calls == ["what?"]


def test_failures_become_oracle_unavailable():
    """Test that function errors become OracleUnavailable"""
    def broken(prompt):
        raise ConnectionError("refused")

    with pytest.raises(OracleUnavailable, match="refused"):
        asyncio.run(CallableOracle(broken).ask("q"))


def test_blocking_function_runs_off_the_event_loop():
    """Test that a plain function is called from a worker thread"""
    threads = []

    def answer(prompt):
        threads.append(threading.get_ident())
        return "RETRY"

    async def ask_and_report():
        reply = await CallableOracle(answer).ask("q")
        return reply, threading.get_ident()

    reply, loop_thread = asyncio.run(ask_and_report())

    assert reply == "RETRY"
    assert threads and threads[0] != loop_thread


def test_exhausted_answers_become_oracle_unavailable():
    """Test that an exhausted answer iterator fails instead of hanging"""
    answers = iter(["SKIP"])
    oracle = CallableOracle(lambda p: next(answers))

    assert asyncio.run(oracle.ask("q")) == "SKIP"
    with pytest.raises(OracleUnavailable):
        asyncio.run(oracle.ask("q"))


class FakeClient:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error

    async def chat(self, **kwargs):
        if self.error is not None:
            raise self.error
        return self.reply


def test_ollama_transport_errors_become_oracle_unavailable():
    """Test that httpx failures from the Ollama client are wrapped"""
    oracle = OllamaOracle(LLMConfig(model="llama3"))
    oracle._client = FakeClient(error=httpx.ReadError("connection reset"))

    with pytest.raises(OracleUnavailable, match="connection reset"):
        asyncio.run(oracle.ask("q"))


def test_ollama_malformed_response_becomes_oracle_unavailable():
    """Test that a response without message content is wrapped"""
    oracle = OllamaOracle(LLMConfig(model="llama3"))
    oracle._client = FakeClient(reply={"done": True})

    with pytest.raises(OracleUnavailable, match="malformed"):
        asyncio.run(oracle.ask("q"))

    oracle._client = FakeClient(reply={"message": {"content": "SKIP"}})
    assert asyncio.run(oracle.ask("q")) == "SKIP"


def test_config_from_dict():
    """Test building LLMConfig from a dict"""
    config = LLMConfig.from_dict({"model": "llama3", "host": "http://gpu:11434", "timeout_sec": 5})

    assert config.provider is ProviderType.OLLAMA
    assert config.model == "llama3"
    assert config.api_base == "http://gpu:11434"
    assert config.timeout == 5.0
    assert LLMConfig.from_dict({}).model == "qwen3:1.7b"


def test_create_oracle():
    """Test the oracle factory"""
    assert isinstance(create_oracle({"model": "llama3"}), OllamaOracle)

    with pytest.raises(ValueError):
        create_oracle({"provider": "callable"})
