"""
Tests for the Dispatcher, Tool Registry and guardrails
"""

from ai_director.core.guardrails import GuardrailTable, RangeRule, redact_secrets
from ai_director.core.results import ErrorKind, ResultStatus, ToolResult, classify_output
from ai_director.monitoring.telemetry import ExecutionTelemetry
from ai_director.tools.tool_executor import (
    Dispatcher,
    normalize_parameters,
    to_camel_case,
    to_snake_case,
)
from ai_director.tools.tool_registry import ToolRegistry


def test_unknown_capability_is_an_error_result(dispatcher):
    """Test that frobnicate comes back as a distinguishable error, not an exception"""
    result = dispatcher.dispatch("frobnicate", {})

    assert result.is_error
    assert result.kind == ErrorKind.UNKNOWN_CAPABILITY
    assert dispatcher.execute("frobnicate") == "❌ Unknown tool: frobnicate"


def test_successful_dispatch_and_verification(dispatcher, scene):
    """Test a successful dispatch with its post-check"""
    result = dispatcher.dispatch("create_gameobject", {"name": "Crate"})

    assert result.status == ResultStatus.OK
    assert result.render() == "✅ Created GameObject 'Crate'"
    assert result.verified is True
    assert scene.calls == ["create_gameobject", "get_gameobject_info"]


def test_verification_mismatch_is_logged_not_blocking(registry, config, caplog):
    """Test that a failed post-check only logs a warning"""
    registry.register_function("create_gameobject", lambda p: "✅ Created (not really)", "Lies", ["name"])
    dispatcher = Dispatcher(registry, guardrails=GuardrailTable.from_config(config.get_section("guardrails")))

    result = dispatcher.dispatch("create_gameobject", {"name": "Ghost"})

    assert result.is_ok
    assert result.verified is False
    assert "disagrees" in caplog.text


def test_post_checks_can_be_disabled(registry, scene):
    """Test dispatch with post-checks turned off"""
    dispatcher = Dispatcher(registry, post_checks_enabled=False)

    result = dispatcher.dispatch("create_gameobject", {"name": "Crate"})

    assert result.verified is None
    assert scene.calls == ["create_gameobject"]


def test_add_component_verification_checks_component(dispatcher, scene):
    """Test the post-check for adding a component"""
    dispatcher.dispatch("create_gameobject", {"name": "Crate"})

    result = dispatcher.dispatch("add_component", {"gameobject_name": "Crate", "component_type": "Rigidbody"})

    assert result.is_ok
    assert result.verified is True
    assert scene.objects["Crate"] == ["Transform", "Rigidbody"]


def test_camel_case_aliases_satisfy_required_parameters(dispatcher, scene):
    """Test that camelCase keys satisfy required parameters"""
    result = dispatcher.dispatch("create_script", {"scriptName": "Mover", "scriptContent": "class Mover {}"})

    assert result.is_ok
    assert scene.scripts == {"Mover": "class Mover {}"}


def test_missing_parameter(dispatcher, scene):
    """Test the error for a missing required parameter"""
    result = dispatcher.dispatch("add_component", {"gameobject_name": "Crate"})

    assert result.kind == ErrorKind.MISSING_PARAMETER
    assert "component_type" in result.message
    assert "add_component" not in scene.calls


def test_guardrail_warning_skips_execution(dispatcher, scene):
    """Test that an out-of-range value is not executed"""
    result = dispatcher.dispatch("set_position", {"name": "Player", "x": "99999", "y": "0", "z": "0f"})

    assert result.is_warning
    assert result.message.startswith("Guardrail blocked set_position")
    assert result.render().startswith("⚠️")
    assert scene.calls == []


def test_guardrail_rejects_non_numeric(dispatcher):
    """Test that a non-numeric guarded value is rejected"""
    result = dispatcher.dispatch("create_gameobject", {"name": "Crate", "x": "far"})

    assert result.is_warning
    assert "not numeric" in result.message


def test_capability_exception_is_captured():
    """Test that a raising capability becomes an error result"""
    registry = ToolRegistry()

    def explode(params):
        raise RuntimeError("editor crashed")

    registry.register_function("explode", explode, "Always fails")
    dispatcher = Dispatcher(registry)

    result = dispatcher.dispatch("explode")

    assert result.kind == ErrorKind.CAPABILITY_FAILURE
    assert result.render() == "❌ Tool execution failed: editor crashed"
    assert registry.get_tool("explode").use_count == 1


def test_reported_failure_marker(dispatcher):
    """Test that a failure marker in output is classified as an error"""
    result = dispatcher.dispatch("add_component", {"gameobject_name": "Nope", "component_type": "Light"})

    assert result.kind == ErrorKind.REPORTED_FAILURE
    assert result.verified is None


def test_execution_stats_and_telemetry(registry, tmp_path):
    """Test execution stats and telemetry recording"""
    telemetry = ExecutionTelemetry(log_file=str(tmp_path / "dispatch.jsonl"))
    dispatcher = Dispatcher(registry, telemetry=telemetry, post_checks_enabled=False)

    dispatcher.dispatch("create_gameobject", {"name": "A"})
    dispatcher.dispatch("frobnicate")

    stats = dispatcher.get_execution_stats()
    assert stats["total"] == 2
    assert stats["by_status"] == {"ok": 1, "error": 1}
    assert stats["success_rate"] == 0.5
    assert telemetry.get_stats()["dispatches"] == 2
    assert (tmp_path / "dispatch.jsonl").read_text(encoding="utf-8").count("\n") == 2


def test_execution_history_is_bounded(registry):
    """Test that only the most recent dispatches are kept for stats"""
    dispatcher = Dispatcher(registry, post_checks_enabled=False, max_history=2)

    dispatcher.dispatch("frobnicate")
    dispatcher.dispatch("create_gameobject", {"name": "A"})
    dispatcher.dispatch("create_gameobject", {"name": "B"})

    assert len(dispatcher.execution_history) == 2
    stats = dispatcher.get_execution_stats()
    assert stats["total"] == 2
    assert stats["by_status"] == {"ok": 2}


def test_case_conversion():
    """Test snake and camel case conversion"""
    assert to_snake_case("gameObjectName") == "game_object_name"
    assert to_snake_case("script-name") == "script_name"
    assert to_camel_case("script_name") == "scriptName"
    assert normalize_parameters({"scriptName": "A", "script_name": "B"}) == {
        "scriptName": "A",
        "script_name": "B",
    }


def test_registry_describe_and_stats(registry):
    """Test registry descriptions and stats"""
    text = registry.describe()

    assert "## SCENE" in text
    assert "- add_component: Attach a component" in text
    assert "  Parameters: gameobject_name, component_type" in text
    assert registry.get_stats()["total_tools"] == len(registry)
    assert "read_console" in registry


def test_registry_replace_and_unregister():
    """Test replacing and unregistering capabilities"""
    registry = ToolRegistry()
    registry.register_function("ping", lambda p: "pong", "Ping", category="net")
    registry.register_function("ping", lambda p: "PONG", "Ping again", category="debug")

    assert len(registry) == 1
    assert registry.get_tools_by_category("net") == []
    assert [t.name for t in registry.get_tools_by_category("debug")] == ["ping"]
    assert registry.unregister("ping")
    assert not registry.unregister("ping")


def test_range_rule_bounds():
    """Test range rule bounds"""
    table = GuardrailTable()
    table.add_range("set_scale", RangeRule("x", 0.0001, 1000))

    assert table.check_pre("set_scale", {"x": "1"}) is None
    assert table.check_pre("set_scale", {"x": "0"}) is not None
    assert table.check_pre("set_scale", {}) is None
    assert table.check_pre("other", {"x": "0"}) is None


def test_classify_output_and_render():
    """Test output classification and result rendering"""
    assert classify_output("❌ boom").is_error
    assert classify_output("⚠️ careful").is_warning
    assert classify_output("✅ done ⚠️ minor").is_ok
    assert ToolResult.warning("⚠️ already marked").render() == "⚠️ already marked"
    assert ToolResult.ok("x" * 100).summary(10) == "xxxxxxx..."


def test_redact_secrets():
    """Test secret redaction"""
    assert redact_secrets("password: hunter2") == "password: [REDACTED]"
    assert "abcdefghijklmnopqrstuvwxyz" not in redact_secrets("api_key=abcdefghijklmnopqrstuvwxyz")
