"""
End-to-end tests: one model response through parse, group, dispatch,
intercept and memory, wired by AgentContext
"""

import asyncio

from ai_director.core.config import Config
from ai_director.core.context import AgentContext
from ai_director.core.llm_provider import CallableOracle
from ai_director.memory.long_term import MemoryType
from ai_director.orchestration.workflow import WorkflowState, dispatch_step_runner

RESPONSE = """I'll set up the player now.
[THOUGHT]Player object first, then its controller script[/THOUGHT]
[TOOL:create_gameobject]
name: Player
[/TOOL]
[TOOL:add_component]
gameobject_name: Player
component_type: CharacterController
[/TOOL]
[TOOL:find_gameobjects]
[/TOOL]
[TOOL:create_script]
script_name: PlayerMovement
script_content: using UnityEngine;
public class PlayerMovement : MonoBehaviour
{
}
[/TOOL]
Done!"""


def make_context(tmp_path, registry, **kwargs):
    config = Config({
        "memory": {"path": str(tmp_path / "memory.json")},
        "vector": {"path": str(tmp_path / "vectors.json")},
        "telemetry": {"log_file": str(tmp_path / "dispatch.jsonl")},
    })
    return AgentContext.create(config, registry=registry, **kwargs)


def test_full_turn(tmp_path, registry, scene):
    """Test a full turn from text to spliced results"""
    context = make_context(tmp_path, registry, persistent=False)
    progress = []

    report = context.turn_executor().execute(
        RESPONSE,
        on_progress=lambda index, group, inv, result: progress.append((index, inv.name, result.status.value)),
    )

    assert report.thoughts == ["Player object first, then its controller script"]
    assert [g.label for g in report.groups] == [
        "Object: Player",
        "Query: find_gameobjects",
        "Operations: create_script",
    ]
    assert progress == [
        (0, "create_gameobject", "ok"),
        (0, "add_component", "ok"),
        (1, "find_gameobjects", "ok"),
        (2, "create_script", "ok"),
    ]
    assert report.error_count == 0
    assert report.summary() == "4 tool call(s) in 3 group(s): 4 ok, 0 warning(s), 0 error(s)"

    assert scene.objects == {"Player": ["Transform", "CharacterController"]}
    assert scene.scripts["PlayerMovement"].startswith("using UnityEngine;\npublic class PlayerMovement")
    assert scene.calls == [
        "create_gameobject", "get_gameobject_info",
        "add_component", "get_gameobject_info",
        "find_gameobjects",
        "create_script", "get_compilation_errors",
    ]

    feedback = report.feedback_text()
    assert feedback.startswith("### Object: Player\n[create_gameobject] ✅ Created GameObject 'Player'")
    assert "### Query: find_gameobjects\n[find_gameobjects] Player" in feedback
    assert "✅ No compilation errors" in feedback

    assert [m.type for m in context.memory.memories] == [MemoryType.SUCCESS] * 4
    assert context.memory.search("PlayerMovement")[0].metadata["tool"] == "create_script"


def test_errors_are_reported_not_raised(tmp_path, registry, scene):
    """Test that errors are reported in the text, not raised"""
    context = make_context(tmp_path, registry, persistent=False)
    text = (
        "[TOOL:frobnicate]\nx: 1\n[/TOOL]\n"
        "[TOOL:add_component]\ngameobject_name: Ghost\ncomponent_type: Light\n[/TOOL]\n"
        "[TOOL:set_position]\nname: Ghost\nx: 50000\n[/TOOL]"
    )

    report = context.turn_executor().execute(text)

    assert report.error_count == 2
    assert report.warning_count == 1
    assert "[frobnicate] ❌ Unknown tool: frobnicate" in report.feedback_text()
    assert scene.calls == ["add_component"]
    assert [m.type for m in context.memory.memories] == [MemoryType.FAILURE, MemoryType.FAILURE]


def test_plain_text_has_no_directives(tmp_path, registry):
    """Test that plain text passes through"""
    context = make_context(tmp_path, registry, persistent=False)

    report = context.turn_executor().execute("Nothing to do here.")

    assert not report.had_directives
    assert report.feedback_text() == ""


def test_persistent_context_writes_through(tmp_path, registry):
    """Test that persistent context writes through"""
    context = make_context(tmp_path, registry)
    context.turn_executor().execute("[TOOL:create_gameobject]\nname: Crate\n[/TOOL]")

    assert (tmp_path / "memory.json").exists()
    assert (tmp_path / "dispatch.jsonl").exists()

    reopened = make_context(tmp_path, registry)
    assert len(reopened.memory) == 1
    assert reopened.memory.search_similar("create_gameobject Crate")[0][0].content.startswith("create_gameobject Crate")


def test_plan_runs_through_dispatcher(tmp_path, registry, scene):
    """Test running a plan through the dispatcher"""
    oracle = CallableOracle(lambda prompt: "SKIP")
    context = make_context(tmp_path, registry, oracle=oracle, persistent=False)
    plan = context.planner.plan("Create a player")
    for task in plan.sub_tasks:
        task.add_parameter("name", "Player")
        task.add_parameter("gameobject_name", "Player")
        task.add_parameter("component_type", "CharacterController")
        task.add_parameter("script_name", "PlayerMovement")

    state = asyncio.run(context.plan_executor().run(plan, dispatch_step_runner(context.dispatcher)))

    assert state is WorkflowState.COMPLETE
    assert plan.is_complete
    assert "Player" in scene.objects
    assert plan.completed_count == 6
    assert plan.sub_tasks[4].failed
    assert oracle.calls and "attach_script" in oracle.calls[0]
