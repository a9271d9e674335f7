"""
Tests for the directive Call Parser
"""

from ai_director.tools.call_parser import (
    ACTION_SYNTAX,
    CallParser,
    Invocation,
    extract_thoughts,
    is_recognized_key,
    parse,
    render,
    splice,
    split_key_line,
    strip_directives,
    strip_thoughts,
)


def test_single_block():
    """Test the basic make_box block"""
    text = "[TOOL:make_box]\nname: Crate\nx: 1\ny: 2\nz: 3\n[/TOOL]"

    invocations = parse(text)

    assert len(invocations) == 1
    assert invocations[0].name == "make_box"
    assert invocations[0].parameters == {"name": "Crate", "x": "1", "y": "2", "z": "3"}
    assert invocations[0].span == (0, len(text))


def test_multiple_blocks_in_document_order():
    """Test that several directive blocks are returned in document order"""
    text = (
        "Let me build the scene.\n"
        "[TOOL:create_gameobject]\nname: Floor\n[/TOOL]\n"
        "and then\n"
        "[TOOL:add_component]\ngameobject_name: Floor\ncomponent_type: BoxCollider\n[/TOOL]\n"
    )

    invocations = parse(text)

    assert [inv.name for inv in invocations] == ["create_gameobject", "add_component"]
    assert invocations[1].get("component_type") == "BoxCollider"
    assert invocations[1].get("missing", "fallback") == "fallback"


def test_multiline_script_value():
    """Payload lines that do not look like keys stay in the value"""
    text = (
        "[TOOL:create_script]\n"
        "script_name: Mover\n"
        "script_content: using UnityEngine;\n"
        "public class Mover : MonoBehaviour\n"
        "{\n"
        "    void Update() { transform.Translate(Vector3.forward); }\n"
        "}\n"
        "[/TOOL]"
    )

    inv = parse(text)[0]

    assert inv.get("script_name") == "Mover"
    assert inv.get("script_content") == (
        "using UnityEngine;\n"
        "public class Mover : MonoBehaviour\n"
        "{\n"
        "    void Update() { transform.Translate(Vector3.forward); }\n"
        "}"
    )


def test_colon_beyond_key_column_is_value_text():
    """Test that a late colon is treated as part of the value"""
    long_line = "x" * 60 + ": not a key"
    text = f"[TOOL:write_note]\ntext: first\n{long_line}\n[/TOOL]"

    inv = parse(text)[0]

    assert inv.parameters == {"text": f"first\n{long_line}"}


def test_lowercase_payload_line_starts_new_key():
    """Known ambiguity: `default:` inside a script body becomes a parameter"""
    text = (
        "[TOOL:create_script]\n"
        "script_name: Switcher\n"
        "script_content: switch (mode) {\n"
        "default: break;\n"
        "}\n"
        "[/TOOL]"
    )

    inv = parse(text)[0]

    assert inv.get("script_content") == "switch (mode) {"
    assert inv.get("default") == "break;\n}"


def test_url_value_keeps_its_colons():
    """Test that URL values keep their colons intact"""
    inv = parse("[TOOL:open_url]\nurl: https://example.com:8080/a\n[/TOOL]")[0]

    assert inv.get("url") == "https://example.com:8080/a"


def test_unterminated_close_stops_parsing():
    """Test that a missing close marker ends parsing"""
    text = "[TOOL:a]\nx: 1\n[/TOOL]\n[TOOL:b]\ny: 2\n"

    invocations = parse(text)

    assert [inv.name for inv in invocations] == ["a"]


def test_unterminated_marker_stops_parsing():
    """Test that a truncated opening marker ends parsing"""
    assert parse("[TOOL:broken\nx: 1\n") == []


def test_empty_name_is_skipped():
    """Test that a directive without a name is ignored"""
    text = "[TOOL:]\nx: 1\n[/TOOL]\n[TOOL:ok]\n[/TOOL]"

    invocations = parse(text)

    assert invocations == [Invocation("ok", {})]


def test_text_without_directives():
    """Test that plain text yields no invocations"""
    parser = CallParser()

    assert parse("Just chatting, no tools here.") == []
    assert not parser.has_directives("Just chatting")


def test_render_parse_round_trip():
    """Test that rendered directives parse back to the same invocation"""
    inv = Invocation("set_position", {"name": "Player", "x": "1.5", "y": "0", "z": "-3"})

    assert parse(render(inv)) == [inv]


def test_action_dialect():
    """Test parsing of the alternate action dialect"""
    text = "[ACTION:jump]\nheight: 2\n[/ACTION]\n[TOOL:ignored]\n[/TOOL]"

    invocations = parse(text, ACTION_SYNTAX)

    assert invocations == [Invocation("jump", {"height": "2"})]


def test_splice_replaces_spans_right_to_left():
    """Test that results are spliced in without shifting earlier spans"""
    text = "A [TOOL:one]\n[/TOOL] B [TOOL:two]\n[/TOOL] C"
    first, second = parse(text)

    result = splice(text, [(first, "<1>"), (second, "<second>")])

    assert result == "A <1> B <second> C"


def test_strip_directives():
    """Test removal of directive blocks from text"""
    text = "Creating it now.\n[TOOL:create_gameobject]\nname: Crate\n[/TOOL]"

    assert strip_directives(text) == "Creating it now."


def test_thought_blocks():
    """Test extraction of thought blocks"""
    text = "[THOUGHT]Need a floor first[/THOUGHT]\nOn it.\n[THOUGHT] then walls [/THOUGHT]"

    assert extract_thoughts(text) == ["Need a floor first", "then walls"]
    assert strip_thoughts(text) == "On it."


def test_key_heuristics():
    """Test recognition of parameter keys"""
    assert split_key_line("name: Crate") == ("name", "Crate")
    assert split_key_line(": no key") is None
    assert split_key_line("no separator") is None
    assert is_recognized_key("gameObjectName")
    assert is_recognized_key("x")
    assert not is_recognized_key("Vector3")
    assert not is_recognized_key("public class Mover")
    assert not is_recognized_key("Update()")


def test_custom_key_column_limit():
    """Test a configured key column limit"""
    parser = CallParser(key_column_limit=5)

    inv = parser.parse("[TOOL:t]\nname: a\nlonger_key: b\n[/TOOL]")[0]

    assert inv.parameters == {"name": "a\nlonger_key: b"}
