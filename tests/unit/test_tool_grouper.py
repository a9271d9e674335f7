"""
Tests for execution grouping
"""

import pytest

from ai_director.tools.call_parser import Invocation
from ai_director.tools.tool_grouper import ToolGrouper


def inv(tool, **params):
    return Invocation(tool, params)


def test_queries_are_singletons():
    """Test that queries run in their own group"""
    grouper = ToolGrouper()
    invocations = [
        inv("create_gameobject", name="Crate"),
        inv("find_gameobjects"),
        inv("set_position", name="Crate", x="1"),
    ]

    groups = grouper.group(invocations)

    assert [g.label for g in groups] == ["Object: Crate", "Query: find_gameobjects", "Object: Crate"]
    assert groups[1].is_query
    assert groups[1].target_key is None


def test_same_target_is_batched_until_target_changes():
    """Test batching until the target changes"""
    grouper = ToolGrouper()
    invocations = [
        inv("create_gameobject", name="Player"),
        inv("add_component", gameobject_name="Player", component_type="Rigidbody"),
        inv("create_gameobject", name="Enemy"),
    ]

    groups = grouper.group(invocations)

    assert [g.tool_names for g in groups] == [["create_gameobject", "add_component"], ["create_gameobject"]]
    assert groups[0].target_key == "Player"


def test_group_size_cap():
    """Test the group size cap"""
    grouper = ToolGrouper()
    invocations = [inv("set_color", name="Wall", value=str(i)) for i in range(12)]

    groups = grouper.group(invocations)

    assert [len(g) for g in groups] == [5, 5, 2]
    assert all(len(g) <= 5 for g in groups)


def test_untargeted_operations_group():
    """Test grouping of untargeted operations"""
    groups = ToolGrouper().group([inv("save_scene"), inv("refresh_assets")])

    assert len(groups) == 1
    assert groups[0].label == "Operations: save_scene"


def test_order_preserved_and_nothing_dropped():
    """Test that order is kept and nothing is dropped"""
    invocations = [
        inv("create_gameobject", name="A"),
        inv("get_scene_info"),
        inv("create_material", material_name="Red"),
        inv("set_material", material_name="Red"),
        inv("save_scene"),
        inv("create_gameobject", name="A"),
    ]

    groups = ToolGrouper().group(invocations)

    assert [i for g in groups for i in g.invocations] == invocations


def test_configured_query_tools_and_limit(config):
    """Test configured query tools and group limit"""
    grouper = ToolGrouper.from_config(config.get_section("grouper"))

    assert grouper.is_query(inv("get_gameobject_info", name="A"))
    assert grouper.extract_target(inv("x", gameobject_name="B", material_name="M")) == "B"

    with pytest.raises(ValueError):
        ToolGrouper(max_group_size=0)
