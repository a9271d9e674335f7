"""
Tests for project indexing and retrieval context
"""

from ai_director.memory.semantic_search import SemanticSearch
from ai_director.memory.vector_store import VectorIndex

PLAYER_SCRIPT = """using UnityEngine;

public class PlayerController : MonoBehaviour
{
    public float speed = 5f;

    void Update()
    {
        Vector3 movement = new Vector3(Input.GetAxis("Horizontal"), 0, Input.GetAxis("Vertical"));
        transform.Translate(movement * speed * Time.deltaTime);
    }
}
"""

ENEMY_SCRIPT = """using UnityEngine;

public class EnemyHealth : MonoBehaviour
{
    public int health = 100;

    public void TakeDamage(int damage)
    {
        health -= damage;
        if (health <= 0) Destroy(gameObject);
    }
}
"""


def make_project(root):
    scripts = root / "Assets" / "Scripts"
    scripts.mkdir(parents=True)
    (scripts / "PlayerController.cs").write_text(PLAYER_SCRIPT, encoding="utf-8")
    (scripts / "EnemyHealth.cs").write_text(ENEMY_SCRIPT, encoding="utf-8")
    (scripts / "Tiny.cs").write_text("class Tiny {}", encoding="utf-8")
    (root / "notes.txt").write_text("not matched by the patterns " * 10, encoding="utf-8")
    return root


def test_index_directory(tmp_path):
    """Test indexing a directory"""
    search = SemanticSearch(VectorIndex())

    report = search.index_directory(str(make_project(tmp_path)), patterns=["*.cs"])

    assert report.indexed == 2
    assert report.skipped == 1
    assert search.is_indexed
    entry = search.code_index.get("Assets/Scripts/PlayerController.cs")
    assert entry.metadata == {"type": "script", "name": "PlayerController", "path": "Assets/Scripts/PlayerController.cs"}
    assert "Indexed: 2 files" in report.render()


def test_reindex_requires_force(tmp_path):
    """Test that reindexing needs force"""
    search = SemanticSearch(VectorIndex())
    make_project(tmp_path)
    search.index_directory(str(tmp_path), patterns=["*.cs"])

    again = search.index_directory(str(tmp_path), patterns=["*.cs"])
    forced = search.index_directory(str(tmp_path), patterns=["*.cs"], force=True)

    assert again.indexed == 0
    assert forced.indexed == 2
    assert len(search.code_index) == 2


def test_search_ranks_matching_file_first(tmp_path):
    """Test that the matching file ranks first"""
    search = SemanticSearch(VectorIndex())
    search.index_directory(str(make_project(tmp_path)), patterns=["*.cs"])

    hits = search.search("enemy health damage")

    assert hits[0][0].metadata["name"] == "EnemyHealth"
    text = SemanticSearch.format_results("enemy health damage", hits)
    assert text.startswith('✅ Found')
    assert "1. EnemyHealth (similarity: " in text


def test_relevant_context(tmp_path):
    """Test relevant context formatting"""
    search = SemanticSearch(VectorIndex())
    assert search.relevant_context("player movement") == ""

    search.index_directory(str(make_project(tmp_path)), patterns=["*.cs"])
    context = search.relevant_context("player movement controller", max_results=1, preview_chars=40)

    assert context.startswith("# Relevant Code Context (from your project):")
    assert "## From PlayerController:" in context
    assert "// ..." in context


def test_format_results_empty():
    """Test formatting of empty results"""
    assert SemanticSearch.format_results("nothing", []) == '❌ No relevant code found for "nothing"'


def test_conversations_are_kept_apart():
    """Test that conversations are indexed separately"""
    search = SemanticSearch(VectorIndex(dimensions=64))

    search.add_conversation("How do I move the player?", "Use a CharacterController")
    hits = search.search_conversations("move the player controller")

    assert search.conversation_index.dimensions == 64
    assert len(hits) == 1
    assert hits[0][0].metadata["type"] == "conversation"
    assert search.stats()["code"]["total_entries"] == 0
