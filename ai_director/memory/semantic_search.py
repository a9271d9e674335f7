#!/usr/bin/env python3
"""
Semantic Search
Project-level indexing on top of VectorIndex: index source files,
search them by meaning, and build retrieval context for the model.
"""

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .vector_store import VectorEntry, VectorIndex

logger = logging.getLogger(__name__)

DEFAULT_PATTERNS = ("*.cs", "*.py", "*.md")


@dataclass
class IndexReport:
    indexed: int = 0
    skipped: int = 0
    failed: List[str] = field(default_factory=list)

    def render(self) -> str:
        lines = [
            "✅ Indexing complete!",
            f"  - Indexed: {self.indexed} files",
            f"  - Skipped: {self.skipped} files",
        ]
        if self.failed:
            lines.append(f"  - Failed: {len(self.failed)} ({', '.join(self.failed[:5])})")
        return "\n".join(lines)


class SemanticSearch:
    """Code index plus conversation memory, both vector-backed"""

    def __init__(
        self,
        code_index: VectorIndex,
        conversation_index: Optional[VectorIndex] = None,
        min_content_length: int = 100,
        search_threshold: float = 0.1,
        context_threshold: float = 0.2
    ):
        self.code_index = code_index
        if conversation_index is None:
            conversation_index = VectorIndex(dimensions=code_index.dimensions)
        self.conversation_index = conversation_index
        self.min_content_length = min_content_length
        self.search_threshold = search_threshold
        self.context_threshold = context_threshold

    @property
    def is_indexed(self) -> bool:
        return len(self.code_index) > 0

    def index_directory(
        self,
        root: str,
        patterns: Sequence[str] = DEFAULT_PATTERNS,
        force: bool = False
    ) -> IndexReport:
        """One entry per file; files shorter than min_content_length are skipped"""
        report = IndexReport()
        if self.is_indexed and not force:
            logger.info("[SEMANTIC] Already indexed; pass force=True to rebuild")
            return report

        self.code_index.clear()
        base = Path(root)
        files = sorted({p for pattern in patterns for p in base.rglob(pattern) if p.is_file()})

        for path in files:
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"[SEMANTIC] Failed to index {path}: {e}")
                report.failed.append(str(path))
                continue
            if len(content) < self.min_content_length:
                report.skipped += 1
                continue
            rel = path.relative_to(base).as_posix()
            self.code_index.add_text(rel, content, {"type": "script", "name": path.stem, "path": rel})
            report.indexed += 1

        logger.info(f"[SEMANTIC] Indexed {report.indexed}, skipped {report.skipped}")
        return report

    def search(self, query: str, top_k: int = 5) -> List[Tuple[VectorEntry, float]]:
        return self.code_index.search_text(query, top_k=top_k, threshold=self.search_threshold)

    def find_similar(self, snippet: str, top_k: int = 5) -> List[Tuple[VectorEntry, float]]:
        """Entries resembling the snippet, excluding those that contain it verbatim"""
        hits = self.code_index.search_text(snippet, top_k=top_k + 1, threshold=self.search_threshold)
        return [(e, s) for e, s in hits if snippet not in e.content][:top_k]

    def relevant_context(self, task: str, max_results: int = 3, preview_chars: int = 500) -> str:
        """Markdown context block for the model; empty when nothing is relevant"""
        if not self.is_indexed:
            return ""
        hits = self.code_index.search_text(task, top_k=max_results, threshold=self.context_threshold)
        if not hits:
            return ""

        lines = ["# Relevant Code Context (from your project):", ""]
        for entry, _score in hits:
            preview = entry.content
            if len(preview) > preview_chars:
                preview = preview[:preview_chars] + "\n// ..."
            lines.append(f"## From {entry.metadata.get('name', 'Unknown')}:")
            lines.append("```")
            lines.append(preview)
            lines.append("```")
            lines.append("")
        return "\n".join(lines)

    def add_conversation(self, query: str, response: str) -> VectorEntry:
        return self.conversation_index.add_text(
            f"conv_{uuid.uuid4().hex}",
            f"Query: {query}\nResponse: {response}",
            {"type": "conversation", "query": query},
        )

    def search_conversations(self, query: str, top_k: int = 3) -> List[Tuple[VectorEntry, float]]:
        return self.conversation_index.search_text(query, top_k=top_k, threshold=self.search_threshold)

    def stats(self) -> Dict[str, Any]:
        return {
            "code": self.code_index.stats(),
            "conversations": self.conversation_index.stats(),
        }

    @staticmethod
    def format_results(query: str, hits: List[Tuple[VectorEntry, float]]) -> str:
        """Human/model readable search listing"""
        if not hits:
            return f"❌ No relevant code found for \"{query}\""
        lines = [f"✅ Found {len(hits)} relevant result(s) for \"{query}\":", ""]
        for rank, (entry, score) in enumerate(hits, 1):
            lines.append(f"{rank}. {entry.metadata.get('name', 'Unknown')} (similarity: {score:.3f})")
            lines.append(f"   {entry.metadata.get('path', entry.id)}")
            preview = [ln.strip() for ln in entry.content[:200].splitlines() if ln.strip()][:5]
            lines.extend(f"      {ln}" for ln in preview)
            lines.append("")
        return "\n".join(lines).rstrip()
