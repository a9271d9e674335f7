#!/usr/bin/env python3
"""
Long-Term Memory
Typed, importance-weighted memories that persist across sessions.
Recall is ranked by a relevance score mixing importance and recency.
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.results import ToolResult
from .persistence import ByteStore, load_json, save_json
from .vector_store import VectorIndex

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000
ACCESS_BOOST = 0.05
IMPORTANCE_WEIGHT = 0.7
RECENCY_WEIGHT = 0.3


class MemoryType(Enum):
    EPISODIC = "Episodic"  # events: "Created PlayerController script"
    SEMANTIC = "Semantic"  # facts: "Project uses PascalCase naming"
    USER_PREFERENCE = "UserPreference"
    PROJECT_CONTEXT = "ProjectContext"
    SUCCESS = "Success"
    FAILURE = "Failure"
    INSIGHT = "Insight"
    TOOL = "Tool"


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass
class MemoryEntry:
    """A single remembered item"""
    type: MemoryType
    content: str
    importance: float = 0.5
    metadata: Dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed_at: datetime = field(default_factory=datetime.now)
    access_count: int = 0

    def access(self, now: datetime) -> None:
        """Spaced-repetition style reinforcement"""
        self.access_count += 1
        self.last_accessed_at = now
        self.importance = min(1.0, self.importance + ACCESS_BOOST)

    def relevance(self, now: datetime) -> float:
        """importance*0.7 + recency*0.3, recency = 1 / (1 + hours/24)"""
        hours = max(0.0, (now - self.last_accessed_at).total_seconds() / 3600.0)
        recency = 1.0 / (1.0 + hours / 24.0)
        return self.importance * IMPORTANCE_WEIGHT + recency * RECENCY_WEIGHT

    def normalized_key(self) -> Tuple[MemoryType, str]:
        return self.type, self.content.lower().strip()[:50]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "last_accessed_at": self.last_accessed_at.isoformat(),
            "access_count": self.access_count,
            "importance": self.importance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MemoryEntry':
        return cls(
            id=str(data["id"]),
            type=MemoryType(data["type"]),
            content=str(data.get("content", "")),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
            created_at=datetime.fromisoformat(data["created_at"]),
            last_accessed_at=datetime.fromisoformat(data["last_accessed_at"]),
            access_count=int(data.get("access_count", 0)),
            importance=_clamp01(data.get("importance", 0.5)),
        )

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.content} (Importance: {self.importance:.2f}, Accessed: {self.access_count}x)"


class MemoryStore:
    """
    Capacity-bounded long-term memory.
    Every mutation is written through to the byte store immediately.
    """

    def __init__(
        self,
        store: Optional[ByteStore] = None,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = datetime.now,
        vector_index: Optional[VectorIndex] = None
    ):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.byte_store = store
        self.capacity = capacity
        self.clock = clock
        self.vector_index = vector_index
        self.memories: List[MemoryEntry] = []
        self.load()

    def __len__(self) -> int:
        return len(self.memories)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def store(
        self,
        type: MemoryType,
        content: str,
        importance: float = 0.5,
        metadata: Optional[Dict[str, str]] = None
    ) -> MemoryEntry:
        now = self.clock()
        entry = MemoryEntry(
            type=type,
            content=content,
            importance=_clamp01(importance),
            metadata={str(k): str(v) for k, v in (metadata or {}).items()},
            created_at=now,
            last_accessed_at=now,
        )
        self.memories.append(entry)
        self._index(entry)

        if len(self.memories) > self.capacity:
            self._prune()

        self.save()
        logger.debug(f"[MEMORY] Stored: {entry}")
        return entry

    def record_outcome(
        self,
        capability: str,
        result: ToolResult,
        params: Optional[Dict[str, str]] = None
    ) -> Optional[MemoryEntry]:
        """Success/Failure memory for a dispatch outcome; warnings are not kept"""
        if result.is_warning:
            return None
        target = next((params[k] for k in ("name", "gameobject_name", "script_name") if params and params.get(k)), "")
        subject = f"{capability} {target}".strip()
        if result.is_ok:
            return self.store(
                MemoryType.SUCCESS, f"{subject}: {result.summary(120)}", 0.6,
                {"tool": capability, "status": "ok"},
            )
        return self.store(
            MemoryType.FAILURE, f"{subject} failed: {result.summary(120)}", 0.7,
            {"tool": capability, "status": "error", "kind": result.kind.value if result.kind else ""},
        )

    def update_importance(self, memory_id: str, importance: float) -> bool:
        entry = self._find(memory_id)
        if entry is None:
            return False
        entry.importance = _clamp01(importance)
        self.save()
        return True

    def delete(self, memory_id: str) -> bool:
        entry = self._find(memory_id)
        if entry is None:
            return False
        self.memories.remove(entry)
        self._unindex(entry)
        self.save()
        return True

    def clear(self) -> None:
        for entry in self.memories:
            self._unindex(entry)
        self.memories.clear()
        self.save()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _by_relevance(self, entries: List[MemoryEntry]) -> List[MemoryEntry]:
        now = self.clock()
        return sorted(entries, key=lambda m: m.relevance(now), reverse=True)

    def recall(self, type: MemoryType, limit: int = 10) -> List[MemoryEntry]:
        return self._by_relevance([m for m in self.memories if m.type is type])[:limit]

    def search(self, query: str, limit: int = 10, type: Optional[MemoryType] = None) -> List[MemoryEntry]:
        """Case-insensitive substring match over content and metadata values"""
        needle = query.lower()
        hits = [
            m for m in self.memories
            if (type is None or m.type is type)
            and (needle in m.content.lower() or any(needle in v.lower() for v in m.metadata.values()))
        ]
        return self._by_relevance(hits)[:limit]

    def get_most_important(self, limit: int = 10) -> List[MemoryEntry]:
        return sorted(self.memories, key=lambda m: m.importance, reverse=True)[:limit]

    def get_recent(self, limit: int = 10, type: Optional[MemoryType] = None) -> List[MemoryEntry]:
        pool = [m for m in self.memories if type is None or m.type is type]
        return sorted(pool, key=lambda m: m.created_at, reverse=True)[:limit]

    def get_by_id(self, memory_id: str) -> Optional[MemoryEntry]:
        """Lookup that counts as an access"""
        entry = self._find(memory_id)
        if entry is not None:
            entry.access(self.clock())
            self.save()
        return entry

    def search_similar(self, query: str, limit: int = 5, threshold: float = 0.1) -> List[Tuple[MemoryEntry, float]]:
        """Embedding-based recall; empty without an attached vector index"""
        if self.vector_index is None:
            return []
        by_id = {m.id: m for m in self.memories}
        hits = []
        for vector_entry, score in self.vector_index.search_text(query, top_k=limit * 2, threshold=threshold):
            memory_id = vector_entry.metadata.get("memory_id")
            if memory_id in by_id:
                hits.append((by_id[memory_id], score))
        return hits[:limit]

    def _find(self, memory_id: str) -> Optional[MemoryEntry]:
        return next((m for m in self.memories if m.id == memory_id), None)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _prune(self) -> None:
        """Drop the lowest-relevance entries down to 90% of capacity"""
        to_remove = len(self.memories) - int(self.capacity * 0.9)
        if to_remove <= 0:
            return
        now = self.clock()
        ranked = sorted(self.memories, key=lambda m: m.relevance(now))
        doomed = {m.id for m in ranked[:to_remove]}
        for entry in ranked[:to_remove]:
            self._unindex(entry)
        self.memories = [m for m in self.memories if m.id not in doomed]
        logger.info(f"[MEMORY] Pruned {to_remove} low-relevance memories")

    def consolidate(self) -> int:
        """
        Merge entries sharing type and normalized content prefix.
        The highest-importance entry survives, absorbing access counts and
        10% of each removed entry's importance.

        Returns:
            Number of entries removed
        """
        groups: Dict[Tuple[MemoryType, str], List[MemoryEntry]] = {}
        for entry in self.memories:
            groups.setdefault(entry.normalized_key(), []).append(entry)

        removed_ids = set()
        for members in groups.values():
            if len(members) < 2:
                continue
            keep = max(members, key=lambda m: m.importance)
            others = [m for m in members if m is not keep]
            keep.access_count += sum(m.access_count for m in others)
            keep.importance = min(1.0, keep.importance + sum(m.importance * 0.1 for m in others))
            for entry in others:
                removed_ids.add(entry.id)
                self._unindex(entry)

        if removed_ids:
            self.memories = [m for m in self.memories if m.id not in removed_ids]
            self.save()
            logger.info(f"[MEMORY] Consolidated {len(removed_ids)} duplicate memories")
        return len(removed_ids)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def statistics(self) -> Dict[str, Any]:
        by_type = Counter(m.type.value for m in self.memories)
        most_accessed = sorted(self.memories, key=lambda m: m.access_count, reverse=True)[:3]
        return {
            "total": len(self.memories),
            "capacity": self.capacity,
            "by_type": dict(by_type.most_common()),
            "most_accessed": [(m.content[:50], m.access_count) for m in most_accessed],
            "average_importance": (
                round(sum(m.importance for m in self.memories) / len(self.memories), 2)
                if self.memories else 0.0
            ),
        }

    def context_summary(self, max_items: int = 10) -> str:
        """Markdown block of what the model should keep in mind"""
        lines = ["# Long-Term Memory Context", ""]
        sections = (
            ("Key Information", self.get_most_important(max_items)),
            ("User Preferences", self.recall(MemoryType.USER_PREFERENCE, 5)),
            ("Project Context", self.recall(MemoryType.PROJECT_CONTEXT, 5)),
        )
        for title, entries in sections:
            if entries:
                lines.append(f"## {title}:")
                lines.extend(f"- {m.content}" for m in entries)
                lines.append("")
        return "\n".join(lines).rstrip() + "\n"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> bool:
        return save_json(self.byte_store, {"memories": [m.to_dict() for m in self.memories]}, "MEMORY")

    def load(self) -> None:
        data = load_json(self.byte_store, "MEMORY")
        loaded = []
        for record in data.get("memories") or []:
            try:
                loaded.append(MemoryEntry.from_dict(record))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"[MEMORY] Skipping bad record: {e}")
        self.memories = loaded
        for entry in loaded:
            self._index(entry)
        if loaded:
            logger.info(f"[MEMORY] Loaded {len(loaded)} memories")

    # ------------------------------------------------------------------
    # Vector hook
    # ------------------------------------------------------------------

    def _index(self, entry: MemoryEntry) -> None:
        if self.vector_index is None:
            return
        self.vector_index.add_text(
            f"mem_{entry.id}",
            entry.content,
            {"memory_id": entry.id, "type": entry.type.value},
        )

    def _unindex(self, entry: MemoryEntry) -> None:
        if self.vector_index is not None:
            self.vector_index.remove(f"mem_{entry.id}")
