#!/usr/bin/env python3
"""
Vector Store
In-process cosine-similarity index over text embeddings.

The default embedding is a deterministic hashed bag of keywords plus
character windows. An Ollama embedding model can be used instead through
the same embed()/search() contract.
"""

import logging
import zlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np
import ollama

from .persistence import ByteStore, load_json, save_json

logger = logging.getLogger(__name__)

DEFAULT_DIMENSIONS = 128
NGRAM_SIZE = 5
NGRAM_STRIDE = 10
NGRAM_SPAN = 1000
NGRAM_WEIGHT = 0.1

KEYWORD_WEIGHTS: Dict[str, float] = {
    "class": 1.0,
    "public": 0.8,
    "private": 0.8,
    "void": 0.9,
    "return": 0.9,
    "if": 0.7,
    "for": 0.7,
    "while": 0.7,
    "foreach": 0.7,
    "update": 1.2,
    "start": 1.2,
    "awake": 1.2,
    "gameobject": 1.5,
    "transform": 1.5,
    "vector": 1.3,
    "monobehaviour": 1.8,
    "component": 1.5,
    "player": 1.4,
    "enemy": 1.4,
    "health": 1.4,
    "damage": 1.4,
    "movement": 1.4,
    "controller": 1.6,
}


def _bucket(token: str, dimensions: int) -> int:
    return zlib.crc32(token.encode("utf-8")) % dimensions


def embed(text: str, dimensions: int = DEFAULT_DIMENSIONS) -> np.ndarray:
    """
    Hashed feature vector, L2-normalized (zero vector stays zero).

    Keywords contribute their weight when they occur anywhere in the
    lower-cased text; 5-character windows at stride 10 over the first
    1000 characters contribute a small fixed weight.
    """
    vector = np.zeros(dimensions, dtype=np.float64)
    lower = (text or "").lower()

    for keyword, weight in KEYWORD_WEIGHTS.items():
        if keyword in lower:
            vector[_bucket(keyword, dimensions)] += weight

    for i in range(0, min(len(lower), NGRAM_SPAN), NGRAM_STRIDE):
        if i + NGRAM_SIZE < len(lower):
            vector[_bucket(lower[i:i + NGRAM_SIZE], dimensions)] += NGRAM_WEIGHT

    norm = np.linalg.norm(vector)
    if norm > 0:
        vector /= norm
    return vector


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine in [-1, 1]; 0.0 for mismatched lengths or a zero vector"""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.size == 0:
        return 0.0
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / (na * nb), -1.0, 1.0))


class Embedder(Protocol):
    dimensions: int

    def embed(self, text: str) -> np.ndarray:
        ...


class HashingEmbedder:
    """Default deterministic embedder"""

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS):
        self.dimensions = dimensions

    def embed(self, text: str) -> np.ndarray:
        return embed(text, self.dimensions)


class OllamaEmbedder:
    """Learned embeddings from a local Ollama model (e.g. nomic-embed-text)"""

    def __init__(self, model: str = "nomic-embed-text", host: Optional[str] = None, dimensions: int = 768):
        self.model = model
        self.dimensions = dimensions
        self._client = ollama.Client(host=host) if host else ollama.Client()

    def embed(self, text: str) -> np.ndarray:
        response = self._client.embed(model=self.model, input=text)
        vector = np.array(response["embeddings"], dtype=np.float64).flatten()
        self.dimensions = vector.size
        norm = np.linalg.norm(vector)
        return vector / norm if norm > 0 else vector


@dataclass
class VectorEntry:
    """One indexed content unit"""
    id: str
    content: str
    embedding: np.ndarray
    metadata: Dict[str, str] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def from_text(
        cls,
        entry_id: str,
        content: str,
        dimensions: int = DEFAULT_DIMENSIONS,
        metadata: Optional[Dict[str, str]] = None
    ) -> 'VectorEntry':
        return cls(entry_id, content, embed(content, dimensions), dict(metadata or {}))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "embedding": [float(x) for x in self.embedding],
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VectorEntry':
        return cls(
            id=str(data["id"]),
            content=str(data.get("content", "")),
            embedding=np.asarray(data.get("embedding") or [], dtype=np.float64),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
            created_at=data.get("created_at") or datetime.now().isoformat(),
        )


class VectorIndex:
    """
    Brute-force nearest-neighbour index.
    Upserts by id; the replacement takes the newest insertion position.
    Persisted after every mutation when a byte store is given.
    """

    def __init__(
        self,
        store: Optional[ByteStore] = None,
        embedder: Optional[Embedder] = None,
        dimensions: int = DEFAULT_DIMENSIONS
    ):
        self.byte_store = store
        self.embedder = embedder or HashingEmbedder(dimensions)
        self.entries: List[VectorEntry] = []
        self.load()

    @property
    def dimensions(self) -> int:
        return self.embedder.dimensions

    def __len__(self) -> int:
        return len(self.entries)

    def embed(self, text: str) -> np.ndarray:
        return self.embedder.embed(text)

    def add(self, entry: VectorEntry) -> None:
        self.entries = [e for e in self.entries if e.id != entry.id]
        self.entries.append(entry)
        self.save()

    def add_text(self, entry_id: str, content: str, metadata: Optional[Dict[str, str]] = None) -> VectorEntry:
        entry = VectorEntry(entry_id, content, self.embed(content), dict(metadata or {}))
        self.add(entry)
        return entry

    def get(self, entry_id: str) -> Optional[VectorEntry]:
        return next((e for e in self.entries if e.id == entry_id), None)

    def remove(self, entry_id: str) -> bool:
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.id != entry_id]
        if len(self.entries) == before:
            return False
        self.save()
        return True

    def clear(self) -> None:
        self.entries.clear()
        self.save()

    def search(
        self,
        query_vector: Sequence[float],
        top_k: int = 5,
        threshold: float = 0.0
    ) -> List[Tuple[VectorEntry, float]]:
        """Top-k entries with similarity >= threshold, best first, ties in insertion order"""
        if top_k <= 0:
            return []
        scored = [(entry, cosine_similarity(query_vector, entry.embedding)) for entry in self.entries]
        scored = [(entry, score) for entry, score in scored if score >= threshold]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:top_k]

    def search_text(self, query: str, top_k: int = 5, threshold: float = 0.0) -> List[Tuple[VectorEntry, float]]:
        return self.search(self.embed(query), top_k, threshold)

    def search_by_metadata(self, key: str, value: str) -> List[VectorEntry]:
        return [e for e in self.entries if e.metadata.get(key) == value]

    def stats(self) -> Dict[str, Any]:
        by_type: Dict[str, int] = {}
        for entry in self.entries:
            kind = entry.metadata.get("type", "unknown")
            by_type[kind] = by_type.get(kind, 0) + 1
        return {
            "total_entries": len(self.entries),
            "dimensions": self.dimensions,
            "by_type": by_type,
            "total_characters": sum(len(e.content) for e in self.entries),
        }

    def save(self) -> bool:
        return save_json(self.byte_store, {"entries": [e.to_dict() for e in self.entries]}, "VECTOR")

    def load(self) -> None:
        data = load_json(self.byte_store, "VECTOR")
        loaded = []
        for record in data.get("entries") or []:
            try:
                loaded.append(VectorEntry.from_dict(record))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"[VECTOR] Skipping bad record: {e}")
        self.entries = loaded
        if loaded:
            logger.info(f"[VECTOR] Loaded {len(loaded)} entries")
