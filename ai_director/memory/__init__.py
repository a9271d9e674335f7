"""
Memory module - Long-Term Memory, Vector Index, Semantic Search
"""

from .persistence import ByteStore, FileByteStore, InMemoryByteStore
from .long_term import MemoryStore, MemoryEntry, MemoryType
from .vector_store import VectorIndex, VectorEntry, embed, cosine_similarity
from .semantic_search import SemanticSearch, IndexReport

__all__ = [
    'ByteStore',
    'FileByteStore',
    'InMemoryByteStore',
    'MemoryStore',
    'MemoryEntry',
    'MemoryType',
    'VectorIndex',
    'VectorEntry',
    'embed',
    'cosine_similarity',
    'SemanticSearch',
    'IndexReport',
]
