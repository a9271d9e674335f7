"""
Byte stores used by the memory store and vector index.

The stores only move opaque bytes; record encoding lives with the
structure that owns it (JSON in both cases).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from ..core.errors import PersistenceError

logger = logging.getLogger(__name__)


class ByteStore(Protocol):
    def load(self) -> Optional[bytes]:
        """Stored blob, or None when nothing was saved yet"""

    def save(self, blob: bytes) -> None:
        ...


class FileByteStore:
    """Blob in a single file, written via a temp file and rename"""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e

    def save(self, blob: bytes) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_bytes(blob)
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e

    def __repr__(self) -> str:
        return f"FileByteStore({str(self.path)!r})"


class InMemoryByteStore:
    """Keeps the last saved blob in memory (tests, ephemeral sessions)"""

    def __init__(self, blob: Optional[bytes] = None):
        self.blob = blob
        self.saves = 0

    def load(self) -> Optional[bytes]:
        return self.blob

    def save(self, blob: bytes) -> None:
        self.blob = blob
        self.saves += 1


def load_json(store: Optional[ByteStore], label: str) -> Dict[str, Any]:
    """Decode a JSON object blob; unreadable or corrupt data loads as empty"""
    if store is None:
        return {}
    try:
        blob = store.load()
    except PersistenceError as e:
        logger.warning(f"[{label}] {e}")
        return {}
    if not blob:
        return {}
    try:
        data = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"[{label}] Ignoring corrupt blob: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def save_json(store: Optional[ByteStore], data: Dict[str, Any], label: str) -> bool:
    """Encode and save; failures are logged, not raised"""
    if store is None:
        return False
    try:
        store.save(json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8"))
    except PersistenceError as e:
        logger.warning(f"[{label}] Save failed: {e}")
        return False
    return True
