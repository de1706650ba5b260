"""Document store interface and implementations.

The store holds debate records, their turn subcollections and the per-user
usage counters. Paths are slash-separated, alternating collection and
document ids: ``arenaDebates/{id}/turns/{turnId}``.
"""

import asyncio
import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class AlreadyExistsError(Exception):
    """Raised when create() targets a document that already exists."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Document already exists: {path}")


def _check_document_path(path: str) -> None:
    segments = path.split("/")
    if len(segments) % 2 != 0 or not all(segments):
        raise ValueError(f"Not a document path: {path!r}")


def _check_collection_path(path: str) -> None:
    segments = path.split("/")
    if len(segments) % 2 != 1 or not all(segments):
        raise ValueError(f"Not a collection path: {path!r}")


class Transaction(ABC):
    """Reads see committed state; writes are buffered and applied atomically on commit."""

    @abstractmethod
    async def get(self, path: str) -> dict | None:
        ...

    @abstractmethod
    def set(self, path: str, data: dict, merge: bool = False) -> None:
        ...


class DocumentStore(ABC):
    """Abstract document store used by the debate pipeline."""

    @abstractmethod
    async def create(self, path: str, data: dict) -> None:
        """Create a document, never overwriting.

        Raises:
            AlreadyExistsError: If a document already exists at path.
        """
        ...

    @abstractmethod
    async def add(self, collection_path: str, data: dict) -> str:
        """Create a document with an auto-generated id and return the id."""
        ...

    @abstractmethod
    async def update(self, path: str, fields: dict) -> None:
        """Merge fields into an existing document.

        Raises:
            KeyError: If no document exists at path.
        """
        ...

    @abstractmethod
    async def get(self, path: str) -> dict | None:
        ...

    @abstractmethod
    async def list_documents(self, collection_path: str) -> list[tuple[str, dict]]:
        """Return (id, data) for every document directly in the collection."""
        ...

    @abstractmethod
    def transaction(self) -> "AsyncIterator[Transaction]":
        """Async context manager yielding a Transaction; concurrent transactions are serialized."""
        ...

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex[:20]


class _MemoryTransaction(Transaction):
    def __init__(self, docs: dict[str, dict]) -> None:
        self._docs = docs
        self.writes: list[tuple[str, dict, bool]] = []

    async def get(self, path: str) -> dict | None:
        _check_document_path(path)
        # Give other tasks a chance to run so contention is real in tests.
        await asyncio.sleep(0)
        doc = self._docs.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, path: str, data: dict, merge: bool = False) -> None:
        _check_document_path(path)
        self.writes.append((path, copy.deepcopy(data), merge))


class MemoryStore(DocumentStore):
    """In-process store. A single asyncio lock serializes all writes and transactions."""

    def __init__(self) -> None:
        self._docs: dict[str, dict] = {}
        self._lock = asyncio.Lock()

    async def _commit(self) -> None:
        """Hook called after every committed write, with the lock held."""

    async def create(self, path: str, data: dict) -> None:
        _check_document_path(path)
        async with self._lock:
            if path in self._docs:
                raise AlreadyExistsError(path)
            self._docs[path] = copy.deepcopy(data)
            await self._commit()

    async def add(self, collection_path: str, data: dict) -> str:
        _check_collection_path(collection_path)
        doc_id = self.new_id()
        await self.create(f"{collection_path}/{doc_id}", data)
        return doc_id

    async def update(self, path: str, fields: dict) -> None:
        _check_document_path(path)
        async with self._lock:
            if path not in self._docs:
                raise KeyError(path)
            self._docs[path].update(copy.deepcopy(fields))
            await self._commit()

    async def get(self, path: str) -> dict | None:
        _check_document_path(path)
        doc = self._docs.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    async def list_documents(self, collection_path: str) -> list[tuple[str, dict]]:
        _check_collection_path(collection_path)
        prefix = collection_path + "/"
        depth = collection_path.count("/") + 1
        return [
            (path[len(prefix):], copy.deepcopy(doc))
            for path, doc in self._docs.items()
            if path.startswith(prefix) and path.count("/") == depth
        ]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        async with self._lock:
            tx = _MemoryTransaction(self._docs)
            yield tx
            for path, data, merge in tx.writes:
                if merge and path in self._docs:
                    self._docs[path].update(data)
                else:
                    self._docs[path] = data
            if tx.writes:
                await self._commit()


def _encode(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


class JsonFileStore(MemoryStore):
    """MemoryStore persisted to a single JSON file after every committed write."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path
        if path.exists():
            with path.open("r", encoding="utf-8") as f:
                self._docs = json.load(f)
            logger.debug("Loaded %d documents from %s", len(self._docs), path)

    async def _commit(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._docs, default=_encode, indent=2), encoding="utf-8")
        tmp.replace(self._path)
