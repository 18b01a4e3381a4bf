"""
Remote document store interface
Per-document CRUD, collection queries and all-or-nothing batch writes
"""

import abc
import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Sequence, TypeVar

from .config import settings
from .exceptions import StoreTimeoutException

logger = logging.getLogger(__name__)

T = TypeVar("T")

PREDICATE_OPERATORS = {"==", "!=", "<", "<=", ">", ">=", "in", "not-in", "array-contains"}


@dataclass(frozen=True)
class Predicate:
    """Simple field filter for collection queries"""
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in PREDICATE_OPERATORS:
            raise ValueError(f"Unsupported predicate operator: {self.op}")


class WriteKind(str, enum.Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class BatchWrite:
    """
    One write inside an atomic batch

    precondition maps field names to the value the stored document must
    still hold when the batch commits (compare-and-swap).
    """
    kind: WriteKind
    path: str
    data: Dict[str, Any] = field(default_factory=dict)
    precondition: Optional[Dict[str, Any]] = None

    @classmethod
    def set(cls, path: str, data: Dict[str, Any]) -> "BatchWrite":
        return cls(WriteKind.SET, path, data)

    @classmethod
    def update(
        cls,
        path: str,
        data: Dict[str, Any],
        precondition: Optional[Dict[str, Any]] = None
    ) -> "BatchWrite":
        return cls(WriteKind.UPDATE, path, data, precondition)

    @classmethod
    def delete(cls, path: str) -> "BatchWrite":
        return cls(WriteKind.DELETE, path)


@dataclass
class StoredDocument:
    """Document returned from a collection query"""
    id: str
    path: str
    data: Dict[str, Any]


class DocumentStore(abc.ABC):
    """
    Narrow interface over the hosted document database.

    Every public call is bounded by ``timeout`` seconds; on expiry a
    StoreTimeoutException is raised and the caller must assume nothing
    about whether the remote side applied the call.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Document store {operation} timed out after {self.timeout}s")
            raise StoreTimeoutException(operation, self.timeout)

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        """Fetch a document, None when absent"""
        return await self._bounded("get", self._get(path))

    async def set_document(self, path: str, data: Dict[str, Any]) -> None:
        """Create or overwrite a document"""
        await self._bounded("set", self._set(path, data))

    async def update_document(self, path: str, data: Dict[str, Any]) -> None:
        """Merge fields into an existing document"""
        await self._bounded("update", self._update(path, data))

    async def delete_document(self, path: str) -> None:
        await self._bounded("delete", self._delete(path))

    async def query_collection(
        self,
        path: str,
        predicates: Sequence[Predicate] = ()
    ) -> List[StoredDocument]:
        """Documents directly under a collection matching all predicates"""
        return await self._bounded("query", self._query(path, list(predicates)))

    async def run_atomic_batch(self, writes: Sequence[BatchWrite]) -> None:
        """Apply every write or none of them"""
        await self._bounded("batch", self._commit(list(writes)))

    def new_document_id(self) -> str:
        return uuid.uuid4().hex[:20]

    @abc.abstractmethod
    async def _get(self, path: str) -> Optional[Dict[str, Any]]:
        ...

    @abc.abstractmethod
    async def _set(self, path: str, data: Dict[str, Any]) -> None:
        ...

    @abc.abstractmethod
    async def _update(self, path: str, data: Dict[str, Any]) -> None:
        ...

    @abc.abstractmethod
    async def _delete(self, path: str) -> None:
        ...

    @abc.abstractmethod
    async def _query(self, path: str, predicates: List[Predicate]) -> List[StoredDocument]:
        ...

    @abc.abstractmethod
    async def _commit(self, writes: List[BatchWrite]) -> None:
        ...


def matches(data: Dict[str, Any], predicate: Predicate) -> bool:
    """Evaluate a predicate against a document body"""
    present = predicate.field in data
    value = data.get(predicate.field)
    op = predicate.op

    if op == "==":
        return present and value == predicate.value
    if op == "!=":
        # Firestore excludes documents missing the field from != queries
        return present and value != predicate.value
    if op == "in":
        return present and value in predicate.value
    if op == "not-in":
        return present and value not in predicate.value
    if op == "array-contains":
        return present and isinstance(value, list) and predicate.value in value
    if not present or value is None:
        return False
    try:
        if op == "<":
            return value < predicate.value
        if op == "<=":
            return value <= predicate.value
        if op == ">":
            return value > predicate.value
        if op == ">=":
            return value >= predicate.value
    except TypeError:
        return False
    return False


def create_document_store(config=None) -> DocumentStore:
    """Build the backend selected by STORE_BACKEND"""
    config = config or settings
    backend = config.STORE_BACKEND.lower()

    if backend == "memory":
        from .memory_store import InMemoryDocumentStore
        return InMemoryDocumentStore(timeout=config.STORE_TIMEOUT_SECONDS)
    if backend == "firestore":
        from .firestore_store import FirestoreDocumentStore
        return FirestoreDocumentStore(timeout=config.STORE_TIMEOUT_SECONDS)
    raise ValueError(f"Unknown STORE_BACKEND: {config.STORE_BACKEND}")
