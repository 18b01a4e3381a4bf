"""
In-memory document store
Local development and test backend with the same batch semantics as Firestore
"""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional

from .document_store import BatchWrite, DocumentStore, Predicate, StoredDocument, WriteKind, matches
from .exceptions import DocumentNotFoundException, PreconditionFailedException

logger = logging.getLogger(__name__)


def _check_path(path: str, documents: bool = True) -> List[str]:
    segments = [s for s in path.strip("/").split("/") if s]
    if not segments:
        raise ValueError("Empty document path")
    # Documents live at even depth, collections at odd depth
    if documents and len(segments) % 2 != 0:
        raise ValueError(f"Not a document path: {path}")
    if not documents and len(segments) % 2 != 1:
        raise ValueError(f"Not a collection path: {path}")
    return segments


class InMemoryDocumentStore(DocumentStore):
    """Dictionary of path -> document; values are deep-copied in and out"""

    def __init__(self, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(path: str) -> str:
        return "/".join(_check_path(path))

    async def _get(self, path: str) -> Optional[Dict[str, Any]]:
        doc = self._documents.get(self._key(path))
        return copy.deepcopy(doc) if doc is not None else None

    async def _set(self, path: str, data: Dict[str, Any]) -> None:
        await self._commit([BatchWrite.set(path, data)])

    async def _update(self, path: str, data: Dict[str, Any]) -> None:
        await self._commit([BatchWrite.update(path, data)])

    async def _delete(self, path: str) -> None:
        await self._commit([BatchWrite.delete(path)])

    async def _query(self, path: str, predicates: List[Predicate]) -> List[StoredDocument]:
        prefix = "/".join(_check_path(path, documents=False)) + "/"
        results = []
        for key, data in self._documents.items():
            if not key.startswith(prefix):
                continue
            doc_id = key[len(prefix):]
            # Only direct children, not sub-collection documents
            if "/" in doc_id:
                continue
            if all(matches(data, p) for p in predicates):
                results.append(StoredDocument(id=doc_id, path=key, data=copy.deepcopy(data)))
        return results

    async def _commit(self, writes: List[BatchWrite]) -> None:
        async with self._lock:
            self._validate(writes)
            for write in writes:
                self._apply(write)

    def _validate(self, writes: List[BatchWrite]) -> None:
        # Nothing is applied until every write has been checked
        staged: Dict[str, Optional[Dict[str, Any]]] = {}
        for write in writes:
            key = self._key(write.path)
            current = staged[key] if key in staged else self._documents.get(key)

            if write.precondition:
                for field_name, expected in write.precondition.items():
                    if current is None or current.get(field_name) != expected:
                        raise PreconditionFailedException(key, field_name)

            if write.kind == WriteKind.UPDATE:
                if current is None:
                    raise DocumentNotFoundException(key)
                staged[key] = {**current, **write.data}
            elif write.kind == WriteKind.SET:
                staged[key] = dict(write.data)
            else:
                staged[key] = None

    def _apply(self, write: BatchWrite) -> None:
        key = self._key(write.path)
        if write.kind == WriteKind.SET:
            self._documents[key] = copy.deepcopy(write.data)
        elif write.kind == WriteKind.UPDATE:
            self._documents[key].update(copy.deepcopy(write.data))
        else:
            self._documents.pop(key, None)

    def reset(self) -> None:
        """Drop every stored document"""
        self._documents.clear()

    def dump(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of all documents keyed by path"""
        return copy.deepcopy(self._documents)

    def seed(self, documents: Dict[str, Dict[str, Any]]) -> None:
        """Load documents keyed by path, bypassing batch checks"""
        for path, data in documents.items():
            self._documents[self._key(path)] = copy.deepcopy(data)
