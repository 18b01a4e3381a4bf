"""
Cloud Firestore document store
Backed by the async client from firebase_admin
"""

import logging
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .document_store import BatchWrite, DocumentStore, Predicate, StoredDocument, WriteKind
from .exceptions import DocumentNotFoundException, DocumentStoreException, PreconditionFailedException

logger = logging.getLogger(__name__)


class FirestoreDocumentStore(DocumentStore):
    """Firestore implementation of the document store interface"""

    def __init__(self, client=None, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        if client is None:
            from .firebase import get_firestore_client
            client = get_firestore_client()
        self.client = client

    async def _get(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            snapshot = await self.client.document(path).get()
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreException(f"Failed to read {path}: {e}")
        return snapshot.to_dict() if snapshot.exists else None

    async def _set(self, path: str, data: Dict[str, Any]) -> None:
        try:
            await self.client.document(path).set(data)
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreException(f"Failed to write {path}: {e}")

    async def _update(self, path: str, data: Dict[str, Any]) -> None:
        try:
            await self.client.document(path).update(data)
        except google_exceptions.NotFound:
            raise DocumentNotFoundException(path)
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreException(f"Failed to update {path}: {e}")

    async def _delete(self, path: str) -> None:
        try:
            await self.client.document(path).delete()
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreException(f"Failed to delete {path}: {e}")

    async def _query(self, path: str, predicates: List[Predicate]) -> List[StoredDocument]:
        query = self.client.collection(path)
        for predicate in predicates:
            query = query.where(filter=FieldFilter(predicate.field, predicate.op, predicate.value))

        results = []
        try:
            async for snapshot in query.stream():
                results.append(
                    StoredDocument(
                        id=snapshot.id,
                        path=snapshot.reference.path,
                        data=snapshot.to_dict() or {},
                    )
                )
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreException(f"Failed to query {path}: {e}")
        return results

    async def _commit(self, writes: List[BatchWrite]) -> None:
        """
        Run the batch as a single-attempt transaction.

        Preconditioned documents are re-read inside the transaction so the
        compare-and-swap check and the writes commit at the same instant.
        A failed check raises before any write is buffered.
        """
        transaction = self.client.transaction(max_attempts=1)

        @firestore.async_transactional
        async def apply(transaction):
            for write in writes:
                if not write.precondition:
                    continue
                snapshot = await self.client.document(write.path).get(transaction=transaction)
                current = snapshot.to_dict() if snapshot.exists else None
                for field_name, expected in write.precondition.items():
                    if current is None or current.get(field_name) != expected:
                        raise PreconditionFailedException(write.path, field_name)

            for write in writes:
                ref = self.client.document(write.path)
                if write.kind == WriteKind.SET:
                    transaction.set(ref, write.data)
                elif write.kind == WriteKind.UPDATE:
                    transaction.update(ref, write.data)
                else:
                    transaction.delete(ref)

        try:
            await apply(transaction)
        except google_exceptions.NotFound as e:
            raise DocumentNotFoundException(str(e))
        except google_exceptions.GoogleAPICallError as e:
            raise DocumentStoreException(f"Atomic batch failed: {e}")
