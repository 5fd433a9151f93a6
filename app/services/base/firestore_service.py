"""
Base Firestore service with common read/write operations
"""
import logging
from typing import List, Dict, Any, Optional, Iterable

from google.api_core import exceptions as google_exceptions

from ...core.exceptions import FirestoreException

logger = logging.getLogger(__name__)

# Backend errors that mean "this dataset is not available to us" rather than a failure
MISSING_DATA_ERRORS = (google_exceptions.NotFound, google_exceptions.PermissionDenied)


class FirestoreBaseService:
    """Base service for Firestore operations"""

    def __init__(self, collection_name: str, db=None):
        """
        Initialize base service

        Args:
            collection_name: Name of the Firestore collection
            db: Firestore client; defaults to the initialized Firebase app's client
        """
        if db is None:
            from ...core.firebase_config import get_db
            db = get_db()
        self.collection_name = collection_name
        self.db = db
        self.collection = self.db.collection(collection_name)

    @staticmethod
    def _to_dict(doc) -> Dict[str, Any]:
        data = doc.to_dict() or {}
        data['id'] = doc.id
        return data

    def _stream(self, query) -> List[Dict[str, Any]]:
        return [self._to_dict(doc) for doc in query.stream()]

    async def query(
        self,
        filters: Iterable[tuple] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        missing_ok: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Query documents with custom filters

        Args:
            filters: List of (field, operator, value) tuples
            order_by: Field to order by
            descending: Order direction
            limit: Maximum number of results
            missing_ok: Treat a missing or forbidden collection as empty

        Returns:
            List of matching documents

        Raises:
            FirestoreException: If query fails
        """
        try:
            query = self.collection

            for field, operator, value in filters:
                query = query.where(field, operator, value)

            if order_by:
                direction = "DESCENDING" if descending else "ASCENDING"
                query = query.order_by(order_by, direction=direction)

            if limit:
                query = query.limit(limit)

            results = self._stream(query)

            logger.info(f"Query returned {len(results)} documents from {self.collection_name}")
            return results

        except MISSING_DATA_ERRORS as e:
            if not missing_ok:
                logger.error(f"Collection {self.collection_name} unavailable: {str(e)}")
                raise FirestoreException(
                    f"Failed to query {self.collection_name}",
                    details={"error": str(e)}
                )
            logger.warning(f"Collection {self.collection_name} unavailable, treating as empty: {str(e)}")
            return []
        except Exception as e:
            logger.error(f"Error querying {self.collection_name}: {str(e)}")
            raise FirestoreException(
                f"Failed to query {self.collection_name}",
                details={"error": str(e)}
            )

    async def get_many(self, doc_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """
        Batch-read documents by ID. Missing documents, and IDs that cannot name
        a document in this collection, are left out.

        Returns:
            Mapping of document ID to document data
        """
        ids = [doc_id for doc_id in dict.fromkeys(doc_ids) if doc_id and "/" not in doc_id]
        if not ids:
            return {}
        try:
            refs = [self.collection.document(doc_id) for doc_id in ids]
            found = {}
            for doc in self.db.get_all(refs):
                if doc.exists:
                    found[doc.id] = self._to_dict(doc)
            logger.info(f"Batch read {len(found)}/{len(ids)} documents from {self.collection_name}")
            return found
        except Exception as e:
            logger.error(f"Error batch reading from {self.collection_name}: {str(e)}")
            raise FirestoreException(
                f"Failed to read documents from {self.collection_name}",
                details={"error": str(e)}
            )

    async def upsert(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or overwrite a document under a known ID

        Raises:
            FirestoreException: If the write fails
        """
        try:
            self.collection.document(doc_id).set(data)
            logger.info(f"Wrote document {doc_id} to {self.collection_name}")
            return {**data, 'id': doc_id}
        except Exception as e:
            logger.error(f"Error writing document {doc_id} to {self.collection_name}: {str(e)}")
            raise FirestoreException(
                f"Failed to write document to {self.collection_name}",
                details={"doc_id": doc_id, "error": str(e)}
            )

    async def delete(self, doc_id: str) -> None:
        """
        Delete a document. Deleting a missing document is not an error.

        Raises:
            FirestoreException: If deletion fails
        """
        try:
            self.collection.document(doc_id).delete()
            logger.info(f"Deleted document {doc_id} from {self.collection_name}")
        except Exception as e:
            logger.error(f"Error deleting document {doc_id} from {self.collection_name}: {str(e)}")
            raise FirestoreException(
                f"Failed to delete document from {self.collection_name}",
                details={"doc_id": doc_id, "error": str(e)}
            )

    async def count(self) -> int:
        """Number of documents in the collection"""
        try:
            results = self.collection.count().get()
            return int(results[0][0].value)
        except Exception as e:
            logger.error(f"Error counting {self.collection_name}: {str(e)}")
            raise FirestoreException(
                f"Failed to count {self.collection_name}",
                details={"error": str(e)}
            )
