"""
Base repository pattern implementation for MongoDB collections.
"""
from typing import Any, Dict, List, Optional

from app.db.mongodb import get_collection
from app.utils.id_handler import IdHandler


class BaseRepository:
    """
    Base repository class that implements standard operations for MongoDB collections.
    Records are addressed by their business key (``requestId``, ``userId``,
    ``id``), never by ``_id``, which stays internal to the store.
    """

    def __init__(self, collection_name: str, collection=None):
        """
        Initialize repository with a collection name.

        Args:
            collection_name: Name of the MongoDB collection
            collection: Optional explicit collection, otherwise resolved on each access
        """
        self.collection_name = collection_name
        self._collection = collection

    @property
    def collection(self):
        """Motor collection, resolved lazily so the connection can be swapped."""
        if self._collection is not None:
            return self._collection
        return get_collection(self.collection_name)

    async def find_one(self, query: Dict[str, Any], raw: bool = False) -> Optional[Dict[str, Any]]:
        """
        Find a single document matching query.

        Args:
            query: MongoDB query dictionary
            raw: If True, keep ``_id`` as an ObjectId for follow-up writes

        Returns:
            Document dict or None if not found
        """
        document = await self.collection.find_one(query)
        if document is None or raw:
            return document
        return IdHandler.format_object_ids(document)

    async def find_many(self,
                        query: Dict[str, Any] = None,
                        skip: int = 0,
                        limit: int = 100,
                        sort_by: str = None,
                        sort_desc: bool = False) -> List[Dict[str, Any]]:
        """
        Find documents matching query with pagination.

        Args:
            query: MongoDB query dictionary
            skip: Number of documents to skip
            limit: Maximum number of documents to return, 0 for no limit
            sort_by: Field to sort by
            sort_desc: If True, sort in descending order

        Returns:
            List of documents with formatted IDs
        """
        if query is None:
            query = {}

        options = {"skip": skip, "limit": limit}
        if sort_by:
            options["sort"] = [(sort_by, -1 if sort_desc else 1)]

        cursor = self.collection.find(query, **options)

        documents = await cursor.to_list(length=limit or None)
        return IdHandler.format_object_ids(documents)

    async def insert(self, data: Dict[str, Any]) -> Any:
        """
        Insert a new document.

        Args:
            data: Document data

        Returns:
            Inserted ``_id``
        """
        result = await self.collection.insert_one(dict(data))
        return result.inserted_id

    async def insert_many(self, documents: List[Dict[str, Any]]) -> List[Any]:
        """Insert several documents, returning their ``_id`` values in order."""
        if not documents:
            return []
        result = await self.collection.insert_many([dict(document) for document in documents])
        return list(result.inserted_ids)

    async def patch(self, query: Dict[str, Any], data: Dict[str, Any]) -> bool:
        """
        Set fields on the first document matching query.

        Args:
            query: MongoDB query dictionary
            data: Field values to set

        Returns:
            True if a document matched
        """
        update_data = {k: v for k, v in data.items() if k != "_id"}
        result = await self.collection.update_one(query, {"$set": update_data})
        return result.matched_count > 0

    async def delete_by_ids(self, ids: List[Any]) -> int:
        """Delete documents by ``_id``, returning the number removed."""
        if not ids:
            return 0
        result = await self.collection.delete_many({"_id": {"$in": list(ids)}})
        return result.deleted_count
