"""
Request and request status update repositories.
"""
from typing import Any, Dict, Iterable, List, Optional, Set

from app.db.base_repository import BaseRepository
from app.db.mongodb import REQUESTS, REQUEST_STATUS_UPDATES
from app.models.request import RequestModel, RequestStatus, RequestStatusUpdateModel
from app.utils.id_handler import IdHandler, REQUEST_ID_PREFIX, REQUEST_ID_WIDTH


class RequestRepository(BaseRepository):
    """
    Repository for refill requests.
    One document per refill cycle, addressed by ``requestId``.
    """

    def __init__(self, collection=None, counters=None):
        """Initialize with requests collection."""
        super().__init__(REQUESTS, collection)
        self.counters = counters

    async def next_request_id(self) -> str:
        """Issue the next ``REQ-0001`` style id."""
        return await IdHandler.next_business_id(
            self.collection,
            "requestId",
            REQUEST_ID_PREFIX,
            REQUEST_ID_WIDTH,
            sequence=REQUESTS,
            counters=self.counters,
        )

    async def find_by_request_id(self, request_id: str) -> Optional[Dict[str, Any]]:
        """
        Find a request by its business id.

        Args:
            request_id: ``requestId`` value

        Returns:
            Raw request document (``_id`` kept as stored) or None
        """
        return await self.find_one({"requestId": request_id}, raw=True)

    async def find_by_machine(self, machine_id: str) -> List[Dict[str, Any]]:
        """All requests ever created for a machine."""
        return await self.find_many({"machineId": machine_id}, limit=0)

    async def create(self, request: RequestModel) -> Any:
        """Insert a new request, returning its ``_id``."""
        return await self.insert(request.to_document())

    async def patch_if_status(self, doc_id: Any, expected_status: str, data: Dict[str, Any]) -> bool:
        """
        Patch a request only while it still has the status it was read with.

        Args:
            doc_id: Request ``_id``
            expected_status: ``requestStatus`` observed before the change
            data: Field values to set

        Returns:
            False if the request moved on in the meantime
        """
        return await self.patch({"_id": doc_id, "requestStatus": expected_status}, data)

    async def find_active_for_kitchen(self, user_id: str, closed: Iterable[str],
                                      offered: Iterable[str] = (),
                                      declined: Iterable[str] = ()) -> List[Dict[str, Any]]:
        """
        Requests offered to or held by a kitchen that are not closed yet.

        Args:
            user_id: Kitchen userId
            closed: Request statuses to leave out
            offered: requestIds offered to the kitchen through reassignment,
                matched only while the request is still Pending
            declined: requestIds the kitchen has declined

        Returns:
            Raw request documents, newest first
        """
        query = {
            "$or": [
                {"kitchenUserId": user_id},
                {"requestId": {"$in": list(offered)}, "requestStatus": RequestStatus.PENDING.value},
            ],
            "requestId": {"$nin": list(declined)},
            "requestStatus": {"$nin": list(closed)},
        }
        return await self.find_many(query, limit=0, sort_by="requestId", sort_desc=True)

    async def find_active_for_agent(self, user_id: str, closed: Iterable[str]) -> List[Dict[str, Any]]:
        """Orders assigned or offered to an agent that are not closed yet."""
        query = {
            "$or": [{"agentUserId": user_id}, {"agentCandidates": user_id}],
            "requestStatus": {"$nin": list(closed)},
        }
        return await self.find_many(query, limit=0, sort_by="requestId", sort_desc=True)

    async def find_by_request_ids(self, request_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Requests keyed by ``requestId``."""
        documents = await self.find_many({"requestId": {"$in": list(request_ids)}}, limit=0)
        return {document["requestId"]: document for document in documents}


class RequestStatusUpdateRepository(BaseRepository):
    """
    Repository for the append-only request status audit trail.
    Each row addresses one kitchen or agent at one point in time.
    """

    def __init__(self, collection=None):
        """Initialize with request status updates collection."""
        super().__init__(REQUEST_STATUS_UPDATES, collection)

    async def add(self, update: RequestStatusUpdateModel) -> Any:
        """Append one audit row, returning its ``_id``."""
        return await self.insert(update.to_document())

    async def add_many(self, updates: List[RequestStatusUpdateModel]) -> List[Any]:
        """Append several audit rows."""
        return await self.insert_many([update.to_document() for update in updates])

    async def find_for_user(self, request_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Find the first audit row addressed to a user for a request.

        Args:
            request_id: ``requestId`` value
            user_id: Kitchen or agent userId

        Returns:
            Raw audit row or None
        """
        return await self.find_one({"requestId": request_id, "userId": user_id}, raw=True)

    async def find_by_request(self, request_id: str) -> List[Dict[str, Any]]:
        """Every audit row for a request in insertion order."""
        return await self.find_many({"requestId": request_id}, limit=0, sort_by="_id")

    async def user_ids_for_request(self, request_id: str) -> Set[str]:
        """userIds that were ever offered or acted on a request."""
        return {row["userId"] for row in await self.find_by_request(request_id) if row.get("userId")}

    async def set_status(self, doc_id: Any, status: str) -> bool:
        """Overwrite the status of one audit row."""
        return await self.patch({"_id": doc_id}, {"status": status})

    async def find_by_user_and_statuses(self, user_id: str, statuses: Iterable[str]) -> List[Dict[str, Any]]:
        """Audit rows of a user with one of the given statuses, newest first."""
        query = {"userId": user_id, "status": {"$in": list(statuses)}}
        return await self.find_many(query, limit=0, sort_by="_id", sort_desc=True)

    async def request_ids_for_user(self, user_id: str, statuses: Iterable[str]) -> Set[str]:
        """requestIds with an audit row for the user in one of the given statuses."""
        return {row["requestId"] for row in await self.find_by_user_and_statuses(user_id, statuses)}
