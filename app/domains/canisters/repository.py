"""
Canister repository for database operations.
"""
from typing import Any, Dict, List

from app.db.base_repository import BaseRepository
from app.db.mongodb import CANISTERS
from app.models.kitchen import CanisterModel
from app.utils.id_handler import IdHandler, SCAN_ID_PREFIX


class CanisterRepository(BaseRepository):
    """
    Repository for kitchen canisters.
    Scan ids are unique across all kitchens.
    """

    def __init__(self, collection=None, counters=None):
        """Initialize with canisters collection."""
        super().__init__(CANISTERS, collection)
        self.counters = counters

    async def next_scan_id(self) -> str:
        """Issue the next ``KITCHEN_CAN_<n>`` id."""
        return await IdHandler.next_business_id(
            self.collection,
            "scanId",
            SCAN_ID_PREFIX,
            sequence=CANISTERS,
            counters=self.counters,
        )

    async def create(self, canister: CanisterModel) -> Any:
        """Insert a canister, returning its ``_id``."""
        return await self.insert(canister.to_document())

    async def find_active_for_kitchen(self, kitchen_id: str) -> List[Dict[str, Any]]:
        """Active canisters registered to a kitchen."""
        return await self.find_many({"kitchenId": kitchen_id, "isActive": True}, limit=0, sort_by="_id")
