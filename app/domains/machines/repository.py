"""
Machine repository for database operations.
"""
from typing import Optional

from app.db.base_repository import BaseRepository
from app.db.mongodb import MACHINES
from app.models.machine import MachineModel


class MachineRepository(BaseRepository):
    """
    Repository for vending machine data access.
    Machines are admin-managed; the dispatch core only reads them.
    """

    def __init__(self, collection=None):
        """Initialize with machines collection."""
        super().__init__(MACHINES, collection)

    async def find_by_machine_id(self, machine_id: str) -> Optional[MachineModel]:
        """
        Find a machine by its business id.

        Args:
            machine_id: Machine ``id`` field

        Returns:
            Machine model or None if not found
        """
        document = await self.find_one({"id": machine_id})
        return MachineModel.model_validate(document) if document else None
