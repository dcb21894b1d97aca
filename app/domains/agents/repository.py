"""
Delivery agent repository for database operations.
"""
import logging
from typing import List, Optional

from pydantic import ValidationError

from app.db.base_repository import BaseRepository
from app.db.mongodb import DELIVERY_AGENTS
from app.models.kitchen import DeliveryAgentModel, ONLINE

logger = logging.getLogger(__name__)


class DeliveryAgentRepository(BaseRepository):
    """
    Repository for delivery agent data access.
    """

    def __init__(self, collection=None):
        """Initialize with delivery agents collection."""
        super().__init__(DELIVERY_AGENTS, collection)

    async def find_by_user_id(self, user_id: str) -> Optional[DeliveryAgentModel]:
        """
        Find a delivery agent by userId.

        Args:
            user_id: Agent userId

        Returns:
            Agent model or None if not found
        """
        document = await self.find_one({"userId": user_id})
        return DeliveryAgentModel.model_validate(document) if document else None

    async def find_online(self) -> List[DeliveryAgentModel]:
        """Find every online agent."""
        agents = []
        for document in await self.find_many({"status": ONLINE}, limit=0):
            try:
                agents.append(DeliveryAgentModel.model_validate(document))
            except ValidationError as e:
                logger.warning(f"Skipping malformed agent record {document.get('userId')}: {e}")
        return agents
