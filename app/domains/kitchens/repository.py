"""
Kitchen repository for database operations.
"""
import logging
from typing import List, Optional

from pydantic import ValidationError

from app.db.base_repository import BaseRepository
from app.db.mongodb import KITCHENS
from app.models.kitchen import KitchenModel, ONLINE

logger = logging.getLogger(__name__)


class KitchenRepository(BaseRepository):
    """
    Repository for kitchen data access.
    Extends BaseRepository with kitchen lookups used by dispatch.
    """

    def __init__(self, collection=None):
        """Initialize with kitchens collection."""
        super().__init__(KITCHENS, collection)

    async def find_by_user_id(self, user_id: str) -> Optional[KitchenModel]:
        """
        Find a kitchen by its login userId.

        Args:
            user_id: Kitchen userId

        Returns:
            Kitchen model or None if not found
        """
        document = await self.find_one({"userId": user_id})
        return KitchenModel.model_validate(document) if document else None

    async def find_by_user_ids(self, user_ids: List[str]) -> List[KitchenModel]:
        """
        Find kitchens for a list of userIds, keeping the order of ``user_ids``.

        Args:
            user_ids: Kitchen userIds

        Returns:
            Kitchen models that exist, in input order
        """
        if not user_ids:
            return []
        documents = await self.find_many({"userId": {"$in": list(user_ids)}}, limit=0)
        kitchens = {kitchen.user_id: kitchen for kitchen in self._to_models(documents)}
        return [kitchens[user_id] for user_id in user_ids if user_id in kitchens]

    async def find_online(self) -> List[KitchenModel]:
        """
        Find every kitchen currently online.

        Returns:
            Online kitchen models
        """
        documents = await self.find_many({"status": ONLINE}, limit=0)
        return self._to_models(documents)

    @staticmethod
    def _to_models(documents) -> List[KitchenModel]:
        kitchens = []
        for document in documents:
            try:
                kitchens.append(KitchenModel.model_validate(document))
            except ValidationError as e:
                logger.warning(f"Skipping malformed kitchen record {document.get('userId')}: {e}")
        return kitchens
