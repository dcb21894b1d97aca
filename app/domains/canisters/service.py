"""
Canister service for registration.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.errors import KitchenNotFound
from app.domains.canisters.repository import CanisterRepository
from app.domains.kitchens.repository import KitchenRepository
from app.models.kitchen import CanisterModel
from app.utils.datetime_handler import DateTimeHandler
from app.utils.geo import parse_point

logger = logging.getLogger(__name__)


class CanisterService:
    """
    Service for canister registration.
    """

    def __init__(self, canister_repo: Optional[CanisterRepository] = None,
                 kitchen_repo: Optional[KitchenRepository] = None):
        self.canister_repo = canister_repo or CanisterRepository()
        self.kitchen_repo = kitchen_repo or KitchenRepository()

    async def register_canister(self, user_id: str, status: str, scan_type: str, latitude: float,
                                longitude: float, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Register a canister to a kitchen under a new scan id.

        Args:
            user_id: Owning kitchen userId
            status: Initial canister status
            scan_type: Kind of scan that registered it
            latitude: Registration latitude
            longitude: Registration longitude
            now: Registration time, defaults to the configured timezone's clock

        Returns:
            The stored canister

        Raises:
            KitchenNotFound: If the kitchen does not exist
            InvalidCoordinates: If the coordinates are not finite
        """
        latitude, longitude = parse_point(latitude, longitude)

        kitchen = await self.kitchen_repo.find_by_user_id(user_id)
        if not kitchen:
            raise KitchenNotFound(user_id)

        timestamp = DateTimeHandler.format_request_datetime(now)
        canister = CanisterModel(
            scan_id=await self.canister_repo.next_scan_id(),
            kitchen_id=user_id,
            status=status,
            scan_type=scan_type,
            latitude=latitude,
            longitude=longitude,
            registration_date_time=timestamp,
            last_updated=timestamp,
        )
        await self.canister_repo.create(canister)

        logger.info(f"Registered canister {canister.scan_id} for kitchen {user_id}")
        return canister.to_document()

    async def get_kitchen_canisters(self, user_id: str) -> List[Dict[str, Any]]:
        """Active canisters of a kitchen, without the store's ``_id``."""
        canisters = await self.canister_repo.find_active_for_kitchen(user_id)
        return [{key: value for key, value in canister.items() if key != "_id"} for canister in canisters]


# Create global instance
canister_service = CanisterService()
