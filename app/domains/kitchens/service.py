"""
Kitchen service for declines and reassignment.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from app.core.config import settings
from app.core.errors import RequestNotFound, StatusUpdateNotFound, ValidationError
from app.domains.kitchens.repository import KitchenRepository
from app.domains.requests.repository import RequestRepository, RequestStatusUpdateRepository
from app.models.request import (
    KITCHEN_DECLINED_STATUS,
    RequestStatus,
    RequestStatusUpdateModel,
    UnassignedKitchen,
    kitchen_assignment_from_document,
)
from app.services.notification import Notification
from app.utils.datetime_handler import DateTimeHandler
from app.utils.geo import parse_point, within_first_radius

logger = logging.getLogger(__name__)


@dataclass
class ReassignResult:
    success: bool
    message: str
    new_kitchens: List[str] = field(default_factory=list)
    radius_km: Optional[float] = None
    notifications: List[Notification] = field(default_factory=list)


class KitchenService:
    """
    Service for kitchen-side request handling.
    """

    def __init__(
            self,
            kitchen_repo: Optional[KitchenRepository] = None,
            request_repo: Optional[RequestRepository] = None,
            update_repo: Optional[RequestStatusUpdateRepository] = None,
    ):
        """
        Initialize with repositories.

        Args:
            kitchen_repo: Optional kitchen repository instance
            request_repo: Optional request repository instance
            update_repo: Optional status update repository instance
        """
        self.kitchen_repo = kitchen_repo or KitchenRepository()
        self.request_repo = request_repo or RequestRepository()
        self.update_repo = update_repo or RequestStatusUpdateRepository()

    async def decline_and_reassign(self, user_id: str, request_id: str, status: str,
                                   now: Optional[datetime] = None) -> ReassignResult:
        """
        Record a kitchen's decline and offer the request to kitchens further out.

        Radii from ``REASSIGN_RADII_KM`` are tried in order around the
        machine. Kitchens that already have any status row for the request
        are never offered it again. Only a request still broadcast as
        ``Pending`` can be declined. The request itself is only touched when
        no radius yields a kitchen, in which case it becomes
        ``No Available Kitchens``.

        Args:
            user_id: Declining kitchen
            request_id: Request being declined
            status: Must be ``declined``
            now: Current time, defaults to the configured timezone's clock

        Returns:
            ReassignResult with the newly offered kitchens

        Raises:
            ValidationError: If status is not ``declined``
            StatusUpdateNotFound: If the kitchen was never offered the request
            RequestNotFound: If the request does not exist
            InvalidCoordinates: If the request's destination does not parse
        """
        if status != KITCHEN_DECLINED_STATUS:
            raise ValidationError(f"Invalid status. Expected '{KITCHEN_DECLINED_STATUS}'")

        row = await self.update_repo.find_for_user(request_id, user_id)
        if not row:
            raise StatusUpdateNotFound(request_id, user_id)

        request = await self.request_repo.find_by_request_id(request_id)
        if not request:
            raise RequestNotFound(request_id)
        current_status = request.get("requestStatus")
        assignment = kitchen_assignment_from_document(request.get("kitchenUserId"))
        if current_status != RequestStatus.PENDING.value or not isinstance(assignment, UnassignedKitchen):
            logger.info(f"Decline of {request_id} by {user_id} rejected, request is {current_status}")
            return ReassignResult(False, f"Request is {current_status}, cannot decline")
        origin = parse_point(request.get("dstLatitude"), request.get("dstLongitude"))

        await self.update_repo.set_status(row["_id"], KITCHEN_DECLINED_STATUS)

        already_offered = await self.update_repo.user_ids_for_request(request_id)
        online = await self.kitchen_repo.find_online()
        found, radius = within_first_radius(
            origin,
            [(kitchen.user_id, kitchen.latitude, kitchen.longitude) for kitchen in online],
            settings.REASSIGN_RADII_KM,
            exclude=already_offered,
        )

        if not found:
            patched = await self.request_repo.patch_if_status(
                request["_id"],
                RequestStatus.PENDING.value,
                {"requestStatus": RequestStatus.NO_AVAILABLE_KITCHENS.value},
            )
            if not patched:
                logger.warning(f"{request_id} left Pending while {user_id} was declining it")
                return ReassignResult(False, "Request was updated by someone else, please retry")
            logger.warning(f"No kitchens left to offer {request_id} after {user_id} declined")
            return ReassignResult(False, "No available kitchens found within the search radius")

        kitchens = {kitchen.user_id: kitchen for kitchen in online}
        timestamp = DateTimeHandler.format_iso(now)
        await self.update_repo.add_many([
            RequestStatusUpdateModel(
                request_id=request_id,
                user_id=kitchen_id,
                status=RequestStatus.PENDING.value,
                latitude=kitchens[kitchen_id].latitude,
                longitude=kitchens[kitchen_id].longitude,
                date_and_time=timestamp,
                is_proceed_next=False,
            )
            for kitchen_id in found
        ])

        logger.info(f"{request_id} declined by {user_id}, offered to {found} within {radius:g} km")
        return ReassignResult(
            True,
            "Request reassigned to nearby kitchens",
            new_kitchens=found,
            radius_km=radius,
            notifications=[Notification(kitchen_id, request_id, RequestStatus.PENDING.value) for kitchen_id in found],
        )


# Create global instance
kitchen_service = KitchenService()
