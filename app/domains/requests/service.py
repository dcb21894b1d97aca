"""
Request service for refill request creation and lookups.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.errors import MachineNotFound, RequestNotFound, ValidationError
from app.domains.kitchens.repository import KitchenRepository
from app.domains.machines.repository import MachineRepository
from app.domains.requests.policy import evaluate_dispatch_window, is_first_request_of_day
from app.domains.requests.repository import RequestRepository, RequestStatusUpdateRepository
from app.models.request import DECLINED_AUDIT_STATUSES, RequestModel, RequestStatus, RequestStatusUpdateModel
from app.services.notification import Notification
from app.utils.datetime_handler import DateTimeHandler
from app.utils.geo import parse_point

logger = logging.getLogger(__name__)

FIRST_OF_DAY_PRIORITY = 1
DEFAULT_PRIORITY = 2

HISTORY_STATUSES = (RequestStatus.COMPLETED.value, RequestStatus.CANCELLED.value)
CLOSED_FOR_KITCHEN = HISTORY_STATUSES
# Agents never see a request before it is ready for pickup
CLOSED_FOR_AGENT = HISTORY_STATUSES + (RequestStatus.ACCEPTED.value,)


@dataclass
class CanisterCheckResult:
    """Outcome of one canister level reading."""
    success: bool
    message: str
    request_id: Optional[str] = None
    kitchen_user_ids: List[str] = field(default_factory=list)
    priority: Optional[int] = None
    quantity: Optional[float] = None
    notifications: List[Notification] = field(default_factory=list)

    def to_data(self) -> Dict[str, Any]:
        return {
            "requestId": self.request_id,
            "kitchenUserIds": self.kitchen_user_ids,
            "priority": self.priority,
            "quantity": self.quantity,
        }


def public_request(document: Dict[str, Any]) -> Dict[str, Any]:
    """Request document as exposed over the API, without the store's ``_id``."""
    return {key: value for key, value in document.items() if key != "_id"}


class RequestService:
    """
    Service for refill request creation and read queries.
    """

    def __init__(
            self,
            request_repo: Optional[RequestRepository] = None,
            update_repo: Optional[RequestStatusUpdateRepository] = None,
            machine_repo: Optional[MachineRepository] = None,
            kitchen_repo: Optional[KitchenRepository] = None,
    ):
        """
        Initialize with repositories.

        Args:
            request_repo: Optional request repository instance
            update_repo: Optional status update repository instance
            machine_repo: Optional machine repository instance
            kitchen_repo: Optional kitchen repository instance
        """
        self.request_repo = request_repo or RequestRepository()
        self.update_repo = update_repo or RequestStatusUpdateRepository()
        self.machine_repo = machine_repo or MachineRepository()
        self.kitchen_repo = kitchen_repo or KitchenRepository()

    async def check_canister_level(self, machine_id: str, canister_level: float,
                                   now: Optional[datetime] = None) -> CanisterCheckResult:
        """
        Create a refill request when a machine's canister runs low.

        Readings above the threshold, machines close to their end time and
        machines with no mapped kitchen are no-ops. When none of the mapped
        kitchens is online the request is still stored, as
        ``No Kitchens Found``, so the event can be investigated.

        Args:
            machine_id: Machine that reported the reading
            canister_level: Fill level in percent
            now: Current time, defaults to the configured timezone's clock

        Returns:
            CanisterCheckResult with the new request and the kitchens to notify

        Raises:
            ValidationError: If the level is outside 0 to 100
            MachineNotFound: If the machine does not exist
            InvalidCoordinates: If the machine's coordinates do not parse
        """
        if not machine_id:
            raise ValidationError("machineId is required")
        if canister_level is None or not 0 <= canister_level <= 100:
            raise ValidationError("canisterLevel must be between 0 and 100")

        if canister_level > settings.CANISTER_THRESHOLD:
            return CanisterCheckResult(True, "Canister level is above threshold")

        now = DateTimeHandler.to_local(now) if now is not None else DateTimeHandler.get_current_datetime()

        machine = await self.machine_repo.find_by_machine_id(machine_id)
        if not machine:
            raise MachineNotFound(machine_id)

        window = evaluate_dispatch_window(machine, now)
        if window.should_block:
            logger.info(f"Refill for machine {machine_id} blocked, {window.minutes_to_close} minutes to end time")
            return CanisterCheckResult(False, "Request not allowed within 1 hour of end time")

        mapped_kitchen_ids = machine.kitchen_ids
        if not mapped_kitchen_ids:
            return CanisterCheckResult(False, "No kitchen mapped to this machine")

        dst_latitude, dst_longitude = parse_point(machine.gis_latitude, machine.gis_longitude)

        request_id = await self.request_repo.next_request_id()
        previous = await self.request_repo.find_by_machine(machine_id)
        first_today = is_first_request_of_day([doc.get("requestDateTime") for doc in previous], now)
        priority = FIRST_OF_DAY_PRIORITY if first_today else DEFAULT_PRIORITY

        kitchens = await self.kitchen_repo.find_by_user_ids(mapped_kitchen_ids)
        online_kitchens = [kitchen for kitchen in kitchens if kitchen.is_online]

        request = RequestModel(
            request_id=request_id,
            machine_id=machine_id,
            priority=priority,
            quantity=window.quantity,
            request_date_time=DateTimeHandler.format_request_datetime(now),
            dst_address=machine.address.one_line(),
            dst_latitude=dst_latitude,
            dst_longitude=dst_longitude,
            kitchen_user_id=[kitchen.user_id for kitchen in online_kitchens],
        )

        if not online_kitchens:
            request.request_status = RequestStatus.NO_KITCHENS_FOUND.value
            await self.request_repo.create(request)
            logger.warning(f"No online kitchens for machine {machine_id}, stored {request_id} for follow-up")
            return CanisterCheckResult(
                False,
                "No online kitchens found for this machine",
                request_id=request_id,
                priority=priority,
                quantity=window.quantity,
            )

        await self.request_repo.create(request)

        timestamp = DateTimeHandler.format_iso(now)
        await self.update_repo.add_many([
            RequestStatusUpdateModel(
                request_id=request_id,
                user_id=kitchen.user_id,
                status=RequestStatus.PENDING.value,
                latitude=kitchen.latitude,
                longitude=kitchen.longitude,
                date_and_time=timestamp,
                is_proceed_next=False,
            )
            for kitchen in online_kitchens
        ])

        kitchen_user_ids = [kitchen.user_id for kitchen in online_kitchens]
        logger.info(f"Created {request_id} for machine {machine_id}, offered to {kitchen_user_ids}")

        return CanisterCheckResult(
            True,
            "Request created and kitchens notified",
            request_id=request_id,
            kitchen_user_ids=kitchen_user_ids,
            priority=priority,
            quantity=window.quantity,
            notifications=[
                Notification(user_id, request_id, RequestStatus.PENDING.value) for user_id in kitchen_user_ids
            ],
        )

    async def get_request(self, request_id: str) -> Dict[str, Any]:
        """
        Get a request by its business id.

        Raises:
            RequestNotFound: If no request has this id
        """
        document = await self.request_repo.find_one({"requestId": request_id})
        if not document:
            raise RequestNotFound(request_id)
        return public_request(document)

    async def get_kitchen_requests(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Open requests offered to or held by a kitchen.

        Offers made by reassignment only exist as ``Pending`` audit rows, so
        those are looked up alongside ``kitchenUserId``. Requests the kitchen
        declined are left out.
        """
        offered = await self.update_repo.request_ids_for_user(user_id, [RequestStatus.PENDING.value])
        declined = await self.update_repo.request_ids_for_user(user_id, DECLINED_AUDIT_STATUSES)
        documents = await self.request_repo.find_active_for_kitchen(
            user_id, CLOSED_FOR_KITCHEN, offered=offered, declined=declined
        )
        return [public_request(document) for document in documents]

    async def get_agent_orders(self, user_id: str) -> List[Dict[str, Any]]:
        """Open orders an agent holds or was offered."""
        documents = await self.request_repo.find_active_for_agent(user_id, CLOSED_FOR_AGENT)
        return [public_request(document) for document in documents]

    async def get_history(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Completed and cancelled requests an actor closed, newest first.

        Args:
            user_id: Kitchen or agent userId

        Returns:
            One entry per closing audit row, joined with its request
        """
        updates = await self.update_repo.find_by_user_and_statuses(user_id, HISTORY_STATUSES)
        requests = await self.request_repo.find_by_request_ids({update["requestId"] for update in updates})

        history = []
        for update in updates:
            request = requests.get(update["requestId"], {})
            completed = update["status"] == RequestStatus.COMPLETED.value
            history.append({
                "requestId": update["requestId"],
                "requestStatus": update["status"],
                "requestDateTime": update.get("dateAndTime"),
                "machineId": request.get("machineId"),
                "srcAddress": request.get("srcAddress"),
                "srcLatitude": request.get("srcLatitude"),
                "srcLongitude": request.get("srcLongitude"),
                "srcContactName": request.get("srcContactName"),
                "srcContactNumber": request.get("srcContactNumber"),
                "dstAddress": request.get("dstAddress"),
                "dstLatitude": request.get("dstLatitude"),
                "dstLongitude": request.get("dstLongitude"),
                "assignRefillerName": request.get("assignRefillerName") if completed else None,
                "assignRefillerContactNumber": request.get("assignRefillerContactNumber") if completed else None,
            })
        return history


# Create global instance
request_service = RequestService()
