"""
Request lifecycle mutations.

Every mutation follows the same steps: validate the payload, load the
request, check that the caller is the right actor and the request is in the
right status, then commit one audit row plus one conditional patch of the
request. Mutations never send pushes; they return the notifications the
caller should deliver once the change is committed.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from app.core.config import settings
from app.core.errors import AgentNotFound, InvalidCoordinates, KitchenNotFound, RequestNotFound, ValidationError
from app.domains.agents.repository import DeliveryAgentRepository
from app.domains.kitchens.repository import KitchenRepository
from app.domains.requests.repository import RequestRepository, RequestStatusUpdateRepository
from app.models.request import (
    AssignedKitchen,
    DECLINED_AUDIT_STATUSES,
    RequestStatus,
    RequestStatusUpdateModel,
    UnassignedKitchen,
    kitchen_assignment_from_document,
)
from app.schemas.request import TransitionInput
from app.services.notification import Notification
from app.utils.geo import parse_point, total_trip_distance_km, within_first_radius

logger = logging.getLogger(__name__)


class Actor:
    CANDIDATE_KITCHEN = "candidate kitchen"
    KITCHEN = "kitchen"
    CANDIDATE_AGENT = "candidate agent"
    AGENT = "agent"
    KITCHEN_OR_AGENT = "kitchen or agent"


@dataclass(frozen=True)
class Edge:
    """One row of the lifecycle table."""
    name: str
    actor: str
    allowed_from: FrozenSet[str]
    proceed_status: str
    decline_status: Optional[str] = None

    def target_status(self, is_proceed_next: bool) -> Optional[str]:
        return self.proceed_status if is_proceed_next else self.decline_status


def _edge(name, actor, allowed_from, proceed, decline=None) -> Edge:
    return Edge(
        name,
        actor,
        frozenset(status.value for status in allowed_from),
        proceed.value,
        decline.value if decline else None,
    )


KITCHEN_ACCEPT = _edge("accept or decline", Actor.CANDIDATE_KITCHEN, [RequestStatus.PENDING],
                       RequestStatus.ACCEPTED, RequestStatus.DECLINED)
ORDER_READY = _edge("order ready", Actor.KITCHEN, [RequestStatus.ACCEPTED], RequestStatus.ORDER_READY)
AGENT_ASSIGN = _edge("assign or decline", Actor.CANDIDATE_AGENT, [RequestStatus.ORDER_READY],
                     RequestStatus.ASSIGNED, RequestStatus.DECLINED)
PICKED_UP = _edge("picked up", Actor.AGENT, [RequestStatus.ASSIGNED], RequestStatus.PICKED_UP)
ONGOING = _edge("ongoing", Actor.AGENT, [RequestStatus.PICKED_UP], RequestStatus.ONGOING)
REFILLED = _edge("refilled or not refilled", Actor.AGENT, [RequestStatus.ONGOING],
                 RequestStatus.REFILLED, RequestStatus.NOT_REFILLED)
SUBMITTED = _edge("submit or not submit", Actor.KITCHEN_OR_AGENT,
                  [RequestStatus.REFILLED, RequestStatus.NOT_REFILLED],
                  RequestStatus.SUBMITTED, RequestStatus.NOT_SUBMITTED)
COMPLETED = _edge("complete or cancel", Actor.KITCHEN_OR_AGENT,
                  [RequestStatus.SUBMITTED, RequestStatus.NOT_SUBMITTED],
                  RequestStatus.COMPLETED, RequestStatus.CANCELLED)


@dataclass
class TransitionResult:
    success: bool
    message: str
    notifications: List[Notification] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)


def validate_transition(edge: Edge, payload: TransitionInput) -> str:
    """
    Check a payload against an edge before anything is read.

    Returns:
        The status the request moves to

    Raises:
        ValidationError: If a decline has no reason or the status does not fit the edge
    """
    if not payload.is_proceed_next and not (payload.reason or "").strip():
        raise ValidationError("Reason is required when not proceeding")

    target = edge.target_status(payload.is_proceed_next)
    if target is None:
        raise ValidationError(f"{edge.proceed_status} cannot be declined")
    if payload.status != target:
        raise ValidationError(f"Invalid status. Expected '{target}'")
    return target


class TransitionService:
    """
    Service for request status mutations by kitchens and agents.
    """

    def __init__(
            self,
            request_repo: Optional[RequestRepository] = None,
            update_repo: Optional[RequestStatusUpdateRepository] = None,
            kitchen_repo: Optional[KitchenRepository] = None,
            agent_repo: Optional[DeliveryAgentRepository] = None,
    ):
        self.request_repo = request_repo or RequestRepository()
        self.update_repo = update_repo or RequestStatusUpdateRepository()
        self.kitchen_repo = kitchen_repo or KitchenRepository()
        self.agent_repo = agent_repo or DeliveryAgentRepository()

    async def kitchen_accept_or_decline(self, payload: TransitionInput) -> TransitionResult:
        """
        A candidate kitchen accepts or declines a pending request.

        Accepting narrows the request to the kitchen and copies its address
        and contact as the pickup point. Declining only records the decline;
        the candidate pool and the request status stay as they are.
        """
        target, request = await self._begin(KITCHEN_ACCEPT, payload)
        failure = await self._check_actor(KITCHEN_ACCEPT, request, payload.user_id)
        if failure:
            return failure

        if payload.is_proceed_next:
            kitchen = await self.kitchen_repo.find_by_user_id(payload.user_id)
            if not kitchen:
                raise KitchenNotFound(payload.user_id)
            patch = {
                "requestStatus": target,
                "kitchenStatus": target,
                "kitchenUserId": AssignedKitchen(kitchen=payload.user_id).to_document(),
                "srcAddress": kitchen.address,
                "srcLatitude": kitchen.latitude,
                "srcLongitude": kitchen.longitude,
                "srcContactName": kitchen.manager,
                "srcContactNumber": kitchen.manager_mobile,
            }
            message = "Request accepted and kitchen details updated"
        else:
            patch = {"kitchenStatus": target, "reason": payload.reason}
            message = "Declined status updated"

        return await self._commit(request, payload, target, patch, message)

    async def order_ready(self, payload: TransitionInput) -> TransitionResult:
        """
        The accepted kitchen reports the tea ready; nearby online agents are
        offered the order.
        """
        target, request = await self._begin(ORDER_READY, payload)
        failure = await self._check_actor(ORDER_READY, request, payload.user_id)
        if failure:
            return failure

        agents = await self.agent_repo.find_online()
        agent_ids, radius = within_first_radius(
            (payload.latitude, payload.longitude),
            [(agent.user_id, agent.latitude, agent.longitude) for agent in agents],
            settings.AGENT_SEARCH_RADII_KM,
        )

        patch = {"requestStatus": target, "agentCandidates": agent_ids}
        if payload.tea_type is not None:
            patch["teaType"] = payload.tea_type
        if payload.quantity is not None:
            patch["quantity"] = payload.quantity

        if agent_ids:
            message = f"Order Ready status updated, {len(agent_ids)} agents within {radius:g} km"
        else:
            message = "Order Ready status updated, no agents nearby"

        return await self._commit(
            request, payload, target, patch, message,
            notifications=[Notification(agent_id, payload.request_id, target) for agent_id in agent_ids],
            data={"nearbyAgentIds": agent_ids},
            audit_extra={"message": "Order is ready for pickup"},
        )

    async def agent_assign_or_decline(self, payload: TransitionInput) -> TransitionResult:
        """
        A candidate agent takes the order or passes on it.

        Taking it records the agent's contact and the trip distance when all
        coordinates are known. Passing removes the agent from the candidates.
        """
        target, request = await self._begin(AGENT_ASSIGN, payload)
        failure = await self._check_actor(AGENT_ASSIGN, request, payload.user_id)
        if failure:
            return failure

        kitchen_id = _assigned_kitchen(request)
        notify = [Notification(kitchen_id, payload.request_id, target, is_refiller=True)] if kitchen_id else []

        if not payload.is_proceed_next:
            candidates = [user_id for user_id in request.get("agentCandidates") or [] if user_id != payload.user_id]
            patch = {"agentStatus": target, "agentCandidates": candidates, "reason": payload.reason}
            return await self._commit(request, payload, target, patch, "Declined status updated",
                                      notifications=notify)

        agent = await self.agent_repo.find_by_user_id(payload.user_id)
        if not agent:
            raise AgentNotFound(payload.user_id)

        total_distance = await self._trip_distance(request, kitchen_id, payload)
        patch = {
            "requestStatus": target,
            "agentStatus": target,
            "agentUserId": payload.user_id,
            "assignRefillerName": agent.name,
            "assignRefillerContactNumber": agent.mobile,
        }
        if total_distance is not None:
            patch["totalDistance"] = total_distance

        return await self._commit(
            request, payload, target, patch, "Assigned status updated",
            notifications=notify,
            data={"totalDistance": total_distance},
            audit_extra={"total_distance": total_distance},
        )

    async def picked_up(self, payload: TransitionInput) -> TransitionResult:
        """The assigned agent collected the canister from the kitchen."""
        return await self._advance_for_agent(PICKED_UP, payload)

    async def ongoing(self, payload: TransitionInput) -> TransitionResult:
        """The assigned agent is on the way to the machine."""
        return await self._advance_for_agent(ONGOING, payload)

    async def refilled_or_not_refilled(self, payload: TransitionInput) -> TransitionResult:
        """The assigned agent reports whether the machine was refilled."""
        return await self._advance_for_agent(REFILLED, payload)

    async def submit_or_not_submit(self, payload: TransitionInput) -> TransitionResult:
        """The empty canister was or was not handed back to the kitchen."""
        return await self._advance_for_party(SUBMITTED, payload)

    async def complete_or_cancel(self, payload: TransitionInput) -> TransitionResult:
        """Close the request as completed or cancelled."""
        return await self._advance_for_party(COMPLETED, payload)

    async def _advance_for_agent(self, edge: Edge, payload: TransitionInput) -> TransitionResult:
        target, request = await self._begin(edge, payload)
        failure = await self._check_actor(edge, request, payload.user_id)
        if failure:
            return failure

        kitchen_id = _assigned_kitchen(request)
        notify = [Notification(kitchen_id, payload.request_id, target, is_refiller=True)] if kitchen_id else []
        return await self._commit(request, payload, target, _status_patch(target, payload),
                                  f"{target} status updated", notifications=notify)

    async def _advance_for_party(self, edge: Edge, payload: TransitionInput) -> TransitionResult:
        target, request = await self._begin(edge, payload)
        failure = await self._check_actor(edge, request, payload.user_id)
        if failure:
            return failure

        kitchen_id = _assigned_kitchen(request)
        agent_id = request.get("agentUserId") or None
        by_agent = payload.user_id == agent_id
        other_party = kitchen_id if by_agent else agent_id

        notify = [Notification(other_party, payload.request_id, target, is_refiller=by_agent)] if other_party else []
        return await self._commit(request, payload, target, _status_patch(target, payload),
                                  f"Request {target.lower()} successfully", notifications=notify)

    async def _begin(self, edge: Edge, payload: TransitionInput) -> Tuple[str, Dict[str, Any]]:
        target = validate_transition(edge, payload)
        request = await self.request_repo.find_by_request_id(payload.request_id)
        if not request:
            raise RequestNotFound(payload.request_id)
        return target, request

    async def _check_actor(self, edge: Edge, request: Dict[str, Any], user_id: str) -> Optional[TransitionResult]:
        """Failure result when the caller may not take this edge now, else None."""
        current = request.get("requestStatus")
        if current not in edge.allowed_from:
            logger.info(f"{edge.name} rejected for {request.get('requestId')}: status is {current}")
            return TransitionResult(False, f"Unable to proceed, request is {current}")

        if edge.actor == Actor.CANDIDATE_KITCHEN:
            allowed = await self._is_kitchen_candidate(request, user_id)
        elif edge.actor == Actor.KITCHEN:
            allowed = user_id == _assigned_kitchen(request)
        elif edge.actor == Actor.CANDIDATE_AGENT:
            allowed = user_id in (request.get("agentCandidates") or [])
        elif edge.actor == Actor.AGENT:
            allowed = user_id == request.get("agentUserId")
        else:
            allowed = user_id in (_assigned_kitchen(request), request.get("agentUserId"))

        if not allowed:
            logger.info(f"{edge.name} rejected for {request.get('requestId')}: {user_id} is not the {edge.actor}")
            return TransitionResult(False, f"User {user_id} is not the {edge.actor} for this request")
        return None

    async def _is_kitchen_candidate(self, request: Dict[str, Any], user_id: str) -> bool:
        """Offered through the broadcast list or a reassignment row, and not declined since."""
        assignment = kitchen_assignment_from_document(request.get("kitchenUserId"))
        if not isinstance(assignment, UnassignedKitchen):
            return False

        rows = [row for row in await self.update_repo.find_by_request(request["requestId"])
                if row.get("userId") == user_id]
        if any(row.get("status") in DECLINED_AUDIT_STATUSES for row in rows):
            return False
        return assignment.offers(user_id) or bool(rows)

    async def _trip_distance(self, request: Dict[str, Any], kitchen_id: Optional[str],
                             payload: TransitionInput) -> Optional[float]:
        kitchen = await self.kitchen_repo.find_by_user_id(kitchen_id) if kitchen_id else None
        if not kitchen:
            return None
        try:
            return total_trip_distance_km(
                parse_point(payload.latitude, payload.longitude),
                parse_point(kitchen.latitude, kitchen.longitude),
                parse_point(request.get("dstLatitude"), request.get("dstLongitude")),
            )
        except InvalidCoordinates as e:
            logger.warning(f"No trip distance for {payload.request_id}: {e.message}")
            return None

    async def _commit(
            self,
            request: Dict[str, Any],
            payload: TransitionInput,
            status: str,
            patch: Dict[str, Any],
            message: str,
            notifications: Optional[List[Notification]] = None,
            data: Optional[Dict[str, Any]] = None,
            audit_extra: Optional[Dict[str, Any]] = None,
    ) -> TransitionResult:
        """
        Write the audit row, then patch the request only if its status is
        still the one read at the start. When the patch does not land the
        audit row is removed again, so either both writes persist or neither.
        """
        update = RequestStatusUpdateModel(
            request_id=payload.request_id,
            user_id=payload.user_id,
            status=status,
            latitude=payload.latitude,
            longitude=payload.longitude,
            date_and_time=payload.date_and_time,
            is_proceed_next=payload.is_proceed_next,
            reason=payload.reason or None,
            tea_type=payload.tea_type,
            quantity=payload.quantity,
            **(audit_extra or {}),
        )
        audit_id = await self.update_repo.add(update)

        try:
            matched = await self.request_repo.patch_if_status(request["_id"], request.get("requestStatus"), patch)
        except Exception:
            await self.update_repo.delete_by_ids([audit_id])
            raise

        if not matched:
            await self.update_repo.delete_by_ids([audit_id])
            logger.warning(f"{payload.request_id} changed while {payload.user_id} was updating it")
            return TransitionResult(False, "Request was updated by someone else, please retry")

        logger.info(f"{payload.request_id}: {status} by {payload.user_id}")
        return TransitionResult(True, message, notifications or [], data or {})


def _assigned_kitchen(request: Dict[str, Any]) -> Optional[str]:
    assignment = kitchen_assignment_from_document(request.get("kitchenUserId"))
    return assignment.kitchen if isinstance(assignment, AssignedKitchen) else None


def _status_patch(target: str, payload: TransitionInput) -> Dict[str, Any]:
    patch = {"requestStatus": target}
    if not payload.is_proceed_next:
        patch["reason"] = payload.reason
    return patch


# Create global instance
transition_service = TransitionService()
