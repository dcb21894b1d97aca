"""
Request API routes for refill creation, status updates and lookups.
"""
from fastapi import APIRouter, BackgroundTasks

from app.api.responses import outcome, success
from app.domains.requests.service import request_service
from app.domains.requests.transitions import TransitionResult, transition_service
from app.schemas.request import CanisterLevelCheck, TransitionInput
from app.services.notification import notification_dispatcher

router = APIRouter()


def _respond(result: TransitionResult, background_tasks: BackgroundTasks):
    """Queue the pushes of a committed change and wrap the result."""
    if result.success and result.notifications:
        background_tasks.add_task(notification_dispatcher.dispatch, result.notifications)
    return outcome(result.success, result.message, result.data or None)


@router.post("/canister-level")
async def check_canister_level(payload: CanisterLevelCheck, background_tasks: BackgroundTasks):
    """
    Report a canister level; low levels create a refill request.

    Args:
        payload: Machine id and fill level in percent
        background_tasks: Push delivery after the response

    Returns:
        Envelope with the request id, offered kitchens, priority and quantity
    """
    result = await request_service.check_canister_level(payload.machine_id, payload.canister_level)
    if result.success and result.notifications:
        background_tasks.add_task(notification_dispatcher.dispatch, result.notifications)

    data = result.to_data() if result.request_id else None
    return outcome(result.success, result.message, data)


@router.post("/accept-or-decline")
async def accept_or_decline(payload: TransitionInput, background_tasks: BackgroundTasks):
    """Kitchen accepts or declines a pending request."""
    result = await transition_service.kitchen_accept_or_decline(payload)
    return _respond(result, background_tasks)


@router.post("/order-ready")
async def order_ready(payload: TransitionInput, background_tasks: BackgroundTasks):
    """Kitchen marks the order ready; nearby agents are offered it."""
    result = await transition_service.order_ready(payload)
    return _respond(result, background_tasks)


@router.post("/assign-or-decline")
async def assign_or_decline(payload: TransitionInput, background_tasks: BackgroundTasks):
    """Agent takes or passes on a ready order."""
    result = await transition_service.agent_assign_or_decline(payload)
    return _respond(result, background_tasks)


@router.post("/picked-up")
async def picked_up(payload: TransitionInput, background_tasks: BackgroundTasks):
    result = await transition_service.picked_up(payload)
    return _respond(result, background_tasks)


@router.post("/ongoing")
async def ongoing(payload: TransitionInput, background_tasks: BackgroundTasks):
    result = await transition_service.ongoing(payload)
    return _respond(result, background_tasks)


@router.post("/refilled-or-not-refilled")
async def refilled_or_not_refilled(payload: TransitionInput, background_tasks: BackgroundTasks):
    result = await transition_service.refilled_or_not_refilled(payload)
    return _respond(result, background_tasks)


@router.post("/submit-or-not-submit")
async def submit_or_not_submit(payload: TransitionInput, background_tasks: BackgroundTasks):
    result = await transition_service.submit_or_not_submit(payload)
    return _respond(result, background_tasks)


@router.post("/complete-or-cancel")
async def complete_or_cancel(payload: TransitionInput, background_tasks: BackgroundTasks):
    """Kitchen or agent closes the request."""
    result = await transition_service.complete_or_cancel(payload)
    return _respond(result, background_tasks)


@router.get("/kitchen/{user_id}")
async def get_kitchen_requests(user_id: str):
    """
    Get open requests offered to or held by a kitchen.

    Args:
        user_id: Kitchen userId

    Returns:
        Envelope with the requests, newest first
    """
    requests = await request_service.get_kitchen_requests(user_id)
    return success("Requests fetched", requests)


@router.get("/agent/{user_id}")
async def get_agent_orders(user_id: str):
    """
    Get open orders for a delivery agent.

    Args:
        user_id: Agent userId

    Returns:
        Envelope with the orders, newest first
    """
    orders = await request_service.get_agent_orders(user_id)
    return success("Orders fetched", orders)


@router.get("/history/{user_id}")
async def get_history(user_id: str):
    """Completed and cancelled requests closed by a kitchen or agent."""
    history = await request_service.get_history(user_id)
    return success("History fetched", history)


@router.get("/{request_id}")
async def get_request(request_id: str):
    """Get one request by its id."""
    request = await request_service.get_request(request_id)
    return success("Request fetched", request)
