"""
Kitchen API routes.
"""
from fastapi import APIRouter, BackgroundTasks

from app.api.responses import outcome
from app.domains.kitchens.service import kitchen_service
from app.schemas.request import KitchenDecline
from app.services.notification import notification_dispatcher

router = APIRouter()


@router.post("/decline-request")
async def decline_request(payload: KitchenDecline, background_tasks: BackgroundTasks):
    """
    Decline an offered request and offer it to kitchens further out.

    Args:
        payload: Declining kitchen, request id and status ``declined``
        background_tasks: Push delivery after the response

    Returns:
        Envelope with the newly offered kitchens
    """
    result = await kitchen_service.decline_and_reassign(payload.user_id, payload.request_id, payload.status)
    if result.success:
        background_tasks.add_task(notification_dispatcher.dispatch, result.notifications)

    data = {"newKitchens": result.new_kitchens, "radiusKm": result.radius_km} if result.success else None
    return outcome(result.success, result.message, data)
