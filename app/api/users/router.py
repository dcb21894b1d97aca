"""
App user API routes for push token maintenance.
"""
from fastapi import APIRouter

from app.api.responses import success
from app.domains.users.service import app_user_service
from app.schemas.user import PushTokenUpdate, UserLogout

router = APIRouter()


@router.put("/fcm-token")
async def update_fcm_token(payload: PushTokenUpdate):
    """
    Store the push token of a freshly logged-in device.

    Args:
        payload: userId, token and device details

    Returns:
        Success envelope
    """
    await app_user_service.update_push_token(
        payload.user_id,
        payload.fcm_token,
        payload.user_device,
        payload.app_version,
    )
    return success("FCM token updated successfully")


@router.post("/logout")
async def logout(payload: UserLogout):
    """Clear the device's push token; always succeeds."""
    await app_user_service.logout(payload.user_id, payload.fcm_token)
    return success("User logout updated successfully")
