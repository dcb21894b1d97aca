"""
App user schema models for validation.
"""
from pydantic import Field

from app.schemas.request import CamelModel


class PushTokenUpdate(CamelModel):
    """Schema for storing a device push token."""
    user_id: str = Field(..., min_length=1)
    fcm_token: str = Field(..., min_length=1)
    user_device: str = ""
    app_version: str = ""


class UserLogout(CamelModel):
    """Schema for logging a device out."""
    user_id: str = Field(..., min_length=1)
    fcm_token: str
