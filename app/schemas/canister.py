"""
Canister schema models for validation.
"""
from pydantic import Field

from app.schemas.request import CamelModel


class CanisterCreate(CamelModel):
    """Schema for registering a canister to a kitchen."""
    user_id: str = Field(..., min_length=1)
    status: str
    scan_type: str
    latitude: float
    longitude: float

