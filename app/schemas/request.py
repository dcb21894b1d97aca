"""
Request schema models for validation.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Payloads are camelCase on the wire and snake_case in code."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CanisterLevelCheck(CamelModel):
    """Schema for a canister level reading from a machine."""
    machine_id: str = Field(..., min_length=1)
    canister_level: float

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={"example": {"machineId": "M001", "canisterLevel": 15}},
    )


class TransitionInput(CamelModel):
    """Schema shared by every request status mutation."""
    user_id: str = Field(..., min_length=1)
    request_id: str = Field(..., min_length=1)
    latitude: float
    longitude: float
    status: str = Field(..., min_length=1)
    date_and_time: str = Field(..., min_length=1)
    is_proceed_next: bool
    reason: Optional[str] = None
    tea_type: Optional[str] = None
    quantity: Optional[float] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "userId": "USER001",
                "requestId": "REQ-0001",
                "latitude": 12.9716,
                "longitude": 77.5946,
                "status": "Accepted",
                "dateAndTime": "17/10/2026, 3:05:09 pm",
                "isProceedNext": True,
                "reason": "",
            }
        },
    )


class KitchenDecline(CamelModel):
    """Schema for a kitchen declining a request it was offered."""
    user_id: str = Field(..., min_length=1)
    request_id: str = Field(..., min_length=1)
    status: str

