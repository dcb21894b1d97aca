# app/models/request.py
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    ORDER_READY = "OrderReady"
    ASSIGNED = "Assigned"
    PICKED_UP = "PickedUp"
    ONGOING = "Ongoing"
    REFILLED = "Refilled"
    NOT_REFILLED = "NotRefilled"
    SUBMITTED = "Submitted"
    NOT_SUBMITTED = "NotSubmitted"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    DECLINED = "Declined"
    NO_KITCHENS_FOUND = "No Kitchens Found"
    NO_AVAILABLE_KITCHENS = "No Available Kitchens"


# Audit status written when a kitchen declines through the reassignment flow
KITCHEN_DECLINED_STATUS = "declined"

# Audit statuses that withdraw a kitchen or agent from a request
DECLINED_AUDIT_STATUSES = {RequestStatus.DECLINED.value, KITCHEN_DECLINED_STATUS}


class UnassignedKitchen(BaseModel):
    """Request still broadcast to a pool of candidate kitchens."""
    candidates: List[str] = Field(default_factory=list)

    def offers(self, user_id: str) -> bool:
        return user_id in self.candidates

    def to_document(self) -> List[str]:
        return list(self.candidates)


class AssignedKitchen(BaseModel):
    """Request narrowed to the one kitchen that accepted it."""
    kitchen: str

    def offers(self, user_id: str) -> bool:
        return user_id == self.kitchen

    def to_document(self) -> str:
        return self.kitchen


KitchenAssignment = Union[UnassignedKitchen, AssignedKitchen]


def kitchen_assignment_from_document(value) -> KitchenAssignment:
    """
    Read the stored ``kitchenUserId`` (list while broadcast, string once
    accepted) into its tagged form. Missing and empty values are an empty pool.
    """
    if isinstance(value, str) and value:
        return AssignedKitchen(kitchen=value)
    if isinstance(value, list):
        return UnassignedKitchen(candidates=[str(item) for item in value if item])
    return UnassignedKitchen()


class DocumentModel(BaseModel):
    """Base for models persisted with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class RequestModel(DocumentModel):
    """Database model for refill requests"""
    request_id: str
    machine_id: str
    request_status: str = RequestStatus.PENDING.value
    kitchen_status: str = RequestStatus.PENDING.value
    agent_status: str = RequestStatus.PENDING.value
    kitchen_user_id: Union[List[str], str] = Field(default_factory=list)
    agent_user_id: str = ""
    agent_candidates: List[str] = Field(default_factory=list)
    priority: int = 2
    quantity: Optional[float] = None
    request_date_time: str
    dst_address: Optional[str] = None
    dst_latitude: Optional[float] = None
    dst_longitude: Optional[float] = None
    dst_contact_name: Optional[str] = None
    dst_contact_number: Optional[str] = None
    src_address: Optional[str] = None
    src_latitude: Optional[float] = None
    src_longitude: Optional[float] = None
    src_contact_name: Optional[str] = None
    src_contact_number: Optional[str] = None
    reason: Optional[str] = None


class RequestStatusUpdateModel(DocumentModel):
    """Append-only audit row addressed to one kitchen or agent"""
    request_id: str
    user_id: str
    status: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    date_and_time: str
    is_proceed_next: bool = False
    reason: Optional[str] = None
    message: Optional[str] = None
    tea_type: Optional[str] = None
    quantity: Optional[float] = None
    total_distance: Optional[float] = None
