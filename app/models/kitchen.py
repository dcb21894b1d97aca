# app/models/kitchen.py
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.models.request import DocumentModel

ONLINE = "online"
OFFLINE = "offline"


class KitchenModel(DocumentModel):
    """Refill station with a login identity"""
    user_id: str
    name: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = OFFLINE
    manager: Optional[str] = None
    manager_mobile: Optional[str] = None
    members: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def is_online(self) -> bool:
        return self.status == ONLINE


class DeliveryAgentModel(DocumentModel):
    """Courier that picks up refilled canisters and delivers them"""
    user_id: str
    name: Optional[str] = None
    mobile: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = OFFLINE

    @property
    def is_online(self) -> bool:
        return self.status == ONLINE


class AppUserModel(DocumentModel):
    """Mobile app login used to resolve push recipients"""
    user_id: str
    role: Optional[str] = None
    fcm_token: str = ""
    user_device: str = ""
    app_version: str = ""


class CanisterModel(DocumentModel):
    """Tea canister registered to a kitchen"""
    scan_id: str
    kitchen_id: str
    status: str
    scan_type: str
    latitude: float
    longitude: float
    registration_date_time: str
    last_updated: str
    is_active: bool = True
