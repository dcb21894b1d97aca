# app/models/machine.py
from typing import List, Optional, Union

from pydantic import Field

from app.models.request import DocumentModel


class MachineType:
    FULL_TIME = "Full Time"
    PART_TIME = "Part Time"


class MachineAddress(DocumentModel):
    building: str = ""
    floor: str = ""
    area: str = ""
    district: str = ""
    state: str = ""

    def one_line(self) -> str:
        return ", ".join([self.building, self.floor, self.area, self.district, self.state])


class MachineModel(DocumentModel):
    """Vending machine as read by the dispatch core"""
    id: str
    name: Optional[str] = None
    address: MachineAddress = Field(default_factory=MachineAddress)
    gis_latitude: Optional[Union[str, float]] = None
    gis_longitude: Optional[Union[str, float]] = None
    kitchen_id: Optional[Union[str, List[str]]] = None
    machine_type: Optional[str] = None
    end_time: Optional[str] = None
    tea_fill_start_quantity: Optional[float] = None
    tea_fill_end_quantity: Optional[float] = None
    status: Optional[str] = None

    @property
    def kitchen_ids(self) -> List[str]:
        """Mapped kitchen userIds; a single string and a list are both accepted."""
        if not self.kitchen_id:
            return []
        if isinstance(self.kitchen_id, str):
            return [self.kitchen_id]
        return [kitchen_id for kitchen_id in self.kitchen_id if kitchen_id]
