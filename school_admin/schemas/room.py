from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class _RoomFields(BaseModel):
    # UI often sends capacity as "" or a numeric string
    @field_validator("capacity", mode="before", check_fields=False)
    @classmethod
    def _capacity(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class RoomCreate(_RoomFields):
    room_number: str = Field(..., min_length=1, max_length=50)
    room_name: Optional[str] = Field(default=None, max_length=255)
    capacity: Optional[int] = Field(default=None, ge=1, le=1000)
    location: Optional[str] = None


class RoomUpdate(_RoomFields):
    model_config = ConfigDict(extra="forbid")

    room_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    room_name: Optional[str] = Field(default=None, max_length=255)
    capacity: Optional[int] = Field(default=None, ge=1, le=1000)
    location: Optional[str] = None
    is_active: Optional[bool] = None


class RoomOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    room_number: str
    room_name: Optional[str] = None
    capacity: Optional[int] = None
    location: Optional[str] = None
    is_active: bool


class RoomEnvelope(BaseModel):
    room: RoomOut


class RoomListOut(BaseModel):
    rooms: List[RoomOut]
