from typing import List, Optional, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator

from school_admin.utils.timeslots import normalize_day, normalize_time

_ID_FIELDS = ("class_id", "teacher_id", "period_id", "room_id")


class _ScheduleFields(BaseModel):
    # UI 可能送 "" 或 null，一律視為 None
    @field_validator(*_ID_FIELDS, "notes", mode="before", check_fields=False)
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator("day_of_week", mode="before", check_fields=False)
    @classmethod
    def _day(cls, v):
        return normalize_day(v)

    @field_validator("start_time", "end_time", mode="before", check_fields=False)
    @classmethod
    def _time(cls, v):
        return normalize_time(v)


class ScheduleCreate(_ScheduleFields):
    class_id: Optional[str] = None
    teacher_id: Optional[str] = None
    subject: str = Field(..., min_length=1, max_length=100)
    grade: str = Field(..., min_length=1, max_length=50)
    day_of_week: str
    period_id: Optional[str] = None
    room_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    academic_year: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None


class ScheduleUpdate(_ScheduleFields):
    model_config = ConfigDict(extra="forbid")

    class_id: Optional[str] = None
    teacher_id: Optional[str] = None
    subject: Optional[str] = Field(default=None, min_length=1, max_length=100)
    grade: Optional[str] = Field(default=None, min_length=1, max_length=50)
    day_of_week: Optional[str] = None
    period_id: Optional[str] = None
    room_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    academic_year: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class ConflictCheckIn(_ScheduleFields):
    day_of_week: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    period_id: Optional[str] = None
    teacher_id: Optional[str] = None
    room_id: Optional[str] = None
    exclude_id: Optional[str] = None


class TeacherBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None


class PeriodBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    period_number: int
    start_time: str
    end_time: str


class RoomBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    room_number: str
    room_name: Optional[str] = None
    capacity: Optional[int] = None


class ScheduleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    class_id: Optional[str] = None
    teacher_id: Optional[str] = None
    subject: str
    grade: str
    day_of_week: str
    period_id: Optional[str] = None
    room_id: Optional[str] = None
    start_time: str
    end_time: str
    academic_year: Optional[str] = None
    is_active: bool
    notes: Optional[str] = None
    created_by: Optional[str] = None

    teacher: Optional[TeacherBrief] = None
    period: Optional[PeriodBrief] = None
    room: Optional[RoomBrief] = None


class ScheduleEnvelope(BaseModel):
    schedule: ScheduleOut


class ScheduleListOut(BaseModel):
    schedules: List[ScheduleOut]


class ConflictEntryOut(BaseModel):
    id: Optional[str] = None
    subject: Optional[str] = None
    day_of_week: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    teacher_id: Optional[str] = None
    room_id: Optional[str] = None


class ConflictCheckOut(BaseModel):
    has_conflict: bool
    teacher_conflict: bool
    teacher_conflicts: List[ConflictEntryOut] = []
    room_conflict: bool
    room_conflicts: List[ConflictEntryOut] = []


class ScheduleClashOut(BaseModel):
    type: str
    day_of_week: str
    resource_id: str
    schedules: List[ConflictEntryOut]


class ScheduleClashReportOut(BaseModel):
    total_conflicts: int
    conflicts_by_type: Dict[str, int]
    conflicts: List[ScheduleClashOut]


class TeacherTimetableOut(BaseModel):
    schedules: List[ScheduleOut]
    grid: Dict[str, List[ScheduleOut]]  # "Monday".."Sunday"
