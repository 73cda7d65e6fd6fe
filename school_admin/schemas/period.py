from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from school_admin.utils.timeslots import check_time_range, normalize_time


class PeriodCreate(BaseModel):
    period_number: int = Field(..., ge=1, le=20)
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _time(cls, v):
        return normalize_time(v)

    @model_validator(mode="after")
    def _range(self):
        check_time_range(self.start_time, self.end_time)
        return self


class PeriodUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period_number: Optional[int] = Field(default=None, ge=1, le=20)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _time(cls, v):
        return normalize_time(v)


class PeriodOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    period_number: int
    start_time: str
    end_time: str
    is_active: bool


class PeriodEnvelope(BaseModel):
    period: PeriodOut


class PeriodListOut(BaseModel):
    periods: List[PeriodOut]
