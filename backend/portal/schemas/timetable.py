from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

DAY_VALUES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _optional_id(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class PeriodPayload(BaseModel):
    day_of_week: str
    start_time: str
    end_time: str
    subject_id: str = Field(min_length=1, max_length=36)
    teacher_id: str | None = Field(default=None, max_length=36)
    location: str | None = Field(default=None, max_length=100)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str) -> str:
        day = value.strip().capitalize()
        if day not in DAY_VALUES:
            raise ValueError("Invalid day value")
        return day

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        value = value.strip()
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @field_validator("teacher_id", "location")
    @classmethod
    def normalize_optional(cls, value: str | None) -> str | None:
        return _optional_id(value)

    @model_validator(mode="after")
    def validate_order(self) -> "PeriodPayload":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class TimetableBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    academic_year_id: str = Field(min_length=1, max_length=36)
    class_id: str = Field(min_length=1, max_length=36)
    term_id: str | None = Field(default=None, max_length=36)
    description: str | None = Field(default=None, max_length=2000)
    periods: list[PeriodPayload] = Field(default_factory=list, max_length=500)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @field_validator("term_id")
    @classmethod
    def normalize_term(cls, value: str | None) -> str | None:
        return _optional_id(value)


class TimetableCreate(TimetableBase):
    is_active: bool = False


class TimetableUpdate(TimetableBase):
    is_active: bool | None = None


class TimetableCopyRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    academic_year_id: str | None = Field(default=None, max_length=36)
    class_id: str | None = Field(default=None, max_length=36)
    term_id: str | None = Field(default=None, max_length=36)
    description: str | None = Field(default=None, max_length=2000)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @field_validator("term_id")
    @classmethod
    def normalize_term(cls, value: str | None) -> str | None:
        return _optional_id(value)


class ConflictCheckRequest(TimetableBase):
    timetable_id: str | None = Field(default=None, max_length=36)
    name: str = "draft"


class ConflictOut(BaseModel):
    conflict_type: str
    message: str
    day_of_week: str
    other_timetable_id: str | None = None


class ConflictCheckOut(BaseModel):
    has_conflict: bool
    conflict: ConflictOut | None = None


class PeriodOut(BaseModel):
    id: str
    day_of_week: str
    start_time: str
    end_time: str
    subject_id: str
    teacher_id: str | None
    location: str | None

    model_config = {"from_attributes": True}


class TimetableOut(BaseModel):
    id: str
    name: str
    academic_year_id: str
    class_id: str
    term_id: str | None
    is_active: bool
    version: int
    description: str | None
    periods: list[PeriodOut]
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}
