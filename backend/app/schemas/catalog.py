from __future__ import annotations

from datetime import date
import re

from pydantic import BaseModel, Field, field_validator, model_validator

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class DateRangeMixin(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_date_order(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AcademicYearCreate(DateRangeMixin):
    name: str = Field(min_length=1, max_length=50)


class AcademicYearOut(AcademicYearCreate):
    id: str

    model_config = {"from_attributes": True}


class AcademicTermCreate(DateRangeMixin):
    academic_year_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=100)


class AcademicTermOut(AcademicTermCreate):
    id: str

    model_config = {"from_attributes": True}


class GradeLevelCreate(BaseModel):
    level: int = Field(ge=1, le=12)
    name: str = Field(min_length=1, max_length=100)


class GradeLevelOut(GradeLevelCreate):
    id: str

    model_config = {"from_attributes": True}


class SchoolClassCreate(BaseModel):
    academic_year_id: str = Field(min_length=1, max_length=36)
    grade_level_id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=100)
    is_combined: bool = False
    room_number: str | None = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Class name cannot be empty")
        return trimmed


class SchoolClassOut(SchoolClassCreate):
    id: str

    model_config = {"from_attributes": True}


class SubjectCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Subject code cannot be empty")
        return code


class SubjectOut(SubjectCreate):
    id: str

    model_config = {"from_attributes": True}


class TeacherCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255)
    user_id: str | None = Field(default=None, max_length=36)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TeacherOut(TeacherCreate):
    id: str

    model_config = {"from_attributes": True}


class TimeSlotCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_time: str
    end_time: str
    order_index: int = Field(ge=1, le=30)
    is_break: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "TimeSlotCreate":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class TimeSlotOut(TimeSlotCreate):
    id: str

    model_config = {"from_attributes": True}
