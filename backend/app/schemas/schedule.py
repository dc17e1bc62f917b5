from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.teaching_schedule import DayOfWeek, parse_day


def _coerce_day(value):
    if isinstance(value, (int, str)):
        try:
            return parse_day(value)
        except ValueError as exc:
            raise ValueError("day_of_week must be 1-7 or a weekday name") from exc
    return value


class TeachingScheduleBase(BaseModel):
    academic_term_id: str = Field(min_length=1, max_length=36)
    class_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    time_slot_id: str = Field(min_length=1, max_length=36)
    day_of_week: DayOfWeek
    week_number: int = Field(default=1, ge=1, le=53)
    room: str | None = Field(default=None, max_length=50)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("day_of_week", mode="before")
    @classmethod
    def coerce_day(cls, value):
        return _coerce_day(value)


class TeachingScheduleCreate(TeachingScheduleBase):
    # Warn-and-allow: insert even when the conflict check reports findings.
    allow_conflicts: bool = False


class TeachingScheduleOut(TeachingScheduleBase):
    id: str
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ConflictCheckResponse(BaseModel):
    conflicts: list[str] = Field(default_factory=list)


class ManualScheduleResponse(BaseModel):
    schedule: TeachingScheduleOut
    conflicts: list[str] = Field(default_factory=list)


class GenerationSettings(BaseModel):
    # optimize_workload and other legacy toggles are accepted and ignored.
    model_config = ConfigDict(extra="ignore")

    clear_existing: bool = True
    generate_special_activities: bool = True
    respect_constraints: bool = True
    balance_subjects: bool = True
    max_periods_per_day: int | None = Field(default=None, ge=1, le=12)


class GenerateScheduleRequest(BaseModel):
    academic_term_id: str = Field(min_length=1, max_length=36)
    settings: GenerationSettings = Field(default_factory=GenerationSettings)


ShortfallReason = Literal["teacher_missing", "no_slot"]


class SubjectCoverage(BaseModel):
    class_id: str
    class_name: str | None = None
    subject_id: str
    subject_code: str | None = None
    teacher_id: str | None = None
    required: int = Field(ge=0)
    scheduled: int = Field(ge=0)
    shortfall: int = Field(ge=0)
    reason: ShortfallReason | None = None


class GenerationStats(BaseModel):
    total_lessons: int
    classes_scheduled: int
    teachers_assigned: int


class GenerateScheduleResponse(BaseModel):
    message: str
    academic_term_id: str
    schedules: list[TeachingScheduleOut]
    stats: GenerationStats
    coverage: list[SubjectCoverage]
    shortfalls: list[SubjectCoverage]
    state_trace: list[str]
    settings_used: GenerationSettings
    runtime_ms: int


class DeleteSchedulesResponse(BaseModel):
    message: str
    deleted: int


class CoverageReport(BaseModel):
    academic_term_id: str
    coverage: list[SubjectCoverage]
    under_filled: int
