from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.schedule_constraint import ConstraintType
from app.models.teaching_schedule import DayOfWeek, parse_day


class ScheduleConstraintCreate(BaseModel):
    academic_term_id: str | None = Field(default=None, min_length=1, max_length=36)
    constraint_type: ConstraintType
    teacher_id: str | None = Field(default=None, min_length=1, max_length=36)
    class_id: str | None = Field(default=None, min_length=1, max_length=36)
    day_of_week: DayOfWeek
    time_slot_id: str = Field(min_length=1, max_length=36)
    reason: str | None = Field(default=None, max_length=500)
    is_active: bool = True

    @field_validator("day_of_week", mode="before")
    @classmethod
    def coerce_day(cls, value):
        if isinstance(value, (int, str)):
            try:
                return parse_day(value)
            except ValueError as exc:
                raise ValueError("day_of_week must be 1-7 or a weekday name") from exc
        return value

    @model_validator(mode="after")
    def validate_target(self) -> "ScheduleConstraintCreate":
        if self.constraint_type == ConstraintType.teacher_unavailable and not self.teacher_id:
            raise ValueError("teacher_id is required for teacher_unavailable constraints")
        if self.constraint_type == ConstraintType.class_unavailable and not self.class_id:
            raise ValueError("class_id is required for class_unavailable constraints")
        return self


class ScheduleConstraintOut(ScheduleConstraintCreate):
    id: str

    model_config = {"from_attributes": True}
