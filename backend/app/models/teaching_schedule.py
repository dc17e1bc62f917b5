import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class DayOfWeek(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"

    @classmethod
    def from_number(cls, day: int) -> "DayOfWeek":
        members = list(cls)
        if day < 1 or day > len(members):
            raise ValueError(f"Day number must be between 1 and 7, got {day}")
        return members[day - 1]

    @property
    def number(self) -> int:
        return list(DayOfWeek).index(self) + 1


def parse_day(value: int | str) -> DayOfWeek:
    """Accept 1-7 (Monday=1), a digit string, or a weekday name."""
    if isinstance(value, int):
        return DayOfWeek.from_number(value)
    text = value.strip().lower()
    if text.isdigit():
        return DayOfWeek.from_number(int(text))
    return DayOfWeek(text)


def parse_day_lenient(value: int | str | None) -> DayOfWeek:
    """Like parse_day, but anything unrecognised falls back to Monday."""
    if value is None:
        return DayOfWeek.monday
    try:
        return parse_day(value)
    except ValueError:
        return DayOfWeek.monday


class TeachingSchedule(Base):
    __tablename__ = "teaching_schedules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    academic_term_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("academic_terms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id: Mapped[str] = mapped_column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), ForeignKey("teachers.id"), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id"), nullable=False)
    time_slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("time_slots.id"), nullable=False)
    day_of_week: Mapped[DayOfWeek] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    room: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
