import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.teaching_schedule import DayOfWeek


class ConstraintType(str, Enum):
    teacher_unavailable = "teacher_unavailable"
    class_unavailable = "class_unavailable"


class ScheduleConstraint(Base):
    """Hard exclusion of one (teacher or class, day, slot); a null term applies to every term."""

    __tablename__ = "schedule_constraints"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    academic_term_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("academic_terms.id", ondelete="CASCADE"), nullable=True, index=True
    )
    constraint_type: Mapped[ConstraintType] = mapped_column(
        SAEnum(ConstraintType, name="schedule_constraint_type"), nullable=False
    )
    teacher_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("teachers.id"), nullable=True)
    class_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=True)
    day_of_week: Mapped[DayOfWeek] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), nullable=False)
    time_slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("time_slots.id"), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
