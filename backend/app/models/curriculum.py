import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class CurriculumType(str, Enum):
    mandatory = "mandatory"
    elective = "elective"


class CurriculumAssignment(Base):
    """Weekly lesson requirement for a subject in a term.

    Rows with ``class_id`` set are class-specific. Rows without a class are
    templates: school-wide when ``grade_level_id`` is also empty, otherwise
    scoped to one grade level.
    """

    __tablename__ = "curriculum_assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    academic_term_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("academic_terms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[str] = mapped_column(String(36), ForeignKey("subjects.id"), nullable=False)
    class_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=True, index=True
    )
    grade_level_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("grade_levels.id"), nullable=True)
    type: Mapped[CurriculumType] = mapped_column(
        SAEnum(CurriculumType, name="curriculum_type"), nullable=False, default=CurriculumType.mandatory
    )
    weekly_periods: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
