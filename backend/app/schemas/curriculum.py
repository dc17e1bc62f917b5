from pydantic import BaseModel, Field, model_validator

from app.models.curriculum import CurriculumType


class CurriculumAssignmentCreate(BaseModel):
    academic_term_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    class_id: str | None = Field(default=None, min_length=1, max_length=36)
    grade_level_id: str | None = Field(default=None, min_length=1, max_length=36)
    type: CurriculumType = CurriculumType.mandatory
    weekly_periods: int = Field(ge=1, le=20)

    @model_validator(mode="after")
    def validate_scope(self) -> "CurriculumAssignmentCreate":
        # Class-specific rows never carry a grade scope.
        if self.class_id is not None and self.grade_level_id is not None:
            raise ValueError("Provide either class_id or grade_level_id, not both")
        return self


class CurriculumAssignmentOut(CurriculumAssignmentCreate):
    id: str

    model_config = {"from_attributes": True}


class TeacherAssignmentCreate(BaseModel):
    academic_term_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    class_id: str = Field(min_length=1, max_length=36)
    subject_id: str = Field(min_length=1, max_length=36)
    is_active: bool = True


class TeacherAssignmentOut(TeacherAssignmentCreate):
    id: str

    model_config = {"from_attributes": True}
