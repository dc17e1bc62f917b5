from app.models.academic import AcademicTerm, AcademicYear, GradeLevel  # noqa: F401
from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.curriculum import CurriculumAssignment, CurriculumType  # noqa: F401
from app.models.schedule_constraint import ConstraintType, ScheduleConstraint  # noqa: F401
from app.models.school_class import SchoolClass  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.teacher import Teacher  # noqa: F401
from app.models.teacher_assignment import TeacherAssignment  # noqa: F401
from app.models.teaching_schedule import DayOfWeek, TeachingSchedule  # noqa: F401
from app.models.time_slot import TimeSlot  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
