from portal.models.academic_year import AcademicYear, Term  # noqa: F401
from portal.models.exam import Assessment, Exam, ExamStatus  # noqa: F401
from portal.models.grading_scale import GradingScale, ScaleType  # noqa: F401
from portal.models.mark import Mark  # noqa: F401
from portal.models.school_class import SchoolClass  # noqa: F401
from portal.models.student import Student  # noqa: F401
from portal.models.subject import Subject  # noqa: F401
from portal.models.timetable import Timetable, TimetablePeriod  # noqa: F401
from portal.models.user import User, UserRole  # noqa: F401
