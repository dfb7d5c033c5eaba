from app.core.models.tenant import Tenant
from app.core.models.class_model import SchoolClass
from app.core.models.student import Student
from app.core.models.student_enrollment import StudentEnrollment
from app.core.models.student_attendance import ATTENDANCE_KEY_COLUMNS, CLASSLESS_KEY_COLUMNS, StudentAttendance

__all__ = [
    "ATTENDANCE_KEY_COLUMNS",
    "CLASSLESS_KEY_COLUMNS",
    "SchoolClass",
    "Student",
    "StudentAttendance",
    "StudentEnrollment",
    "Tenant",
]
