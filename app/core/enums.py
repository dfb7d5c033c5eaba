from enum import Enum


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


# Statuses that imply the student was on site; these get an automatic time_in.
PRESENCE_STATUSES = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)


class EnrollmentStatus(str, Enum):
    active = "active"
    completed = "completed"
    dropped = "dropped"


class RecordStatus(str, Enum):
    """Lifecycle status shared by tenants, classes and students."""

    active = "active"
    inactive = "inactive"
