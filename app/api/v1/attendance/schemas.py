from datetime import date, datetime, time
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import AttendanceStatus


ATTENDANCE_STATUSES = tuple(s.value for s in AttendanceStatus)


# ----- Recorder input -----
class AttendanceMarkRequest(BaseModel):
    """Mark attendance for a single student. Required fields are checked by the service."""

    student_id: Optional[UUID] = None
    attendance_date: Optional[date] = None
    status: Optional[str] = Field(None, description="present, absent, late, excused")
    class_id: Optional[UUID] = None
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    notes: Optional[str] = None


class BulkAttendanceMarkRequest(BaseModel):
    """Bulk mark one class for one date. statuses maps student_id -> status."""

    class_id: Optional[UUID] = None
    attendance_date: Optional[date] = None
    statuses: Dict[UUID, str] = Field(default_factory=dict)
    # Explicit opt-in: roster students missing from statuses are marked present.
    mark_remaining_present: bool = False


class AttendanceRecordUpdate(BaseModel):
    """Edit an existing record in place (same key, new mutable fields)."""

    status: Optional[str] = Field(None, description="present, absent, late, excused")
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    notes: Optional[str] = None


class BulkMarkResponse(BaseModel):
    marked: int
    message: str


# ----- Stored / read rows -----
class AttendanceEventResponse(BaseModel):
    """A stored attendance event."""

    id: UUID
    tenant_id: UUID
    student_id: UUID
    class_id: Optional[UUID] = None
    attendance_date: date
    status: str
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    notes: Optional[str] = None
    marked_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AttendanceEventRow(BaseModel):
    """Attendance event joined with student and class display attributes."""

    id: UUID
    student_id: UUID
    student_code: str
    student_name: str
    class_id: Optional[UUID] = None
    class_name: Optional[str] = None
    section: Optional[str] = None
    attendance_date: date
    status: str
    time_in: Optional[time] = None
    time_out: Optional[time] = None
    notes: Optional[str] = None
    marked_by: Optional[UUID] = None


class AttendanceDaySummary(BaseModel):
    """Day view for one date (optionally one class)."""

    attendance_date: date
    class_id: Optional[UUID] = None
    total_present: int
    total_absent: int
    total_late: int
    total_excused: int
    attendance_rate: int
    records: List[AttendanceEventRow]


class RosterEntry(BaseModel):
    """A roster student with their status for the day, None when not yet marked."""

    student_id: UUID
    student_code: str
    student_name: str
    status: Optional[str] = None
    record_id: Optional[UUID] = None


# ----- Aggregator output -----
# Field order below is the export column order; downstream spreadsheets depend on it.
class ClassAttendanceStat(BaseModel):
    class_name: str
    section: Optional[str] = None
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    total: int = 0
    rate: int = 0


class StudentAttendanceStat(BaseModel):
    student_id: UUID
    student_code: str
    student_name: str
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    excused_days: int = 0
    total_days: int = 0
    attendance_rate: int = 0
    below_threshold: bool = False


class DailyAttendanceStat(BaseModel):
    date: date
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    total: int = 0
    rate: int = 0


class TodayAttendanceSummary(BaseModel):
    """
    Snapshot for one day. attendance_rate is computed over recorded events only;
    unmarked_students shows how many roster students it does not account for.
    """

    attendance_date: date
    total_students: int
    present_today: int
    absent_today: int
    late_today: int
    excused_today: int
    recorded_today: int
    unmarked_students: int
    attendance_rate: int


class StudentAttendanceHistory(BaseModel):
    student_id: UUID
    student_code: str
    student_name: str
    start_date: date
    end_date: date
    summary: StudentAttendanceStat
    records: List[AttendanceEventRow]
