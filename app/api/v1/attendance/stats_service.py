"""
Attendance aggregation. Read-only: every report is a pure reduction over the events in a
date range (optionally one class), so results can be cached by (tenant, range, class) and
must be invalidated by any write to that class/date.

The build_* functions take already-fetched event rows; the get_* coroutines run the range
query and delegate to them.
"""

from collections import Counter
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.enrollments import service as enrollment_service
from app.core.config import settings
from app.core.enums import AttendanceStatus
from app.core.exceptions import NotFoundError, ValidationError

from . import store
from .schemas import (
    AttendanceEventRow,
    ClassAttendanceStat,
    DailyAttendanceStat,
    StudentAttendanceHistory,
    StudentAttendanceStat,
    TodayAttendanceSummary,
)

PRESENT = AttendanceStatus.PRESENT.value
ABSENT = AttendanceStatus.ABSENT.value
LATE = AttendanceStatus.LATE.value
EXCUSED = AttendanceStatus.EXCUSED.value


def attendance_rate(attended: int, total: int) -> int:
    """round(attended / total * 100), halves rounded up; 0 when there is nothing to divide by."""
    if total <= 0:
        return 0
    return (200 * attended + total) // (2 * total)


def validate_date_range(start_date: date, end_date: date, max_days: Optional[int] = None) -> None:
    if start_date is None or end_date is None:
        raise ValidationError("start_date and end_date are required")
    if start_date > end_date:
        raise ValidationError(f"start_date {start_date} is after end_date {end_date}")
    max_days = max_days or settings.attendance_max_range_days
    span = (end_date - start_date).days + 1
    if span > max_days:
        raise ValidationError(f"Date range of {span} days exceeds the maximum of {max_days}")


def count_statuses(events: Iterable[AttendanceEventRow]) -> Counter:
    """Status -> count. Missing statuses read as 0."""
    return Counter(e.status for e in events)


# ----- Pure reductions -----
def build_class_stats(
    events: Iterable[AttendanceEventRow],
    classes: Iterable[Tuple[str, Optional[str]]] = (),
) -> List[ClassAttendanceStat]:
    """
    Group by (class_name, section). A class without a section (None) is its own bucket, never
    merged with a section named ''. Events without a class belong to no bucket. Each
    (class_name, section) in ``classes`` gets a bucket even when it has no events.
    """
    buckets: Dict[Tuple[str, Optional[str]], ClassAttendanceStat] = {}
    for class_name, section in classes:
        buckets[(class_name, section)] = ClassAttendanceStat(class_name=class_name, section=section)
    for e in events:
        if e.class_name is None:
            continue
        key = (e.class_name, e.section)
        stat = buckets.get(key)
        if stat is None:
            stat = buckets[key] = ClassAttendanceStat(class_name=e.class_name, section=e.section)
        if e.status == PRESENT:
            stat.present += 1
        elif e.status == ABSENT:
            stat.absent += 1
        elif e.status == LATE:
            stat.late += 1
        elif e.status == EXCUSED:
            stat.excused += 1
        stat.total += 1
    for stat in buckets.values():
        stat.rate = attendance_rate(stat.present + stat.late, stat.total)
    return list(buckets.values())


def build_student_stats(
    events: Iterable[AttendanceEventRow],
    threshold: Optional[int] = None,
) -> List[StudentAttendanceStat]:
    """Per-student counts, lowest attendance first so intervention candidates lead the list."""
    threshold = settings.attendance_low_threshold if threshold is None else threshold
    buckets: Dict[UUID, StudentAttendanceStat] = {}
    for e in events:
        stat = buckets.get(e.student_id)
        if stat is None:
            stat = buckets[e.student_id] = StudentAttendanceStat(
                student_id=e.student_id,
                student_code=e.student_code,
                student_name=e.student_name,
            )
        if e.status == PRESENT:
            stat.present_days += 1
        elif e.status == ABSENT:
            stat.absent_days += 1
        elif e.status == LATE:
            stat.late_days += 1
        elif e.status == EXCUSED:
            stat.excused_days += 1
        stat.total_days += 1
    for stat in buckets.values():
        stat.attendance_rate = attendance_rate(stat.present_days + stat.late_days, stat.total_days)
        stat.below_threshold = stat.attendance_rate < threshold
    return sorted(buckets.values(), key=lambda s: (s.attendance_rate, s.student_name, s.student_code))


def build_daily_series(
    events: Iterable[AttendanceEventRow],
    start_date: date,
    end_date: date,
) -> List[DailyAttendanceStat]:
    """One entry per calendar day in [start_date, end_date]; days without marks stay at zero."""
    days: Dict[date, DailyAttendanceStat] = {}
    current = start_date
    while current <= end_date:
        days[current] = DailyAttendanceStat(date=current)
        current += timedelta(days=1)
    for e in events:
        stat = days.get(e.attendance_date)
        if stat is None:
            continue
        if e.status == PRESENT:
            stat.present += 1
        elif e.status == ABSENT:
            stat.absent += 1
        elif e.status == LATE:
            stat.late += 1
        elif e.status == EXCUSED:
            stat.excused += 1
        stat.total += 1
    for stat in days.values():
        stat.rate = attendance_rate(stat.present + stat.late, stat.total)
    return list(days.values())


def build_today_summary(
    events: Iterable[AttendanceEventRow],
    on_date: date,
    total_students: int,
) -> TodayAttendanceSummary:
    events = list(events)
    counts = count_statuses(events)
    recorded = len(events)
    return TodayAttendanceSummary(
        attendance_date=on_date,
        total_students=total_students,
        present_today=counts[PRESENT],
        absent_today=counts[ABSENT],
        late_today=counts[LATE],
        excused_today=counts[EXCUSED],
        recorded_today=recorded,
        unmarked_students=max(total_students - recorded, 0),
        # Denominator is today's recorded events, not the roster size.
        attendance_rate=attendance_rate(counts[PRESENT] + counts[LATE], recorded),
    )


# ----- Queries -----
async def get_class_stats(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = None,
) -> List[ClassAttendanceStat]:
    validate_date_range(start_date, end_date)
    classes = []
    if class_id is not None:
        school_class = await enrollment_service.get_class_for_tenant(db, tenant_id, class_id)
        if school_class is None:
            raise NotFoundError(f"Class {class_id} not found")
        # A filtered class is reported even when it has no events in range.
        classes.append((school_class.class_name, school_class.section))
    events = await store.fetch_events(db, tenant_id, start_date, end_date, class_id=class_id)
    return build_class_stats(events, classes=classes)


async def get_student_stats(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = None,
    threshold: Optional[int] = None,
) -> List[StudentAttendanceStat]:
    validate_date_range(start_date, end_date)
    events = await store.fetch_events(db, tenant_id, start_date, end_date, class_id=class_id)
    return build_student_stats(events, threshold=threshold)


async def get_daily_series(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = None,
) -> List[DailyAttendanceStat]:
    validate_date_range(start_date, end_date)
    events = await store.fetch_events(db, tenant_id, start_date, end_date, class_id=class_id)
    return build_daily_series(events, start_date, end_date)


async def get_today_summary(
    db: AsyncSession,
    tenant_id: UUID,
    class_id: Optional[UUID] = None,
    on_date: Optional[date] = None,
) -> TodayAttendanceSummary:
    on_date = on_date or date.today()
    events = await store.fetch_events(db, tenant_id, on_date, on_date, class_id=class_id)
    total_students = await enrollment_service.count_active_students(db, tenant_id, class_id, on_date)
    return build_today_summary(events, on_date, total_students)


async def get_student_history(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
    start_date: date,
    end_date: date,
    threshold: Optional[int] = None,
) -> StudentAttendanceHistory:
    """A student's records in range plus their summary stat."""
    validate_date_range(start_date, end_date)
    student = await enrollment_service.get_student_for_tenant(db, tenant_id, student_id)
    if student is None:
        raise NotFoundError(f"Student {student_id} not found")
    events = await store.fetch_events(db, tenant_id, start_date, end_date, student_id=student_id)
    stats = build_student_stats(events, threshold=threshold)
    summary = stats[0] if stats else StudentAttendanceStat(
        student_id=student.id,
        student_code=student.student_code,
        student_name=student.full_name,
    )
    return StudentAttendanceHistory(
        student_id=student.id,
        student_code=student.student_code,
        student_name=student.full_name,
        start_date=start_date,
        end_date=end_date,
        summary=summary,
        records=events,
    )
