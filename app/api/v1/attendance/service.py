"""Attendance recorder: single and bulk marks with one record per (student, date, class)."""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.enrollments import service as enrollment_service
from app.core.enums import PRESENCE_STATUSES, AttendanceStatus
from app.core.exceptions import EmptyRosterError, NotFoundError, StorageError, ValidationError
from app.core.logging import get_logger
from app.core.models import StudentAttendance

from . import stats_service, store
from .schemas import (
    ATTENDANCE_STATUSES,
    AttendanceDaySummary,
    AttendanceMarkRequest,
    AttendanceRecordUpdate,
    BulkAttendanceMarkRequest,
    RosterEntry,
)

logger = get_logger(__name__)


def _now() -> datetime:
    """Local wall-clock time used for time_in stamps. Row timestamps stay in UTC."""
    return datetime.now()


# ----- Validation helpers -----
def _validate_status(status_value: Optional[str], context: str) -> str:
    if status_value is None:
        raise ValidationError(f"status is required ({context})")
    if status_value not in ATTENDANCE_STATUSES:
        raise ValidationError(
            f"Invalid status {status_value!r} ({context}); expected one of {', '.join(ATTENDANCE_STATUSES)}"
        )
    return status_value


def _validate_times(time_in: Optional[time], time_out: Optional[time], context: str) -> None:
    if time_in is not None and time_out is not None and time_out < time_in:
        raise ValidationError(f"time_out {time_out} is earlier than time_in {time_in} ({context})")


def _stamp_time_in(status_value: str, time_in: Optional[time], now: datetime) -> Optional[time]:
    """present/late without an explicit time_in get the current time; other statuses get no default."""
    if time_in is None and status_value in PRESENCE_STATUSES:
        return now.time().replace(microsecond=0)
    return time_in


async def _write_batch(db: AsyncSession, rows: Sequence[Dict[str, Any]], context: str) -> int:
    """Upsert rows and commit as one unit. Any failure rolls back the whole batch."""
    try:
        count = await store.upsert_events(db, rows)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Attendance write failed (%s)", context)
        raise StorageError(f"Failed to save attendance ({context})") from exc
    return count


# ----- Recorder -----
async def mark_single_attendance(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: Optional[UUID],
    payload: AttendanceMarkRequest,
) -> StudentAttendance:
    """Create or replace the record for (student, date, class). Write-wins, no field merge."""
    if payload.student_id is None:
        raise ValidationError("student_id is required")
    if payload.attendance_date is None:
        raise ValidationError("attendance_date is required")
    context = f"student {payload.student_id} on {payload.attendance_date}, class {payload.class_id}"
    status_value = _validate_status(payload.status, context)
    _validate_times(payload.time_in, payload.time_out, context)

    if not await enrollment_service.get_student_for_tenant(db, tenant_id, payload.student_id):
        raise ValidationError(f"Invalid student: {payload.student_id}")
    if payload.class_id is not None and not await enrollment_service.get_class_for_tenant(
        db, tenant_id, payload.class_id
    ):
        raise ValidationError(f"Invalid class: {payload.class_id}")

    row = store.build_event_row(
        tenant_id=tenant_id,
        student_id=payload.student_id,
        attendance_date=payload.attendance_date,
        class_id=payload.class_id,
        status=status_value,
        marked_by=user_id,
        time_in=_stamp_time_in(status_value, payload.time_in, _now()),
        time_out=payload.time_out,
        notes=payload.notes,
    )
    await _write_batch(db, [row], context)
    logger.info("Marked %s as %s (tenant %s)", context, status_value, tenant_id)

    try:
        event = await store.get_event_by_key(
            db, tenant_id, payload.student_id, payload.attendance_date, payload.class_id
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to reload attendance ({context})") from exc
    if event is None:
        raise StorageError(f"Attendance was not persisted ({context})")
    return event


async def mark_bulk_attendance(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: Optional[UUID],
    payload: BulkAttendanceMarkRequest,
) -> int:
    """
    Mark a class roster for one date in a single conflict-replacing write.
    Returns the number of events written. Raises EmptyRosterError when nobody is enrolled.
    """
    if payload.class_id is None:
        raise ValidationError("class_id is required for bulk marking")
    if payload.attendance_date is None:
        raise ValidationError("attendance_date is required for bulk marking")
    context = f"class {payload.class_id} on {payload.attendance_date}"

    invalid = {sid: st for sid, st in payload.statuses.items() if st not in ATTENDANCE_STATUSES}
    if invalid:
        details = ", ".join(f"{sid}={st!r}" for sid, st in invalid.items())
        raise ValidationError(f"Invalid status for {context}: {details}")

    if not await enrollment_service.get_class_for_tenant(db, tenant_id, payload.class_id):
        raise ValidationError(f"Invalid class: {payload.class_id}")

    roster = await enrollment_service.get_active_roster(db, tenant_id, payload.class_id, payload.attendance_date)
    if not roster:
        raise EmptyRosterError(f"No active students enrolled in {context}")

    roster_ids = {s.id for s in roster}
    off_roster = [str(sid) for sid in payload.statuses if sid not in roster_ids]
    if off_roster:
        raise ValidationError(f"Students not on the roster of {context}: {', '.join(off_roster)}")

    statuses = dict(payload.statuses)
    if payload.mark_remaining_present:
        for student in roster:
            statuses.setdefault(student.id, AttendanceStatus.PRESENT.value)
    if not statuses:
        raise ValidationError(f"No attendance statuses supplied for {context}")

    now = _now()
    rows = [
        store.build_event_row(
            tenant_id=tenant_id,
            student_id=student.id,
            attendance_date=payload.attendance_date,
            class_id=payload.class_id,
            status=statuses[student.id],
            marked_by=user_id,
            time_in=_stamp_time_in(statuses[student.id], None, now),
        )
        for student in roster
        if student.id in statuses
    ]
    count = await _write_batch(db, rows, context)
    logger.info("Bulk marked %d of %d roster students for %s (tenant %s)", count, len(roster), context, tenant_id)
    return count


async def update_attendance_record(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: Optional[UUID],
    record_id: UUID,
    payload: AttendanceRecordUpdate,
) -> StudentAttendance:
    """Overwrite the mutable fields of an existing record. Status is kept when not supplied."""
    record = await store.get_event_by_id(db, tenant_id, record_id)
    if record is None:
        raise NotFoundError(f"Attendance record {record_id} not found")
    context = f"record {record_id}"
    status_value = _validate_status(record.status if payload.status is None else payload.status, context)

    time_in = payload.time_in
    if time_in is None and status_value in PRESENCE_STATUSES:
        time_in = record.time_in
    time_in = _stamp_time_in(status_value, time_in, _now())
    # Checked against the time_in that will be stored, kept or stamped.
    _validate_times(time_in, payload.time_out, context)

    record.status = status_value
    record.time_in = time_in
    record.time_out = payload.time_out
    record.notes = payload.notes
    record.marked_by = user_id
    record.updated_at = datetime.utcnow()
    try:
        await db.commit()
        await db.refresh(record)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Attendance update failed (%s)", context)
        raise StorageError(f"Failed to update attendance ({context})") from exc
    logger.info("Updated %s to %s (tenant %s)", context, status_value, tenant_id)
    return record


# ----- Day views -----
async def get_attendance_day(
    db: AsyncSession,
    tenant_id: UUID,
    att_date: date,
    class_id: Optional[UUID] = None,
) -> AttendanceDaySummary:
    """Records for one date (optionally one class) with status totals."""
    events = await store.fetch_events(db, tenant_id, att_date, att_date, class_id=class_id)
    counts = stats_service.count_statuses(events)
    return AttendanceDaySummary(
        attendance_date=att_date,
        class_id=class_id,
        total_present=counts[AttendanceStatus.PRESENT.value],
        total_absent=counts[AttendanceStatus.ABSENT.value],
        total_late=counts[AttendanceStatus.LATE.value],
        total_excused=counts[AttendanceStatus.EXCUSED.value],
        attendance_rate=stats_service.attendance_rate(
            counts[AttendanceStatus.PRESENT.value] + counts[AttendanceStatus.LATE.value],
            len(events),
        ),
        records=events,
    )


async def get_roster_status(
    db: AsyncSession,
    tenant_id: UUID,
    class_id: UUID,
    att_date: date,
) -> List[RosterEntry]:
    """Active roster of a class with each student's status on att_date (None when unmarked)."""
    if not await enrollment_service.get_class_for_tenant(db, tenant_id, class_id):
        raise NotFoundError(f"Class {class_id} not found")
    roster = await enrollment_service.get_active_roster(db, tenant_id, class_id, att_date)
    marked = {e.student_id: e for e in await store.fetch_events(db, tenant_id, att_date, att_date, class_id=class_id)}
    entries = []
    for student in roster:
        event = marked.get(student.id)
        entries.append(RosterEntry(
            student_id=student.id,
            student_code=student.student_code,
            student_name=student.full_name,
            status=event.status if event else None,
            record_id=event.id if event else None,
        ))
    return entries
