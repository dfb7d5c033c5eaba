"""
Attendance event store: tenant-scoped reads and conflict-replace writes on student_attendance.

Writes go through the database's native INSERT ... ON CONFLICT DO UPDATE, so concurrent marks
for the same key resolve to last-write-wins instead of a unique violation. Rows with a class
conflict on (tenant_id, student_id, attendance_date, class_id); rows without one conflict on
the partial unique index over (tenant_id, student_id, attendance_date) WHERE class_id IS NULL.

Nothing here commits; the calling service owns the transaction.
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.core.logging import get_logger
from app.core.models import ATTENDANCE_KEY_COLUMNS, CLASSLESS_KEY_COLUMNS, SchoolClass, Student, StudentAttendance

from .schemas import AttendanceEventRow

logger = get_logger(__name__)

# Overwritten on re-mark. Key columns, id and created_at are never touched.
MUTABLE_COLUMNS = ("status", "time_in", "time_out", "notes", "marked_by", "updated_at")

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _dialect_insert(db: AsyncSession):
    dialect_name = db.bind.dialect.name
    insert = _UPSERT_DIALECTS.get(dialect_name)
    if insert is None:
        raise StorageError(f"Attendance upsert is not supported on the {dialect_name} database")
    return insert


async def _upsert(db: AsyncSession, rows: Sequence[Dict[str, Any]], index_elements, index_where=None) -> None:
    insert = _dialect_insert(db)
    stmt = insert(StudentAttendance).values(list(rows))
    stmt = stmt.on_conflict_do_update(
        index_elements=list(index_elements),
        index_where=index_where,
        set_={col: getattr(stmt.excluded, col) for col in MUTABLE_COLUMNS},
    )
    await db.execute(stmt)


async def upsert_events(db: AsyncSession, rows: Sequence[Dict[str, Any]]) -> int:
    """
    Insert or replace attendance rows. Each row is a full column dict (id, key columns,
    mutable columns, created_at). Keyed and classless rows each go out as one statement.
    """
    keyed = [r for r in rows if r.get("class_id") is not None]
    classless = [r for r in rows if r.get("class_id") is None]
    if keyed:
        await _upsert(db, keyed, ATTENDANCE_KEY_COLUMNS)
    if classless:
        await _upsert(db, classless, CLASSLESS_KEY_COLUMNS, index_where=StudentAttendance.class_id.is_(None))
    return len(rows)


async def get_event_by_key(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
    attendance_date: date,
    class_id: Optional[UUID],
) -> Optional[StudentAttendance]:
    stmt = select(StudentAttendance).where(
        StudentAttendance.tenant_id == tenant_id,
        StudentAttendance.student_id == student_id,
        StudentAttendance.attendance_date == attendance_date,
    )
    if class_id is None:
        stmt = stmt.where(StudentAttendance.class_id.is_(None))
    else:
        stmt = stmt.where(StudentAttendance.class_id == class_id)
    # The upsert may have bypassed the identity map; always reload column values.
    stmt = stmt.execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_event_by_id(db: AsyncSession, tenant_id: UUID, record_id: UUID) -> Optional[StudentAttendance]:
    try:
        result = await db.execute(
            select(StudentAttendance).where(
                StudentAttendance.id == record_id,
                StudentAttendance.tenant_id == tenant_id,
            )
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to load attendance record {record_id}") from exc
    return result.scalar_one_or_none()


def _to_row(sa: StudentAttendance, student: Student, sc: Optional[SchoolClass]) -> AttendanceEventRow:
    return AttendanceEventRow(
        id=sa.id,
        student_id=sa.student_id,
        student_code=student.student_code,
        student_name=student.full_name,
        class_id=sa.class_id,
        class_name=sc.class_name if sc else None,
        section=sc.section if sc else None,
        attendance_date=sa.attendance_date,
        status=sa.status,
        time_in=sa.time_in,
        time_out=sa.time_out,
        notes=sa.notes,
        marked_by=sa.marked_by,
    )


async def fetch_events(
    db: AsyncSession,
    tenant_id: UUID,
    start_date: date,
    end_date: date,
    class_id: Optional[UUID] = None,
    student_id: Optional[UUID] = None,
) -> List[AttendanceEventRow]:
    """Events with attendance_date in [start_date, end_date], joined with student and class attributes."""
    stmt = (
        select(StudentAttendance, Student, SchoolClass)
        .join(Student, Student.id == StudentAttendance.student_id)
        .outerjoin(SchoolClass, SchoolClass.id == StudentAttendance.class_id)
        .where(
            StudentAttendance.tenant_id == tenant_id,
            StudentAttendance.attendance_date >= start_date,
            StudentAttendance.attendance_date <= end_date,
        )
        .order_by(StudentAttendance.attendance_date, Student.student_code)
    )
    if class_id is not None:
        stmt = stmt.where(StudentAttendance.class_id == class_id)
    if student_id is not None:
        stmt = stmt.where(StudentAttendance.student_id == student_id)
    logger.debug(
        "Fetching attendance tenant=%s range=%s..%s class=%s student=%s",
        tenant_id, start_date, end_date, class_id, student_id,
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Attendance range query failed for %s..%s", start_date, end_date)
        raise StorageError(f"Failed to read attendance for {start_date} to {end_date}") from exc
    return [_to_row(sa, student, sc) for sa, student, sc in result.all()]


def build_event_row(
    tenant_id: UUID,
    student_id: UUID,
    attendance_date: date,
    class_id: Optional[UUID],
    status: str,
    marked_by: Optional[UUID],
    time_in=None,
    time_out=None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Full column dict for upsert_events; id and created_at only apply when the row is new."""
    # Row timestamps are UTC like the column defaults; time_in/time_out are school-local wall clock.
    now = now or datetime.utcnow()
    return {
        "id": uuid.uuid4(),
        "tenant_id": tenant_id,
        "student_id": student_id,
        "attendance_date": attendance_date,
        "class_id": class_id,
        "status": status,
        "time_in": time_in,
        "time_out": time_out,
        "notes": notes,
        "marked_by": marked_by,
        "created_at": now,
        "updated_at": now,
    }
