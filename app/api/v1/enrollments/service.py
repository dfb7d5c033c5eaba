"""Roster reads over student enrollments. Used by bulk marking and the today summary."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import EnrollmentStatus, RecordStatus
from app.core.exceptions import StorageError
from app.core.logging import get_logger
from app.core.models import SchoolClass, Student, StudentEnrollment

logger = get_logger(__name__)


def _active_roster_filters(tenant_id: UUID, class_id: UUID, on_date: date) -> tuple:
    return (
        StudentEnrollment.tenant_id == tenant_id,
        StudentEnrollment.class_id == class_id,
        StudentEnrollment.enrollment_status == EnrollmentStatus.active.value,
        StudentEnrollment.enrollment_date <= on_date,
        Student.tenant_id == tenant_id,
        Student.status == RecordStatus.active.value,
    )


async def get_active_roster(
    db: AsyncSession,
    tenant_id: UUID,
    class_id: UUID,
    on_date: date,
) -> List[Student]:
    """Students actively enrolled in the class as of on_date, ordered by student code."""
    stmt = (
        select(Student)
        .join(StudentEnrollment, StudentEnrollment.student_id == Student.id)
        .where(*_active_roster_filters(tenant_id, class_id, on_date))
        .order_by(Student.student_code)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Roster lookup failed for class %s on %s", class_id, on_date)
        raise StorageError(f"Failed to load roster for class {class_id} on {on_date}") from exc
    return list(result.scalars().unique().all())


async def count_active_students(
    db: AsyncSession,
    tenant_id: UUID,
    class_id: Optional[UUID] = None,
    on_date: Optional[date] = None,
) -> int:
    """Active roster size for a class, or every active student of the tenant when class_id is None."""
    on_date = on_date or date.today()
    if class_id is not None:
        stmt = (
            select(func.count(func.distinct(Student.id)))
            .select_from(Student)
            .join(StudentEnrollment, StudentEnrollment.student_id == Student.id)
            .where(*_active_roster_filters(tenant_id, class_id, on_date))
        )
    else:
        stmt = select(func.count(Student.id)).where(
            Student.tenant_id == tenant_id,
            Student.status == RecordStatus.active.value,
        )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Student count failed for tenant %s", tenant_id)
        raise StorageError("Failed to count active students") from exc
    return result.scalar_one() or 0


async def get_student_for_tenant(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> Optional[Student]:
    try:
        result = await db.execute(
            select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id)
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to load student {student_id}") from exc
    return result.scalar_one_or_none()


async def get_class_for_tenant(db: AsyncSession, tenant_id: UUID, class_id: UUID) -> Optional[SchoolClass]:
    try:
        result = await db.execute(
            select(SchoolClass).where(SchoolClass.id == class_id, SchoolClass.tenant_id == tenant_id)
        )
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to load class {class_id}") from exc
    return result.scalar_one_or_none()
