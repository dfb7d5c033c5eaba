"""Seed script runs against an empty schema and is idempotent."""

from datetime import date

import pytest
from sqlalchemy import func, select

from app.api.v1.enrollments import service as enrollment_service
from app.core.models import SchoolClass, Student, Tenant
from app.db.seed_demo_school import DEMO_STUDENTS, seed_demo_school


@pytest.mark.asyncio
async def test_seed_creates_school_with_rosters(db_session) -> None:
    await seed_demo_school(db_session)
    await seed_demo_school(db_session)

    tenants = (await db_session.execute(select(Tenant))).scalars().all()
    assert len(tenants) == 1
    student_count = (await db_session.execute(select(func.count(Student.id)))).scalar_one()
    assert student_count == len(DEMO_STUDENTS)

    classes = (await db_session.execute(select(SchoolClass).order_by(SchoolClass.section))).scalars().all()
    roster = await enrollment_service.get_active_roster(
        db_session, tenants[0].id, classes[0].id, date(date.today().year, 6, 1)
    )
    assert [s.student_code for s in roster] == ["STU-001", "STU-003", "STU-005"]
