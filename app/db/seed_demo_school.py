"""
Seed script to create the attendance tables and a demo school.

Run once against an empty database:
  DATABASE_URL=postgresql+asyncpg://... JWT_SECRET_KEY=... python -m app.db.seed_demo_school

Creates:
- tables for tenants, classes, students, student_enrollments, student_attendance
- tenant "Demo School" (if not exists) with classes Grade 5 - A and Grade 5 - B
- six students enrolled three per class
"""
import asyncio
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import SchoolClass, Student, StudentEnrollment, Tenant
from app.db.session import AsyncSessionLocal, Base, engine

DEMO_TENANT_NAME = "Demo School"
DEMO_CLASSES = (("Grade 5", "A"), ("Grade 5", "B"))
DEMO_STUDENTS = (
    ("STU-001", "Asha", "Rao"),
    ("STU-002", "Ben", "Cole"),
    ("STU-003", "Chen", "Li"),
    ("STU-004", "Dana", "Park"),
    ("STU-005", "Eli", "Stone"),
    ("STU-006", "Fatima", "Noor"),
)


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_demo_school(db: AsyncSession) -> None:
    result = await db.execute(select(Tenant).where(Tenant.name == DEMO_TENANT_NAME))
    if result.scalar_one_or_none():
        print("Demo school already exists.")
        return

    tenant = Tenant(name=DEMO_TENANT_NAME)
    db.add(tenant)
    await db.flush()

    classes = [SchoolClass(tenant_id=tenant.id, class_name=name, section=section) for name, section in DEMO_CLASSES]
    db.add_all(classes)
    await db.flush()

    for i, (code, first, last) in enumerate(DEMO_STUDENTS):
        student = Student(tenant_id=tenant.id, student_code=code, first_name=first, last_name=last)
        db.add(student)
        await db.flush()
        db.add(StudentEnrollment(
            tenant_id=tenant.id,
            student_id=student.id,
            class_id=classes[i % len(classes)].id,
            enrollment_date=date(date.today().year, 1, 1),
        ))

    await db.commit()
    print(f"Created {DEMO_TENANT_NAME} (tenant_id={tenant.id}) with {len(DEMO_STUDENTS)} students.")


async def main() -> None:
    await create_tables()
    async with AsyncSessionLocal() as db:
        try:
            await seed_demo_school(db)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
