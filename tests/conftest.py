import os
import uuid
from datetime import date
from typing import AsyncGenerator, Dict

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.models import SchoolClass, Student, StudentEnrollment, Tenant
from app.db.session import Base, get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; also overrides the FastAPI get_db dependency."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def school(db_session: AsyncSession) -> Dict:
    """
    One tenant with class Grade 5-A (three students enrolled), an empty class Grade 6-A,
    and a dropped enrollment that must never appear on a roster.
    """
    tenant = Tenant(name="Springfield Elementary")
    db_session.add(tenant)
    await db_session.flush()

    grade5 = SchoolClass(tenant_id=tenant.id, class_name="Grade 5", section="A")
    grade6 = SchoolClass(tenant_id=tenant.id, class_name="Grade 6", section="A")
    db_session.add_all([grade5, grade6])
    await db_session.flush()

    students = [
        Student(tenant_id=tenant.id, student_code="S1", first_name="Ada", last_name="Lovelace"),
        Student(tenant_id=tenant.id, student_code="S2", first_name="Alan", last_name="Turing"),
        Student(tenant_id=tenant.id, student_code="S3", first_name="Grace", last_name="Hopper"),
    ]
    dropped = Student(tenant_id=tenant.id, student_code="S9", first_name="Dan", last_name="Dropped")
    db_session.add_all(students + [dropped])
    await db_session.flush()

    for s in students:
        db_session.add(StudentEnrollment(
            tenant_id=tenant.id,
            student_id=s.id,
            class_id=grade5.id,
            enrollment_date=date(2024, 1, 1),
        ))
    db_session.add(StudentEnrollment(
        tenant_id=tenant.id,
        student_id=dropped.id,
        class_id=grade5.id,
        enrollment_date=date(2024, 1, 1),
        enrollment_status="dropped",
    ))
    await db_session.commit()

    return {
        "tenant_id": tenant.id,
        "class_id": grade5.id,
        "empty_class_id": grade6.id,
        "students": [s.id for s in students],
        "dropped_student_id": dropped.id,
    }


@pytest.fixture()
def make_headers(school: Dict):
    """Build bearer headers for a user of the test school with the given role."""

    def _make(role: str = "TEACHER") -> Dict[str, str]:
        payload = {
            "user_id": str(uuid.uuid4()),
            "tenant_id": str(school["tenant_id"]),
            "role": role,
        }
        token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture()
def auth_headers(make_headers) -> Dict[str, str]:
    return make_headers("TEACHER")
