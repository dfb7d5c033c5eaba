"""Student attendance events. One row per (tenant, student, date, class); re-marks replace in place."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, String, Text, Time, UniqueConstraint, Uuid, text
from sqlalchemy.orm import relationship

from app.db.session import Base


# Upsert conflict target; must match the unique constraint below column for column.
ATTENDANCE_KEY_COLUMNS = ("tenant_id", "student_id", "attendance_date", "class_id")
# NULL class_ids never conflict under the constraint above, so classless rows get their own partial index.
CLASSLESS_KEY_COLUMNS = ("tenant_id", "student_id", "attendance_date")
CLASSLESS_WHERE = "class_id IS NULL"


class StudentAttendance(Base):
    """Attendance of one student on one calendar date, optionally scoped to a class."""

    __tablename__ = "student_attendance"
    __table_args__ = (
        UniqueConstraint(*ATTENDANCE_KEY_COLUMNS, name="uq_student_attendance_student_date_class"),
        Index(
            "uq_student_attendance_student_date_no_class",
            *CLASSLESS_KEY_COLUMNS,
            unique=True,
            postgresql_where=text(CLASSLESS_WHERE),
            sqlite_where=text(CLASSLESS_WHERE),
        ),
        Index("ix_student_attendance_tenant_date", "tenant_id", "attendance_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    attendance_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)  # present, absent, late, excused
    time_in = Column(Time, nullable=True)
    time_out = Column(Time, nullable=True)
    notes = Column(Text, nullable=True)
    marked_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", foreign_keys=[student_id])
    school_class = relationship("SchoolClass", foreign_keys=[class_id])
