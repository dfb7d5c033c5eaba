import uuid
from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class StudentEnrollment(Base):
    """
    Student membership of a class. The active roster of a class on a date is every enrollment
    with enrollment_status 'active' and enrollment_date on or before that date.
    """

    __tablename__ = "student_enrollments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    enrollment_date = Column(Date, nullable=False, default=date.today)
    enrollment_status = Column(String(20), nullable=False, default="active")  # active | completed | dropped
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student", back_populates="enrollments")
    school_class = relationship("SchoolClass", foreign_keys=[class_id])
