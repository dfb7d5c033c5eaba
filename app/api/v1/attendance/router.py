"""Attendance API router."""

from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import ATTENDANCE_READ_ROLES, ATTENDANCE_WRITE_ROLES, require_roles
from app.auth.schemas import CurrentUser
from app.core.exceptions import EmptyRosterError, ServiceError
from app.db.session import get_db

from . import export, service, stats_service
from .schemas import (
    AttendanceDaySummary,
    AttendanceEventResponse,
    AttendanceMarkRequest,
    AttendanceRecordUpdate,
    BulkAttendanceMarkRequest,
    BulkMarkResponse,
    ClassAttendanceStat,
    DailyAttendanceStat,
    RosterEntry,
    StudentAttendanceHistory,
    StudentAttendanceStat,
    TodayAttendanceSummary,
)

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])

can_write = require_roles(*ATTENDANCE_WRITE_ROLES)
can_read = require_roles(*ATTENDANCE_READ_ROLES)


# ----- Recording -----
@router.post(
    "/students/mark",
    response_model=AttendanceEventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def mark_student_attendance(
    payload: AttendanceMarkRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_write),
):
    """Mark one student. Re-marking the same student/date/class replaces the record."""
    try:
        return await service.mark_single_attendance(db, current_user.tenant_id, current_user.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/students/bulk-mark",
    response_model=BulkMarkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_mark_student_attendance(
    payload: BulkAttendanceMarkRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_write),
):
    """Mark a class roster for one date. An empty roster is reported as a no-op, not an error."""
    try:
        count = await service.mark_bulk_attendance(db, current_user.tenant_id, current_user.id, payload)
        return BulkMarkResponse(marked=count, message=f"Attendance marked for {count} students")
    except EmptyRosterError as e:
        response.status_code = status.HTTP_200_OK
        return BulkMarkResponse(marked=0, message=e.message)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/records/{record_id}", response_model=AttendanceEventResponse)
async def update_attendance_record(
    record_id: UUID,
    payload: AttendanceRecordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_write),
):
    """Edit an existing attendance record in place."""
    try:
        return await service.update_attendance_record(
            db, current_user.tenant_id, current_user.id, record_id, payload
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Day views -----
@router.get("/records", response_model=AttendanceDaySummary)
async def get_attendance_day(
    att_date: date = Query(..., alias="date", description="Attendance date"),
    class_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
):
    """Records for one date, optionally one class, with status totals."""
    try:
        return await service.get_attendance_day(db, current_user.tenant_id, att_date, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/roster", response_model=List[RosterEntry])
async def get_roster_status(
    class_id: UUID,
    att_date: date = Query(..., alias="date", description="Attendance date"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
):
    """Active roster of a class with each student's status for the date."""
    try:
        return await service.get_roster_status(db, current_user.tenant_id, class_id, att_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/history", response_model=StudentAttendanceHistory)
async def get_student_history(
    student_id: UUID,
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
):
    try:
        return await stats_service.get_student_history(
            db, current_user.tenant_id, student_id, start_date, end_date
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Reports -----
@router.get("/reports/today", response_model=TodayAttendanceSummary)
async def get_today_summary(
    class_id: Optional[UUID] = Query(None),
    on_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
):
    """Present/absent/late counts for the day against the active roster size."""
    try:
        return await stats_service.get_today_summary(db, current_user.tenant_id, class_id, on_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/reports/classes", response_model=List[ClassAttendanceStat])
async def get_class_stats(
    start_date: date = Query(...),
    end_date: date = Query(...),
    class_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
):
    try:
        return await stats_service.get_class_stats(db, current_user.tenant_id, start_date, end_date, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/reports/students", response_model=List[StudentAttendanceStat])
async def get_student_stats(
    start_date: date = Query(...),
    end_date: date = Query(...),
    class_id: Optional[UUID] = Query(None),
    threshold: Optional[int] = Query(None, ge=0, le=100, description="Overrides the configured low-attendance threshold"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
):
    """Per-student attendance, lowest rate first."""
    try:
        return await stats_service.get_student_stats(
            db, current_user.tenant_id, start_date, end_date, class_id, threshold=threshold
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/reports/daily", response_model=List[DailyAttendanceStat])
async def get_daily_series(
    start_date: date = Query(...),
    end_date: date = Query(...),
    class_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
):
    """One entry per day in the range, including days with no marks."""
    try:
        return await stats_service.get_daily_series(db, current_user.tenant_id, start_date, end_date, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


_EXPORTS = {
    "classes": (stats_service.get_class_stats, ClassAttendanceStat, "class-attendance-report"),
    "students": (stats_service.get_student_stats, StudentAttendanceStat, "student-attendance-report"),
    "daily": (stats_service.get_daily_series, DailyAttendanceStat, "daily-attendance-report"),
}


@router.get("/reports/{report}/export")
async def export_report(
    report: Literal["classes", "students", "daily"],
    start_date: date = Query(...),
    end_date: date = Query(...),
    class_id: Optional[UUID] = Query(None),
    file_format: Literal["csv", "xlsx"] = Query("csv", alias="format"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(can_read),
) -> Response:
    """Download a report as CSV or Excel. Columns follow the report's field order."""
    fetch, model, filename = _EXPORTS[report]
    try:
        rows = await fetch(db, current_user.tenant_id, start_date, end_date, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if file_format == "xlsx":
        return Response(
            content=export.stats_to_xlsx(rows, model, sheet_title=filename),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
        )
    return Response(
        content=export.stats_to_csv(rows, model),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
    )
