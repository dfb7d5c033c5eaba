import csv
import io
import uuid
from datetime import date

from openpyxl import load_workbook

from app.api.v1.attendance import export
from app.api.v1.attendance.schemas import ClassAttendanceStat, DailyAttendanceStat, StudentAttendanceStat


def test_csv_header_follows_declared_field_order() -> None:
    text = export.stats_to_csv([], StudentAttendanceStat)
    assert text.splitlines() == [
        "student_id,student_code,student_name,present_days,absent_days,late_days,"
        "excused_days,total_days,attendance_rate,below_threshold"
    ]


def test_csv_rows_quote_commas_and_blank_missing_section() -> None:
    rows = [
        ClassAttendanceStat(class_name="Grade 5, Science", section=None, present=3, total=4, rate=75),
        ClassAttendanceStat(class_name="Grade 6", section="B", absent=2, total=2),
    ]
    parsed = list(csv.reader(io.StringIO(export.stats_to_csv(rows, ClassAttendanceStat))))

    assert parsed[0] == ["class_name", "section", "present", "absent", "late", "excused", "total", "rate"]
    assert parsed[1] == ["Grade 5, Science", "", "3", "0", "0", "0", "4", "75"]
    assert parsed[2] == ["Grade 6", "B", "0", "2", "0", "0", "2", "0"]


def test_csv_student_row_renders_ids_and_flags() -> None:
    sid = uuid.uuid4()
    row = StudentAttendanceStat(
        student_id=sid,
        student_code="S1",
        student_name="Ada Lovelace",
        present_days=7,
        absent_days=3,
        total_days=10,
        attendance_rate=70,
        below_threshold=True,
    )
    parsed = list(csv.reader(io.StringIO(export.stats_to_csv([row], StudentAttendanceStat))))
    assert parsed[1][0] == str(sid)
    assert parsed[1][-2:] == ["70", "True"]


def test_xlsx_matches_csv_columns() -> None:
    rows = [DailyAttendanceStat(date=date(2024, 3, 1), present=2, absent=1, total=3, rate=67)]
    content = export.stats_to_xlsx(rows, DailyAttendanceStat, sheet_title="daily-attendance-report")

    wb = load_workbook(filename=io.BytesIO(content), read_only=True)
    ws = wb.active
    values = list(ws.iter_rows(values_only=True))
    assert list(values[0]) == export.export_columns(DailyAttendanceStat)
    assert values[1][1:] == (2, 1, 0, 0, 3, 67)
    assert ws.title == "daily-attendance-report"


def test_missing_and_empty_section_stay_separate_rows() -> None:
    rows = [
        ClassAttendanceStat(class_name="Grade 5", section=None, present=1, total=1, rate=100),
        ClassAttendanceStat(class_name="Grade 5", section="", absent=1, total=1),
    ]
    parsed = list(csv.reader(io.StringIO(export.stats_to_csv(rows, ClassAttendanceStat))))
    assert len(parsed) == 3
    assert [r[1] for r in parsed[1:]] == ["", ""]
    assert [r[-1] for r in parsed[1:]] == ["100", "0"]
