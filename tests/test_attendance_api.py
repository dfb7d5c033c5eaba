import csv
import io
import uuid

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_mark_single_then_remark(client: AsyncClient, school, auth_headers) -> None:
    payload = {
        "student_id": str(school["students"][0]),
        "class_id": str(school["class_id"]),
        "attendance_date": "2024-03-01",
        "status": "present",
    }
    response = await client.post("/api/v1/attendance/students/mark", json=payload, headers=auth_headers)
    assert response.status_code == 201
    first = response.json()
    assert first["status"] == "present"
    assert first["time_in"] is not None

    payload["status"] = "absent"
    response = await client.post("/api/v1/attendance/students/mark", json=payload, headers=auth_headers)
    assert response.status_code == 201
    second = response.json()
    assert second["id"] == first["id"]
    assert second["status"] == "absent"


@pytest.mark.asyncio
async def test_invalid_status_returns_400(client: AsyncClient, school, auth_headers) -> None:
    payload = {
        "student_id": str(school["students"][0]),
        "attendance_date": "2024-03-01",
        "status": "holiday",
    }
    response = await client.post("/api/v1/attendance/students/mark", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert "holiday" in response.json()["detail"]


@pytest.mark.asyncio
async def test_bulk_mark_and_empty_roster(client: AsyncClient, school, auth_headers) -> None:
    payload = {
        "class_id": str(school["class_id"]),
        "attendance_date": "2024-03-01",
        "statuses": {str(s): "present" for s in school["students"]},
    }
    response = await client.post("/api/v1/attendance/students/bulk-mark", json=payload, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["marked"] == 3

    empty = {"class_id": str(school["empty_class_id"]), "attendance_date": "2024-03-01", "mark_remaining_present": True}
    response = await client.post("/api/v1/attendance/students/bulk-mark", json=empty, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["marked"] == 0


@pytest.mark.asyncio
async def test_bulk_mark_without_class_is_400(client: AsyncClient, school, auth_headers) -> None:
    response = await client.post(
        "/api/v1/attendance/students/bulk-mark",
        json={"attendance_date": "2024-03-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_records_roster_and_update(client: AsyncClient, school, auth_headers) -> None:
    await client.post(
        "/api/v1/attendance/students/bulk-mark",
        json={
            "class_id": str(school["class_id"]),
            "attendance_date": "2024-03-01",
            "statuses": {str(school["students"][0]): "absent"},
        },
        headers=auth_headers,
    )

    response = await client.get(
        "/api/v1/attendance/records",
        params={"date": "2024-03-01", "class_id": str(school["class_id"])},
        headers=auth_headers,
    )
    assert response.status_code == 200
    day = response.json()
    assert day["total_absent"] == 1
    record_id = day["records"][0]["id"]

    response = await client.put(
        f"/api/v1/attendance/records/{record_id}",
        json={"status": "excused", "notes": "doctor's note"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "excused"

    response = await client.get(
        "/api/v1/attendance/roster",
        params={"date": "2024-03-01", "class_id": str(school["class_id"])},
        headers=auth_headers,
    )
    assert [e["status"] for e in response.json()] == ["excused", None, None]

    response = await client.put(
        f"/api/v1/attendance/records/{uuid.uuid4()}", json={"status": "present"}, headers=auth_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_reports_and_csv_export(client: AsyncClient, school, auth_headers) -> None:
    await client.post(
        "/api/v1/attendance/students/bulk-mark",
        json={
            "class_id": str(school["class_id"]),
            "attendance_date": "2024-03-02",
            "statuses": dict(zip(map(str, school["students"]), ["present", "late", "absent"])),
        },
        headers=auth_headers,
    )
    params = {"start_date": "2024-03-01", "end_date": "2024-03-07"}

    daily = (await client.get("/api/v1/attendance/reports/daily", params=params, headers=auth_headers)).json()
    assert len(daily) == 7
    assert daily[1]["total"] == 3 and daily[1]["rate"] == 67

    students = (await client.get("/api/v1/attendance/reports/students", params=params, headers=auth_headers)).json()
    assert [s["attendance_rate"] for s in students] == [0, 100, 100]
    assert students[0]["below_threshold"] is True

    classes = (await client.get("/api/v1/attendance/reports/classes", params=params, headers=auth_headers)).json()
    assert classes == [
        {"class_name": "Grade 5", "section": "A", "present": 1, "absent": 1, "late": 1, "excused": 0, "total": 3, "rate": 67}
    ]

    today = await client.get(
        "/api/v1/attendance/reports/today",
        params={"date": "2024-03-02", "class_id": str(school["class_id"])},
        headers=auth_headers,
    )
    assert today.json()["total_students"] == 3

    response = await client.get("/api/v1/attendance/reports/classes/export", params=params, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "class-attendance-report.csv" in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["class_name", "section", "present", "absent", "late", "excused", "total", "rate"]
    assert rows[1] == ["Grade 5", "A", "1", "1", "1", "0", "3", "67"]

    response = await client.get(
        "/api/v1/attendance/reports/daily/export",
        params={**params, "format": "xlsx"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/vnd.openxmlformats")


@pytest.mark.asyncio
async def test_inverted_range_is_400(client: AsyncClient, school, auth_headers) -> None:
    response = await client.get(
        "/api/v1/attendance/reports/daily",
        params={"start_date": "2024-03-07", "end_date": "2024-03-01"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_auth_required_and_roles_enforced(client: AsyncClient, school, make_headers) -> None:
    response = await client.get("/api/v1/attendance/reports/today")
    assert response.status_code == 401

    response = await client.get(
        "/api/v1/attendance/reports/today",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401

    student_headers = make_headers("STUDENT")
    response = await client.get("/api/v1/attendance/reports/today", headers=student_headers)
    assert response.status_code == 403

    staff_headers = make_headers("STAFF")
    response = await client.get("/api/v1/attendance/reports/today", headers=staff_headers)
    assert response.status_code == 200
    response = await client.post(
        "/api/v1/attendance/students/mark",
        json={"student_id": str(school["students"][0]), "attendance_date": "2024-03-01", "status": "present"},
        headers=staff_headers,
    )
    assert response.status_code == 403
