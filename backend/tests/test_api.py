import json
from datetime import datetime

from conftest import csv_bytes
from timekeeper.models.attendance import AttendanceLog

HEADER = "Employee ID,Name,Date,Time In,Time Out"


def upload(client, headers, content, filename="june.csv", mapping=None):
    data = {"columnMapping": json.dumps(mapping)} if mapping is not None else {}
    return client.post(
        "/api/upload-attendance",
        files={"file": (filename, content, "text/csv")},
        data=data,
        headers=headers,
    )


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_requires_token(client):
    response = client.get("/api/attendances")
    assert response.status_code == 401
    assert response.json()["detail"] == "Missing auth token"


def test_upload_success(client, auth_headers, db):
    content = csv_bytes(HEADER, "1001,Ana Santos,2024-06-10,08:00,17:00")
    response = upload(client, auth_headers, content)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["recordsProcessed"] == 1
    assert body["employeesCreated"] == 1
    assert db.query(AttendanceLog).one().uploaded_by == "hr-admin"


def test_upload_partial_is_207(client, auth_headers):
    content = csv_bytes(
        HEADER,
        "1001,Ana Santos,2024-06-10,08:00,17:00",
        "EMP#5,Ben Cruz,2024-06-10,08:00,17:00",
    )
    response = upload(client, auth_headers, content)

    assert response.status_code == 207
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == ["Row 2: Employee ID format is invalid"]


def test_upload_structural_error_is_single_error(client, auth_headers):
    response = upload(client, auth_headers, csv_bytes("1,2,3", "4,5,6"))
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == ["No headers found in file"]


def test_upload_unreadable_workbook(client, auth_headers):
    response = client.post(
        "/api/upload-attendance",
        files={"file": ("broken.xlsx", b"not a zip at all", "application/octet-stream")},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert len(body["errors"]) == 1
    assert body["errors"][0].startswith("Unable to read XLSX file")


def test_upload_rejections(client, auth_headers):
    wrong_type = upload(client, auth_headers, b"x", filename="notes.txt")
    assert wrong_type.status_code == 400
    body = wrong_type.json()
    assert body["success"] is False
    assert body["message"].startswith("Invalid file type")
    assert body["errors"] == [body["message"]]

    empty = upload(client, auth_headers, b"", filename="empty.csv")
    assert empty.status_code == 400
    assert empty.json()["errors"] == ["Empty file"]

    bad_mapping = client.post(
        "/api/upload-attendance",
        files={"file": ("x.csv", csv_bytes(HEADER), "text/csv")},
        data={"columnMapping": "{not json"},
        headers=auth_headers,
    )
    assert bad_mapping.status_code == 400
    assert bad_mapping.json()["message"] == "Invalid column mapping format"

    missing = client.post("/api/upload-attendance", headers=auth_headers)
    assert missing.status_code == 400
    assert missing.json() == {
        "success": False, "message": "No file provided", "errors": ["No file provided"],
    }


def test_upload_too_large(client, auth_headers, monkeypatch):
    from timekeeper.core.config import settings
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 10)
    response = upload(client, auth_headers, csv_bytes(HEADER, "1001,Ana,2024-06-10,08:00,17:00"))
    assert response.status_code == 400
    assert "too large" in response.json()["message"]


def test_upload_with_mapping(client, auth_headers):
    content = csv_bytes("Staff ID,Staff Name,Shift Date,Arrived,Left",
                        "1001,Ana Santos,2024-06-10,08:00,17:00")
    mapping = {"employeeId": "Staff ID", "name": "Staff Name", "date": "Shift Date",
               "timeIn": "Arrived", "timeOut": "Left"}
    assert upload(client, auth_headers, content, mapping=mapping).json()["recordsProcessed"] == 1


def test_validate_endpoint(client, auth_headers, db):
    response = client.post(
        "/api/upload-attendance/validate",
        files={"file": ("june.csv", csv_bytes(HEADER, "1001,Ana,2024-06-10,08:00,17:00"), "text/csv")},
        headers=auth_headers,
    )
    body = response.json()
    assert body["success"] is True
    assert body["row_count"] == 1
    assert body["file_info"]["name"] == "june.csv"
    assert db.query(AttendanceLog).count() == 0


def test_attendance_listing_and_reports(client, auth_headers):
    upload(client, auth_headers, csv_bytes(
        HEADER,
        "1001,Ana Santos,2024-06-10,08:00,18:00",
        "1001,Ana Santos,2024-06-09,22:00,06:00",
    ))

    listed = client.get("/api/attendances", headers=auth_headers).json()
    assert len(listed) == 2
    assert client.get("/api/attendances", params={"start_date": "2024-06-10"},
                      headers=auth_headers).json()[0]["total_hours"] == 10

    summary = client.get("/api/attendances/summary", headers=auth_headers).json()
    assert summary["total_hours_worked"] == 18
    assert summary["total_sunday_hours"] == 8

    detail = client.get(f"/api/attendances/{listed[0]['id']}", headers=auth_headers)
    assert detail.status_code == 200
    assert client.get("/api/attendances/99999", headers=auth_headers).status_code == 404

    late = client.get("/api/attendances/late-report", headers=auth_headers).json()
    assert late["count"] == 0


def test_export_endpoint(client, auth_headers):
    response = client.get("/api/attendances/export", params={"format": "csv"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    bad = client.get("/api/attendances/export", params={"format": "docx"}, headers=auth_headers)
    assert bad.status_code == 400


def test_check_in_and_out(client, auth_headers, make_employee, monkeypatch):
    import timekeeper.services.attendance_service as attendance_service

    clock = iter([datetime(2024, 6, 10, 8, 0), datetime(2024, 6, 10, 8, 30),
                  datetime(2024, 6, 10, 17, 0)])
    monkeypatch.setattr(attendance_service, "local_now", lambda: next(clock))
    ana = make_employee()

    first = client.post("/api/attendances/check-in", json={"employee_id": ana.id}, headers=auth_headers)
    assert first.status_code == 200
    assert first.json()["is_incomplete"] is True

    again = client.post("/api/attendances/check-in", json={"employee_id": ana.id}, headers=auth_headers)
    assert again.status_code == 400
    assert again.json()["detail"] == "Already checked in. Check out first."

    out = client.post("/api/attendances/check-out", json={"employee_id": ana.id}, headers=auth_headers)
    assert out.status_code == 200
    assert out.json()["total_hours"] == 9
    assert out.json()["regular_hours"] == 8


def test_bulk_endpoints_need_manager(client, auth_headers, staff_headers, db):
    upload(client, auth_headers, csv_bytes(HEADER, "1001,Ana Santos,2024-06-10,08:00,18:00"))
    log_id = db.query(AttendanceLog).one().id

    denied = client.post("/api/attendances/bulk/approve", json={"ids": [log_id]}, headers=staff_headers)
    assert denied.status_code == 403

    approved = client.post("/api/attendances/bulk/approve", json={"ids": [log_id]}, headers=auth_headers)
    assert approved.json()["updated"] == 1
    db.expire_all()
    assert db.get(AttendanceLog, log_id).approved_ot_hours == 2

    deleted = client.post("/api/attendances/bulk/delete", json={"ids": [log_id]}, headers=auth_headers)
    assert deleted.json()["deleted"] == 1
    assert client.post("/api/attendances/bulk/delete", json={"ids": []},
                       headers=auth_headers).status_code == 422


def test_schedules_and_cron(client, auth_headers, make_employee):
    ana = make_employee()
    created = client.post("/api/schedules", json={
        "employee_id": ana.id, "date": "2024-06-10", "start_time": "08:00", "end_time": "17:00",
    }, headers=auth_headers)
    assert created.status_code == 201
    schedule_id = created.json()["id"]

    listed = client.get("/api/schedules", params={"employee_id": ana.id}, headers=auth_headers).json()
    assert [s["id"] for s in listed] == [schedule_id]

    result = client.post("/api/cron/update-schedule", headers=auth_headers).json()
    assert result == {"updated": 1, "details": [{"id": schedule_id, "status": "no-show"}]}

    manual = client.post(f"/api/schedules/{schedule_id}/status", json={"status": "completed"},
                         headers=auth_headers).json()
    assert manual["status"] == "completed"
    assert manual["auto_computed"] is False

    bad = client.post(f"/api/schedules/{schedule_id}/status", json={"status": "lost"},
                      headers=auth_headers)
    assert bad.status_code == 422


def test_employees(client, auth_headers):
    created = client.post("/api/employees", json={"name": "Ana Santos", "user_id": "1001"},
                          headers=auth_headers)
    assert created.status_code == 201
    employee_id = created.json()["id"]

    duplicate = client.post("/api/employees", json={"name": "Other", "user_id": "1001"},
                            headers=auth_headers)
    assert duplicate.status_code == 400

    found = client.get("/api/employees", params={"search": "ana"}, headers=auth_headers).json()
    assert [e["id"] for e in found] == [employee_id]
    assert client.get(f"/api/employees/{employee_id}", headers=auth_headers).json()["user_id"] == "1001"
    assert client.get("/api/employees/999", headers=auth_headers).status_code == 404
