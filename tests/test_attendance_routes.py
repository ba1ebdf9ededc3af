from datetime import timedelta
from io import BytesIO

from bson import ObjectId
from openpyxl import load_workbook

from app import config
from app.models.attendance_session import AttendanceSession, SessionStatus

from conftest import add_user, auth_header


async def generate(client, faculty_id, subject="CS101", class_room="A1"):
    response = await client.post(
        "/api/attendance/generate-qr",
        json={"subject": subject, "classRoom": class_room},
        headers=auth_header(faculty_id, "faculty"),
    )
    assert response.status_code == 200
    return response.json()


async def mark(client, student_id, qr_code):
    return await client.post(
        "/api/attendance/mark",
        json={"qrCode": qr_code},
        headers=auth_header(student_id, "student"),
    )


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Server is running"}


async def test_generate_qr(client):
    body = await generate(client, ObjectId())

    assert body["message"] == "Session QR code generated successfully"
    assert body["expiresIn"] == "2 minutes"
    assert len(body["qrCode"]) == 64
    assert ObjectId.is_valid(body["sessionId"])


async def test_generate_qr_requires_token(client):
    response = await client.post("/api/attendance/generate-qr", json={"subject": "CS101", "classRoom": "A1"})

    assert response.status_code == 401
    assert response.json()["success"] is False


async def test_generate_qr_is_faculty_only(client):
    response = await client.post(
        "/api/attendance/generate-qr",
        json={"subject": "CS101", "classRoom": "A1"},
        headers=auth_header(ObjectId(), "student"),
    )

    assert response.status_code == 403


async def test_generate_qr_requires_fields(client):
    response = await client.post(
        "/api/attendance/generate-qr",
        json={"subject": "CS101"},
        headers=auth_header(ObjectId(), "faculty"),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Subject and Classroom are required"


async def test_mark_flow(client):
    faculty_id, student_x, student_y = ObjectId(), ObjectId(), ObjectId()
    created = await generate(client, faculty_id)

    first = await mark(client, student_x, created["qrCode"])
    assert first.status_code == 200
    assert first.json() == {"message": "Attendance marked successfully"}

    again = await mark(client, student_x, created["qrCode"])
    assert again.status_code == 400
    assert again.json()["message"] == "Attendance already marked for this session"

    session = await AttendanceSession.get(ObjectId(created["sessionId"]))
    session.session_date -= timedelta(seconds=config.SESSION_VALIDITY_SECONDS + 1)
    await session.save()

    late = await mark(client, student_y, created["qrCode"])
    assert late.status_code == 400
    assert late.json()["message"] == "Invalid or expired QR code"


async def test_mark_is_student_only(client):
    created = await generate(client, ObjectId())

    response = await client.post(
        "/api/attendance/mark",
        json={"qrCode": created["qrCode"]},
        headers=auth_header(ObjectId(), "faculty"),
    )

    assert response.status_code == 403


async def test_report(client):
    faculty_id, alice, bob = ObjectId(), ObjectId(), ObjectId()
    await add_user(alice, "Alice", "alice@uni.edu")
    await add_user(bob, "Bob", "bob@uni.edu")
    created = await generate(client, faculty_id)
    await mark(client, alice, created["qrCode"])
    await mark(client, bob, created["qrCode"])

    response = await client.post(
        "/api/attendance/report",
        json={"subject": "CS101"},
        headers=auth_header(faculty_id, "faculty"),
    )

    assert response.status_code == 200
    report = response.json()
    assert report["CS101"]["totalSessions"] == 1
    assert {row["email"]: row["attendancePercentage"] for row in report["CS101"]["students"]} == {
        "alice@uni.edu": 100.0,
        "bob@uni.edu": 100.0,
    }


async def test_report_accepts_date_strings(client):
    faculty_id = ObjectId()
    await generate(client, faculty_id)

    response = await client.post(
        "/api/attendance/report",
        json={"startDate": "2000-01-01", "endDate": "2000-12-31"},
        headers=auth_header(faculty_id, "faculty"),
    )

    assert response.status_code == 200
    assert response.json() == {}


async def test_my_attendance(client):
    faculty_id, student_id = ObjectId(), ObjectId()
    cs = await generate(client, faculty_id, subject="CS101")
    ma = await generate(client, faculty_id, subject="MA201")
    await mark(client, student_id, cs["qrCode"])
    await mark(client, student_id, ma["qrCode"])

    response = await client.get("/api/attendance/my-attendance", headers=auth_header(student_id, "student"))
    assert response.status_code == 200
    assert set(response.json()) == {"CS101", "MA201"}

    response = await client.get(
        "/api/attendance/my-attendance",
        params={"subject": "CS101"},
        headers=auth_header(student_id, "student"),
    )
    assert response.json() == {"CS101": {"totalClasses": 1, "attended": 1, "attendancePercentage": 100.0}}


async def test_session_detail(client):
    faculty_id, alice = ObjectId(), ObjectId()
    await add_user(alice, "Alice", "alice@uni.edu")
    created = await generate(client, faculty_id)
    await mark(client, alice, created["qrCode"])

    session = await AttendanceSession.get(ObjectId(created["sessionId"]))
    session.status = SessionStatus.expired
    await session.save()

    response = await client.get(
        f"/api/attendance/session/{created['sessionId']}",
        headers=auth_header(faculty_id, "faculty"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "expired"
    assert body["sessionDate"].endswith("+00:00")
    assert body["classRoom"] == "A1"
    assert body["students"] == [{"id": str(alice), "name": "Alice", "email": "alice@uni.edu"}]


async def test_session_detail_errors(client):
    owner, stranger = ObjectId(), ObjectId()
    created = await generate(client, owner)

    malformed = await client.get("/api/attendance/session/123", headers=auth_header(owner, "faculty"))
    assert malformed.status_code == 400

    missing = await client.get(f"/api/attendance/session/{ObjectId()}", headers=auth_header(owner, "faculty"))
    assert missing.status_code == 404

    foreign = await client.get(
        f"/api/attendance/session/{created['sessionId']}",
        headers=auth_header(stranger, "faculty"),
    )
    assert foreign.status_code == 403
    assert foreign.json()["message"] == "You don't have access to this session"


async def test_export(client):
    faculty_id, alice = ObjectId(), ObjectId()
    await add_user(alice, "Alice", "alice@uni.edu")
    created = await generate(client, faculty_id)
    await mark(client, alice, created["qrCode"])

    response = await client.get(
        f"/api/attendance/export/{created['sessionId']}",
        headers=auth_header(faculty_id, "faculty"),
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert response.headers["content-disposition"].startswith('attachment; filename="attendance_CS101_')

    ws = load_workbook(BytesIO(response.content)).active
    values = [list(row) for row in ws.iter_rows(values_only=True)]
    assert ["Alice", "alice@uni.edu", "Present"] in values


async def test_export_of_foreign_session_is_not_found(client):
    created = await generate(client, ObjectId())

    response = await client.get(
        f"/api/attendance/export/{created['sessionId']}",
        headers=auth_header(ObjectId(), "faculty"),
    )

    assert response.status_code == 404


async def test_export_with_non_ascii_subject(client):
    faculty_id = ObjectId()
    created = await generate(client, faculty_id, subject="数学")

    response = await client.get(
        f"/api/attendance/export/{created['sessionId']}",
        headers=auth_header(faculty_id, "faculty"),
    )

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert 'filename="attendance_' in disposition
    assert "filename*=UTF-8''attendance_%E6%95%B0%E5%AD%A6_" in disposition

    ws = load_workbook(BytesIO(response.content)).active
    assert ["Subject", "数学", None] in [list(row) for row in ws.iter_rows(values_only=True)]
