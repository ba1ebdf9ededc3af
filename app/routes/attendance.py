from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from typing import Optional

from app.dependencies.auth import CurrentUser, get_current_faculty, get_current_student
from app.errors import AttendanceError, InternalFault
from app.schemas.attendance import GenerateQRRequest, MarkAttendanceRequest, ReportFilter
from app.services import report_service, session_service
from app.utils.excel_export import (
    XLSX_MEDIA_TYPE,
    build_session_workbook,
    content_disposition,
    export_filename,
    workbook_to_stream,
)

router = APIRouter(prefix="/api/attendance", tags=["Attendance"])


@router.post("/generate-qr")
async def generate_session_qr(data: GenerateQRRequest, faculty: CurrentUser = Depends(get_current_faculty)):
    """Open a new attendance session and hand back its QR code."""
    try:
        return await session_service.create_session(data.subject, data.class_room, faculty)
    except AttendanceError:
        raise
    except Exception as e:
        raise InternalFault("Error generating QR code", str(e))


@router.post("/mark")
async def mark_attendance(data: MarkAttendanceRequest, student: CurrentUser = Depends(get_current_student)):
    try:
        return await session_service.redeem_code(data.qr_code, student)
    except AttendanceError:
        raise
    except Exception as e:
        raise InternalFault("Error marking attendance", str(e))


@router.post("/report")
async def get_attendance_report(
    filters: Optional[ReportFilter] = None,
    faculty: CurrentUser = Depends(get_current_faculty),
):
    """Per-subject attendance percentages for the caller's sessions."""
    filters = filters or ReportFilter()
    try:
        return await report_service.faculty_report(faculty.id, filters.subject, filters.start_date, filters.end_date)
    except AttendanceError:
        raise
    except Exception as e:
        raise InternalFault("Error generating report", str(e))


@router.get("/my-attendance")
async def get_student_attendance(
    subject: Optional[str] = Query(default=None),
    student: CurrentUser = Depends(get_current_student),
):
    try:
        return await report_service.student_report(student.id, subject)
    except AttendanceError:
        raise
    except Exception as e:
        raise InternalFault("Error fetching attendance", str(e))


@router.get("/session/{session_id}")
async def get_session_details(session_id: str, faculty: CurrentUser = Depends(get_current_faculty)):
    """Session details with the list of students who marked attendance, even after expiry."""
    try:
        return await report_service.session_detail(session_id, faculty.id)
    except AttendanceError:
        raise
    except Exception as e:
        raise InternalFault("Error fetching session details", str(e))


@router.get("/export/{session_id}")
async def export_session_to_excel(session_id: str, faculty: CurrentUser = Depends(get_current_faculty)):
    try:
        session, students = await report_service.owned_session_with_roster(session_id, faculty.id)
        stream = workbook_to_stream(build_session_workbook(session, students))
        disposition = content_disposition(export_filename(session))
    except AttendanceError:
        raise
    except Exception as e:
        raise InternalFault("Error exporting to Excel", str(e))

    return StreamingResponse(
        stream,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": disposition},
    )
