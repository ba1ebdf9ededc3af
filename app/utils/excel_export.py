import re
from io import BytesIO
from datetime import datetime
from urllib.parse import quote
from typing import List, Optional

import pytz
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from app import config
from app.models.attendance_session import AttendanceSession

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

COLUMNS = [
    ("Student Name", 30),
    ("Email", 40),
    ("Attendance Status", 20),
]
HEADER_FILL = PatternFill(fill_type="solid", start_color="FFE0E0E0", end_color="FFE0E0E0")


def localize(moment: datetime, timezone_name: str) -> datetime:
    """Stored timestamps are naive UTC; render them in the display timezone."""
    return pytz.utc.localize(moment).astimezone(pytz.timezone(timezone_name))


def build_session_workbook(session: AttendanceSession, students: List[dict], timezone_name: Optional[str] = None) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "Attendance"

    # Header row
    ws.append([title for title, _ in COLUMNS])
    for index, (_, width) in enumerate(COLUMNS):
        ws.column_dimensions[get_column_letter(index + 1)].width = width
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL

    # Session metadata
    held_at = localize(session.session_date, timezone_name or config.DISPLAY_TIMEZONE)
    ws.append([])
    ws.append(["Subject", session.subject])
    ws.append(["Classroom", session.class_room])
    ws.append(["Date", held_at.strftime("%Y-%m-%d")])
    ws.append(["Time", held_at.strftime("%H:%M:%S")])
    ws.append(["Status", session.status.value])
    ws.append([])

    ws.append(["Student List"])
    ws.cell(row=ws.max_row, column=1).font = Font(bold=True)
    ws.append([])

    for student in students:
        ws.append([student["name"], student["email"], "Present"])

    return wb


def export_filename(session: AttendanceSession, today: Optional[datetime] = None) -> str:
    today = today or datetime.now(pytz.utc)
    return f"attendance_{session.subject}_{today.strftime('%Y-%m-%d')}.xlsx"


def content_disposition(filename: str) -> str:
    """Attachment header that survives non-ASCII subjects and quotes (RFC 6266)."""
    fallback = re.sub(r"[^A-Za-z0-9._-]", "_", filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def workbook_to_stream(wb: Workbook) -> BytesIO:
    in_memory_file = BytesIO()
    wb.save(in_memory_file)
    in_memory_file.seek(0)
    return in_memory_file
