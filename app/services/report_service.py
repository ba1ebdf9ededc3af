"""Attendance reports built from stored sessions.

The aggregation itself is done in plain Python over the fetched sessions so
the numbers can be checked without a database (see ``build_faculty_report``
and ``build_student_report``).
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from beanie.operators import In
from bson import ObjectId

from app.errors import Forbidden, InvalidInput, NotFound
from app.models.attendance_session import AttendanceSession
from app.models.user import User

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
UNKNOWN_EMAIL = "No email"


def percentage(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 2)


def build_faculty_report(sessions: Iterable[AttendanceSession], users: Dict[ObjectId, User]) -> dict:
    """Per-subject attendance for a faculty member.

    The denominator is the number of distinct calendar days a subject was
    held, while each student's count is the number of sessions they attended.
    Two sessions on one day therefore count once below the line and twice
    above it, which can push a percentage past 100.
    """
    subjects: Dict[str, dict] = {}

    for session in sessions:
        entry = subjects.setdefault(session.subject, {"dates": set(), "students": {}})
        entry["dates"].add(session.session_date.date().isoformat())

        for student_id in session.marked_students:
            if student_id not in entry["students"]:
                user = users.get(student_id)
                entry["students"][student_id] = {
                    "studentId": str(student_id),
                    "name": user.name if user and user.name else UNKNOWN_NAME,
                    "email": user.email if user and user.email else UNKNOWN_EMAIL,
                    "attendanceCount": 0,
                }
            entry["students"][student_id]["attendanceCount"] += 1

    report = {}
    for subject, entry in subjects.items():
        total_sessions = len(entry["dates"])
        report[subject] = {
            "totalSessions": total_sessions,
            "students": [
                {**student, "attendancePercentage": percentage(student["attendanceCount"], total_sessions)}
                for student in entry["students"].values()
            ],
        }
    return report


def build_student_report(sessions: Iterable[AttendanceSession]) -> dict:
    # Only sessions the student redeemed are stored against them, so attended
    # always equals totalClasses and the percentage is always 100.
    report: Dict[str, dict] = {}
    for session in sessions:
        entry = report.setdefault(session.subject, {"totalClasses": 0, "attended": 0})
        entry["totalClasses"] += 1
        entry["attended"] += 1
        entry["attendancePercentage"] = percentage(entry["attended"], entry["totalClasses"])
    return report


async def load_users(user_ids: Iterable[ObjectId]) -> Dict[ObjectId, User]:
    ids = list({user_id for user_id in user_ids})
    if not ids:
        return {}
    users = await User.find(In(User.id, ids)).to_list()
    return {user.id: user for user in users}


async def faculty_report(
    faculty_id: ObjectId,
    subject: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    filters = [AttendanceSession.faculty == faculty_id]
    if subject:
        filters.append(AttendanceSession.subject == subject)
    # The range only applies when both ends are given
    if start_date and end_date:
        filters.append(AttendanceSession.session_date >= start_date)
        filters.append(AttendanceSession.session_date <= end_date)

    sessions = await AttendanceSession.find(*filters).sort(-AttendanceSession.session_date).to_list()
    users = await load_users(student_id for session in sessions for student_id in session.marked_students)
    logger.info(f"📊 Faculty report for {faculty_id}: {len(sessions)} session(s)")
    return build_faculty_report(sessions, users)


async def student_report(student_id: ObjectId, subject: Optional[str] = None) -> dict:
    filters = [AttendanceSession.marked_students == student_id]
    if subject:
        filters.append(AttendanceSession.subject == subject)

    sessions = await AttendanceSession.find(*filters).sort(-AttendanceSession.session_date).to_list()
    return build_student_report(sessions)


def parse_session_id(session_id: str) -> ObjectId:
    if not session_id or not ObjectId.is_valid(session_id):
        raise InvalidInput("Invalid session ID format")
    return ObjectId(session_id)


def roster(session: AttendanceSession, users: Dict[ObjectId, User]) -> List[dict]:
    students = []
    for student_id in session.marked_students:
        user = users.get(student_id)
        students.append({
            "id": str(student_id),
            "name": user.name if user and user.name else UNKNOWN_NAME,
            "email": user.email if user and user.email else UNKNOWN_EMAIL,
        })
    return students


async def session_detail(session_id: str, faculty_id: ObjectId) -> dict:
    """Session metadata and roster, for active and expired sessions alike."""
    object_id = parse_session_id(session_id)

    session = await AttendanceSession.get(object_id)
    if session is None:
        raise NotFound("Session not found")
    if session.faculty != faculty_id:
        raise Forbidden("You don't have access to this session")

    users = await load_users(session.marked_students)
    return {
        "sessionId": str(session.id),
        "subject": session.subject or UNKNOWN_NAME,
        "classRoom": session.class_room or UNKNOWN_NAME,
        "sessionDate": session.session_date.replace(tzinfo=timezone.utc),
        "status": session.status.value,
        "students": roster(session, users),
    }


async def owned_session_with_roster(session_id: str, faculty_id: ObjectId):
    """Fetch a session the faculty member owns, for export. Anything else is a 404."""
    if not session_id or not ObjectId.is_valid(session_id):
        raise NotFound("Session not found")

    session = await AttendanceSession.find_one(
        AttendanceSession.id == ObjectId(session_id),
        AttendanceSession.faculty == faculty_id,
    )
    if session is None:
        raise NotFound("Session not found")

    users = await load_users(session.marked_students)
    return session, roster(session, users)
