import logging
import secrets
from datetime import timedelta
from functools import partial
from typing import Optional

from beanie import PydanticObjectId, UpdateResponse
from beanie.operators import AddToSet, Set

from app import config
from app.dependencies.auth import CurrentUser
from app.errors import DuplicateRedemption, InternalFault, InvalidInput, InvalidOrExpired, Unauthenticated
from app.models.attendance_session import AttendanceSession, SessionStatus, utcnow
from app.utils.expiry_scheduler import ExpiryScheduler
from app.utils.socketio_manager import broadcast_session_event

logger = logging.getLogger(__name__)

expiry_scheduler = ExpiryScheduler(delay=config.SESSION_VALIDITY_SECONDS)


def generate_qr_code() -> str:
    """256 bits from the OS CSPRNG, hex encoded."""
    return secrets.token_hex(32)


def validity_cutoff():
    return utcnow() - timedelta(seconds=config.SESSION_VALIDITY_SECONDS)


async def create_session(subject: Optional[str], class_room: Optional[str], faculty: Optional[CurrentUser]) -> dict:
    if faculty is None:
        raise Unauthenticated("Unauthorized: Faculty ID missing")
    if not subject or not subject.strip() or not class_room or not class_room.strip():
        raise InvalidInput("Subject and Classroom are required")

    try:
        qr_code = generate_qr_code()
    except Exception as e:
        raise InternalFault("Error generating QR code", str(e))

    session = AttendanceSession(
        faculty=faculty.id,
        subject=subject.strip(),
        class_room=class_room.strip(),
        qr_code=qr_code,
        status=SessionStatus.active,
        marked_students=[],
    )
    await session.insert()

    expiry_scheduler.schedule(session.id, partial(expire_session, session.id))
    logger.info(f"✅ Session {session.id} created for {session.subject} in {session.class_room}")

    return {
        "message": "Session QR code generated successfully",
        "qrCode": qr_code,
        "sessionId": str(session.id),
        "expiresIn": config.SESSION_VALIDITY_LABEL,
    }


async def expire_session(session_id: PydanticObjectId) -> bool:
    """Flip a session to expired if it is still active. Returns True when it changed."""
    result = await AttendanceSession.find_one(
        AttendanceSession.id == session_id,
        AttendanceSession.status == SessionStatus.active,
    ).update(Set({AttendanceSession.status: SessionStatus.expired}))

    if not result or not result.modified_count:
        return False

    logger.info(f"⏰ Session {session_id} expired")
    await broadcast_session_event("session_expired", session_id, {})
    return True


async def redeem_code(qr_code: Optional[str], student: CurrentUser) -> dict:
    if not qr_code:
        raise InvalidInput("QR code is required")

    # The time window is the authority; the expiry timer only updates status for display
    cutoff = validity_cutoff()
    session = await AttendanceSession.find_one(
        AttendanceSession.qr_code == qr_code,
        AttendanceSession.status == SessionStatus.active,
        AttendanceSession.session_date >= cutoff,
    )
    if session is None:
        raise InvalidOrExpired()

    if student.id in session.marked_students:
        raise DuplicateRedemption()

    updated = await AttendanceSession.find_one(
        AttendanceSession.id == session.id,
        AttendanceSession.status == SessionStatus.active,
        AttendanceSession.session_date >= cutoff,
        {"marked_students": {"$ne": student.id}},
    ).update(
        AddToSet({AttendanceSession.marked_students: student.id}),
        response_type=UpdateResponse.NEW_DOCUMENT,
    )

    if updated is None:
        # Lost a race with another redemption or with expiry
        current = await AttendanceSession.get(session.id)
        if current is not None and student.id in current.marked_students:
            raise DuplicateRedemption()
        raise InvalidOrExpired()

    count = len(updated.marked_students)
    logger.info(f"✅ Attendance marked for session {session.id} ({count} present)")
    await broadcast_session_event(
        "attendance_marked",
        session.id,
        {"studentId": str(student.id), "count": count},
    )

    return {"message": "Attendance marked successfully"}
