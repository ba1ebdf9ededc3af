from beanie import Document, Indexed, PydanticObjectId
from datetime import datetime, timezone
from pydantic import Field
from typing import List
from enum import Enum


def utcnow() -> datetime:
    # MongoDB hands back naive UTC datetimes, so we store them that way too
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SessionStatus(str, Enum):
    active = "active"
    expired = "expired"


class AttendanceSession(Document):
    faculty: PydanticObjectId
    subject: str
    class_room: str
    qr_code: Indexed(str)
    session_date: datetime = Field(default_factory=utcnow)
    status: SessionStatus = SessionStatus.active
    marked_students: List[PydanticObjectId] = Field(default_factory=list)  # one entry per student, in redemption order

    class Settings:
        name = "attendances"
