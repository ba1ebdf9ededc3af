from beanie import Document
from typing import Optional
from enum import Enum


class Role(str, Enum):
    faculty = "faculty"
    student = "student"


class User(Document):
    """Read-only view of the identity provider's user records."""

    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None

    class Settings:
        name = "users"
