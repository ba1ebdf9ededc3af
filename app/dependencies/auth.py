import jwt
from bson import ObjectId
from dataclasses import dataclass
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from app import config
from app.errors import Unauthenticated, Forbidden
from app.models.user import Role

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: ObjectId
    role: Role


def decode_token(token: str) -> CurrentUser:
    """Verify a bearer token from the identity provider and read the caller out of it."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.PyJWTError:
        raise Unauthenticated("Could not validate credentials")

    user_id = payload.get("sub") or payload.get("id")
    if not user_id or not ObjectId.is_valid(str(user_id)):
        raise Unauthenticated("Invalid authentication credentials")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise Unauthenticated("Invalid authentication credentials")

    return CurrentUser(id=ObjectId(str(user_id)), role=role)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("No token, authorization denied")
    return decode_token(credentials.credentials)


async def get_current_faculty(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != Role.faculty:
        raise Forbidden("Access denied. Faculty only.")
    return user


async def get_current_student(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != Role.student:
        raise Forbidden("Access denied. Students only.")
    return user
