import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "qr_attendance")

PORT = int(os.getenv("PORT", "5000"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

APP_ENV = os.getenv("APP_ENV", "production")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Tokens are issued by the identity provider; we only verify them
DEFAULT_JWT_SECRET = "change-me"
JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", "UTC")

# QR codes are only honoured for this long after the session is created
SESSION_VALIDITY_SECONDS = 120
SESSION_VALIDITY_LABEL = "2 minutes"


def is_development(app_env: Optional[str] = None) -> bool:
    return (app_env or APP_ENV).lower() == "development"


def check_jwt_secret(secret: str, app_env: str):
    if not secret or (secret == DEFAULT_JWT_SECRET and not is_development(app_env)):
        raise ValueError("JWT_SECRET must be set in production")


check_jwt_secret(JWT_SECRET, APP_ENV)
