from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime, timezone
from typing import Optional


class GenerateQRRequest(BaseModel):
    subject: Optional[str] = Field(default=None)
    class_room: Optional[str] = Field(default=None, alias="classRoom")

    model_config = {"populate_by_name": True}


class MarkAttendanceRequest(BaseModel):
    qr_code: Optional[str] = Field(default=None, alias="qrCode")

    model_config = {"populate_by_name": True}


class ReportFilter(BaseModel):
    subject: Optional[str] = Field(default=None)
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")

    model_config = {"populate_by_name": True}

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_bare_dates(cls, value):
        # "2024-01-31" means midnight UTC of that day
        if isinstance(value, str) and len(value) == 10:
            parsed = date.fromisoformat(value)
            return datetime(parsed.year, parsed.month, parsed.day)
        if value == "":
            return None
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def drop_timezone(cls, value: Optional[datetime]):
        # Stored timestamps are naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
