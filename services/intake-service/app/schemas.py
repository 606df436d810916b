from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    slug: Optional[str] = None
    check_in: Optional[str] = Field(default=None, alias="checkIn")
    check_out: Optional[str] = Field(default=None, alias="checkOut")
    guests: Optional[str] = None
    room_type: Optional[str] = Field(default=None, alias="roomType")
    notes: Optional[str] = None
    telegram_id: Optional[str] = Field(default=None, alias="telegramId")

    @field_validator("*", mode="before")
    @classmethod
    def _stringify(cls, value: Any):
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("must be text")
        if isinstance(value, (int, float)):
            value = str(value)
        if isinstance(value, str):
            value = value.strip()
            return value or None
        raise ValueError("must be text")


class BookingAccepted(BaseModel):
    status: str = "ok"
    success: bool = True
    message: str
    bookingId: str
    mode: str
    quota_info: dict[str, Any]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    field: Optional[str] = None
    contact: Optional[dict[str, str]] = None
    quota: Optional[dict[str, Any]] = None
    upgrade_url: Optional[str] = None
