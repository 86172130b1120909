"""
共通のリクエスト/レスポンスモデル
"""
from datetime import date, datetime, timezone
from typing import Annotated, Optional

from pydantic import BaseModel, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

# "YYYY-MM-DD" と "HH:MM"（24時間制）
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def to_utc_iso(value: datetime) -> str:
    """UTCのISO 8601文字列（末尾Z）に変換。naiveな値はUTCとして扱う"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


# DBにはnaiveなUTCで保存しているので、JSONでは必ずZを付ける
UTCDateTime = Annotated[datetime, PlainSerializer(to_utc_iso, return_type=str, when_used="json")]


class CamelModel(BaseModel):
    """JSONのキーをcamelCaseで扱うモデル"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def validate_calendar_date(value: Optional[str]) -> Optional[str]:
    """実在する日付か検証"""
    if value is None:
        return value
    date.fromisoformat(value)
    return value


class UserSummary(CamelModel):
    """ユーザーの概要"""
    id: int
    email: str
    first_name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    assigned_coach_id: Optional[int] = None
    assigned_chat_doctor_id: Optional[int] = None
    subscription_status: str
    is_active: bool
    created_at: UTCDateTime


class SuccessResponse(CamelModel):
    success: bool = True


class CalendarDateModel(CamelModel):
    """日付フィールドを持つモデルの共通検証"""

    @field_validator("date", "start_date", "end_date", check_fields=False)
    @classmethod
    def _check_date(cls, value):
        return validate_calendar_date(value)
