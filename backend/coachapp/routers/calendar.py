"""
カレンダー（電話相談の予約）関連のルーター
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field
from sqlalchemy.orm import Session
from typing import List, Optional

from coachapp.database import get_db
from coachapp.crud import calendar as crud_calendar
from coachapp.routers.auth import get_current_user
from coachapp.schemas import (
    DATE_PATTERN,
    TIME_PATTERN,
    CalendarDateModel,
    CamelModel,
    SuccessResponse,
    UTCDateTime,
    validate_calendar_date,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/calendar",
    tags=["カレンダー"]
)

# リクエスト/レスポンスモデル
class CalendarCallCreate(CalendarDateModel):
    """電話相談の予約作成用モデル"""
    client_id: int
    date: str = Field(pattern=DATE_PATTERN)
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    reason: str = Field(min_length=1)
    notes: Optional[str] = None

class CalendarEventUpdate(CalendarDateModel):
    """予約更新用モデル（指定された項目のみ更新）"""
    date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    reason: Optional[str] = None
    notes: Optional[str] = None

class CalendarEventResponse(CamelModel):
    """クライアント情報付きのイベント"""
    id: int
    coach_id: int
    client_id: int
    type: str
    reason: str
    notes: Optional[str]
    date: str
    start_time: str
    end_time: str
    start_at: UTCDateTime
    end_at: UTCDateTime
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    client_name: str
    client_avatar: Optional[str]
    client_phone: Optional[str]

class AppointmentResponse(CamelModel):
    """ダッシュボード用の今日の予約"""
    id: int
    client_id: int
    client_name: str
    client_avatar: Optional[str]
    client_phone: Optional[str]
    date: str
    start_time: str
    end_time: str
    type: str
    duration: int
    status: str  # upcoming, starting_soon, in_progress
    reason: str
    notes: Optional[str]

class ClientOption(CamelModel):
    """クライアント選択用"""
    id: int
    first_name: str
    last_name: str
    avatar_url: Optional[str]

def _date_query(value: Optional[str]) -> Optional[str]:
    try:
        return validate_calendar_date(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"無効な日付です: {value}")

@router.get("/clients", response_model=List[ClientOption])
async def get_my_clients(
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """予約作成時のクライアント一覧"""
    clients = crud_calendar.get_my_clients(db, current_user)
    return [
        ClientOption(
            id=c.id,
            first_name=c.first_name,
            last_name=c.last_name or "",
            avatar_url=c.avatar_url
        )
        for c in clients
    ]

@router.get("/events", response_model=List[CalendarEventResponse])
async def get_events_by_date(
    date: str = Query(..., pattern=DATE_PATTERN),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """指定日のイベント一覧"""
    events = crud_calendar.get_events_by_date(db, current_user, _date_query(date))
    return [crud_calendar.event_view(e) for e in events]

@router.get("/events/range", response_model=List[CalendarEventResponse])
async def get_events_by_date_range(
    start_date: str = Query(..., pattern=DATE_PATTERN),
    end_date: str = Query(..., pattern=DATE_PATTERN),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """期間内のイベント一覧（週表示用）"""
    events = crud_calendar.get_events_by_date_range(
        db, current_user, _date_query(start_date), _date_query(end_date)
    )
    return [crud_calendar.event_view(e) for e in events]

@router.get("/today", response_model=List[AppointmentResponse])
async def get_todays_appointments(
    date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    limit: Optional[int] = Query(None, ge=1),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """今日の予約一覧（状態付き）"""
    return crud_calendar.get_todays_appointments(
        db, current_user, date=_date_query(date), limit=limit
    )

@router.post("/events", response_model=CalendarEventResponse)
async def create_calendar_call(
    event_data: CalendarCallCreate,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """電話相談の予約を作成"""
    event = crud_calendar.create_calendar_call(
        db=db,
        user=current_user,
        client_id=event_data.client_id,
        date=event_data.date,
        start_time=event_data.start_time,
        end_time=event_data.end_time,
        reason=event_data.reason,
        notes=event_data.notes
    )
    return crud_calendar.event_view(event)

@router.patch("/events/{event_id}", response_model=CalendarEventResponse)
async def update_event(
    event_id: int,
    event_data: CalendarEventUpdate,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """予約の日時・内容を更新"""
    event = crud_calendar.update_event(
        db=db,
        user=current_user,
        event_id=event_id,
        date=event_data.date,
        start_time=event_data.start_time,
        end_time=event_data.end_time,
        reason=event_data.reason,
        notes=event_data.notes
    )
    return crud_calendar.event_view(event)

@router.post("/events/{event_id}/cancel", response_model=SuccessResponse)
async def cancel_event(
    event_id: int,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """予約をキャンセル"""
    crud_calendar.cancel_event(db, current_user, event_id)
    return {"success": True}
