"""
カレンダー（電話相談の予約）関連のCRUD操作
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from coachapp import scheduling
from coachapp.access import ROLE_ADMIN, ROLE_CLIENT, is_staff, require_coach_or_admin
from coachapp.config import DEFAULT_APPOINTMENT_LIMIT
from coachapp.crud import user as crud_user
from coachapp.exceptions import AccessDenied, InvalidState, NotFound, OverlapConflict
from coachapp.models.calendar import CalendarEvent
from coachapp.models.user import User

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_NAME = "Unknown Client"


def get_event(db: Session, event_id: int) -> Optional[CalendarEvent]:
    """IDでイベントを取得"""
    return db.query(CalendarEvent).filter(CalendarEvent.id == event_id).first()


def get_active_events_for_coach_on_date(
    db: Session,
    coach_id: int,
    date: str,
    exclude_event_id: Optional[int] = None
) -> List[CalendarEvent]:
    """コーチのその日のキャンセルされていないイベントを取得"""
    query = db.query(CalendarEvent).filter(
        CalendarEvent.coach_id == coach_id,
        CalendarEvent.date == date,
        CalendarEvent.status != "cancelled"
    )
    if exclude_event_id is not None:
        query = query.filter(CalendarEvent.id != exclude_event_id)
    return query.all()


def find_overlapping_event(
    db: Session,
    coach_id: int,
    date: str,
    start_at: datetime,
    end_at: datetime,
    exclude_event_id: Optional[int] = None
) -> Optional[CalendarEvent]:
    """新しい時間帯と重なる既存イベントを探す"""
    for existing in get_active_events_for_coach_on_date(db, coach_id, date, exclude_event_id):
        if scheduling.overlaps(start_at, end_at, existing.start_at, existing.end_at):
            return existing
    return None


def _ensure_no_overlap(db, coach_id, date, start_at, end_at, exclude_event_id=None):
    existing = find_overlapping_event(db, coach_id, date, start_at, end_at, exclude_event_id)
    if existing:
        logger.warning(
            f"Overlap for coach {coach_id} on {date}: "
            f"{start_at.isoformat()}-{end_at.isoformat()} collides with event {existing.id}"
        )
        raise OverlapConflict("この時間帯は既存の予約と重なっています")


def client_fields(client: Optional[User]) -> Dict[str, Optional[str]]:
    """イベントに付加するクライアントの表示情報"""
    return {
        "client_name": client.display_name if client else UNKNOWN_CLIENT_NAME,
        "client_avatar": client.avatar_url if client else None,
        "client_phone": client.phone if client else None,
    }


def event_view(event: CalendarEvent) -> Dict:
    """イベントにクライアント情報を付加"""
    return {
        "id": event.id,
        "coach_id": event.coach_id,
        "client_id": event.client_id,
        "type": event.type,
        "reason": event.reason,
        "notes": event.notes,
        "date": event.date,
        "start_time": event.start_time,
        "end_time": event.end_time,
        "start_at": event.start_at,
        "end_at": event.end_at,
        "status": event.status,
        "created_at": event.created_at,
        "updated_at": event.updated_at,
        **client_fields(event.client),
    }


def create_calendar_call(
    db: Session,
    user: User,
    client_id: int,
    date: str,
    start_time: str,
    end_time: str,
    reason: str,
    notes: Optional[str] = None
) -> CalendarEvent:
    """
    電話相談の予約を作成

    呼び出したコーチ（または管理者）がイベントのコーチになる。

    Raises:
        AccessDenied: コーチ・管理者以外
        NotFound: クライアントが存在しない
        InvalidRange: 終了時刻が開始時刻以前
        OverlapConflict: 既存の予約と重なる
    """
    require_coach_or_admin(user)

    client = crud_user.get_user(db, client_id)
    if not client or client.role != ROLE_CLIENT:
        raise NotFound("クライアントが見つかりません")

    start_at, end_at = scheduling.compute_interval(date, start_time, end_time)

    try:
        # 同じコーチへの同時予約を直列化する
        crud_user.get_user_for_update(db, user.id)
        _ensure_no_overlap(db, user.id, date, start_at, end_at)

        db_event = CalendarEvent(
            coach_id=user.id,
            client_id=client_id,
            type="call",
            reason=reason,
            notes=notes,
            date=date,
            start_time=start_time,
            end_time=end_time,
            start_at=start_at,
            end_at=end_at,
            status="scheduled"
        )
        db.add(db_event)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_event)
    logger.info(f"Calendar call {db_event.id} created by {user.id} for client {client_id} on {date} {start_time}-{end_time}")

    return db_event


def _require_event_owner(user: User, event: CalendarEvent, action: str) -> None:
    """管理者またはイベントのコーチのみ"""
    if user.role != ROLE_ADMIN and event.coach_id != user.id:
        logger.warning(f"User {user.id} not allowed to {action} event {event.id}")
        raise AccessDenied("このイベントを操作する権限がありません")


def update_event(
    db: Session,
    user: User,
    event_id: int,
    date: Optional[str] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    reason: Optional[str] = None,
    notes: Optional[str] = None
) -> CalendarEvent:
    """イベントの日時・内容を更新（日時変更時は重複チェックを再実行）"""
    event = get_event(db, event_id)
    if not event:
        raise NotFound("イベントが見つかりません")

    _require_event_owner(user, event, "update")

    try:
        if date is not None or start_time is not None or end_time is not None:
            if event.status == "cancelled":
                raise InvalidState("キャンセル済みのイベントは変更できません")

            new_date = date or event.date
            new_start_time = start_time or event.start_time
            new_end_time = end_time or event.end_time

            start_at, end_at = scheduling.compute_interval(new_date, new_start_time, new_end_time)

            crud_user.get_user_for_update(db, event.coach_id)
            _ensure_no_overlap(db, event.coach_id, new_date, start_at, end_at, exclude_event_id=event.id)

            event.date = new_date
            event.start_time = new_start_time
            event.end_time = new_end_time
            event.start_at = start_at
            event.end_at = end_at

        if reason is not None:
            event.reason = reason
        if notes is not None:
            event.notes = notes

        event.updated_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(event)
    logger.info(f"Calendar event {event.id} updated by {user.id}")

    return event


def cancel_event(db: Session, user: User, event_id: int) -> CalendarEvent:
    """イベントをキャンセル（物理削除はしない）"""
    event = get_event(db, event_id)
    if not event:
        raise NotFound("イベントが見つかりません")

    _require_event_owner(user, event, "cancel")

    if event.status != "cancelled":
        event.status = "cancelled"
        event.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(event)
        logger.info(f"Calendar event {event.id} cancelled by {user.id}")

    return event


def _visible_events_query(db: Session, user: User):
    """管理者はすべて、コーチは自分のイベントのみ"""
    query = db.query(CalendarEvent)
    if user.role != ROLE_ADMIN:
        query = query.filter(CalendarEvent.coach_id == user.id)
    return query


def get_events_by_date(db: Session, user: User, date: str) -> List[CalendarEvent]:
    """指定日のキャンセルされていないイベント"""
    if not is_staff(user):
        return []

    return _visible_events_query(db, user).filter(
        CalendarEvent.date == date,
        CalendarEvent.status != "cancelled"
    ).order_by(CalendarEvent.start_at).all()


def get_events_by_date_range(
    db: Session,
    user: User,
    start_date: str,
    end_date: str
) -> List[CalendarEvent]:
    """期間内（両端を含む）のキャンセルされていないイベント"""
    if not is_staff(user):
        return []

    # "YYYY-MM-DD" は文字列比較で日付順になる
    return _visible_events_query(db, user).filter(
        CalendarEvent.date >= start_date,
        CalendarEvent.date <= end_date,
        CalendarEvent.status != "cancelled"
    ).order_by(CalendarEvent.start_at).all()


def get_todays_appointments(
    db: Session,
    user: User,
    date: Optional[str] = None,
    limit: Optional[int] = None,
    now: Optional[datetime] = None
) -> List[Dict]:
    """
    今日の予約一覧（ダッシュボード用）

    Returns:
        開始時刻の昇順で最大limit件。各要素に所要時間（分）と現在時刻から
        判定した状態（upcoming / starting_soon / in_progress）を含む
    """
    if not is_staff(user):
        return []

    now = now or datetime.utcnow()
    today = date or scheduling.today_local(now)
    limit = DEFAULT_APPOINTMENT_LIMIT if limit is None else limit

    events = _visible_events_query(db, user).filter(
        CalendarEvent.date == today,
        CalendarEvent.status == "scheduled"
    ).order_by(CalendarEvent.start_at).limit(limit).all()

    appointments = []
    for event in events:
        appointments.append({
            "id": event.id,
            "client_id": event.client_id,
            **client_fields(event.client),
            "date": event.date,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "type": event.type,
            "duration": scheduling.duration_minutes(event.start_time, event.end_time),
            "status": scheduling.appointment_status(event.start_at, event.end_at, now),
            "reason": event.reason,
            "notes": event.notes,
        })

    return appointments


def get_my_clients(db: Session, user: User) -> List[User]:
    """
    クライアント選択用の一覧

    管理者はすべてのクライアント。コーチは担当クライアント、担当がいない場合は
    すべてのクライアント。
    """
    if not is_staff(user):
        return []

    if user.role == ROLE_ADMIN:
        return crud_user.get_users_by_role(db, ROLE_CLIENT)

    assigned = crud_user.get_clients_of_coach(db, user.id)
    if assigned:
        return assigned

    return crud_user.get_users_by_role(db, ROLE_CLIENT)
