"""
予約スケジュールの計算ユーティリティ

日付（"YYYY-MM-DD"）と時刻（"HH:MM"）はアプリのタイムゾーンのローカル時刻として扱い、
保存・比較にはUTCのnaiveなdatetimeを使う。
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from coachapp.config import APP_TIMEZONE, STARTING_SOON_MINUTES
from coachapp.exceptions import InvalidRange

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

STATUS_IN_PROGRESS = "in_progress"
STATUS_STARTING_SOON = "starting_soon"
STATUS_UPCOMING = "upcoming"


def parse_date(value: str) -> date:
    """"YYYY-MM-DD" をdateに変換"""
    return datetime.strptime(value, DATE_FORMAT).date()


def parse_time(value: str) -> time:
    """"HH:MM"（24時間制）をtimeに変換"""
    return datetime.strptime(value, TIME_FORMAT).time()


def compose_instant(day: str, clock: str, tz_name: Optional[str] = None) -> datetime:
    """
    日付と時刻からUTCの絶対時刻を組み立てる

    ISO日付をそのままパースするとUTCの0時として扱われ、UTC以外のタイムゾーンで
    日付がずれるため、年・月・日と時・分を個別にローカル時刻として組み立てる。

    Returns:
        UTCのnaiveなdatetime
    """
    local = datetime.combine(parse_date(day), parse_time(clock)).replace(
        tzinfo=ZoneInfo(tz_name or APP_TIMEZONE)
    )
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def compute_interval(day: str, start_time: str, end_time: str) -> Tuple[datetime, datetime]:
    """予約の開始・終了時刻を計算し、終了が開始より後であることを検証"""
    start_at = compose_instant(day, start_time)
    end_at = compose_instant(day, end_time)
    if end_at <= start_at:
        raise InvalidRange("終了時刻は開始時刻より後である必要があります")
    return start_at, end_at


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """半開区間 [start, end) 同士が重なるか"""
    return start_a < end_b and end_a > start_b


def duration_minutes(start_time: str, end_time: str) -> int:
    start = parse_time(start_time)
    end = parse_time(end_time)
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def appointment_status(start_at: datetime, end_at: datetime, now: datetime) -> str:
    """
    現在時刻から予約の状態を判定

    - in_progress: now が [start_at, end_at) に含まれる
    - starting_soon: 開始まで0分より長く、STARTING_SOON_MINUTES分以内
    - upcoming: それ以外
    """
    if start_at <= now < end_at:
        return STATUS_IN_PROGRESS
    until_start = start_at - now
    if timedelta(0) < until_start <= timedelta(minutes=STARTING_SOON_MINUTES):
        return STATUS_STARTING_SOON
    return STATUS_UPCOMING


def today_local(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    """アプリのタイムゾーンでの今日の日付（"YYYY-MM-DD"）"""
    current = now or datetime.utcnow()
    local = current.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name or APP_TIMEZONE))
    return local.strftime(DATE_FORMAT)
