"""
カレンダー（電話相談の予約）モデルの定義
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from coachapp.database import Base

class CalendarEvent(Base):
    """カレンダーイベントテーブル"""
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    coach_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    type = Column(String, default="call", nullable=False)  # 現状は電話のみ
    reason = Column(Text, nullable=False)
    notes = Column(Text)

    # ローカルの日付と時刻（"2025-12-21", "10:00"）
    date = Column(String, nullable=False)
    start_time = Column(String, nullable=False)
    end_time = Column(String, nullable=False)

    # 絶対時刻（UTC、ソートと重複チェック用）
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)

    status = Column(String, default="scheduled", nullable=False, index=True)  # scheduled, cancelled

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # リレーション
    coach = relationship("User", foreign_keys=[coach_id])
    client = relationship("User", foreign_keys=[client_id])

    __table_args__ = (
        Index("ix_calendar_events_coach_date", "coach_id", "date"),
    )
