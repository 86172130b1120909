"""
ユーザーモデルの定義
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from datetime import datetime
from coachapp.database import Base

class User(Base):
    """ユーザーテーブルの定義"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    # プロフィール
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String)
    phone = Column(String)
    avatar_url = Column(String)

    role = Column(String, default="client", nullable=False, index=True)  # client, coach, admin

    # 担当者（食事指導のコーチとチャット担当ドクターは別人の場合がある）
    assigned_coach_id = Column(Integer, ForeignKey("users.id"), index=True)
    assigned_chat_doctor_id = Column(Integer, ForeignKey("users.id"), index=True)

    subscription_status = Column(String, default="trial", nullable=False)  # active, trial, paused, cancelled
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def display_name(self) -> str:
        """表示名（姓がない場合は名のみ）"""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
