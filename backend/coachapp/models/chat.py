"""
チャット（会話・メッセージ）モデルの定義
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
from coachapp.database import Base

class Conversation(Base):
    """会話テーブル（クライアント1人とドクター1人）"""
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coach_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String, default="active", nullable=False)  # active, archived

    last_message_at = Column(DateTime, default=datetime.utcnow)
    last_message_preview = Column(String)

    # 未読数（それぞれの側）
    unread_by_client = Column(Integer, default=0, nullable=False)
    unread_by_coach = Column(Integer, default=0, nullable=False)

    # コーチ用の優先度フラグ
    is_pinned = Column(Boolean, default=False, nullable=False)
    priority = Column(String, default="normal", nullable=False)  # normal, high, urgent

    created_at = Column(DateTime, default=datetime.utcnow)

    # リレーション
    client = relationship("User", foreign_keys=[client_id])
    coach = relationship("User", foreign_keys=[coach_id])
    messages = relationship("Message", back_populates="conversation")

    # クライアントとドクターの組み合わせごとに有効な会話は1件まで
    __table_args__ = (
        Index(
            "uq_conversations_active_pair",
            "client_id",
            "coach_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

class Message(Base):
    """メッセージテーブル"""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    sender_role = Column(String, nullable=False)

    content = Column(Text, nullable=False)
    message_type = Column(String, default="text", nullable=False)  # text, image, voice
    media_url = Column(String)
    media_duration = Column(Integer)  # 音声メッセージの秒数

    # 既読
    is_read_by_client = Column(Boolean, default=False, nullable=False)
    is_read_by_coach = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime)

    # 編集・削除
    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)

    # リレーション
    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index("ix_messages_conversation_time", "conversation_id", "created_at"),
    )
