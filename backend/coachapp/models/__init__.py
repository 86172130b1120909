"""
モデルのインポート
"""
# Baseを最初にインポート
from coachapp.database import Base

# その後でモデルをインポート
from coachapp.models.user import User
from coachapp.models.calendar import CalendarEvent
from coachapp.models.chat import Conversation, Message

__all__ = ["Base", "User", "CalendarEvent", "Conversation", "Message"]
