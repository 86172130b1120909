"""
アプリケーション設定
"""
import os
from dotenv import load_dotenv

load_dotenv()

# データベース設定（開発環境ではSQLiteを使用）
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./coaching.db")

# JWT設定
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-here-change-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# カレンダー設定
# 予約の日付・時刻はこのタイムゾーンのローカル時刻として解釈する
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")
STARTING_SOON_MINUTES = int(os.getenv("STARTING_SOON_MINUTES", "15"))
DEFAULT_APPOINTMENT_LIMIT = int(os.getenv("DEFAULT_APPOINTMENT_LIMIT", "10"))

# チャット設定
DEFAULT_MESSAGE_LIMIT = int(os.getenv("DEFAULT_MESSAGE_LIMIT", "100"))
MESSAGE_PREVIEW_LENGTH = int(os.getenv("MESSAGE_PREVIEW_LENGTH", "50"))
DELETED_MESSAGE_PLACEHOLDER = os.getenv(
    "DELETED_MESSAGE_PLACEHOLDER", "This message was deleted"
)

# 送信可能なサブスクリプション状態
MESSAGING_SUBSCRIPTION_STATUSES = ("active", "trial")

# ログ設定
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS設定（カンマ区切り）
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# サーバー設定（python -m coachapp.main で起動する場合）
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
