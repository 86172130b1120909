"""
コーチングアプリ - メインアプリケーション
"""
import logging
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coachapp.config import CORS_ORIGINS, HOST, LOG_LEVEL, PORT
from coachapp.exceptions import CoachAppError
from coachapp.routers import auth, calendar, chat, users

# ログ設定
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# FastAPIアプリケーションの初期化
app = FastAPI(
    title="Coaching API",
    description="食事指導・チャット相談・電話予約のためのコーチングAPI",
    version="1.0.0"
)

# CORS設定（フロントエンドからのアクセスを許可）
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ドメインエラーをHTTPレスポンスに変換
@app.exception_handler(CoachAppError)
async def coach_app_error_handler(request: Request, exc: CoachAppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.name} on {request.url.path}: {exc.message}", exc_info=exc)
    else:
        logger.info(f"{exc.name} on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.name},
        headers=headers,
    )

# ルートエンドポイント
@app.get("/")
async def root():
    """APIの稼働確認用エンドポイント"""
    return {
        "message": "Coaching APIへようこそ",
        "status": "稼働中",
        "version": "1.0.0"
    }

# ヘルスチェックエンドポイント
@app.get("/health")
async def health_check():
    """システムの健全性確認用エンドポイント"""
    return {
        "status": "healthy",
        "service": "Coaching API",
        "timestamp": datetime.utcnow().isoformat()
    }

# ルーターの登録
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(calendar.router)
app.include_router(chat.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("coachapp.main:app", host=HOST, port=PORT, reload=True)
