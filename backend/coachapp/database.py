"""
データベース接続設定
"""
from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from coachapp.config import DATABASE_URL


def normalize_database_url(url: str) -> str:
    """PostgreSQLのURLをpsycopg2ドライバ指定に揃える"""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg2://" + url[len("postgresql://"):]
    return url


def engine_options(url: str) -> dict:
    # SQLiteはリクエストごとのスレッドから同じ接続を使う
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    # 予約の行ロックを取るので、切れた接続は使う前に捨てる
    return {"pool_pre_ping": True}


SQLALCHEMY_DATABASE_URL = normalize_database_url(DATABASE_URL)

engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_options(SQLALCHEMY_DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_models(bind=None):
    """全モデルのテーブルを作成"""
    # モデルをインポートしてBaseに登録する
    import coachapp.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# 依存性注入用の関数
def get_db():
    """リクエストごとのデータベースセッション"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
