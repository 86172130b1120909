"""
テスト共通のフィクスチャ
"""
import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from coachapp.database import Base, get_db, init_models
from coachapp.main import app
from coachapp.models import User
from coachapp.security import create_access_token


@pytest.fixture
def db():
    """テストごとにインメモリSQLiteを用意"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_models(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """パスワードハッシュを省略してユーザーを作成"""
    counter = itertools.count(1)

    def _make(role="client", **fields):
        n = next(counter)
        fields.setdefault("email", f"{role}{n}@example.com")
        fields.setdefault("first_name", f"{role.title()}{n}")
        user = User(hashed_password="not-a-real-hash", role=role, **fields)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def headers_for():
    def _headers(user):
        token = create_access_token(user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def coach(make_user):
    return make_user("coach", first_name="Gehad")


@pytest.fixture
def other_coach(make_user):
    return make_user("coach", first_name="Mostafa")


@pytest.fixture
def admin(make_user):
    return make_user("admin", first_name="Root", subscription_status="active")


@pytest.fixture
def patient(make_user, coach):
    """コーチとチャット担当が同じクライアント"""
    return make_user(
        "client",
        first_name="Sara",
        last_name="Ali",
        phone="+201000000000",
        avatar_url="https://cdn.example.com/sara.png",
        assigned_coach_id=coach.id,
        assigned_chat_doctor_id=coach.id,
    )
