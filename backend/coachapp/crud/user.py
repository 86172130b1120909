"""
ユーザー関連のCRUD操作
"""
from sqlalchemy.orm import Session
from coachapp.models.user import User
from coachapp.security import get_password_hash, verify_password
from typing import List, Optional
from datetime import datetime

def get_user(db: Session, user_id: int) -> Optional[User]:
    """IDでユーザーを取得"""
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """メールアドレスでユーザーを取得"""
    return db.query(User).filter(User.email == email).first()

def get_user_for_update(db: Session, user_id: int) -> Optional[User]:
    """行ロックを取得してユーザーを取得（SQLiteではロックなし）"""
    return db.query(User).filter(User.id == user_id).with_for_update().first()

def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: str = "",
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
    avatar_url: Optional[str] = None,
    role: str = "client",
    subscription_status: str = "trial",
    assigned_coach_id: Optional[int] = None,
    assigned_chat_doctor_id: Optional[int] = None,
) -> User:
    """新規ユーザーの作成"""
    # パスワードをハッシュ化
    hashed_password = get_password_hash(password)

    db_user = User(
        email=email,
        hashed_password=hashed_password,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        avatar_url=avatar_url,
        role=role,
        subscription_status=subscription_status,
        assigned_coach_id=assigned_coach_id,
        assigned_chat_doctor_id=assigned_chat_doctor_id,
    )

    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    return db_user

def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """ユーザーの認証"""
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user

def get_users_by_role(db: Session, role: str) -> List[User]:
    """ロールでユーザー一覧を取得"""
    return db.query(User).filter(User.role == role).order_by(User.id).all()

def get_clients_of_coach(db: Session, coach_id: int) -> List[User]:
    """コーチに割り当てられたクライアント一覧"""
    return db.query(User).filter(
        User.assigned_coach_id == coach_id,
        User.role == "client"
    ).order_by(User.id).all()

def update_user_fields(db: Session, user: User, **fields) -> User:
    """ユーザーの項目を更新"""
    for key, value in fields.items():
        setattr(user, key, value)
    user.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(user)
    return user
