"""
アクセス制御

呼び出し元のユーザーとロールを解決し、エンティティごとの閲覧・変更権限を検証する。
すべて状態を持たない関数で、ユーザーを明示的に受け取る。
"""
import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from coachapp.crud import user as crud_user
from coachapp.exceptions import AccessDenied, NotFound, Unauthorized
from coachapp.models.chat import Conversation
from coachapp.models.user import User

logger = logging.getLogger(__name__)

ROLE_CLIENT = "client"
ROLE_COACH = "coach"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CLIENT, ROLE_COACH, ROLE_ADMIN)


def require_auth(db: Session, email: Optional[str]) -> User:
    """認証済みユーザーを取得（解決できない場合はUnauthorized）"""
    if not email:
        raise Unauthorized("認証情報が無効です")
    user = crud_user.get_user_by_email(db, email=email)
    if user is None or not user.is_active:
        raise Unauthorized("認証情報が無効です")
    return user


def require_role(user: User, allowed: Iterable[str]) -> User:
    """ユーザーのロールが許可されたロールに含まれるか検証"""
    allowed = tuple(allowed)
    if user.role not in allowed:
        logger.warning(f"User {user.id} with role '{user.role}' denied, required: {allowed}")
        raise AccessDenied(f"アクセス権限がありません。必要なロール: {', '.join(allowed)}")
    return user


def require_coach_or_admin(user: User) -> User:
    return require_role(user, (ROLE_COACH, ROLE_ADMIN))


def require_admin(user: User) -> User:
    return require_role(user, (ROLE_ADMIN,))


def is_staff(user: User) -> bool:
    return user.role in (ROLE_COACH, ROLE_ADMIN)


def require_client_access(db: Session, user: User, client_id: int) -> User:
    """
    クライアントへのアクセス権を検証

    - 管理者: すべてのクライアントにアクセス可能
    - コーチ: 担当クライアントのみ
    - クライアント: 自分自身のみ
    """
    if user.role == ROLE_ADMIN:
        return user

    if user.role == ROLE_COACH:
        client = crud_user.get_user(db, client_id)
        if not client or client.assigned_coach_id != user.id:
            raise AccessDenied("このクライアントへのアクセス権限がありません")
        return user

    if user.id != client_id:
        raise AccessDenied("アクセス権限がありません")

    return user


def require_conversation_access(db: Session, user: User, conversation_id: int) -> Conversation:
    """会話へのアクセス権を検証し、会話を返す"""
    conversation = db.query(Conversation).filter(
        Conversation.id == conversation_id
    ).first()

    if not conversation:
        raise NotFound("会話が見つかりません")

    if user.role == ROLE_ADMIN:
        return conversation

    if user.id not in (conversation.client_id, conversation.coach_id):
        raise AccessDenied("この会話へのアクセス権限がありません")

    return conversation
