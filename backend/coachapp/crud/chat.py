"""
チャット関連のCRUD操作
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from coachapp.access import (
    ROLE_ADMIN,
    ROLE_CLIENT,
    ROLE_COACH,
    require_admin,
    require_conversation_access,
)
from coachapp.config import (
    DEFAULT_MESSAGE_LIMIT,
    DELETED_MESSAGE_PLACEHOLDER,
    MESSAGE_PREVIEW_LENGTH,
    MESSAGING_SUBSCRIPTION_STATUSES,
)
from coachapp.crud import user as crud_user
from coachapp.exceptions import AccessDenied, InvalidState, NotFound, SubscriptionInactive
from coachapp.models.chat import Conversation, Message
from coachapp.models.user import User

logger = logging.getLogger(__name__)


def get_conversation(db: Session, conversation_id: int) -> Optional[Conversation]:
    """IDで会話を取得"""
    return db.query(Conversation).filter(Conversation.id == conversation_id).first()


def get_active_conversation(db: Session, client_id: int, coach_id: int) -> Optional[Conversation]:
    """クライアントとドクターの組み合わせで有効な会話を取得"""
    return db.query(Conversation).filter(
        Conversation.client_id == client_id,
        Conversation.coach_id == coach_id,
        Conversation.status == "active"
    ).first()


def create_conversation(db: Session, client_id: int, coach_id: int) -> Conversation:
    """
    新規会話の作成

    同時に作成された場合は一意インデックスで弾かれるので、先に作成された会話を返す。
    """
    now = datetime.utcnow()
    db_conversation = Conversation(
        client_id=client_id,
        coach_id=coach_id,
        status="active",
        last_message_at=now,
        unread_by_client=0,
        unread_by_coach=0,
        is_pinned=False,
        priority="normal",
        created_at=now
    )
    db.add(db_conversation)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_active_conversation(db, client_id, coach_id)
        if existing is None:
            raise
        logger.info(f"Conversation for client {client_id} and doctor {coach_id} already created, reusing {existing.id}")
        return existing

    db.refresh(db_conversation)

    logger.info(f"Conversation {db_conversation.id} created for client {client_id} and doctor {coach_id}")
    return db_conversation


def get_or_create_conversation(db: Session, user: User) -> Optional[Conversation]:
    """クライアントの現在の担当ドクターとの会話を取得、なければ作成"""
    if user.role != ROLE_CLIENT or not user.assigned_chat_doctor_id:
        return None

    existing = get_active_conversation(db, user.id, user.assigned_chat_doctor_id)
    if existing:
        return existing

    return create_conversation(db, user.id, user.assigned_chat_doctor_id)


def get_my_conversations(db: Session, user: User) -> Union[Conversation, List[Conversation], None]:
    """
    現在のユーザーの会話

    クライアントは担当ドクターとの有効な会話（なければNone）、コーチは自分の有効な会話の一覧
    （ピン留め優先、新しい順）、管理者はすべての有効な会話の一覧。
    """
    if user.role == ROLE_CLIENT:
        if not user.assigned_chat_doctor_id:
            return None
        return get_active_conversation(db, user.id, user.assigned_chat_doctor_id)

    query = db.query(Conversation).filter(Conversation.status == "active")
    if user.role == ROLE_COACH:
        query = query.filter(Conversation.coach_id == user.id)

    return query.order_by(
        Conversation.is_pinned.desc(),
        Conversation.last_message_at.desc()
    ).all()


def get_messages(
    db: Session,
    user: User,
    conversation_id: int,
    limit: Optional[int] = None
) -> List[Message]:
    """会話のメッセージを古い順に取得"""
    require_conversation_access(db, user, conversation_id)

    return db.query(Message).filter(
        Message.conversation_id == conversation_id
    ).order_by(Message.created_at, Message.id).limit(limit or DEFAULT_MESSAGE_LIMIT).all()


def _check_send_permission(db: Session, user: User, conversation: Conversation) -> None:
    """
    メッセージ送信の権限チェック

    - 管理者は閲覧のみ
    - クライアントは現在の担当ドクターとの有効な会話のみ、かつサブスクリプションが有効な場合のみ
    - コーチは自分の有効な会話で、クライアントの担当ドクターが今も自分である場合のみ
    """
    if user.role == ROLE_ADMIN:
        raise AccessDenied("管理者はメッセージを送信できません")

    if user.role == ROLE_CLIENT:
        if (
            conversation.client_id != user.id
            or conversation.status != "active"
            or conversation.coach_id != user.assigned_chat_doctor_id
        ):
            raise AccessDenied("この会話へのアクセス権限がありません")
        if user.subscription_status not in MESSAGING_SUBSCRIPTION_STATUSES:
            logger.warning(f"Client {user.id} blocked from messaging: subscription '{user.subscription_status}'")
            raise SubscriptionInactive("サブスクリプションが有効ではないため、メッセージを送信できません")
        return

    if conversation.coach_id != user.id or conversation.status != "active":
        raise AccessDenied("この会話へのアクセス権限がありません")

    # 担当変更後の古い会話からは送信させない
    client = crud_user.get_user(db, conversation.client_id)
    if not client or client.assigned_chat_doctor_id != user.id:
        logger.warning(f"Coach {user.id} is no longer the chat doctor of client {conversation.client_id}")
        raise AccessDenied("このクライアントの担当ではありません")


def send_message(
    db: Session,
    user: User,
    conversation_id: int,
    content: str,
    message_type: str = "text",
    media_url: Optional[str] = None,
    media_duration: Optional[int] = None
) -> Message:
    """メッセージを送信し、相手側の未読数を増やす"""
    conversation = get_conversation(db, conversation_id)
    if not conversation:
        raise NotFound("会話が見つかりません")

    _check_send_permission(db, user, conversation)

    now = datetime.utcnow()
    is_client = user.id == conversation.client_id

    db_message = Message(
        conversation_id=conversation.id,
        sender_id=user.id,
        sender_role=user.role,
        content=content,
        message_type=message_type or "text",
        media_url=media_url,
        media_duration=media_duration,
        is_read_by_client=is_client,
        is_read_by_coach=not is_client,
        is_edited=False,
        is_deleted=False,
        created_at=now
    )
    db.add(db_message)

    conversation.last_message_at = now
    conversation.last_message_preview = content[:MESSAGE_PREVIEW_LENGTH]
    if is_client:
        conversation.unread_by_coach = (conversation.unread_by_coach or 0) + 1
    else:
        conversation.unread_by_client = (conversation.unread_by_client or 0) + 1

    db.commit()
    db.refresh(db_message)

    return db_message


def mark_as_read(db: Session, user: User, conversation_id: int) -> None:
    """自分側の未読数をリセットし、メッセージを既読にする"""
    conversation = require_conversation_access(db, user, conversation_id)

    if user.role == ROLE_ADMIN:
        return

    is_client = user.id == conversation.client_id
    now = datetime.utcnow()

    if is_client:
        conversation.unread_by_client = 0
    else:
        conversation.unread_by_coach = 0

    unread_flag = Message.is_read_by_client if is_client else Message.is_read_by_coach
    messages = db.query(Message).filter(
        Message.conversation_id == conversation_id,
        unread_flag.is_(False)
    ).all()

    for message in messages:
        if is_client:
            message.is_read_by_client = True
        else:
            message.is_read_by_coach = True
        message.read_at = now

    db.commit()


def _get_own_message(db: Session, user: User, message_id: int) -> Message:
    message = db.query(Message).filter(Message.id == message_id).first()
    if not message:
        raise NotFound("メッセージが見つかりません")
    if message.sender_id != user.id:
        raise AccessDenied("自分のメッセージのみ操作できます")
    return message


def edit_message(db: Session, user: User, message_id: int, new_content: str) -> Message:
    """自分のメッセージを編集"""
    message = _get_own_message(db, user, message_id)

    if message.is_deleted:
        raise InvalidState("削除されたメッセージは編集できません")

    message.content = new_content
    message.is_edited = True
    message.edited_at = datetime.utcnow()

    db.commit()
    db.refresh(message)

    return message


def delete_message(db: Session, user: User, message_id: int) -> Dict[str, bool]:
    """
    自分のメッセージを論理削除

    本文はプレースホルダーに置き換える。削除済みの場合は何もしない。
    """
    message = _get_own_message(db, user, message_id)

    if message.is_deleted:
        return {"success": True, "already_deleted": True}

    message.is_deleted = True
    message.deleted_at = datetime.utcnow()
    message.content = DELETED_MESSAGE_PLACEHOLDER

    db.commit()

    return {"success": True, "already_deleted": False}


def assign_chat_doctor(db: Session, user: User, client_id: int, doctor_id: int) -> Dict:
    """
    クライアントのチャット担当ドクターを変更

    古い会話はアーカイブし、新しいドクターとの会話は過去のものがあれば再開、
    なければ作成する。同じドクターへの再割り当ては何もしない。
    """
    require_admin(user)

    client = crud_user.get_user(db, client_id)
    if not client or client.role != ROLE_CLIENT:
        raise NotFound("クライアントが見つかりません")

    doctor = crud_user.get_user(db, doctor_id)
    if not doctor or doctor.role != ROLE_COACH:
        raise NotFound("ドクターが見つかりません")

    if client.assigned_chat_doctor_id == doctor_id:
        existing = get_active_conversation(db, client_id, doctor_id)
        return {
            "success": True,
            "changed": False,
            "conversation_id": existing.id if existing else None,
        }

    previous_doctor_id = client.assigned_chat_doctor_id

    try:
        active = db.query(Conversation).filter(
            Conversation.client_id == client_id,
            Conversation.status == "active"
        ).all()
        for conversation in active:
            conversation.status = "archived"

        client.assigned_chat_doctor_id = doctor_id
        client.updated_at = datetime.utcnow()
        db.flush()

        conversation = db.query(Conversation).filter(
            Conversation.client_id == client_id,
            Conversation.coach_id == doctor_id,
            Conversation.status == "archived"
        ).order_by(Conversation.created_at.desc(), Conversation.id.desc()).first()

        if conversation:
            conversation.status = "active"
            action = "reactivated"
        else:
            conversation = Conversation(
                client_id=client_id,
                coach_id=doctor_id,
                status="active",
                last_message_at=datetime.utcnow(),
                unread_by_client=0,
                unread_by_coach=0,
                is_pinned=False,
                priority="normal"
            )
            db.add(conversation)
            action = "created"

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(conversation)
    logger.info(
        f"Client {client_id} chat doctor changed {previous_doctor_id} -> {doctor_id}; "
        f"archived {len(active)} conversation(s), {action} conversation {conversation.id}"
    )

    return {"success": True, "changed": True, "conversation_id": conversation.id}
