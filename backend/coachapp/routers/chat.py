"""
チャット関連のルーター
"""
from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session
from typing import List, Literal, Optional, Union

from coachapp.database import get_db
from coachapp.crud import chat as crud_chat
from coachapp.routers.auth import get_current_user
from coachapp.schemas import CamelModel, SuccessResponse, UTCDateTime

router = APIRouter(
    prefix="/chat",
    tags=["チャット"]
)

# リクエスト/レスポンスモデル
class MessageCreate(CamelModel):
    """メッセージ送信用モデル"""
    content: str
    message_type: Optional[Literal["text", "image", "voice"]] = "text"
    media_url: Optional[str] = None
    media_duration: Optional[int] = Field(default=None, ge=0)

class MessageEdit(CamelModel):
    """メッセージ編集用モデル"""
    new_content: str = Field(min_length=1)

class MessageCreated(CamelModel):
    message_id: int

class DeleteResponse(SuccessResponse):
    already_deleted: bool = False

class ConversationResponse(CamelModel):
    """会話レスポンスモデル"""
    id: int
    client_id: int
    coach_id: int
    status: str
    last_message_at: Optional[UTCDateTime]
    last_message_preview: Optional[str]
    unread_by_client: int
    unread_by_coach: int
    is_pinned: bool
    priority: str
    created_at: UTCDateTime

class MessageResponse(CamelModel):
    """メッセージレスポンスモデル"""
    id: int
    conversation_id: int
    sender_id: int
    sender_role: str
    content: str
    message_type: str
    media_url: Optional[str]
    media_duration: Optional[int]
    is_read_by_client: bool
    is_read_by_coach: bool
    read_at: Optional[UTCDateTime]
    is_edited: bool
    edited_at: Optional[UTCDateTime]
    is_deleted: bool
    deleted_at: Optional[UTCDateTime]
    created_at: UTCDateTime

@router.post("/conversations", response_model=Optional[ConversationResponse])
async def get_or_create_conversation(
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """担当ドクターとの会話を取得、なければ作成（担当がいない場合はnull）"""
    return crud_chat.get_or_create_conversation(db, current_user)

@router.get(
    "/conversations",
    response_model=Union[List[ConversationResponse], ConversationResponse, None]
)
async def get_my_conversations(
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """自分の会話（クライアントは1件、コーチ・管理者は一覧）"""
    return crud_chat.get_my_conversations(db, current_user)

@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageResponse])
async def get_messages(
    conversation_id: int,
    limit: Optional[int] = Query(None, ge=1),
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """会話のメッセージ一覧（古い順）"""
    return crud_chat.get_messages(db, current_user, conversation_id, limit)

@router.post("/conversations/{conversation_id}/messages", response_model=MessageCreated)
async def send_message(
    conversation_id: int,
    message_data: MessageCreate,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """メッセージを送信"""
    message = crud_chat.send_message(
        db=db,
        user=current_user,
        conversation_id=conversation_id,
        content=message_data.content,
        message_type=message_data.message_type,
        media_url=message_data.media_url,
        media_duration=message_data.media_duration
    )
    return MessageCreated(message_id=message.id)

@router.post("/conversations/{conversation_id}/read", response_model=SuccessResponse)
async def mark_as_read(
    conversation_id: int,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """会話を既読にする"""
    crud_chat.mark_as_read(db, current_user, conversation_id)
    return {"success": True}

@router.patch("/messages/{message_id}", response_model=SuccessResponse)
async def edit_message(
    message_id: int,
    edit: MessageEdit,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """自分のメッセージを編集"""
    crud_chat.edit_message(db, current_user, message_id, edit.new_content)
    return {"success": True}

@router.delete("/messages/{message_id}", response_model=DeleteResponse)
async def delete_message(
    message_id: int,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """自分のメッセージを削除（二回目以降はalreadyDeleted）"""
    return crud_chat.delete_message(db, current_user, message_id)
