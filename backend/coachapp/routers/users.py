"""
ユーザー・担当割り当て関連のルーター（管理者向け）
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Literal, Optional

from coachapp.access import ROLE_CLIENT, ROLE_COACH, require_admin, require_client_access
from coachapp.database import get_db
from coachapp.crud import chat as crud_chat
from coachapp.crud import user as crud_user
from coachapp.exceptions import NotFound
from coachapp.routers.auth import get_current_user
from coachapp.schemas import CamelModel, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["ユーザー"]
)

# リクエスト/レスポンスモデル
class RoleUpdate(CamelModel):
    role: Literal["client", "coach", "admin"]

class SubscriptionUpdate(CamelModel):
    subscription_status: Literal["active", "trial", "paused", "cancelled"]

class CoachAssignment(CamelModel):
    coach_id: int

class ChatDoctorAssignment(CamelModel):
    doctor_id: int

class ChatDoctorAssignmentResponse(CamelModel):
    success: bool
    changed: bool
    conversation_id: Optional[int]

def _get_user_or_404(db: Session, user_id: int):
    user = crud_user.get_user(db, user_id)
    if not user:
        raise NotFound("ユーザーが見つかりません")
    return user

@router.get("/{user_id}", response_model=UserSummary)
async def get_user_by_id(
    user_id: int,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """ユーザー情報を取得（コーチは担当クライアントのみ、クライアントは自分のみ）"""
    require_client_access(db, current_user, user_id)
    return _get_user_or_404(db, user_id)

@router.put("/{user_id}/role", response_model=UserSummary)
async def set_user_role(
    user_id: int,
    update: RoleUpdate,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """ユーザーのロールを変更"""
    require_admin(current_user)
    user = _get_user_or_404(db, user_id)

    previous_role = user.role
    user = crud_user.update_user_fields(db, user, role=update.role)
    logger.info(f"User {user_id} role changed {previous_role} -> {update.role} by admin {current_user.id}")

    return user

@router.put("/{user_id}/subscription", response_model=UserSummary)
async def set_subscription_status(
    user_id: int,
    update: SubscriptionUpdate,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """サブスクリプション状態を変更"""
    require_admin(current_user)
    user = _get_user_or_404(db, user_id)

    user = crud_user.update_user_fields(db, user, subscription_status=update.subscription_status)
    logger.info(f"User {user_id} subscription set to {update.subscription_status}")

    return user

@router.put("/{client_id}/coach", response_model=UserSummary)
async def assign_coach(
    client_id: int,
    assignment: CoachAssignment,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """クライアントに食事指導のコーチを割り当て"""
    require_admin(current_user)

    client = crud_user.get_user(db, client_id)
    if not client or client.role != ROLE_CLIENT:
        raise NotFound("クライアントが見つかりません")

    coach = crud_user.get_user(db, assignment.coach_id)
    if not coach or coach.role != ROLE_COACH:
        raise NotFound("コーチが見つかりません")

    client = crud_user.update_user_fields(db, client, assigned_coach_id=coach.id)
    logger.info(f"Client {client_id} assigned to coach {coach.id}")

    return client

@router.put("/{client_id}/chat-doctor", response_model=ChatDoctorAssignmentResponse)
async def assign_chat_doctor(
    client_id: int,
    assignment: ChatDoctorAssignment,
    current_user = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """クライアントのチャット担当ドクターを変更"""
    return crud_chat.assign_chat_doctor(db, current_user, client_id, assignment.doctor_id)
