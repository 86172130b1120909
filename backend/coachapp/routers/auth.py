"""
認証関連のルーター
"""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session
from typing import Optional

from coachapp.access import require_auth
from coachapp.database import get_db
from coachapp.crud import user as crud_user
from coachapp.exceptions import Unauthorized
from coachapp.schemas import CamelModel, UserSummary
from coachapp.security import create_access_token, get_token_subject

router = APIRouter(
    prefix="/auth",
    tags=["認証"]
)

# OAuth2設定
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

# リクエスト/レスポンスモデル
class UserRegister(CamelModel):
    """ユーザー登録用モデル"""
    email: EmailStr
    password: str
    first_name: str
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None

class Token(BaseModel):
    """トークンレスポンスモデル"""
    access_token: str
    token_type: str = "bearer"

# 現在のユーザーを取得する依存関数
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
):
    """トークンから現在のユーザーを取得"""
    if not token:
        raise Unauthorized("認証情報がありません")

    email = get_token_subject(token)
    if email is None:
        raise Unauthorized("認証情報が無効です")

    return require_auth(db, email)

@router.post("/register", response_model=UserSummary)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db)
):
    """新規ユーザー登録（クライアント・トライアルとして作成）"""
    # メールアドレスの重複チェック
    db_user = crud_user.get_user_by_email(db, email=user_data.email)
    if db_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="このメールアドレスは既に登録されています"
        )

    user = crud_user.create_user(
        db=db,
        email=user_data.email,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone=user_data.phone,
        avatar_url=user_data.avatar_url
    )

    return user

@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """ユーザーログイン"""
    user = crud_user.authenticate_user(
        db=db,
        email=form_data.username,  # OAuth2ではusernameフィールドを使用
        password=form_data.password
    )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="メールアドレスまたはパスワードが正しくありません",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(user.email)

    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/me", response_model=UserSummary)
async def read_users_me(current_user = Depends(get_current_user)):
    """現在のユーザー情報を取得"""
    return current_user
