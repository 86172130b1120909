"""
管理者アカウントの初期作成スクリプト

使い方: python create_admin.py admin@example.com パスワード [名前]
既存ユーザーの場合はロールを管理者に変更する。
"""
import sys

from coachapp.database import SessionLocal, init_models
from coachapp.crud import user as crud_user

def create_admin(email: str, password: str, first_name: str = "Admin"):
    """管理者ユーザーを作成"""
    init_models()
    db = SessionLocal()

    try:
        existing = crud_user.get_user_by_email(db, email)

        if existing:
            if existing.role != "admin":
                crud_user.update_user_fields(db, existing, role="admin")
                print(f"更新: {email} を管理者に変更しました")
            else:
                print(f"既存: {email} は既に管理者です")
        else:
            crud_user.create_user(
                db,
                email=email,
                password=password,
                first_name=first_name,
                role="admin",
                subscription_status="active"
            )
            print(f"追加: 管理者 {email}")

        print("\n管理者の初期化が完了しました！")

    except Exception as e:
        print(f"エラー: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("使い方: python create_admin.py <email> <password> [first_name]")
        sys.exit(1)
    create_admin(*sys.argv[1:4])
