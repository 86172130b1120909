"""
データベース初期化スクリプト
"""
from coachapp.database import SQLALCHEMY_DATABASE_URL, init_models

def init_database():
    """データベースのテーブルを作成"""
    print(f"データベースを初期化しています... ({SQLALCHEMY_DATABASE_URL.split('://')[0]})")

    init_models()

    print("データベースの初期化が完了しました！")
    print("作成されたテーブル:")
    print("- users (ユーザー)")
    print("- calendar_events (電話相談の予約)")
    print("- conversations (会話・有効な会話はペアごとに1件)")
    print("- messages (メッセージ)")

if __name__ == "__main__":
    init_database()
