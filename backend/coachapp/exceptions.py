"""
ドメインエラーの定義

ハンドラから送出され、main.py の例外ハンドラでHTTPレスポンスに変換される。
"""


class CoachAppError(Exception):
    """アプリケーションエラーの基底クラス"""
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__

    @property
    def name(self) -> str:
        return self.__class__.__name__


class Unauthorized(CoachAppError):
    """認証されていません"""
    status_code = 401


class AccessDenied(CoachAppError):
    """アクセス権限がありません"""
    status_code = 403


class NotFound(CoachAppError):
    """対象が見つかりません"""
    status_code = 404


class InvalidRange(CoachAppError):
    """終了時刻は開始時刻より後である必要があります"""
    status_code = 400


class OverlapConflict(CoachAppError):
    """この時間帯は既存の予約と重なっています"""
    status_code = 409


class SubscriptionInactive(CoachAppError):
    """サブスクリプションが有効ではありません"""
    status_code = 402


class InvalidState(CoachAppError):
    """現在の状態ではこの操作を実行できません"""
    status_code = 409
