"""カスタム例外クラスおよびFastAPI例外ハンドラ登録。

アプリケーション全体で使用するドメイン固有の例外階層と、
FastAPIアプリケーションへのハンドラ登録関数を提供する。
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# 基底例外
# ---------------------------------------------------------------------------

class AppException(Exception):
    """アプリケーション基底例外。

    Attributes:
        status_code: HTTPステータスコード。
        detail: エラー詳細メッセージ。
    """

    def __init__(
        self,
        status_code: int = 500,
        detail: str = "Internal server error",
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


# ---------------------------------------------------------------------------
# リソース
# ---------------------------------------------------------------------------

class NotFoundError(AppException):
    """リソース未検出エラー (404 Not Found)。"""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=404, detail=detail)


class InvalidRepositoryError(AppException):
    """Gitリポジトリではないパスが指定された (400 Bad Request)。"""

    def __init__(self, detail: str = "Path is not a git repository") -> None:
        super().__init__(status_code=400, detail=detail)


# ---------------------------------------------------------------------------
# リポジトリ検出
# ---------------------------------------------------------------------------

class RepositoryScanError(AppException):
    """スキャン対象ディレクトリが存在しない、または読み取れない。

    検出処理は best-effort のため、呼び出し側で空の結果に変換される。
    """

    def __init__(self, detail: str = "Cannot read directory") -> None:
        super().__init__(status_code=400, detail=detail)


# ---------------------------------------------------------------------------
# Gitコマンド
# ---------------------------------------------------------------------------

class GitError(AppException):
    """Gitコマンド関連エラーの基底クラス (502 Bad Gateway)。"""

    def __init__(self, detail: str = "Git command failed", status_code: int = 502) -> None:
        super().__init__(status_code=status_code, detail=detail)


class GitCommandTimeoutError(GitError):
    """Gitコマンドが制限時間内に終了しなかった。"""

    def __init__(self, detail: str = "Git command timed out") -> None:
        super().__init__(detail=detail, status_code=504)


class GitCommandFailedError(GitError):
    """Gitコマンドが0以外の終了コードで終了した。

    Attributes:
        returncode: プロセスの終了コード。
        stderr: 標準エラー出力。
    """

    def __init__(
        self,
        detail: str = "Git command failed",
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(detail=detail)


class RemoteResolutionError(GitError):
    """リモートURL (origin) を取得できなかった。"""

    def __init__(self, detail: str = "Failed to resolve remote URL") -> None:
        super().__init__(detail=detail)


# ---------------------------------------------------------------------------
# ログ解析・永続化
# ---------------------------------------------------------------------------

class LogParseError(AppException):
    """git log 出力の1ブロック（または1行）を解釈できなかった。

    パーサ内部で捕捉され、該当ブロックのみが読み飛ばされる。
    """

    def __init__(self, detail: str = "Malformed git log block") -> None:
        super().__init__(status_code=422, detail=detail)


class StoreWriteError(AppException):
    """コミットの永続化に失敗した。"""

    def __init__(self, detail: str = "Failed to write commits") -> None:
        super().__init__(status_code=500, detail=detail)


# ---------------------------------------------------------------------------
# FastAPI例外ハンドラ登録
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """FastAPIアプリケーションにカスタム例外ハンドラを登録する。

    Args:
        app: FastAPIアプリケーションインスタンス。
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request,
        exc: AppException,
    ) -> JSONResponse:
        """AppException系例外をJSON形式でレスポンスする。"""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """未処理例外をキャッチし500レスポンスを返す。"""
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
