"""ローカルGitコマンドの非同期クライアント。

``asyncio.create_subprocess_exec`` でgitを起動し、制限時間付きで
完了を待つ。リポジトリ検出、リモートURL取得、コミット履歴取得を提供する。
リポジトリへの書き込みは一切行わない。
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from app.config import settings
from app.core.exceptions import (
    GitCommandFailedError,
    GitCommandTimeoutError,
    RemoteResolutionError,
    RepositoryScanError,
)
from app.external.git_log_parser import PRETTY_FORMAT, parse_git_log
from app.models import Commit

logger = logging.getLogger(__name__)

GIT_METADATA_DIR = ".git"


@dataclass(frozen=True)
class DiscoveredRepository:
    """スキャンで見つかったリポジトリ。"""

    name: str
    path: str
    remote_url: str | None = None


def _ensure_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _format_git_date(moment: datetime) -> str:
    """gitの ``--since`` / ``--until`` に渡すUTCのISO-8601文字列。"""
    return _ensure_aware(moment).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def list_child_directories(base_path: str) -> list[str]:
    """直下のサブディレクトリ名をソートして返す。

    Raises:
        RepositoryScanError: ディレクトリが存在しない、または読み取れない場合。
    """
    if not os.path.isdir(base_path):
        raise RepositoryScanError(f"Path does not exist: {base_path}")
    try:
        entries = os.listdir(base_path)
    except OSError as e:
        raise RepositoryScanError(f"Cannot read directory: {base_path}") from e
    return sorted(
        name for name in entries if os.path.isdir(os.path.join(base_path, name))
    )


def has_git_metadata(path: str) -> bool:
    """直下に ``.git`` があるか（ディレクトリ、またはworktreeのファイル）。"""
    return os.path.exists(os.path.join(path, GIT_METADATA_DIR))


class GitClient:
    """git CLI の非同期ラッパー。

    Attributes:
        executable: gitの実行ファイル名またはパス。
        timeout: 1コマンドあたりの制限時間（秒）。
    """

    def __init__(
        self,
        executable: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """GitClientを初期化する。

        Args:
            executable: gitの実行ファイル。省略時は ``GIT_EXECUTABLE``。
            timeout: 制限時間（秒）。省略時は ``GIT_COMMAND_TIMEOUT_SECONDS``。
        """
        self.executable = executable or settings.GIT_EXECUTABLE
        self.timeout = timeout if timeout is not None else settings.GIT_COMMAND_TIMEOUT_SECONDS

    # ------------------------------------------------------------------
    # プロセス実行
    # ------------------------------------------------------------------

    async def run(self, args: list[str], cwd: str) -> str:
        """gitを実行し、標準出力を返す。

        標準出力と標準エラーは別々に読み取る。制限時間を超えた場合は
        プロセスをkillしてから例外を送出する。

        Args:
            args: git サブコマンドと引数。
            cwd: 作業ディレクトリ（リポジトリのパス）。

        Returns:
            デコード済みの標準出力。

        Raises:
            GitCommandTimeoutError: 制限時間内に終了しなかった場合。
            GitCommandFailedError: 起動できない、または終了コードが0以外の場合。
        """
        cmd = [self.executable, *args]
        logger.debug("Running %s in %s", " ".join(cmd), cwd)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise GitCommandFailedError(
                detail=f"Failed to start git: {e}",
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "git %s timed out after %.1fs in %s, terminating",
                args[0] if args else "",
                self.timeout,
                cwd,
            )
            proc.kill()
            await proc.wait()
            raise GitCommandTimeoutError(
                detail=f"Git command timed out after {self.timeout:g}s",
            )

        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()
            raise GitCommandFailedError(
                detail=f"Git command failed with status {proc.returncode}",
                returncode=proc.returncode,
                stderr=err,
            )

        return stdout.decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # リポジトリ検出
    # ------------------------------------------------------------------

    async def resolve_remote_url(self, repository_path: str) -> str:
        """``origin`` のURLを取得する。

        Raises:
            RemoteResolutionError: remoteが無い、またはgitが失敗した場合。
        """
        try:
            output = await self.run(["remote", "get-url", "origin"], cwd=repository_path)
        except (GitCommandFailedError, GitCommandTimeoutError) as e:
            raise RemoteResolutionError(
                detail=f"No origin remote for {repository_path}: {e.detail}",
            ) from e

        url = output.strip()
        if not url:
            raise RemoteResolutionError(detail=f"Empty origin URL for {repository_path}")
        return url

    async def get_remote_url(self, repository_path: str) -> str | None:
        """``origin`` のURLを返す。取得できない場合は None。"""
        try:
            return await self.resolve_remote_url(repository_path)
        except RemoteResolutionError as e:
            logger.debug("%s", e.detail)
            return None

    async def scan_for_repositories(
        self,
        base_path: str,
        resolve_remote: bool = True,
    ) -> list[DiscoveredRepository]:
        """ベースディレクトリ直下のGitリポジトリを列挙する。

        直下のサブディレクトリのうち、そのトップレベルに ``.git`` を
        持つものだけを対象とする（再帰しない）。ベースパスが存在しない、
        または読み取れない場合は空リストを返す。

        Args:
            base_path: スキャン対象ディレクトリ。
            resolve_remote: Trueの場合、各リポジトリの origin URL を取得する。

        Returns:
            検出されたリポジトリのリスト（名前順）。
        """
        base_path = os.path.abspath(os.path.expanduser(base_path))
        try:
            children = list_child_directories(base_path)
        except RepositoryScanError as e:
            logger.warning("Repository scan skipped: %s", e.detail)
            return []

        found: list[DiscoveredRepository] = []
        for name in children:
            item_path = os.path.join(base_path, name)
            if not has_git_metadata(item_path):
                continue

            remote_url = await self.get_remote_url(item_path) if resolve_remote else None
            found.append(
                DiscoveredRepository(name=name, path=item_path, remote_url=remote_url)
            )
            logger.debug("Found repository %s at %s", name, item_path)

        logger.info("Found %d repositories under %s", len(found), base_path)
        return found

    # ------------------------------------------------------------------
    # コミット履歴
    # ------------------------------------------------------------------

    @staticmethod
    def build_log_args(
        start: datetime,
        end: datetime,
        author: str | None = None,
    ) -> list[str]:
        """``git log`` の引数を組み立てる。"""
        args = [
            "log",
            "--all",
            "--no-color",
            f"--since={_format_git_date(start)}",
            f"--until={_format_git_date(end)}",
        ]
        if author:
            args.append(f"--author={author}")
        args.extend(
            [
                PRETTY_FORMAT,
                "--numstat",
                "--date=iso-strict",
            ]
        )
        return args

    async def get_log_output(
        self,
        repository_path: str,
        start: datetime,
        end: datetime,
        author: str | None = None,
    ) -> str:
        """指定期間のコミット履歴を独自フォーマットの生テキストで取得する。"""
        return await self.run(
            self.build_log_args(start, end, author),
            cwd=repository_path,
        )

    async def get_commits(
        self,
        repo_id: int,
        repository_path: str,
        start: datetime,
        end: datetime,
        author: str | None = None,
    ) -> list[Commit]:
        """指定期間のコミットを取得して Commit のリストに変換する。

        gitの ``--since`` / ``--until`` はコミッター日時で判定するため、
        解析後に著者日時で半開区間 ``[start, end)`` を再適用する。

        Args:
            repo_id: リポジトリID。
            repository_path: リポジトリのパス。
            start: 期間の開始（含む）。
            end: 期間の終了（含まない）。
            author: 著者名フィルタ。None または空文字の場合は全著者。

        Returns:
            git の出力順の Commit のリスト。

        Raises:
            GitCommandTimeoutError: 制限時間内に終了しなかった場合。
            GitCommandFailedError: gitが失敗した場合。
        """
        start, end = _ensure_aware(start), _ensure_aware(end)
        loop = asyncio.get_running_loop()
        started = loop.time()

        output = await self.get_log_output(repository_path, start, end, author or None)
        commits = [
            c for c in parse_git_log(output, repo_id) if start <= c.committed_at < end
        ]

        logger.info(
            "git log for %s completed in %.2fs: %d commits (author=%s)",
            repository_path,
            loop.time() - started,
            len(commits),
            author or "*",
        )
        return commits
