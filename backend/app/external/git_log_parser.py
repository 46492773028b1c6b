"""git log 出力パーサ。

``GitClient`` が要求する独自フォーマット（センチネル付きヘッダ行 +
``--numstat`` 行）を ``Commit`` レコードに変換する純粋関数を提供する。

出力例::

    COMMIT_START|<hash>|<author name>|<author email>|<ISO-8601>|<subject>
    12\t3\tsrc/app.py
    -\t-\tassets/logo.png

壊れたブロックや数値でない numstat 行は読み飛ばす（best-effort）。
"""

from __future__ import annotations

import logging
from datetime import datetime

from app.core.exceptions import LogParseError
from app.models import Commit

logger = logging.getLogger(__name__)

COMMIT_SENTINEL = "COMMIT_START|"
FIELD_SEPARATOR = "|"
PRETTY_FORMAT = f"--pretty=format:{COMMIT_SENTINEL}%H|%an|%ae|%aI|%s"
ISO_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# hash, author name, author email, date, message
_HEADER_FIELDS = 5


def split_blocks(output: str) -> list[list[str]]:
    """出力をセンチネル行ごとのブロック（行リスト）に分割する。

    センチネルはヘッダ行の先頭にのみ現れる前提で、行頭一致で判定する。
    最初のセンチネルより前の行は捨てる。
    """
    blocks: list[list[str]] = []
    current: list[str] | None = None
    for raw_line in output.splitlines():
        if raw_line.startswith(COMMIT_SENTINEL):
            current = [raw_line[len(COMMIT_SENTINEL):]]
            blocks.append(current)
        elif current is not None:
            current.append(raw_line)
    return blocks


def parse_timestamp(value: str) -> datetime:
    """固定オフセット付きISO-8601文字列を解釈する。

    Raises:
        LogParseError: 形式が一致しない場合。
    """
    try:
        return datetime.strptime(value.strip(), ISO_FORMAT)
    except ValueError as e:
        raise LogParseError(f"Invalid commit timestamp: {value!r}") from e


def parse_numstat_line(line: str) -> tuple[int, int]:
    """``added\\tdeleted\\tpath`` 形式の1行から追加・削除行数を取り出す。

    バイナリファイルは ``-`` になるため数値変換に失敗し、LogParseError となる。

    Raises:
        LogParseError: 先頭2フィールドが整数でない場合。
    """
    parts = line.strip().split("\t")
    if len(parts) < 2:
        raise LogParseError(f"Not a numstat line: {line!r}")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError as e:
        raise LogParseError(f"Non-numeric numstat line: {line!r}") from e


def parse_block(lines: list[str], repo_id: int) -> Commit:
    """1コミット分のブロックを ``Commit`` に変換する。

    Args:
        lines: センチネルを除いたヘッダ行と、それに続く numstat 行。
        repo_id: コミットが属するリポジトリID。

    Returns:
        未永続化の Commit インスタンス。

    Raises:
        LogParseError: ヘッダのフィールド不足、または日時が解釈できない場合。
    """
    header = lines[0].rstrip("\r") if lines else ""
    # メッセージ自体に区切り文字が含まれうるため、4つ目以降は分割しない
    fields = header.split(FIELD_SEPARATOR, _HEADER_FIELDS - 1)
    if len(fields) < _HEADER_FIELDS or not fields[0]:
        raise LogParseError(f"Malformed commit header: {header!r}")

    commit_hash, author_name, author_email, date_str, message = fields
    committed_at = parse_timestamp(date_str)

    lines_added = 0
    lines_deleted = 0
    for line in lines[1:]:
        if not line.strip():
            continue
        try:
            added, deleted = parse_numstat_line(line)
        except LogParseError:
            continue
        lines_added += added
        lines_deleted += deleted

    return Commit(
        commit_hash=commit_hash,
        author_name=author_name,
        author_email=author_email,
        committed_at=committed_at,
        message=message,
        repo_id=repo_id,
        lines_added=lines_added,
        lines_deleted=lines_deleted,
    )


def parse_git_log(output: str, repo_id: int) -> list[Commit]:
    """git log 出力全体を Commit のリストに変換する。

    出力順（通常は新しい順）を保持する。解釈できないブロックは
    全体を中断せずに読み飛ばす。

    Args:
        output: ``GitClient.get_log_output`` が返した標準出力。
        repo_id: コミットが属するリポジトリID。

    Returns:
        Commit のリスト。
    """
    commits: list[Commit] = []
    skipped = 0
    for block in split_blocks(output):
        try:
            commits.append(parse_block(block, repo_id))
        except LogParseError as e:
            skipped += 1
            logger.debug("Skipping git log block: %s", e.detail)

    if skipped:
        logger.debug(
            "Parsed %d commits for repo_id=%s (%d blocks skipped)",
            len(commits),
            repo_id,
            skipped,
        )
    return commits
