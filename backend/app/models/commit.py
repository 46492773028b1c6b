"""Commit ORM model."""

from datetime import datetime
from urllib.parse import urlparse

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.types import EpochTimestamp, utcnow


def parse_remote_url(remote_url: str) -> tuple[str, str, str] | None:
    """Split a remote URL into ``(host, owner, repo)``.

    Supports ``git@host:owner/repo.git`` and ``http(s)://host/owner/repo.git``.
    """
    url = remote_url.strip()
    if url.endswith(".git"):
        url = url[:-4]

    if url.startswith("git@"):
        parts = url[4:].split(":")
        if len(parts) != 2:
            return None
        host = parts[0]
        path_parts = [p for p in parts[1].split("/") if p]
        if len(path_parts) < 2:
            return None
        return host, path_parts[-2], path_parts[-1]

    if url.startswith(("https://", "http://")):
        parsed = urlparse(url)
        host = parsed.hostname
        if not host:
            return None
        path_parts = [p for p in parsed.path.split("/") if p]
        if len(path_parts) < 2:
            return None
        return host, path_parts[-2], path_parts[-1]

    return None


class Commit(Base):
    """Git commit record.

    Rows are immutable once written.  ``(commit_hash, repo_id)`` is unique;
    re-importing a commit is a no-op.
    """

    __tablename__ = "git_commits"
    __table_args__ = (
        UniqueConstraint(
            "commit_hash",
            "repo_id",
            name="uq_git_commits_hash_repo",
        ),
        Index("idx_git_commits_date", "committed_at"),
        Index("idx_git_commits_repo", "repo_id"),
    )

    commit_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    commit_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    author_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    author_email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    committed_at: Mapped[datetime] = mapped_column(
        EpochTimestamp,
        nullable=False,
    )
    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )
    repo_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("git_repositories.repo_id", ondelete="CASCADE"),
        nullable=False,
    )
    lines_added: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    lines_deleted: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    created_at: Mapped[datetime] = mapped_column(
        EpochTimestamp,
        nullable=False,
        default=utcnow,
    )

    # --- Relationships ---
    repository: Mapped["Repository"] = relationship(  # noqa: F821
        back_populates="commits",
    )

    @property
    def short_hash(self) -> str:
        return self.commit_hash[:7]

    @property
    def short_message(self) -> str:
        return self.message.split("\n", 1)[0]

    @property
    def total_lines_changed(self) -> int:
        return (self.lines_added or 0) + (self.lines_deleted or 0)

    def web_url(self, remote_url: str | None) -> str | None:
        """Build a browser link to this commit from the repository remote.

        GitHub and Gitee use ``/commit/<hash>``; GitLab and unknown hosts
        (typically self-hosted GitLab) use ``/-/commit/<hash>``.
        """
        if not remote_url:
            return None
        parsed = parse_remote_url(remote_url)
        if parsed is None:
            return None

        host, owner, repo = parsed
        if "github.com" in host or "gitee.com" in host:
            return f"https://{host}/{owner}/{repo}/commit/{self.commit_hash}"
        return f"https://{host}/{owner}/{repo}/-/commit/{self.commit_hash}"

    def __repr__(self) -> str:
        return (
            f"<Commit(commit_id={self.commit_id}, "
            f"hash={self.short_hash!r}, repo_id={self.repo_id})>"
        )
