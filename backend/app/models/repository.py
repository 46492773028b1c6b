"""Repository ORM model."""

import os
from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.types import EpochTimestamp, utcnow


class Repository(Base):
    """Local git working tree tracked for commit activity.

    ``path`` identifies a repository within the known set; scanning never
    registers the same path twice.
    """

    __tablename__ = "git_repositories"

    repo_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    path: Mapped[str] = mapped_column(
        Text,
        unique=True,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="1",
    )
    remote_url: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    last_scanned_at: Mapped[datetime | None] = mapped_column(
        EpochTimestamp,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        EpochTimestamp,
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        EpochTimestamp,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    # --- Relationships ---
    commits: Mapped[list["Commit"]] = relationship(  # noqa: F821
        back_populates="repository",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def path_exists(self) -> bool:
        return os.path.isdir(self.path)

    @property
    def is_valid_git_repo(self) -> bool:
        return os.path.exists(os.path.join(self.path, ".git"))

    def __repr__(self) -> str:
        return f"<Repository(repo_id={self.repo_id}, name={self.name!r})>"
