"""create git_repositories and git_commits

Revision ID: 3f1b7c2e9a40
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1b7c2e9a40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "git_repositories",
        sa.Column("repo_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="1", nullable=False),
        sa.Column("remote_url", sa.Text(), nullable=True),
        # 日時はすべてUNIXエポック秒
        sa.Column("last_scanned_at", sa.Float(), nullable=True),
        sa.Column("created_at", sa.Float(), nullable=False),
        sa.Column("updated_at", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("repo_id"),
        sa.UniqueConstraint("path"),
    )

    op.create_table(
        "git_commits",
        sa.Column("commit_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("commit_hash", sa.String(length=64), nullable=False),
        sa.Column("author_name", sa.String(length=255), nullable=False),
        sa.Column("author_email", sa.String(length=255), nullable=False),
        sa.Column("committed_at", sa.Float(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("repo_id", sa.Integer(), nullable=False),
        sa.Column("lines_added", sa.Integer(), nullable=False),
        sa.Column("lines_deleted", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(
            ["repo_id"],
            ["git_repositories.repo_id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("commit_id"),
        sa.UniqueConstraint("commit_hash", "repo_id", name="uq_git_commits_hash_repo"),
    )
    op.create_index("idx_git_commits_date", "git_commits", ["committed_at"])
    op.create_index("idx_git_commits_repo", "git_commits", ["repo_id"])


def downgrade() -> None:
    op.drop_index("idx_git_commits_repo", table_name="git_commits")
    op.drop_index("idx_git_commits_date", table_name="git_commits")
    op.drop_table("git_commits")
    op.drop_table("git_repositories")
