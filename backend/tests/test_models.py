"""Tests for derived values on the ORM models and the epoch column type."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from app.models import Commit, Repository
from app.models.commit import parse_remote_url
from app.models.types import EpochTimestamp
from tests.conftest import make_commit, make_git_dir, utc

HASH = "abcdef0123456789abcdef0123456789abcdef01"


def _commit(**kwargs: object) -> Commit:
    return make_commit(1, HASH, utc(2026, 3, 1), **kwargs)  # type: ignore[arg-type]


class TestCommitDerivedValues:
    def test_short_hash_and_message(self) -> None:
        commit = _commit(message="Fix parser\n\nLonger body")
        assert commit.short_hash == "abcdef0"
        assert commit.short_message == "Fix parser"

    def test_total_lines_changed(self) -> None:
        assert _commit(added=7, deleted=3).total_lines_changed == 10

    @pytest.mark.parametrize(
        ("remote", "expected"),
        [
            ("git@github.com:acme/widgets.git", f"https://github.com/acme/widgets/commit/{HASH}"),
            ("https://github.com/acme/widgets", f"https://github.com/acme/widgets/commit/{HASH}"),
            ("https://gitee.com/acme/widgets.git", f"https://gitee.com/acme/widgets/commit/{HASH}"),
            ("git@gitlab.com:group/sub/widgets.git", f"https://gitlab.com/sub/widgets/-/commit/{HASH}"),
            ("https://git.example.org/acme/widgets.git", f"https://git.example.org/acme/widgets/-/commit/{HASH}"),
        ],
    )
    def test_web_url(self, remote: str, expected: str) -> None:
        assert _commit().web_url(remote) == expected

    @pytest.mark.parametrize("remote", [None, "", "/srv/git/widgets.git", "git@github.com"])
    def test_web_url_unavailable(self, remote: str | None) -> None:
        assert _commit().web_url(remote) is None


def test_parse_remote_url() -> None:
    assert parse_remote_url("git@github.com:acme/widgets.git") == ("github.com", "acme", "widgets")
    assert parse_remote_url("https://host/only") is None


def test_repository_path_checks(tmp_path: Path) -> None:
    valid = Repository(name="ok", path=str(make_git_dir(tmp_path, "ok")))
    plain = Repository(name="plain", path=str(tmp_path))
    gone = Repository(name="gone", path=str(tmp_path / "gone"))

    assert valid.path_exists and valid.is_valid_git_repo
    assert plain.path_exists and not plain.is_valid_git_repo
    assert not gone.path_exists


class TestEpochTimestamp:
    def test_round_trip_keeps_instant(self) -> None:
        column = EpochTimestamp()
        tokyo = datetime(2026, 3, 1, 9, tzinfo=timezone(timedelta(hours=9)))

        stored = column.process_bind_param(tokyo, None)
        loaded = column.process_result_value(stored, None)

        assert stored == utc(2026, 3, 1).timestamp()
        assert loaded == tokyo
        assert loaded.tzinfo == timezone.utc

    def test_naive_is_utc(self) -> None:
        column = EpochTimestamp()
        assert column.process_bind_param(datetime(2026, 3, 1), None) == utc(2026, 3, 1).timestamp()

    def test_none(self) -> None:
        column = EpochTimestamp()
        assert column.process_bind_param(None, None) is None
        assert column.process_result_value(None, None) is None
