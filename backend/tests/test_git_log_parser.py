"""Tests for ``app.external.git_log_parser``."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from app.core.exceptions import LogParseError
from app.external.git_log_parser import (
    PRETTY_FORMAT,
    parse_block,
    parse_git_log,
    parse_numstat_line,
    parse_timestamp,
    split_blocks,
)

HASH_A = "a" * 40
HASH_B = "b" * 40

SAMPLE_OUTPUT = (
    f"COMMIT_START|{HASH_A}|Alice Smith|alice@example.com|2026-03-15T10:30:00+09:00|Add parser\n"
    "12\t3\tsrc/parser.py\n"
    "4\t0\ttests/test_parser.py\n"
    "-\t-\tassets/logo.png\n"
    "\n"
    f"COMMIT_START|{HASH_B}|Bob|bob@example.com|2026-03-14T23:00:00+00:00|Initial commit\n"
    "1\t0\tREADME.md\n"
)


class TestSplitBlocks:
    def test_lines_before_first_sentinel_are_dropped(self) -> None:
        blocks = split_blocks("warning: noise\n" + SAMPLE_OUTPUT)
        assert len(blocks) == 2
        assert blocks[0][0].startswith(HASH_A)

    def test_empty_output(self) -> None:
        assert split_blocks("") == []


class TestParseTimestamp:
    def test_fixed_offset_is_preserved(self) -> None:
        moment = parse_timestamp("2026-03-15T10:30:00+09:00")
        assert moment.utcoffset() == timedelta(hours=9)
        assert moment.astimezone(timezone.utc).hour == 1

    def test_invalid_value(self) -> None:
        with pytest.raises(LogParseError):
            parse_timestamp("yesterday")


class TestParseNumstatLine:
    def test_counts(self) -> None:
        assert parse_numstat_line("12\t3\tsrc/app.py") == (12, 3)

    def test_binary_file_is_rejected(self) -> None:
        with pytest.raises(LogParseError):
            parse_numstat_line("-\t-\tlogo.png")

    def test_not_numstat(self) -> None:
        with pytest.raises(LogParseError):
            parse_numstat_line("Merge branch 'main'")


class TestParseBlock:
    def test_message_may_contain_separator(self) -> None:
        header = f"{HASH_A}|Alice|alice@example.com|2026-03-15T10:30:00+00:00|fix: a | b | c"
        commit = parse_block([header], repo_id=1)
        assert commit.message == "fix: a | b | c"
        assert commit.author_name == "Alice"

    def test_empty_subject_is_allowed(self) -> None:
        header = f"{HASH_A}|Alice|alice@example.com|2026-03-15T10:30:00+00:00|"
        commit = parse_block([header], repo_id=1)
        assert commit.message == ""

    def test_missing_fields(self) -> None:
        with pytest.raises(LogParseError):
            parse_block([f"{HASH_A}|Alice|2026-03-15T10:30:00+00:00"], repo_id=1)

    def test_empty_hash(self) -> None:
        with pytest.raises(LogParseError):
            parse_block(["|Alice|alice@example.com|2026-03-15T10:30:00+00:00|msg"], repo_id=1)

    def test_numstat_totals_skip_binary_lines(self) -> None:
        commit = parse_block(split_blocks(SAMPLE_OUTPUT)[0], repo_id=7)
        assert commit.lines_added == 16
        assert commit.lines_deleted == 3
        assert commit.repo_id == 7


class TestParseGitLog:
    def test_sample_output(self) -> None:
        commits = parse_git_log(SAMPLE_OUTPUT, repo_id=3)

        assert [c.commit_hash for c in commits] == [HASH_A, HASH_B]
        first = commits[0]
        assert first.author_email == "alice@example.com"
        assert first.message == "Add parser"
        assert first.committed_at.astimezone(timezone.utc).isoformat() == "2026-03-15T01:30:00+00:00"

    def test_malformed_blocks_are_skipped(self) -> None:
        output = (
            "COMMIT_START|only-two|fields\n"
            "1\t1\tfile\n"
            f"COMMIT_START|{HASH_B}|Bob|bob@example.com|not-a-date|msg\n"
            + SAMPLE_OUTPUT
        )
        commits = parse_git_log(output, repo_id=1)
        assert [c.commit_hash for c in commits] == [HASH_A, HASH_B]

    def test_commit_without_numstat(self) -> None:
        output = f"COMMIT_START|{HASH_A}|Alice|alice@example.com|2026-03-15T10:30:00+00:00|Empty\n"
        (commit,) = parse_git_log(output, repo_id=1)
        assert commit.lines_added == 0
        assert commit.lines_deleted == 0

    def test_crlf_output(self) -> None:
        output = SAMPLE_OUTPUT.replace("\n", "\r\n")
        commits = parse_git_log(output, repo_id=1)
        assert len(commits) == 2
        assert commits[0].lines_added == 16


def test_pretty_format_matches_sentinel() -> None:
    assert PRETTY_FORMAT == "--pretty=format:COMMIT_START|%H|%an|%ae|%aI|%s"
