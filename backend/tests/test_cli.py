"""Tests for the ``git-activity`` command line parser and dispatch."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from app.cli import _build_parser, main


class TestParser:
    def test_import_options(self) -> None:
        args = _build_parser().parse_args(
            ["import", "--days", "14", "--author", "Alice", "--author", "Bob", "--repo", "3"]
        )
        assert args.command == "import"
        assert args.days == 14
        assert args.author == ["Alice", "Bob"]
        assert args.repo == [3]
        assert args.keep is False

    def test_import_defaults(self) -> None:
        args = _build_parser().parse_args(["import"])
        assert args.author is None
        assert args.repo is None

    def test_prune_requires_days(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["prune"])

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])


def test_main_returns_exit_code() -> None:
    with patch("app.cli._run", new=AsyncMock(return_value=1)) as run:
        assert main(["calendar", "--days", "7"]) == 1

    (args,) = run.await_args.args
    assert args.command == "calendar"
    assert args.days == 7
