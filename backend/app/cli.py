"""コマンドラインエントリポイント (``git-activity``)。

APIと同じサービスを ``asyncio.run`` で直接呼び出す。
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from app.config import settings
from app.database import async_session_factory, init_db
from app.external.git_client import GitClient
from app.services.dashboard_service import DashboardService, heat_level
from app.services.import_service import ImportService, ImportTracker
from app.services.repository_service import RepositoryService

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="git-activity",
        description="Import local git history and show a daily activity calendar.",
    )
    p.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level.")
    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Register git repositories found under a directory.")
    scan.add_argument("base", nargs="?", default=settings.REPOSITORIES_BASE_PATH, help="Directory to scan.")

    imp = sub.add_parser("import", help="Import commits from registered repositories.")
    imp.add_argument("--days", type=int, default=settings.IMPORT_DAYS, help="Days to look back.")
    imp.add_argument("--author", action="append", default=None, help="Author filter (repeatable).")
    imp.add_argument("--repo", action="append", type=int, default=None, help="Repository ID (repeatable).")
    imp.add_argument("--keep", action="store_true", help="Keep existing commits instead of re-importing.")

    cal = sub.add_parser("calendar", help="Print per-day commit counts.")
    cal.add_argument("--days", type=int, default=settings.CALENDAR_WINDOW_DAYS, help="Days to look back.")
    cal.add_argument("--author", default=settings.GIT_AUTHOR_FILTER, help="Author name substring.")

    prune = sub.add_parser("prune", help="Delete commits older than N days.")
    prune.add_argument("--days", type=int, required=True, help="Retention in days.")
    return p


async def _scan(base: str | None) -> int:
    if not base:
        print("error: no base directory given and REPOSITORIES_BASE_PATH is not set", file=sys.stderr)
        return 2
    async with async_session_factory() as session:
        registered = await RepositoryService(session, GitClient()).scan_and_register(base)
        await session.commit()
    for repo in registered:
        print(f"registered {repo.repo_id}\t{repo.name}\t{repo.path}")
    print(f"{len(registered)} new repositories")
    return 0


async def _import(days: int, authors: list[str], repo_ids: list[int], keep: bool) -> int:
    job = ImportTracker().create(repo_ids=repo_ids, authors=authors, days=days)
    async with async_session_factory() as session:
        await ImportService(session, GitClient()).run_import(job, full_reimport=not keep)
        await session.commit()

    print(job.progress_text)
    for error in job.errors:
        print(f"  {error['type']}: {error['repo_name']} ({error['author'] or '*'}): {error['message']}")
    return 1 if job.errors else 0


async def _calendar(days: int, author: str) -> int:
    async with async_session_factory() as session:
        service = DashboardService(session)
        buckets = await service.aggregate_daily(window_days=days, author=author or None)
        summary = service.summarize(buckets)

    for day, stats in sorted(buckets.items()):
        print(
            f"{day.date().isoformat()}  {stats.commit_count:4d} commits  "
            f"+{stats.lines_added}/-{stats.lines_deleted}  "
            f"{'#' * heat_level(stats.total_lines)}"
        )
    print(
        f"{summary['total_commits']} commits on {summary['active_days']} days, "
        f"current streak {summary['current_streak']}"
    )
    return 0


async def _prune(days: int) -> int:
    async with async_session_factory() as session:
        deleted = await ImportService(session, GitClient()).prune_older_than(days)
        await session.commit()
    print(f"deleted {deleted} commits older than {days} days")
    return 0


async def _run(args: argparse.Namespace) -> int:
    await init_db()
    if args.command == "scan":
        return await _scan(args.base)
    if args.command == "import":
        authors = args.author if args.author is not None else settings.import_authors
        return await _import(args.days, authors, args.repo or [], args.keep)
    if args.command == "calendar":
        return await _calendar(args.days, args.author)
    return await _prune(args.days)


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
