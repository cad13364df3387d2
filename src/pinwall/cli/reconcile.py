"""CLI command for reconciling stored files with the file index.

Usage:
    python -m pinwall.cli [OPTIONS]

Examples:
    # Report orphaned files and dangling references without changing anything
    python -m pinwall.cli --dry-run

    # Repair, treating unreferenced files older than 10 minutes as orphans
    python -m pinwall.cli --min-age 600

    # Verbose logging
    python -m pinwall.cli -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog

from pinwall.core import timezone  # noqa: F401
from pinwall.core.config import Settings, configure_logging
from pinwall.core.database import dispose_db_session, setup_db_session
from pinwall.services.reconciliation import Reconciler
from pinwall.services.storage import FileStorage
from pinwall.uow import create_uow_factory

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Reconcile the content directory with the record file index",
        epilog="Run after a crash to remove orphaned files and dangling references",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report inconsistencies without deleting files or rows",
    )

    parser.add_argument(
        "--min-age",
        type=int,
        default=3600,
        help="Minimum age in seconds before an unreferenced file counts as orphaned",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (consistent or repaired), 1 (error), 2 (dry run found issues)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]

    if args.verbose:
        settings.log_level = "DEBUG"

    configure_logging(settings)

    logger.info("cli.started", dry_run=args.dry_run, upload_dir=settings.upload_dir)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)
    reconciler = Reconciler(
        storage=FileStorage(settings.upload_dir),
        min_orphan_age_seconds=args.min_age,
    )

    try:
        async with await uow_factory() as uow:
            result = await reconciler.run(uow, dry_run=args.dry_run)

        print("\n" + "=" * 60)
        print("Reconciliation Summary")
        print("=" * 60)
        print(f"Orphaned files: {len(result.orphaned_files)}")
        print(f"Dangling references: {len(result.dangling_references)}")
        print(f"Affected records: {len(result.affected_records)}")
        print(f"Files deleted: {result.deleted_files}")
        print(f"References dropped: {result.dropped_references}")

        for name in result.orphaned_files[:5]:
            print(f"  orphan: {name}")
        for name in result.dangling_references[:5]:
            print(f"  dangling: {name}")

        if args.dry_run:
            print("\n[DRY RUN] No changes were made")

        print("=" * 60 + "\n")

        if args.dry_run and not result.is_consistent:
            return 2
        return 0

    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nReconciliation interrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        logger.error(
            "cli.unexpected_error",
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1

    finally:
        await dispose_db_session(session_factory)


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
