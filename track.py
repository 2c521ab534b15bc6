#!/usr/bin/env python3
"""
Fetch Movember fundraising progress for members or teams.

Resolves each identifier's country edition, scrapes the donation page and
prints raised amount, target, currency and percentage. Results are cached
(5 minutes for totals, 24 hours for editions) in ~/.movember-tracker/cache
unless --memory-cache is given.

Usage:
    python track.py --member 14810348
    python track.py --member 14810348 15000001 --json
    python track.py --team 123456 --live
"""

import argparse
import json
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from movember_tracker.collectors import AcquisitionError, build_pipeline
from movember_tracker.config import (
    get_cache_dir,
    get_log_level,
    get_proxy_url,
    get_rate_limit_delay,
    get_request_timeout,
    load_member_overrides,
)
from movember_tracker.constants import DEFAULT_MEMBER_ID, PageType
from movember_tracker.utils.logger import TrackerLogger, configure_global_logging
from movember_tracker.utils.worker_pool import WorkerPool
from movember_tracker.validators import normalize_identifier

console = Console()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Fetch Movember donation progress for members or teams")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--member", nargs="+", help=f"Member ID(s) (default: {DEFAULT_MEMBER_ID})")
    group.add_argument("--team", nargs="+", help="Team ID(s)")
    parser.add_argument("--live", action="store_true", help="Bypass the cache and scrape now")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--memory-cache", action="store_true", help="Keep the cache in memory for this run only")
    parser.add_argument("--clear-cache", action="store_true", help="Drop cached records for the given IDs first")
    parser.add_argument("--summary", action="store_true", help="Print cache and error statistics for the run")
    parser.add_argument("--workers", type=int, default=4, help="Identifiers fetched in parallel (default: 4)")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR (default: MOVEMBER_LOG_LEVEL)")
    return parser.parse_args(argv)


def print_run_summary(run_summary: dict, error_summary: dict):
    cache = run_summary["cache"]
    table = Table(title="Run summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Cache checks", str(cache["total_checks"]))
    table.add_row("Hit rate", f"{cache['hit_rate_percent']}%")
    for status, count in sorted(cache["by_status"].items()):
        table.add_row(f"  {status}", str(count))
    table.add_row("Warnings", str(run_summary["warnings"]["total"]))
    table.add_row("Tracked errors", str(error_summary["total"]))
    for category, count in sorted(error_summary["by_category"].items()):
        table.add_row(f"  {category}", str(count))
    console.print(table)


def clear_cached(cache, identifiers, page_type: PageType):
    """Drop cached records under the same keys get_data reads."""
    for identifier in identifiers:
        identifier = normalize_identifier(identifier)
        if identifier:
            cache.invalidate(identifier, page_type)


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)

    log_level = (args.log_level or get_log_level()).upper()
    configure_global_logging(log_level)
    logger = TrackerLogger(log_level=log_level)

    page_type = PageType.TEAM if args.team else PageType.MEMBER
    identifiers = args.team or args.member or [DEFAULT_MEMBER_ID]

    orchestrator = build_pipeline(
        proxy_url=get_proxy_url(),
        cache_dir=None if args.memory_cache else get_cache_dir(),
        member_overrides=load_member_overrides(),
        logger=logger,
        rate_limit_delay=get_rate_limit_delay(),
        timeout=get_request_timeout(),
    )

    if args.clear_cache:
        clear_cached(orchestrator.cache, identifiers, page_type)

    pool = WorkerPool(max_workers=max(1, args.workers), logger=logger, name="track")
    futures = {
        identifier: pool.submit(orchestrator.get_data, identifier, args.live, page_type) for identifier in identifiers
    }

    responses, failures = {}, {}
    for identifier, future in futures.items():
        try:
            responses[identifier] = future.result()
        except (AcquisitionError, ValueError) as e:
            failures[identifier] = str(e)

    pool.shutdown(wait=True)
    # Let stale-read refreshes finish so the cache is current for the next run
    orchestrator.close(wait=True)

    if args.json:
        output = {identifier: response.result.to_output() for identifier, response in responses.items()}
        output.update({identifier: {"error": message} for identifier, message in failures.items()})
        print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        table = Table(title=f"Movember {page_type.value} progress")
        table.add_column("ID", style="cyan")
        table.add_column("Raised", justify="right")
        table.add_column("Target", justify="right")
        table.add_column("%", justify="right")
        table.add_column("Currency")
        table.add_column("Edition")
        table.add_column("Cache", justify="center")
        for identifier, response in responses.items():
            result = response.result
            table.add_row(
                identifier,
                result.amount,
                result.target or "-",
                str(result.percentage) if result.percentage is not None else "-",
                result.currency,
                result.subdomain,
                response.status.value,
            )
        console.print(table)
        for identifier, message in failures.items():
            console.print(f"[red]{identifier}: {message}[/red]")

    if args.summary:
        print_run_summary(logger.generate_summary(), orchestrator.error_tracker.get_summary())

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
