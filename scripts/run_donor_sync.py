#!/usr/bin/env python3
"""
Run donor sync flows from the command line.

Usage:
    # One bounded invocation
    python scripts/run_donor_sync.py sync --candidate cand-123 --cycle 2024

    # Sync a candidate to completion, discarding previous progress
    python scripts/run_donor_sync.py complete --candidate cand-123 --force

    # Batch of candidates, in order
    python scripts/run_donor_sync.py batch --candidate cand-1 --candidate cand-2

    # Every never-synced / unfinished candidate
    python scripts/run_donor_sync.py all --limit 25

    # Resolve FEC ids, then reconcile totals
    python scripts/run_donor_sync.py resolve-ids --dry-run
    python scripts/run_donor_sync.py reconcile --cycle 2024
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from candidate_finance_etl.config import validate_election_cycle
from candidate_finance_etl.flows import (
    batch_donor_sync_flow,
    complete_donor_sync_flow,
    donor_sync_flow,
    nightly_reconciliation_flow,
    resolve_fec_ids_flow,
    sync_all_donors_flow,
)


def cycle_arg(value: str) -> int:
    try:
        return validate_election_cycle(int(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run candidate donor sync flows")
    parser.add_argument("--cycle", type=cycle_arg, default=None, help="Election cycle (e.g. 2024)")
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Single bounded sync invocation")
    sync.add_argument("--candidate", required=True, help="Local candidate id")
    sync.add_argument("--committee", help="Extra committee id for a new pass")
    sync.add_argument("--max-pages", type=int, help="Page cap per committee")
    sync.add_argument("--max-runtime", type=float, help="Wall-clock budget in seconds")
    sync.add_argument("--rate-limit", type=int, help="Requests per minute for this invocation")
    sync.add_argument("--include-other", action="store_true", help="Aggregate other receipts")
    sync.add_argument("--force", action="store_true", help="Start a new pass")

    complete = sub.add_parser("complete", help="Sync one candidate to completion")
    complete.add_argument("--candidate", required=True, help="Local candidate id")
    complete.add_argument("--force", action="store_true", help="Start a new pass")
    complete.add_argument("--max-iterations", type=int, help="Invocation safety cap")

    batch = sub.add_parser("batch", help="Sync several candidates in order")
    batch.add_argument("--candidate", action="append", required=True, help="Repeatable")
    batch.add_argument("--force", action="store_true", help="Start a new pass for each")

    sync_all = sub.add_parser("all", help="Sync never-synced and unfinished candidates")
    sync_all.add_argument("--limit", type=int, help="Maximum candidates")

    resolve = sub.add_parser("resolve-ids", help="Resolve FEC candidate ids")
    resolve.add_argument("--candidate", action="append", help="Repeatable (default: all missing)")
    resolve.add_argument("--limit", type=int, help="Maximum candidates")
    resolve.add_argument("--dry-run", action="store_true", help="Do not write matches back")

    reconcile = sub.add_parser("reconcile", help="Reconcile totals against FEC")
    reconcile.add_argument("--limit", type=int, help="Maximum candidates")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "sync":
        result = donor_sync_flow(
            candidate_id=args.candidate,
            cycle=args.cycle,
            committee_id=args.committee,
            max_pages=args.max_pages,
            include_other_receipts=args.include_other or None,
            max_runtime_seconds=args.max_runtime,
            rate_limit_per_minute=args.rate_limit,
            force_full_sync=args.force,
        )
    elif args.command == "complete":
        result = complete_donor_sync_flow(
            candidate_id=args.candidate,
            cycle=args.cycle,
            force_full_sync=args.force,
            max_iterations=args.max_iterations,
        )
    elif args.command == "batch":
        result = batch_donor_sync_flow(
            candidate_ids=args.candidate, cycle=args.cycle, force_full_sync=args.force
        )
    elif args.command == "all":
        result = sync_all_donors_flow(cycle=args.cycle, limit=args.limit)
    elif args.command == "resolve-ids":
        result = resolve_fec_ids_flow(
            candidate_ids=args.candidate, limit=args.limit, apply=not args.dry_run
        )
    else:
        result = nightly_reconciliation_flow(cycle=args.cycle, limit=args.limit)

    print(json.dumps(result, indent=2, default=str))
    return 0 if result.get("success", True) else 1


if __name__ == "__main__":
    sys.exit(main())
