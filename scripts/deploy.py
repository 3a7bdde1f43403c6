#!/usr/bin/env python3
"""
Deploy candidate finance flows to Prefect.

Usage:
    python scripts/deploy.py --all              # Deploy all flows
    python scripts/deploy.py --identity         # Deploy FEC id resolution only
    python scripts/deploy.py --sync             # Deploy nightly sync-all only
    python scripts/deploy.py --reconciliation   # Deploy reconciliation only
    python scripts/deploy.py --summary          # Show schedule summary
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from candidate_finance_etl.deployments.schedules import (
    create_all_deployments,
    create_identity_deployments,
    create_reconciliation_deployments,
    create_sync_deployments,
    print_schedule_summary,
)


def deploy_flows(deploy_func, description: str) -> bool:
    """
    Deploy flows using the provided deployment function.

    Args:
        deploy_func: Function that deploys flows and returns count
        description: Description of what's being deployed
    """
    print(f"\n{'=' * 80}")
    print(f"Deploying {description}")
    print(f"{'=' * 80}\n")

    try:
        count = deploy_func()
        print(f"\n✓ Successfully deployed {count} {description}")
        return True
    except Exception as e:
        print(f"\n✗ Failed to deploy {description}")
        print(f"  Error: {e}")
        return False


def main():
    """Main deployment script."""
    parser = argparse.ArgumentParser(
        description="Deploy candidate finance flows to Prefect",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--all", action="store_true", help="Deploy all flows")
    parser.add_argument("--identity", action="store_true", help="Deploy FEC id resolution")
    parser.add_argument("--sync", action="store_true", help="Deploy nightly sync-all")
    parser.add_argument(
        "--reconciliation", action="store_true", help="Deploy triggered finance reconciliation"
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Show deployment schedule summary without deploying",
    )

    args = parser.parse_args()

    if args.summary:
        print_schedule_summary()
        return

    if not (args.all or args.identity or args.sync or args.reconciliation):
        parser.print_help()
        print("\nError: You must specify at least one deployment option.")
        sys.exit(1)

    success = True

    if args.all:
        print_schedule_summary()
        success = deploy_flows(create_all_deployments, "All Flows")
    else:
        if args.identity and not deploy_flows(create_identity_deployments, "Identity Flows"):
            success = False
        if args.sync and not deploy_flows(create_sync_deployments, "Sync Flows"):
            success = False
        if args.reconciliation and not deploy_flows(
            create_reconciliation_deployments, "Reconciliation Flows"
        ):
            success = False

    if success:
        print("\n✅ All deployments completed successfully!")
        print("\nNext steps:")
        print("  1. Start a Prefect worker: prefect worker start --pool default")
        print("  2. View deployments: prefect deployment ls")
    else:
        print("\n❌ Some deployments failed. Check the errors above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
