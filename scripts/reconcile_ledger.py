#!/usr/bin/env python3
"""Offline reconciliation of loyalty balances and resource calendars.

Replays every loyalty account's transaction log and compares it with the
cached balance. With --calendars it also checks each resource calendar
against the reservation records of that resource.

Exits with status 1 when any drift is found, so it can run as a
scheduled job that alerts on failure.

Usage:
    python scripts/reconcile_ledger.py --env dev
    python scripts/reconcile_ledger.py --env prod --calendars
"""

import argparse
import os
import sys

from stayledger.config import get_settings
from stayledger.services.availability import AvailabilityIndex
from stayledger.services.catalog import DynamoResourceCatalog, DynamoUserDirectory
from stayledger.services.dynamodb import DynamoDBService
from stayledger.services.loyalty import LoyaltyLedger
from stayledger.services.reservations import ReservationService
from stayledger.utils.clock import SystemClock
from stayledger.utils.logging import configure_logging


def reconcile_accounts(ledger: LoyaltyLedger) -> int:
    """Audit every account and print drift.

    Returns:
        Number of inconsistent accounts
    """
    audits = ledger.audit_all()
    bad = [a for a in audits if not a.consistent]
    print(f"Accounts audited: {len(audits)}")
    for audit in bad:
        print(
            f"  ✗ {audit.user_id}: cached={audit.cached_balance} "
            f"replayed={audit.replayed_balance} "
            f"negative_at={audit.first_negative_sequence} gaps={audit.sequence_gaps}"
        )
    return len(bad)


def reconcile_calendars(
    db: DynamoDBService,
    availability: AvailabilityIndex,
    reservations: ReservationService,
) -> int:
    """Check each resource calendar against its reservations.

    Returns:
        Number of resources with discrepancies
    """
    today = SystemClock().today()
    resource_ids = sorted(item["resource_id"] for item in db.scan(availability.TABLE))
    print(f"Calendars checked: {len(resource_ids)}")

    failing = 0
    for resource_id in resource_ids:
        problems = availability.verify_calendar(
            resource_id, reservations.list_for_resource(resource_id), today
        )
        if problems:
            failing += 1
            print(f"  ✗ {resource_id}")
            for problem in problems:
                print(f"      {problem}")
    return failing


def main() -> int:
    """Run the reconciliation."""
    parser = argparse.ArgumentParser(description="Reconcile loyalty balances and calendars")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--calendars",
        action="store_true",
        help="Also verify resource calendars against reservations",
    )
    args = parser.parse_args()

    os.environ["ENVIRONMENT"] = args.env
    get_settings.cache_clear()
    settings = get_settings()
    configure_logging(settings.log_level)

    db = DynamoDBService(settings)
    users = DynamoUserDirectory(db)
    ledger = LoyaltyLedger(db, users, settings)

    drift = reconcile_accounts(ledger)
    if args.calendars:
        availability = AvailabilityIndex(db)
        reservations = ReservationService(
            db, availability, DynamoResourceCatalog(db), users, settings
        )
        drift += reconcile_calendars(db, availability, reservations)

    if drift:
        print(f"\nDrift found in {drift} record(s)")
        return 1
    print("\nAll consistent")
    return 0


if __name__ == "__main__":
    sys.exit(main())
