#!/usr/bin/env python3
"""Seed a development database with tables, resources and users.

Creates any missing tables, then writes a small catalog of rooms and
installations and a few users (clients, an employee and an admin). The
catalog and the user directory are owned by other systems in production;
this is only for local environments and demos.

Usage:
    python scripts/seed_data.py --env dev
    python scripts/seed_data.py --env dev --endpoint-url http://localhost:8000
    python scripts/seed_data.py --env dev --tables-only
"""

import argparse
import os
import sys
from decimal import Decimal

import boto3

from stayledger.services.schema import create_tables

RESOURCES = [
    {
        "resource_id": "room-101",
        "kind": "room",
        "name": "Room 101 (double)",
        "capacity": 2,
        "unit_price": Decimal("90.00"),
        "currency": "EUR",
    },
    {
        "resource_id": "room-102",
        "kind": "room",
        "name": "Room 102 (double)",
        "capacity": 2,
        "unit_price": Decimal("90.00"),
        "currency": "EUR",
    },
    {
        "resource_id": "suite-201",
        "kind": "room",
        "name": "Suite 201 (family)",
        "capacity": 4,
        "unit_price": Decimal("160.00"),
        "currency": "EUR",
    },
    {
        "resource_id": "sauna",
        "kind": "installation",
        "name": "Lakeside sauna",
        "capacity": 6,
        "unit_price": Decimal("40.00"),  # per hour
        "currency": "EUR",
    },
    {
        "resource_id": "room-999",
        "kind": "room",
        "name": "Closed for renovation",
        "capacity": 2,
        "unit_price": Decimal("90.00"),
        "currency": "EUR",
        "active": False,
    },
]

USERS = [
    {"user_id": "client-anna", "role": "client"},
    {"user_id": "client-ben", "role": "client"},
    {"user_id": "employee-carla", "role": "employee"},
    {"user_id": "admin-dev", "role": "admin"},
]


def get_table_prefix(env: str) -> str:
    """Get the table prefix for an environment, honoring DYNAMODB_TABLE_PREFIX."""
    return os.environ.get("DYNAMODB_TABLE_PREFIX", f"stayledger-{env}")


def seed_items(dynamodb, table_name: str, key: str, items: list[dict]) -> int:
    """Write items with a batch writer.

    Returns:
        Number of items written
    """
    table = dynamodb.Table(table_name)
    print(f"Seeding {table_name}")
    with table.batch_writer() as batch:
        for item in items:
            batch.put_item(Item=item)
            label = item.get("name") or item.get("role")
            print(f"  ✓ {item[key]} ({label})")
    return len(items)


def main() -> int:
    """Run the seed script."""
    parser = argparse.ArgumentParser(description="Seed development database with test data")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "eu-west-1"),
        help="AWS region (default: eu-west-1 or AWS_DEFAULT_REGION env var)",
    )
    parser.add_argument(
        "--endpoint-url",
        default=os.environ.get("DYNAMODB_ENDPOINT_URL"),
        help="Custom DynamoDB endpoint, e.g. DynamoDB Local",
    )
    parser.add_argument(
        "--tables-only",
        action="store_true",
        help="Only create missing tables",
    )

    args = parser.parse_args()

    if args.env == "prod":
        print("Refusing to seed production data.", file=sys.stderr)
        return 1

    kwargs = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    prefix = get_table_prefix(args.env)
    client = boto3.client("dynamodb", **kwargs)

    print(f"Environment: {args.env} (prefix {prefix})")
    created = create_tables(client, prefix)
    for name in created:
        client.get_waiter("table_exists").wait(TableName=name)
        print(f"  + created {name}")
    if not created:
        print("  All tables already exist")

    if args.tables_only:
        return 0

    dynamodb = boto3.resource("dynamodb", **kwargs)
    resources = seed_items(dynamodb, f"{prefix}-resources", "resource_id", RESOURCES)
    users = seed_items(dynamodb, f"{prefix}-users", "user_id", USERS)

    print(f"\nDone: {resources} resources, {users} users")
    return 0


if __name__ == "__main__":
    sys.exit(main())
