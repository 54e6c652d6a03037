"""DynamoDB table definitions.

Table names are given without the environment prefix; ``create_tables``
prepends it. Used by the seed script for local environments and by tests.
"""

from typing import Any

TABLE_DEFINITIONS: dict[str, dict[str, Any]] = {
    # Catalog and directory are owned by other systems; the core only reads them.
    "resources": {
        "KeySchema": [{"AttributeName": "resource_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "resource_id", "AttributeType": "S"},
        ],
    },
    "users": {
        "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "user_id", "AttributeType": "S"},
        ],
    },
    "reservations": {
        "KeySchema": [{"AttributeName": "reservation_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "reservation_id", "AttributeType": "S"},
            {"AttributeName": "client_id", "AttributeType": "S"},
            {"AttributeName": "resource_id", "AttributeType": "S"},
            {"AttributeName": "check_in", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "client_id-index",
                "KeySchema": [
                    {"AttributeName": "client_id", "KeyType": "HASH"},
                    {"AttributeName": "check_in", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
            {
                "IndexName": "resource_id-index",
                "KeySchema": [
                    {"AttributeName": "resource_id", "KeyType": "HASH"},
                    {"AttributeName": "check_in", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
    },
    # One item per resource: version counter plus the confirmed stays.
    "resource-calendars": {
        "KeySchema": [{"AttributeName": "resource_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "resource_id", "AttributeType": "S"},
        ],
    },
    "loyalty-accounts": {
        "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "user_id", "AttributeType": "S"},
        ],
    },
    "loyalty-transactions": {
        "KeySchema": [
            {"AttributeName": "account_id", "KeyType": "HASH"},
            {"AttributeName": "sequence", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "account_id", "AttributeType": "S"},
            {"AttributeName": "sequence", "AttributeType": "N"},
        ],
    },
}


def create_tables(client: Any, prefix: str) -> list[str]:
    """Create every table that does not exist yet.

    Args:
        client: boto3 DynamoDB client
        prefix: Environment table prefix (e.g. "stayledger-dev")

    Returns:
        Names of the tables that were created
    """
    existing = set(client.list_tables().get("TableNames", []))
    created = []
    for table, definition in TABLE_DEFINITIONS.items():
        name = f"{prefix}-{table}"
        if name in existing:
            continue
        client.create_table(TableName=name, BillingMode="PAY_PER_REQUEST", **definition)
        created.append(name)
    return created
