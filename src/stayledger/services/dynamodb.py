"""DynamoDB service wrapper for conditional and transactional table operations.

Uses the low-level client (thread-safe, unlike boto3 resources) and converts
between plain Python values and DynamoDB attribute values with boto3's
TypeSerializer/TypeDeserializer. Numbers come back as ``Decimal``.
"""

import logging
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.config import Config
from botocore.exceptions import ClientError, ConnectTimeoutError, ReadTimeoutError

from stayledger.config import Settings, get_settings
from stayledger.models.errors import OutcomeUnknownError
from stayledger.utils.ids import generate_request_token

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()

# Module-level singleton for connection reuse
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(settings: Settings | None = None) -> "DynamoDBService":
    """Get or create the singleton DynamoDB service instance.

    Args:
        settings: Settings to use. Only used on first call.

    Returns:
        Shared DynamoDBService instance
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(settings)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Reset the singleton instance (for testing only).

    This allows tests to create a fresh DynamoDBService inside
    a mock_aws context.
    """
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def serialize(item: dict[str, Any]) -> dict[str, Any]:
    """Convert a plain dict to DynamoDB attribute values, dropping None fields."""
    return {k: _serializer.serialize(v) for k, v in item.items() if v is not None}


def deserialize(raw: dict[str, Any]) -> dict[str, Any]:
    """Convert DynamoDB attribute values to a plain dict."""
    return {k: _deserializer.deserialize(v) for k, v in raw.items()}


class DynamoDBService:
    """Service for DynamoDB operations with environment-aware table names."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize DynamoDB service.

        Args:
            settings: Runtime settings. Defaults to the environment.
        """
        self.settings = settings or get_settings()
        self.environment = self.settings.environment
        self.name_prefix = self.settings.table_prefix

        config = Config(
            connect_timeout=self.settings.dynamodb_timeout_seconds,
            read_timeout=self.settings.dynamodb_timeout_seconds,
            retries={"max_attempts": self.settings.dynamodb_max_attempts, "mode": "standard"},
        )
        kwargs: dict[str, Any] = {"config": config}
        if self.settings.aws_region:
            kwargs["region_name"] = self.settings.aws_region
        if self.settings.dynamodb_endpoint_url:
            kwargs["endpoint_url"] = self.settings.dynamodb_endpoint_url
        self._client = boto3.client("dynamodb", **kwargs)

    @property
    def client(self) -> Any:
        return self._client

    def table_name(self, table: str) -> str:
        """Get full table name with prefix."""
        return f"{self.name_prefix}-{table}"

    # Generic operations

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
        consistent_read: bool = False,
    ) -> dict[str, Any] | None:
        """Get a single item by key.

        Args:
            table: Table name without prefix
            key: Primary key dict
            consistent_read: Use a strongly consistent read

        Returns:
            Item dict or None if not found
        """
        response = self._client.get_item(
            TableName=self.table_name(table),
            Key=serialize(key),
            ConsistentRead=consistent_read,
        )
        raw = response.get("Item")
        return deserialize(raw) if raw else None

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> bool:
        """Put an item into the table.

        Args:
            table: Table name without prefix
            item: Item to store
            condition_expression: Optional condition for write
            expression_attribute_names: Names for the condition
            expression_attribute_values: Values for the condition

        Returns:
            True if successful, False if condition failed
        """
        kwargs: dict[str, Any] = {
            "TableName": self.table_name(table),
            "Item": serialize(item),
        }
        kwargs.update(
            self._expression_kwargs(
                condition_expression, expression_attribute_names, expression_attribute_values
            )
        )
        try:
            self._client.put_item(**kwargs)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def query(
        self,
        table: str,
        key_condition_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        index_name: str | None = None,
        filter_expression: str | None = None,
        limit: int | None = None,
        scan_index_forward: bool = True,
        consistent_read: bool = False,
    ) -> list[dict[str, Any]]:
        """Query table or GSI, following pagination.

        Args:
            table: Table name without prefix
            key_condition_expression: Key condition expression
            expression_attribute_values: Values for the expressions
            expression_attribute_names: Names for the expressions (for reserved words)
            index_name: GSI name (optional)
            filter_expression: Additional filter (optional)
            limit: Max items to return
            scan_index_forward: Sort order (True=ascending)
            consistent_read: Strongly consistent read (base table only)

        Returns:
            List of items
        """
        kwargs: dict[str, Any] = {
            "TableName": self.table_name(table),
            "KeyConditionExpression": key_condition_expression,
            "ExpressionAttributeValues": serialize(expression_attribute_values),
            "ScanIndexForward": scan_index_forward,
        }
        if expression_attribute_names:
            kwargs["ExpressionAttributeNames"] = expression_attribute_names
        if index_name:
            kwargs["IndexName"] = index_name
        elif consistent_read:
            kwargs["ConsistentRead"] = True
        if filter_expression:
            kwargs["FilterExpression"] = filter_expression

        items: list[dict[str, Any]] = []
        while True:
            response = self._client.query(**kwargs)
            items.extend(deserialize(raw) for raw in response.get("Items", []))
            if limit and len(items) >= limit:
                return items[:limit]
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def scan(self, table: str) -> list[dict[str, Any]]:
        """Scan a whole table, following pagination.

        Meant for small tables (the catalog) and offline jobs.

        Args:
            table: Table name without prefix

        Returns:
            All items in the table
        """
        kwargs: dict[str, Any] = {"TableName": self.table_name(table)}
        items: list[dict[str, Any]] = []
        while True:
            response = self._client.scan(**kwargs)
            items.extend(deserialize(raw) for raw in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def transact_write(
        self,
        items: list[dict[str, Any]],
        client_request_token: str | None = None,
    ) -> bool:
        """Execute transactional write for multiple items.

        All items commit or none do. The request token makes SDK retries of
        the same call idempotent.

        Args:
            items: List of TransactWriteItem dicts (see put_op/update_op)
            client_request_token: Idempotency token, generated if omitted

        Returns:
            True if successful, False if any condition failed

        Raises:
            OutcomeUnknownError: The call timed out and may have been applied
        """
        token = client_request_token or generate_request_token()
        try:
            self._client.transact_write_items(
                TransactItems=items,
                ClientRequestToken=token,
            )
            return True
        except ClientError as e:
            code = e.response["Error"]["Code"]
            if code == "TransactionCanceledException":
                reasons = [r.get("Code") for r in e.response.get("CancellationReasons", [])]
                logger.debug(
                    "Transaction cancelled",
                    extra={"token": token, "reasons": reasons},
                )
                return False
            if code == "TransactionInProgressException":
                raise OutcomeUnknownError(details={"token": token}) from e
            raise
        except (ReadTimeoutError, ConnectTimeoutError) as e:
            logger.warning("Transactional write timed out", extra={"token": token})
            raise OutcomeUnknownError(details={"token": token}) from e

    # Transaction item builders

    def put_op(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build a conditional Put for transact_write."""
        put: dict[str, Any] = {
            "TableName": self.table_name(table),
            "Item": serialize(item),
        }
        put.update(
            self._expression_kwargs(
                condition_expression, expression_attribute_names, expression_attribute_values
            )
        )
        return {"Put": put}

    def update_op(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Build a conditional Update for transact_write."""
        update: dict[str, Any] = {
            "TableName": self.table_name(table),
            "Key": serialize(key),
            "UpdateExpression": update_expression,
        }
        update.update(
            self._expression_kwargs(
                condition_expression, expression_attribute_names, expression_attribute_values
            )
        )
        return {"Update": update}

    @staticmethod
    def _expression_kwargs(
        condition_expression: str | None,
        names: dict[str, str] | None,
        values: dict[str, Any] | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        if names:
            kwargs["ExpressionAttributeNames"] = names
        if values:
            kwargs["ExpressionAttributeValues"] = serialize(values)
        return kwargs


def as_int(value: Any, default: int = 0) -> int:
    """Convert a deserialized DynamoDB number to int."""
    if value is None:
        return default
    return int(value)


def as_decimal(value: Any, default: str = "0") -> Decimal:
    """Convert a deserialized DynamoDB number or string to Decimal."""
    if value is None:
        return Decimal(default)
    return Decimal(value)
