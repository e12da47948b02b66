"""Thin DynamoDB access layer for the payment tables.

Tables are addressed by logical name and resolved against the configured
prefix (visa-intake-dev-applications). Conditional writes report a failed
condition as a return value; every other ClientError propagates.
"""

from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from intake.config import get_settings

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"

# Module-level singleton for connection reuse
_instance: "DynamoDBService | None" = None


def get_dynamodb_service() -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use."""
    global _instance
    if _instance is None:
        _instance = DynamoDBService(get_settings().table_prefix)
    return _instance


def reset_dynamodb_service() -> None:
    """Drop the shared instance so the next call builds a fresh one.

    Tests call this so the service is created inside their mock_aws context.
    """
    global _instance
    _instance = None


def _condition_failed(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


class DynamoDBService:
    """Prefixed-table reads and conditional writes."""

    def __init__(self, name_prefix: str, resource: Any | None = None) -> None:
        """
        Args:
            name_prefix: Joined to every logical table name with "-"
            resource: boto3 DynamoDB resource; a default one is created if omitted
        """
        self.name_prefix = name_prefix
        self._resource = resource or boto3.resource("dynamodb")

    def table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def table(self, table: str) -> Any:
        """boto3 Table object for a logical table name."""
        return self._resource.Table(self.table_name(table))

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
        consistent_read: bool = False,
    ) -> dict[str, Any] | None:
        """Fetch one item, or None when the key is absent."""
        response = self.table(table).get_item(Key=key, ConsistentRead=consistent_read)
        return response.get("Item")

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Write an item.

        Returns:
            False if condition_expression was given and did not hold.
        """
        params: dict[str, Any] = {"Item": item}
        if condition_expression:
            params["ConditionExpression"] = condition_expression
        try:
            self.table(table).put_item(**params)
        except ClientError as e:
            if _condition_failed(e):
                return False
            raise
        return True

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Apply an update expression and return the item as written.

        Returns:
            All attributes after the update, or None if the condition failed.
        """
        params: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": expression_attribute_values,
            "ReturnValues": "ALL_NEW",
        }
        if expression_attribute_names:
            params["ExpressionAttributeNames"] = expression_attribute_names
        if condition_expression:
            params["ConditionExpression"] = condition_expression
        try:
            response = self.table(table).update_item(**params)
        except ClientError as e:
            if _condition_failed(e):
                return None
            raise
        return response.get("Attributes")

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
    ) -> list[dict[str, Any]]:
        """All items in a global secondary index partition."""
        response = self.table(table).query(
            IndexName=index_name,
            KeyConditionExpression=Key(partition_key_name).eq(partition_key_value),
        )
        return response.get("Items", [])
