"""DynamoDB repository for interaction logs."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key

from models.contact import Interaction
from repositories.schema import new_id
from utils.clock import ensure_utc, utcnow


def _to_item(value: Any) -> Any:
    """DynamoDB rejects floats; store them as Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, dict):
        return {k: _to_item(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_to_item(v) for v in value]
    return value


def _from_item(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_item(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_item(v) for v in value]
    return value


class DynamoDbRepository:
    """Interaction log keyed by ``contact_id``.

    The sort key ``occurred_key`` is ``<occurred_at ISO>#<id>``: items sort by
    time and two interactions sharing a timestamp keep separate keys.
    """

    def __init__(self, table_name: str, resource: Optional[Any] = None):
        self.table = (resource or boto3.resource("dynamodb")).Table(table_name)

    def put(self, item: Dict[str, Any]) -> None:
        """Insert an item. An existing key raises instead of being overwritten."""
        self.table.put_item(
            Item=_to_item(item),
            ConditionExpression=Attr("contact_id").not_exists(),
        )

    def append(self, contact_id: str, **fields: Any) -> Interaction:
        item: Dict[str, Any] = {
            "id": new_id(),
            "contact_id": contact_id,
            "intent_detected": [],
            "entities_extracted": {},
        }
        item.update({k: v for k, v in fields.items() if v is not None})
        item["occurred_at"] = ensure_utc(item.get("occurred_at")) or utcnow()
        item["occurred_key"] = f"{item['occurred_at'].isoformat()}#{item['id']}"
        self.put(item)
        return Interaction.model_validate(item)

    def query_recent(self, contact_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Query most recent interactions."""
        resp = self.table.query(
            KeyConditionExpression=Key("contact_id").eq(contact_id),
            ScanIndexForward=False,
            Limit=limit,
        )
        return [_from_item(item) for item in resp.get("Items", [])]

    def recent(self, contact_id: str, limit: int = 20) -> List[Interaction]:
        return [Interaction.model_validate(item) for item in self.query_recent(contact_id, limit)]

    def count(self, contact_id: str) -> int:
        total = 0
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("contact_id").eq(contact_id),
            "Select": "COUNT",
        }
        while True:
            resp = self.table.query(**kwargs)
            total += resp.get("Count", 0)
            if "LastEvaluatedKey" not in resp:
                return total
            kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
