"""SQS publisher for queued notification intents."""

import json
from typing import Any, Dict, Optional

import boto3


class NotificationQueue:
    """Minimal helper around SQS; delivery workers consume the queue."""

    def __init__(self, queue_url: str, client: Optional[Any] = None):
        self.queue_url = queue_url
        self.client = client or boto3.client("sqs")

    def publish(self, notification: Dict[str, Any]) -> str:
        """Send one notification intent and return the SQS message id."""
        resp = self.client.send_message(
            QueueUrl=self.queue_url,
            MessageBody=json.dumps(notification, default=str),
            MessageAttributes={
                "channel": {
                    "DataType": "String",
                    "StringValue": notification.get("channel") or "unspecified",
                },
            },
        )
        return resp["MessageId"]
