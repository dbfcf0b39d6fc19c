# soakgen/worker/payload.py
import base64
import json
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

# Fixed so downstream consumers can group every soak message under one event
EVENT_ID = "98e0c1a0-1f3f-4894-876b-f8af61cbef9d"
MESSAGE_TTL = timedelta(minutes=30)
PRIMARY_IDENTITY_SHARE = 0.7
MESSAGE_ATTRIBUTES = {"test_type": "soak_test"}


@dataclass(frozen=True)
class PublishBatch:
    body: bytes  # serialized publish request
    message_bytes: int  # size of one JSON message before base64
    size: int  # messages in the batch


def _isoformat(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_message(
    now: Optional[datetime] = None, rng: Optional[random.Random] = None
) -> Dict[str, Any]:
    """Build one synthetic member-list push message."""
    rng = rng or random
    now = now or datetime.now(timezone.utc)

    return {
        "event_id": EVENT_ID,
        "hall_id": rng.randint(1, 100),
        "id": str(uuid.uuid4()),
        "identity": "MEM" if rng.random() < PRIMARY_IDENTITY_SHARE else "HALL",
        "category": rng.randint(1, 5),
        "username": str(uuid.uuid4()),
        "push_type": "system",
        "expired_time": _isoformat(now + MESSAGE_TTL),
    }


def build_publish_batch(message: Dict[str, Any], batch_size: int) -> PublishBatch:
    """
    Encode a message and replicate it into a Pub/Sub publish request.

    Every entry carries the same data; the service assigns distinct message
    ids, which is all a fixed-size batch throughput test needs.
    """
    if batch_size < 1:
        raise ValueError(f"Batch size must be positive, got {batch_size}")

    message_json = json.dumps(message, separators=(",", ":")).encode("utf-8")
    data = base64.b64encode(message_json).decode("ascii")

    messages: List[Dict[str, Any]] = [
        {"data": data, "attributes": dict(MESSAGE_ATTRIBUTES)} for _ in range(batch_size)
    ]
    body = json.dumps({"messages": messages}).encode("utf-8")

    return PublishBatch(body=body, message_bytes=len(message_json), size=batch_size)
