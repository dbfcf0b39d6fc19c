# soakgen/transport/models.py
import json
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

HTTP_OK = 200


class PublishResult(BaseModel):
    """Typed publish response; accepted_count is None when the body was unreadable."""

    model_config = ConfigDict(frozen=True)

    status: int
    accepted_count: Optional[int] = None
    body: str = ""
    parse_error: Optional[str] = None

    @property
    def status_ok(self) -> bool:
        return self.status == HTTP_OK


class ProbeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return self.status == HTTP_OK


def parse_publish_body(body: str) -> Tuple[Optional[int], Optional[str]]:
    """Extract the number of assigned message ids from a publish response body."""
    try:
        payload = json.loads(body)
    except ValueError as e:
        return None, f"Response is not valid JSON: {str(e)}"

    if not isinstance(payload, dict):
        return None, f"Expected a JSON object, got {type(payload).__name__}"

    message_ids = payload.get("messageIds")
    if message_ids is None:
        return 0, None
    if not isinstance(message_ids, list):
        return None, f"messageIds must be a list, got {type(message_ids).__name__}"
    return len(message_ids), None
