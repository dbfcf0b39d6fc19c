# soakgen/worker/models.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from soakgen.auth.models import Credential


class FailureReason(str, Enum):
    AUTH_UNAVAILABLE = "auth-unavailable"
    SERIALIZATION_ERROR = "serialization-error"
    TRANSPORT_ERROR = "transport-error"
    BAD_STATUS = "bad-status"
    NO_ACCEPTED_MESSAGES = "no-accepted-messages"
    INVALID_RESPONSE = "invalid-response"
    STREAM_ERROR = "stream-error"
    TIMEOUT_AT_SHUTDOWN = "timeout-at-shutdown"
    SCHEDULING_CAPACITY_EXCEEDED = "scheduling-capacity-exceeded"


class Operation(BaseModel):
    """One publish attempt; discarded once its outcome is recorded."""

    message: Dict[str, Any]
    batch_size: int
    credential: Optional[Credential] = None
    started_at: datetime


class OperationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    latency_ms: Optional[float] = Field(default=None, ge=0)
    payload_bytes: int = Field(default=0, ge=0)
    messages: int = Field(default=0, ge=0)
    reason: Optional[FailureReason] = None
    detail: Optional[str] = None

    @model_validator(mode="after")
    def _reason_matches_result(self) -> "OperationOutcome":
        if self.success and self.reason is not None:
            raise ValueError("A successful outcome cannot carry a failure reason")
        if not self.success and self.reason is None:
            raise ValueError("A failed outcome needs a failure reason")
        return self

    @classmethod
    def succeeded(
        cls, latency_ms: Optional[float], messages: int, payload_bytes: int = 0
    ) -> "OperationOutcome":
        return cls(
            success=True,
            latency_ms=latency_ms,
            messages=messages,
            payload_bytes=payload_bytes,
        )

    @classmethod
    def failed(
        cls,
        reason: FailureReason,
        detail: Optional[str] = None,
        latency_ms: Optional[float] = None,
        payload_bytes: int = 0,
    ) -> "OperationOutcome":
        return cls(
            success=False,
            reason=reason,
            detail=detail or reason.value,
            latency_ms=latency_ms,
            payload_bytes=payload_bytes,
        )
