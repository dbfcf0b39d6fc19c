# soakgen/config/models.py
import os
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .durations import parse_duration
from .exceptions import ConfigurationError

DEFAULT_PUBSUB_BASE_URL = "https://pubsub.googleapis.com/v1"
DEFAULT_TOKEN_ENDPOINT = (
    "http://metadata.google.internal/computeMetadata/v1/instance/service-accounts/default/token"
)

# Environment variable -> config field
ENV_FIELDS = {
    "TEST_MODE": "mode",
    "PROJECT_ID": "project_id",
    "TOPIC_NAME": "topic",
    "TARGET_RPS": "target_rate",
    "BATCH_SIZE": "batch_size",
    "MIN_VUS": "min_workers",
    "TEST_DURATION": "duration",
    "RAMP_DURATION": "ramp_up",
    "GRACE_PERIOD": "grace_period",
    "AUTH_MODE": "auth_mode",
    "GCLOUD_AUTH_TOKEN": "static_token",
    "TOKEN": "token_override",
    "TOKEN_ENDPOINT": "token_endpoint",
    "WS_URL": "ws_url",
    "CONN_TIME": "connection_seconds",
    "MESSAGE_INTERVAL": "message_interval",
    "SID": "session_id",
}


class LoadMode(str, Enum):
    PUBLISH = "publish"
    STREAM = "stream"


class AuthMode(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class SoakTestConfig(BaseModel):
    """Immutable settings for one soak run, validated once at startup."""

    model_config = ConfigDict(frozen=True)

    mode: LoadMode = LoadMode.PUBLISH
    target_rate: int = Field(default=15000, gt=0)
    batch_size: int = Field(default=10, gt=0)
    min_workers: int = Field(default=500, gt=0)
    duration: float = Field(default=3600.0, gt=0)
    ramp_up: float = Field(default=0.0, ge=0)
    grace_period: float = Field(default=30.0, ge=0)
    request_timeout: float = Field(default=60.0, gt=0)

    project_id: str = "gcp-20240131-013"
    topic: str = "topic_external_sys_push_member_list"
    pubsub_base_url: str = DEFAULT_PUBSUB_BASE_URL

    auth_mode: AuthMode = AuthMode.DYNAMIC
    static_token: Optional[str] = None
    token_override: Optional[str] = None
    token_endpoint: Optional[str] = DEFAULT_TOKEN_ENDPOINT
    token_timeout: float = Field(default=10.0, gt=0)

    ws_url: Optional[str] = None
    connection_seconds: float = Field(default=60.0, gt=0)
    message_interval: float = Field(default=5.0, gt=0)
    session_id: str = "test_session"

    disable_thresholds: bool = False
    enforce_rate_threshold: bool = False

    @field_validator(
        "duration",
        "ramp_up",
        "grace_period",
        "request_timeout",
        "token_timeout",
        "connection_seconds",
        "message_interval",
        mode="before",
    )
    @classmethod
    def _parse_duration(cls, value: Any) -> float:
        return parse_duration(value)

    @field_validator("topic")
    @classmethod
    def _strip_topic_path(cls, value: str) -> str:
        # Accept "projects/<p>/topics/<t>" as well as a bare topic name
        if "/topics/" in value:
            value = value.split("/topics/")[1]
        if not value:
            raise ValueError("Topic name must not be empty")
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "SoakTestConfig":
        if self.ramp_up > self.duration:
            raise ValueError(
                f"Ramp-up ({self.ramp_up}s) cannot exceed test duration ({self.duration}s)"
            )
        if self.auth_mode == AuthMode.STATIC and not self.static_token:
            raise ValueError("Static auth requires a token (GCLOUD_AUTH_TOKEN)")
        if self.auth_mode == AuthMode.DYNAMIC and not (self.token_override or self.token_endpoint):
            raise ValueError("Dynamic auth requires a token override or a token endpoint")
        if self.mode == LoadMode.STREAM and not self.ws_url:
            raise ValueError("Stream mode requires a WebSocket URL (WS_URL)")
        return self

    @property
    def topic_path(self) -> str:
        return f"projects/{self.project_id}/topics/{self.topic}"

    def describe(self) -> Dict[str, Any]:
        """Configuration as logged at startup, with credentials hidden."""
        return {
            "mode": self.mode.value,
            "project_id": self.project_id,
            "topic": self.topic,
            "target_rate": self.target_rate,
            "batch_size": self.batch_size,
            "min_workers": self.min_workers,
            "duration": self.duration,
            "ramp_up": self.ramp_up,
            "auth_mode": self.auth_mode.value,
            "static_token": "Provided (hidden)" if self.static_token else "MISSING",
            "thresholds_disabled": self.disable_thresholds,
        }

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "SoakTestConfig":
        """Build a configuration from environment variables plus explicit overrides."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for env_name, field_name in ENV_FIELDS.items():
            raw = env.get(env_name)
            if raw:
                values[field_name] = raw

        if env.get("DISABLE_THRESHOLDS") is not None:
            values["disable_thresholds"] = env["DISABLE_THRESHOLDS"].lower() == "true"
        if env.get("RATE_THRESHOLD") is not None:
            values["enforce_rate_threshold"] = env["RATE_THRESHOLD"].lower() == "true"

        # A token exported for the static variant selects static auth
        if "auth_mode" not in values and "static_token" in values:
            values["auth_mode"] = AuthMode.STATIC

        values.update(overrides)
        return load_config(**values)


def load_config(**values: Any) -> SoakTestConfig:
    """Validate configuration values, converting failures to ConfigurationError."""
    try:
        return SoakTestConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid soak test configuration: {e}") from e
