from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from subagent.constants import (
    CHAT_LAUNCH_DELAY_S,
    DEFAULT_LOCK_NAME,
    READ_ATTEMPTS,
    READ_RETRY_DELAY_S,
    READY_POLL_INTERVAL_S,
    READY_TIMEOUT_S,
    RESPONSE_POLL_INTERVAL_S,
)


class TimingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    ready_timeout_s: float = Field(default=READY_TIMEOUT_S, gt=0)
    ready_poll_interval_s: float = Field(default=READY_POLL_INTERVAL_S, gt=0)
    response_poll_interval_s: float = Field(default=RESPONSE_POLL_INTERVAL_S, gt=0)
    read_attempts: int = Field(default=READ_ATTEMPTS, ge=1)
    read_retry_delay_s: float = Field(default=READ_RETRY_DELAY_S, ge=0)
    chat_launch_delay_s: float = Field(default=CHAT_LAUNCH_DELAY_S, ge=0)


class SubagentConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_to_file: bool = False
    subagent_root: Optional[str] = None  # pool root for `code`
    insiders_root: Optional[str] = None  # pool root for `code-insiders`
    templates_dir: Optional[str] = None
    lock_name: str = DEFAULT_LOCK_NAME
    timing: TimingConfig = TimingConfig()

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("lock_name")
    @classmethod
    def validate_lock_name(cls, v: str) -> str:
        """Lock markers live directly inside the slot directory."""
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"Invalid lock_name: {v!r}. Expected a plain file name")
        return v
