"""Lock policy and store connection settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from fleetlock.core.store_redis import DEFAULT_REDIS_URL
from fleetlock.utils.env import get_float_env, get_int_env, get_str_env


class RedisSettings(BaseModel):
    url: str = Field(default_factory=lambda: os.getenv("REDIS_URL", DEFAULT_REDIS_URL))
    password: Optional[str] = None
    socket_timeout: Optional[float] = Field(default=None, gt=0)


class LockSettings(BaseModel):
    """Lease duration, retry policy and backend wiring for a ``LockManager``."""

    lock_timeout_seconds: float = Field(default=30, gt=0)
    max_retries: int = Field(default=3, ge=1)
    retry_interval_millis: int = Field(default=100, ge=0)
    key_prefix: str = ""
    redis: RedisSettings = Field(default_factory=RedisSettings)

    @property
    def lock_timeout_ms(self) -> int:
        return max(1, int(self.lock_timeout_seconds * 1000))

    @property
    def retry_interval(self) -> float:
        """Pause between attempts in seconds."""
        return self.retry_interval_millis / 1000.0

    @classmethod
    def from_file(cls, path: Path) -> "LockSettings":
        data = yaml.safe_load(path.read_text()) or {}
        # allow the settings to live under a top-level "lock" section
        if isinstance(data, dict) and isinstance(data.get("lock"), dict):
            data = data["lock"]
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid lock settings: {exc}") from exc

    @classmethod
    def from_env(cls) -> "LockSettings":
        data: Dict[str, Any] = {}
        timeout = get_float_env("FLEETLOCK_LOCK_TIMEOUT_SECONDS")
        if timeout is not None:
            data["lock_timeout_seconds"] = timeout
        retries = get_int_env("FLEETLOCK_MAX_RETRIES")
        if retries is not None:
            data["max_retries"] = retries
        interval = get_int_env("FLEETLOCK_RETRY_INTERVAL_MILLIS")
        if interval is not None:
            data["retry_interval_millis"] = interval
        prefix = os.getenv("FLEETLOCK_KEY_PREFIX")
        if prefix is not None:
            data["key_prefix"] = prefix.strip()
        redis: Dict[str, Any] = {}
        url = get_str_env("REDIS_URL")
        if url:
            redis["url"] = url
        password = get_str_env("REDIS_PASSWORD")
        if password:
            redis["password"] = password
        if redis:
            data["redis"] = redis
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid lock settings: {exc}") from exc
