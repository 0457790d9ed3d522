# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_cas_store

import os
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the CAS ticket store.
    Uses environment variables with CAS_STORE_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAS_STORE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Backend
    cache_backend: Literal["memory", "redis"] = "memory"
    redis_socket_timeout: float = 5.0
    memory_max_size: int = 10000

    # Keys and expiry
    key_namespace: Optional[str] = None
    session_ttl_seconds: int = 7200
    pgt_iou_ttl_seconds: int = 300
    verify_reverse_pointers: bool = False

    log_level: str = "INFO"

    # Secrets
    redis_url: Optional[SecretStr] = Field(default=None, validate_default=True)

    @field_validator("redis_url", mode="before")
    @classmethod
    def check_redis_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return os.getenv("REDIS_URL")
        return v

    @field_validator("session_ttl_seconds", "pgt_iou_ttl_seconds")
    @classmethod
    def check_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("TTL must be a positive number of seconds")
        return v

    def validate_backend(self) -> None:
        """
        Explicitly validate that the selected backend can be built.
        """
        if self.cache_backend == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL is missing. It is required when cache_backend='redis'.")
