"""Configuration for modbamcp, loaded from environment variables."""

import logging
import os
from dataclasses import dataclass

from .constants import (
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PEEK_RECORD_LIMIT,
    DEFAULT_PORT,
    DEFAULT_TRANSPORT,
)


@dataclass
class ModBamConfig:
    """Runtime configuration loaded from environment variables."""

    # Execution settings
    max_workers: int = DEFAULT_MAX_WORKERS
    peek_record_limit: int = DEFAULT_PEEK_RECORD_LIMIT

    # Transport settings
    transport: str = DEFAULT_TRANSPORT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        """Validate config values."""
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

        if self.peek_record_limit < 1:
            raise ValueError(
                f"peek_record_limit must be at least 1, got {self.peek_record_limit}"
            )

        valid_transports = ("stdio", "sse", "streamable-http")
        if self.transport not in valid_transports:
            raise ValueError(f"transport must be one of {valid_transports}, got '{self.transport}'")

        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")

        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"log_level must be a logging level name, got '{self.log_level}'")

    @classmethod
    def from_env(cls) -> "ModBamConfig":
        """Create config from environment variables."""
        env = os.environ

        return cls(
            max_workers=int(env.get("MODBAMCP_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))),
            peek_record_limit=int(
                env.get("MODBAMCP_PEEK_RECORD_LIMIT", str(DEFAULT_PEEK_RECORD_LIMIT))
            ),
            transport=env.get("MODBAMCP_TRANSPORT", DEFAULT_TRANSPORT),
            host=env.get("MODBAMCP_HOST", DEFAULT_HOST),
            port=int(env.get("MODBAMCP_PORT", str(DEFAULT_PORT))),
            log_level=env.get("MODBAMCP_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
