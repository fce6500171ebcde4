"""
Pydantic-based configuration models for the flight relay server.

Every section is a BaseSettings with its own environment prefix so it can be
constructed and validated on its own; AppConfig aggregates them.
"""

from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(
        default=3000,
        description="Server port; hosting platforms provide it as PORT",
        validation_alias=AliasChoices("SERVER_PORT", "PORT"),
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class RelayConfig(BaseSettings):
    """Connection registry, broadcast and liveness settings."""

    sweep_interval: float = Field(default=10.0, description="Seconds between liveness sweeps")
    stale_timeout: float = Field(
        default=30.0, description="Seconds without a position update before a client is evicted"
    )
    max_message_size: int = Field(default=64 * 1024, description="Maximum inbound payload size in bytes")
    send_queue_size: int = Field(default=256, description="Pending outbound messages allowed per channel")

    @field_validator("sweep_interval", "stale_timeout", "max_message_size", "send_queue_size")
    @classmethod
    def validate_positive(cls, v: Any) -> Any:
        """Validate value is positive."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @model_validator(mode="after")
    def validate_timeout_exceeds_interval(self) -> "RelayConfig":
        """Validate stale_timeout exceeds sweep_interval."""
        if self.stale_timeout <= self.sweep_interval:
            logger.error(
                "Stale timeout must exceed sweep interval",
                stale_timeout=self.stale_timeout,
                sweep_interval=self.sweep_interval,
            )
            raise ValueError("stale_timeout must be greater than sweep_interval")
        return self

    model_config = {"env_prefix": "RELAY_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="colored", description="Log format")
    disable_logging: bool = Field(default=False, description="Disable all logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human", "colored"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict format consumed by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "disable_logging": self.disable_logging,
        }


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via the get_config() function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Flatten the configuration into a plain dict (used by the logging setup)."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "relay": {
                "sweep_interval": self.relay.sweep_interval,
                "stale_timeout": self.relay.stale_timeout,
                "max_message_size": self.relay.max_message_size,
                "send_queue_size": self.relay.send_queue_size,
            },
            "logging": self.logging.to_legacy_dict(),
        }
