"""Provider configuration with validation.

The reconciliation driver depends on two timing constants: the delay the
orchestrator waits between polls, and the total time the driver is willing
to wait for a resource to converge. Both are configuration, not logic, and
the retry budget carried in the continuation token is derived from them.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from .progress import CallbackContext


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_REGION = "us-west-2"  # Global Accelerator control plane lives here
DEFAULT_CALLBACK_DELAY_SECONDS = 1
MIN_CALLBACK_DELAY_SECONDS = 1
MAX_CALLBACK_DELAY_SECONDS = 60

DEFAULT_MAX_WAIT_SECONDS = 60 * 60 * 4  # 4 hours
MIN_MAX_WAIT_SECONDS = 1
MAX_MAX_WAIT_SECONDS = 60 * 60 * 24

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Input validation patterns
VALID_REGION_PATTERN = r"^[a-z]{2}(-[a-z]+)+-\d$"
VALID_ENDPOINT_URL_PATTERN = r"^https?://\S+$"


@dataclass(frozen=True)
class ProviderConfig:
    """Provider configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-operation.
    """

    region: str = DEFAULT_REGION
    endpoint_url: str | None = None

    # Timing
    callback_delay_seconds: int = DEFAULT_CALLBACK_DELAY_SECONDS
    max_wait_seconds: int = DEFAULT_MAX_WAIT_SECONDS

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.region:
            errors.append("AGA_REGION is required")
        elif not re.match(VALID_REGION_PATTERN, self.region):
            errors.append(f"AGA_REGION must be a valid AWS region: {self.region}")

        if self.endpoint_url is not None and not re.match(
            VALID_ENDPOINT_URL_PATTERN, self.endpoint_url
        ):
            errors.append(f"AGA_ENDPOINT_URL must be an http(s) URL: {self.endpoint_url}")

        if not (
            MIN_CALLBACK_DELAY_SECONDS
            <= self.callback_delay_seconds
            <= MAX_CALLBACK_DELAY_SECONDS
        ):
            errors.append(
                f"AGA_CALLBACK_DELAY_SECONDS must be between {MIN_CALLBACK_DELAY_SECONDS} "
                f"and {MAX_CALLBACK_DELAY_SECONDS} seconds"
            )

        if not (MIN_MAX_WAIT_SECONDS <= self.max_wait_seconds <= MAX_MAX_WAIT_SECONDS):
            errors.append(
                f"AGA_MAX_WAIT_SECONDS must be between {MIN_MAX_WAIT_SECONDS} "
                f"and {MAX_MAX_WAIT_SECONDS} seconds"
            )
        elif self.max_wait_seconds < self.callback_delay_seconds:
            errors.append("AGA_MAX_WAIT_SECONDS must not be shorter than one callback delay")

        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(
                f"AGA_LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}"
            )

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def stabilization_retries(self) -> int:
        """Number of polls allowed before an operation is declared stuck."""
        return self.max_wait_seconds // self.callback_delay_seconds

    def initial_context(self, pending_stabilization: bool = False) -> CallbackContext:
        """Create a continuation token carrying a full retry budget."""
        return CallbackContext(
            stabilization_retries_remaining=self.stabilization_retries,
            pending_stabilization=pending_stabilization,
        )

    @classmethod
    def from_env(cls) -> ProviderConfig:
        """Load configuration from environment variables.

        Environment Variables:
            AGA_REGION: Region of the Global Accelerator API (default: us-west-2)
            AGA_ENDPOINT_URL: Override endpoint, e.g. for a local emulator
            AGA_CALLBACK_DELAY_SECONDS: Delay between stabilization polls (default: 1)
            AGA_MAX_WAIT_SECONDS: Total stabilization budget (default: 14400)
            AGA_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR (default: INFO)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        return cls(
            region=os.environ.get("AGA_REGION", DEFAULT_REGION),
            endpoint_url=os.environ.get("AGA_ENDPOINT_URL") or None,
            callback_delay_seconds=get_int(
                "AGA_CALLBACK_DELAY_SECONDS", DEFAULT_CALLBACK_DELAY_SECONDS
            ),
            max_wait_seconds=get_int("AGA_MAX_WAIT_SECONDS", DEFAULT_MAX_WAIT_SECONDS),
            log_level=os.environ.get("AGA_LOG_LEVEL", "INFO").upper(),
        )
