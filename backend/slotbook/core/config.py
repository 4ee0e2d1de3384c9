# backend/slotbook/core/config.py
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .enums import SlotStepKind

if TYPE_CHECKING:
    from ..domain.slot_generation import SlotStepPolicy


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    database_url: str = Field(
        default="sqlite:///./slotbook.db",
        description="SQLAlchemy URL for the authoritative store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements to the log")
    log_level: str = Field(default="INFO", description="Root log level")

    # Read-model projection
    slot_step_policy: SlotStepKind = Field(
        default=SlotStepKind.FIXED_GRID,
        description="Step policy for bookable start times (fixed_grid or service_duration)",
    )
    slot_grid_minutes: int = Field(default=15, description="Grid step when policy is fixed_grid")
    past_read_model_retention_days: int = Field(
        default=0,
        description="Days of past bookable-slot and schedule rows kept by purge jobs",
    )

    # Alternative slot search
    alternative_search_days: int = Field(
        default=7, description="How many future days to search for alternatives"
    )
    max_alternative_slots: int = Field(
        default=5, description="Alternatives attached to a conflict response"
    )

    # Monitoring
    slow_operation_threshold_seconds: float = Field(
        default=1.0, description="Service operations slower than this log a warning"
    )

    # Display placeholders when a directory lookup yields nothing
    placeholder_staff_name: str = "Staff Member"
    placeholder_service_name: str = "Service"
    placeholder_business_name: str = "Business"
    placeholder_client_name: str = "Client"

    model_config = SettingsConfigDict(
        env_prefix="SLOTBOOK_",
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("slot_step_policy", mode="before")
    @classmethod
    def _normalize_step_policy(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            if normalized not in {kind.value for kind in SlotStepKind}:
                raise ValueError(
                    "slot_step_policy must be one of: "
                    + ", ".join(kind.value for kind in SlotStepKind)
                )
            return normalized
        return value

    @field_validator("slot_grid_minutes", "max_alternative_slots")
    @classmethod
    def _require_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("alternative_search_days", "past_read_model_retention_days")
    @classmethod
    def _require_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    def slot_step(self) -> "SlotStepPolicy":
        """The single step policy injected into slot generation."""
        from ..domain.slot_generation import SlotStepPolicy

        return SlotStepPolicy(self.slot_step_policy, self.slot_grid_minutes)


settings = Settings()
logger.debug(
    "[CONFIG] environment=%s slot_step_policy=%s grid=%s",
    settings.environment,
    settings.slot_step_policy.value,
    settings.slot_grid_minutes,
)
