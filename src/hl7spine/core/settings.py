"""Centralized settings for hl7spine.

All fields can be set through ``HL7SPINE_*`` environment variables (e.g.
``HL7SPINE_IGNORE_MISSING_NONLOCAL_PATIENTS=true``) or a ``.env`` file.

Tags:
    settings, configuration, pydantic, environment, hl7spine
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_SOURCE_NAME = "local"


class Hl7SpineSettings(BaseSettings):
    """hl7spine configuration.

    Fields
    ──────
    database_url                      : SQLAlchemy URL of the queue/clinical database
    ignore_missing_nonlocal_patients  : Drop "patient not resolvable" failures from
                                        non-local sources instead of recording them
    error_detail_max_length           : Upper bound on stored failure detail
    poll_interval_seconds / batch_size: Queue poller cadence
    upload_source_name                : Source assigned to uploaded/submitted files
    """

    model_config = SettingsConfigDict(
        env_prefix="HL7SPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/hl7spine.db")
    database_echo: bool = Field(default=False)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto", description="json | console | auto")

    # ── Processing ───────────────────────────────────────────────
    ignore_missing_nonlocal_patients: bool = Field(default=False)
    error_detail_max_length: int = Field(default=8000, ge=200)
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    batch_size: int = Field(default=50, ge=1)
    upload_source_name: str = Field(default=LOCAL_SOURCE_NAME)

    # ── API ──────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=12100)
    api_prefix: str = Field(default="/api/v1")

    @property
    def json_logs(self) -> bool | None:
        """Map ``log_format`` to the ``json_format`` argument of configure_logging."""
        if self.log_format == "json":
            return True
        if self.log_format == "console":
            return False
        return None


@lru_cache(maxsize=1)
def get_settings() -> Hl7SpineSettings:
    """Cached settings, loaded once per process."""
    return Hl7SpineSettings()


__all__ = ["Hl7SpineSettings", "LOCAL_SOURCE_NAME", "get_settings"]
