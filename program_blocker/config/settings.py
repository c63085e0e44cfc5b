"""Configuration management using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from program_blocker.domain.validators import OwnerGroupValidator, normalize_extension


class RuleSettings(BaseSettings):
    """Firewall rule store settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROGRAM_BLOCKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields
    )

    owner_group: str = Field(
        default="PS-SetProgramRule",
        description="Group tag marking rules created by this tool",
    )
    executable_extensions: list[str] = Field(
        default_factory=lambda: [".exe"],
        description="File extensions treated as executables",
    )
    store_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for each rule store call"
    )
    powershell_executable: str = Field(
        default="powershell.exe", description="PowerShell executable used to reach the store"
    )
    unblock_any_group: bool = Field(
        default=False, description="Unblock removes matching rules from every group"
    )
    fail_open_on_query_error: bool = Field(
        default=False, description="Treat a failed rule query as 'no rules found'"
    )

    @field_validator("owner_group")
    @classmethod
    def _check_owner_group(cls, value: str) -> str:
        if not OwnerGroupValidator.is_valid(value):
            raise ValueError(f"Invalid owner group tag: {value!r}")
        return value

    @field_validator("executable_extensions")
    @classmethod
    def _check_extensions(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("At least one executable extension is required")
        return [normalize_extension(ext) for ext in value]


class ApplicationSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROGRAM_BLOCKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields
    )

    progress_enabled: bool = Field(default=True, description="Show progress bar")
    verbose: bool = Field(default=False, description="Verbose output")
    log_level: str = Field(default="WARNING", description="Root log level")
    report_sink: Literal["console", "log"] = Field(
        default="console", description="Where outcome lines are written"
    )


@lru_cache
def get_settings() -> tuple[ApplicationSettings, RuleSettings]:
    """
    Get application and rule settings.

    Returns:
        Tuple of (ApplicationSettings, RuleSettings)
    """
    return ApplicationSettings(), RuleSettings()
