"""
Settings validation and health check utilities.

Validates the check-in service configuration with detailed error reporting
and security warnings for open-access deployments.
"""

from typing import Any

from dynaconf import ValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from qrcheckin.config import (
    AUTHORIZATION_STRATEGIES,
    QR_PAYLOAD_FORMATS,
    ROUTE_GROUPS,
    get_api_key,
    settings,
)

MIN_API_KEY_LENGTH = 16


class SettingsHealthCheck:
    """Settings validation and health checking."""

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.info: list[str] = []

    def validate_all(self) -> dict[str, Any]:
        """
        Validate all settings and return comprehensive report.

        Returns:
            Dictionary with validation results, errors, warnings, and info
        """
        self.errors.clear()
        self.warnings.clear()
        self.info.clear()

        try:
            settings.validators.validate()
        except ValidationError as e:
            self.errors.append(str(e))

        self._validate_database_settings()
        self._validate_access_settings()
        self._validate_checkin_settings()
        self._validate_environment_specific()

        return {
            "valid": len(self.errors) == 0,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
            "summary": self._generate_summary(),
        }

    def _validate_database_settings(self) -> None:
        """Validate database configuration."""
        db_url = settings.get("DATABASE_URL")
        if not db_url:
            self.errors.append("DATABASE_URL is not set")
            return

        try:
            url = make_url(db_url)
        except ArgumentError as e:
            self.errors.append(f"Invalid DATABASE_URL format: {e}")
            return

        if url.drivername not in ("sqlite+aiosqlite", "postgresql+asyncpg", "mysql+aiomysql"):
            self.warnings.append(f"DATABASE_URL uses uncommon driver: {url.drivername}")
        else:
            self.info.append(f"Database configured: {url.drivername}")

        if url.get_backend_name() == "sqlite":
            self.warnings.append(
                "SQLite has no row-level locks; concurrent check-ins rely on the unique constraint"
            )
        elif not url.host:
            self.errors.append("Database URL missing hostname")

        if settings.get("LOCK_TIMEOUT_MS", 5000) == 0:
            self.warnings.append("LOCK_TIMEOUT_MS is 0; lock waits are unbounded")

    def _validate_access_settings(self) -> None:
        """Validate API key gating."""
        api_key = get_api_key()
        groups = settings.get("API_KEY_ROUTE_GROUPS", [])

        unknown = [group for group in groups if group not in ROUTE_GROUPS]
        if unknown:
            self.errors.append(f"Unknown API_KEY_ROUTE_GROUPS: {', '.join(unknown)}")

        if not api_key:
            self.warnings.append("API_KEY not set: all endpoints are open access")
            return

        if len(api_key) < MIN_API_KEY_LENGTH:
            self.warnings.append(
                f"API_KEY is shorter than {MIN_API_KEY_LENGTH} characters"
            )
        if not groups:
            self.warnings.append("API_KEY is set but no route group requires it")
        else:
            self.info.append(f"API key required for: {', '.join(groups)}")

    def _validate_checkin_settings(self) -> None:
        """Validate check-in specific settings."""
        strategy = settings.get("AUTHORIZATION_STRATEGY", "explicit")
        if strategy not in AUTHORIZATION_STRATEGIES:
            self.errors.append(f"Unknown AUTHORIZATION_STRATEGY: {strategy}")
        else:
            self.info.append(f"Authorization strategy: {strategy}")

        payload_format = settings.get("QR_PAYLOAD_FORMAT", "plain")
        if payload_format not in QR_PAYLOAD_FORMATS:
            self.errors.append(f"Unknown QR_PAYLOAD_FORMAT: {payload_format}")

        default_size = settings.get("DEFAULT_PAGE_SIZE", 1000)
        max_size = settings.get("MAX_PAGE_SIZE", 5000)
        if default_size > max_size:
            self.warnings.append(
                f"DEFAULT_PAGE_SIZE ({default_size}) exceeds MAX_PAGE_SIZE ({max_size})"
            )

    def _validate_environment_specific(self) -> None:
        """Validate environment-specific requirements."""
        env = str(settings.current_env).lower()

        if env != "production":
            self.info.append(f"Environment: {env}")
            return

        if settings.get("DEBUG", False):
            self.errors.append("DEBUG must be False in production")
        if settings.get("DATABASE_ECHO", False):
            self.warnings.append("DATABASE_ECHO should be False in production")
        if "*" in settings.get("ALLOWED_ORIGINS", []):
            self.warnings.append("ALLOWED_ORIGINS contains '*' in production")
        if not get_api_key():
            self.warnings.append("Running in production with open access")

    def _generate_summary(self) -> str:
        """Generate validation summary."""
        if self.errors:
            return f"Configuration has {len(self.errors)} error(s) and {len(self.warnings)} warning(s)"
        if self.warnings:
            return f"Configuration has {len(self.warnings)} warning(s) but no errors"
        return f"Configuration is valid ({len(self.info)} checks passed)"


def validate_settings() -> dict[str, Any]:
    """
    Validate all application settings.

    Returns:
        Validation report dictionary
    """
    checker = SettingsHealthCheck()
    return checker.validate_all()
