"""
Configuration management using Dynaconf with comprehensive validation.
"""

import re

from dynaconf import Dynaconf, Validator

AUTHORIZATION_STRATEGIES = ("explicit", "registered_events")
QR_PAYLOAD_FORMATS = ("plain", "json", "labeled")
ROUTE_GROUPS = ("directory", "maintenance", "scan", "checkin")


def validate_database_url(value: str) -> bool:
    """Validate database URL format."""
    if not value:
        return False

    # Async SQLAlchemy drivers only
    patterns = [
        r"^sqlite\+aiosqlite:///.*(\.db|:memory:)$",  # SQLite
        r"^postgresql\+asyncpg://.*",  # PostgreSQL
        r"^mysql\+aiomysql://.*",  # MySQL
    ]

    return any(re.match(pattern, value) for pattern in patterns)


def validate_url_list(value: list) -> bool:
    """Validate list of URLs."""
    if not isinstance(value, list):
        return False

    url_pattern = r"^https?://.*|^\*$"  # Allow * for development
    return all(re.match(url_pattern, str(url)) for url in value)


def validate_port(value: int) -> bool:
    """Validate port number."""
    return isinstance(value, int) and 1 <= value <= 65535


def validate_route_groups(value: list) -> bool:
    """Validate the list of API-key protected route groups."""
    if not isinstance(value, list):
        return False
    return all(group in ROUTE_GROUPS for group in value)


# Core application validators
core_validators = [
    # Database configuration
    Validator(
        "DATABASE_URL",
        default="sqlite+aiosqlite:///./qrcheckin.db",
        condition=validate_database_url,
        messages={"condition": "DATABASE_URL must be a valid async SQLAlchemy URL"},
    ),
    Validator("DATABASE_ECHO", default=False, is_type_of=bool),
    Validator("POOL_SIZE", default=5, is_type_of=int, gte=1, lte=100),
    Validator("POOL_TIMEOUT", default=30, is_type_of=int, gte=1),
    Validator("STATEMENT_TIMEOUT_MS", default=15000, is_type_of=int, gte=0),
    Validator("LOCK_TIMEOUT_MS", default=5000, is_type_of=int, gte=0),
    Validator("SHUTDOWN_DRAIN_SECONDS", default=10, is_type_of=int, gte=0),
    # Server settings
    Validator("DEBUG", default=False, is_type_of=bool),
    Validator("HOST", default="127.0.0.1", is_type_of=str),
    Validator(
        "PORT",
        default=5001,
        is_type_of=int,
        condition=validate_port,
        messages={"condition": "PORT must be between 1 and 65535"},
    ),
    # CORS settings
    Validator(
        "ALLOWED_ORIGINS",
        default=["*"],
        is_type_of=list,
        condition=validate_url_list,
        messages={"condition": "ALLOWED_ORIGINS must be a list of valid URLs"},
    ),
    # Logging
    Validator("LOG_LEVEL", default="INFO", is_type_of=str),
    Validator("LOG_DIR", default="", is_type_of=str),
]

# Check-in specific validators
checkin_validators = [
    # Empty API key means open access
    Validator("API_KEY", default=""),
    Validator(
        "API_KEY_ROUTE_GROUPS",
        default=["maintenance", "checkin"],
        condition=validate_route_groups,
        messages={
            "condition": f"API_KEY_ROUTE_GROUPS entries must be one of {ROUTE_GROUPS}"
        },
    ),
    Validator(
        "AUTHORIZATION_STRATEGY",
        default="explicit",
        is_in=AUTHORIZATION_STRATEGIES,
    ),
    Validator("EVENT_ALIASES", default={}, is_type_of=dict),
    Validator("QR_PAYLOAD_FORMAT", default="plain", is_in=QR_PAYLOAD_FORMATS),
    Validator("DEFAULT_PAGE_SIZE", default=1000, is_type_of=int, gte=1),
    Validator("MAX_PAGE_SIZE", default=5000, is_type_of=int, gte=1),
]

all_validators = core_validators + checkin_validators

settings = Dynaconf(
    envvar_prefix="QRCHECKIN",
    env_switcher="QRCHECKIN_ENV",
    settings_files=["settings.toml", ".secrets.toml"],
    environments=True,
    load_dotenv=True,
    validators=all_validators,
)


def get_api_key() -> str:
    """Return the configured API key, or an empty string for open access."""
    value = settings.get("API_KEY")
    if value is None:
        return ""
    # Dynaconf parses numeric env values, keys are always compared as text
    return str(value).strip()
