"""Application configuration loader.

Loads centralized configuration from data/config/progression_v1.yaml,
falling back to built-in defaults when the file is absent.

Usage:
    from progression.config.app_config import load_app_config

    config = load_app_config()
    db_path = config.database.path
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from progression.core.policy import (
    PLACEMENT_PASS_RATE,
    PlacementPolicy,
    UngradedPolicy,
)

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/progression_v1.yaml")


@dataclass
class DatabaseConfig:
    """SQLite settings."""

    path: str = "db/progression.db"
    busy_timeout_seconds: float = 10.0


@dataclass
class PolicyConfig:
    """Grading and unlock policy switches."""

    placement_policy: PlacementPolicy = PlacementPolicy.ANY_CORRECT
    placement_pass_rate: float = PLACEMENT_PASS_RATE
    ungraded_policy: UngradedPolicy = UngradedPolicy.COUNT_AS_COMPLETE


@dataclass
class ClientConfig:
    """Settings for the HTTP client used by practice front-ends."""

    base_url: str = "http://localhost:8000"
    timeout_seconds: float = 15.0


@dataclass
class ApiConfig:
    """Web API settings."""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class AppConfig:
    """Application-wide configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "database": {
            "path": "db/progression.db",
            "busy_timeout_seconds": 10.0,
        },
        "policy": {
            "placement_policy": PlacementPolicy.ANY_CORRECT.value,
            "placement_pass_rate": PLACEMENT_PASS_RATE,
            "ungraded_policy": UngradedPolicy.COUNT_AS_COMPLETE.value,
        },
        "client": {
            "base_url": "http://localhost:8000",
            "timeout_seconds": 15.0,
        },
        "api": {
            "cors_origins": ["*"],
        },
    }


def _parse_enum(enum_cls: type, value: Any, default: Any) -> Any:
    """Parse an enum value, falling back to default on unknown input."""
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(
            "config_invalid_value",
            setting=enum_cls.__name__,
            value=value,
            fallback=default.value,
        )
        return default


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    db_data = data.get("database") or {}
    database = DatabaseConfig(
        path=str(db_data.get("path", "db/progression.db")),
        busy_timeout_seconds=float(db_data.get("busy_timeout_seconds", 10.0)),
    )

    policy_data = data.get("policy") or {}
    pass_rate = float(policy_data.get("placement_pass_rate", PLACEMENT_PASS_RATE))
    policy = PolicyConfig(
        placement_policy=_parse_enum(
            PlacementPolicy,
            policy_data.get("placement_policy"),
            PlacementPolicy.ANY_CORRECT,
        ),
        placement_pass_rate=max(0.0, min(1.0, pass_rate)),
        ungraded_policy=_parse_enum(
            UngradedPolicy,
            policy_data.get("ungraded_policy"),
            UngradedPolicy.COUNT_AS_COMPLETE,
        ),
    )

    client_data = data.get("client") or {}
    client = ClientConfig(
        base_url=str(client_data.get("base_url", "http://localhost:8000")),
        timeout_seconds=float(client_data.get("timeout_seconds", 15.0)),
    )

    api_data = data.get("api") or {}
    api = ApiConfig(cors_origins=list(api_data.get("cors_origins", ["*"])))

    return AppConfig(database=database, policy=policy, client=client, api=api)


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, using defaults when no file exists.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
