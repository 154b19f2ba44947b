"""Runtime settings for the Bidhouse service.

Values come from the JSON configuration file (``config.json`` or the path
in ``BIDHOUSE_CONFIG``); every key is optional.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bidhouse.infrastructure.db.config import (get_default_timeout,
                                               get_path_config, load_config)

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
)


@dataclass(frozen=True)
class BiddingSettings:
    db_path: Path
    db_timeout_seconds: float = 30.0
    max_conflict_retries: int = 3
    notification_max_attempts: int = 5
    notification_retry_backoff_seconds: float = 0.1
    broadcast_send_timeout_seconds: float = 5.0
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)
    tracing_enabled: bool = False
    tracing_service_name: str = "bidhouse-api"
    tracing_endpoint: str | None = None
    tracing_sample_rate: float = 1.0


def _number(section: dict[str, Any], key: str, default: float, cast=float):
    try:
        return cast(section.get(key, default))
    except (TypeError, ValueError):
        return default


def _section(cfg: dict[str, Any], name: str) -> dict[str, Any]:
    value = cfg.get(name, {})
    return value if isinstance(value, dict) else {}


def get_bidding_settings(config_path: Path | str | None = None) -> BiddingSettings:
    """Build :class:`BiddingSettings` from configuration with defaults."""
    cfg = load_config(config_path)
    bidding = _section(cfg, "bidding")
    notifications = _section(cfg, "notifications")
    broadcast = _section(cfg, "broadcast")
    api = _section(cfg, "api")
    tracing = _section(cfg, "tracing")
    origins = api.get("cors_origins")
    return BiddingSettings(
        db_path=get_path_config(config_path)["db_path"],
        db_timeout_seconds=get_default_timeout(config_path),
        max_conflict_retries=_number(bidding, "max_conflict_retries", 3, int),
        notification_max_attempts=_number(notifications, "max_attempts", 5, int),
        notification_retry_backoff_seconds=_number(
            notifications, "retry_backoff_seconds", 0.1
        ),
        broadcast_send_timeout_seconds=_number(broadcast, "send_timeout_seconds", 5.0),
        cors_origins=(
            tuple(str(o) for o in origins)
            if isinstance(origins, list)
            else DEFAULT_CORS_ORIGINS
        ),
        tracing_enabled=tracing.get("enabled") is True,
        tracing_service_name=str(tracing.get("service_name") or "bidhouse-api"),
        tracing_endpoint=tracing.get("endpoint") or None,
        tracing_sample_rate=_number(tracing, "sample_rate", 1.0),
    )


__all__ = ["BiddingSettings", "DEFAULT_CORS_ORIGINS", "get_bidding_settings"]
