"""Profile-based configuration loader for the tasting log."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Sequence

import yaml

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./icecream.db"
DEFAULT_API_BASE_URL = "http://localhost:8000"
DEFAULT_API_TIMEOUT_SECONDS = 10.0
DEFAULT_CACHE_DIRECTORY = ".gelato_cache"
DEFAULT_PRIMARY_SHOP = "Joelato"
DEFAULT_SECONDARY_SHOP = "Mary's Milk Bar"
DEFAULT_SHOP_OPTIONS: Sequence[str] = (
    DEFAULT_PRIMARY_SHOP,
    DEFAULT_SECONDARY_SHOP,
    "Other",
)
DEFAULT_ANALYTICS: dict[str, Any] = {
    "top_flavour_limit": 10,
    "recent_window_days": 7,
    "trend_months": 6,
}
DEFAULT_PROFILE_DICT: dict[str, Any] = {
    "environment": DEFAULT_ENVIRONMENT,
    "database": {"url": DEFAULT_DATABASE_URL},
    "api": {
        "base_url": DEFAULT_API_BASE_URL,
        "timeout_seconds": DEFAULT_API_TIMEOUT_SECONDS,
    },
    "cache": {"directory": DEFAULT_CACHE_DIRECTORY},
    "shops": {
        "primary": DEFAULT_PRIMARY_SHOP,
        "secondary": DEFAULT_SECONDARY_SHOP,
        "default": DEFAULT_PRIMARY_SHOP,
        "options": list(DEFAULT_SHOP_OPTIONS),
    },
    "analytics": dict(DEFAULT_ANALYTICS),
    "logging": {"level": "INFO"},
}
CONFIG_PROFILE_ENV = "GELATO_CONFIG_PROFILE"
CONFIG_DIR_ENV = "GELATO_CONFIG_DIR"
DATABASE_URL_ENV = "DATABASE_URL"
ADMIN_PASSWORD_ENV = "ADMIN_PASSWORD"
API_BASE_URL_ENV = "GELATO_API_BASE_URL"
DEFAULT_PROFILE = "dev"
DEFAULT_CONFIG_ROOT = Path(__file__).resolve().parents[2] / "config" / "profiles"
CONFIG_EXTENSIONS = (".yaml", ".yml")


@dataclass
class ApiConfig:
    base_url: str = DEFAULT_API_BASE_URL
    timeout_seconds: float = DEFAULT_API_TIMEOUT_SECONDS


@dataclass
class CacheConfig:
    directory: str = DEFAULT_CACHE_DIRECTORY


@dataclass
class ShopConfig:
    primary: str = DEFAULT_PRIMARY_SHOP
    secondary: str = DEFAULT_SECONDARY_SHOP
    default: str = DEFAULT_PRIMARY_SHOP
    options: List[str] = field(default_factory=lambda: list(DEFAULT_SHOP_OPTIONS))


@dataclass
class AnalyticsConfig:
    top_flavour_limit: int = DEFAULT_ANALYTICS["top_flavour_limit"]
    recent_window_days: int = DEFAULT_ANALYTICS["recent_window_days"]
    trend_months: int = DEFAULT_ANALYTICS["trend_months"]


@dataclass
class Settings:
    environment: str = DEFAULT_ENVIRONMENT
    database_url: str = DEFAULT_DATABASE_URL
    admin_password: str | None = None
    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    shops: ShopConfig = field(default_factory=ShopConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    logging: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def cache_directory(self) -> Path:
        return Path(self.cache.directory).expanduser()


def load_settings(
    profile: str | None = None, config_dir: str | Path | None = None
) -> Settings:
    """Load settings from the requested profile or fall back to defaults."""

    profile_name = profile or os.getenv(CONFIG_PROFILE_ENV, DEFAULT_PROFILE)
    config_root = Path(
        config_dir or os.getenv(CONFIG_DIR_ENV, DEFAULT_CONFIG_ROOT)
    ).expanduser()
    config_data = _load_profile_dict(profile_name, config_root)
    if not config_data:
        config_data = copy.deepcopy(DEFAULT_PROFILE_DICT)

    database_cfg = config_data.get("database") or {}
    database_url = os.getenv(
        DATABASE_URL_ENV, database_cfg.get("url", DEFAULT_DATABASE_URL)
    )
    # An empty ADMIN_PASSWORD is treated as unset.
    admin_password = os.getenv(ADMIN_PASSWORD_ENV) or None

    return Settings(
        environment=config_data.get("environment", DEFAULT_ENVIRONMENT),
        database_url=database_url,
        admin_password=admin_password,
        api=_build_api_config(config_data.get("api")),
        cache=CacheConfig(
            directory=str(
                (config_data.get("cache") or {}).get(
                    "directory", DEFAULT_CACHE_DIRECTORY
                )
            )
        ),
        shops=_build_shop_config(config_data.get("shops")),
        analytics=_build_analytics_config(config_data.get("analytics")),
        logging=config_data.get("logging") or {},
        raw=config_data,
    )


def _load_profile_dict(profile_name: str, config_root: Path) -> dict[str, Any]:
    """Load the YAML profile if available, otherwise return an empty dict."""

    if not config_root.exists():
        return {}

    for extension in CONFIG_EXTENSIONS:
        candidate = config_root / f"{profile_name}{extension}"
        if not candidate.exists():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise RuntimeError(
                f"Failed to parse config profile {candidate}: {exc}"
            ) from exc
        if not isinstance(loaded, dict):
            raise RuntimeError(
                f"Config profile {candidate} must be a mapping at the root"
            )
        return loaded

    return {}


def _build_api_config(api_cfg: dict[str, Any] | None) -> ApiConfig:
    api_cfg = api_cfg or {}
    base_url = os.getenv(
        API_BASE_URL_ENV, str(api_cfg.get("base_url", DEFAULT_API_BASE_URL))
    )
    return ApiConfig(
        base_url=base_url.rstrip("/"),
        timeout_seconds=float(
            api_cfg.get("timeout_seconds", DEFAULT_API_TIMEOUT_SECONDS)
        ),
    )


def _build_shop_config(shops_cfg: dict[str, Any] | None) -> ShopConfig:
    shops_cfg = shops_cfg or {}
    primary = str(shops_cfg.get("primary", DEFAULT_PRIMARY_SHOP))
    secondary = str(shops_cfg.get("secondary", DEFAULT_SECONDARY_SHOP))
    options = [str(option) for option in shops_cfg.get("options") or []]
    if not options:
        options = list(DEFAULT_SHOP_OPTIONS)
    return ShopConfig(
        primary=primary,
        secondary=secondary,
        default=str(shops_cfg.get("default", primary)),
        options=options,
    )


def _build_analytics_config(
    analytics_cfg: dict[str, Any] | None,
) -> AnalyticsConfig:
    analytics_cfg = analytics_cfg or {}
    return AnalyticsConfig(
        top_flavour_limit=int(
            analytics_cfg.get(
                "top_flavour_limit", DEFAULT_ANALYTICS["top_flavour_limit"]
            )
        ),
        recent_window_days=int(
            analytics_cfg.get(
                "recent_window_days", DEFAULT_ANALYTICS["recent_window_days"]
            )
        ),
        trend_months=int(
            analytics_cfg.get("trend_months", DEFAULT_ANALYTICS["trend_months"])
        ),
    )
