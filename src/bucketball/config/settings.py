"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    directory = _find_config_dir(config_dir)
    default_path = directory / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = directory / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        storage: dict[str, Any] | None = None,
        game: dict[str, Any] | None = None,
        sweeper: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.storage = storage or {}
        self.game = game or {}
        self.sweeper = sweeper or {}
        self.api = api or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            storage=raw.get("storage"),
            game=raw.get("game"),
            sweeper=raw.get("sweeper"),
            api=raw.get("api"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/bucketball.duckdb")

    @property
    def initial_house_balance(self) -> float:
        return float(self.game.get("initial_house_balance", 1000.0))

    @property
    def exposure_cap_ratio(self) -> float:
        return float(self.game.get("exposure_cap_ratio", 0.20))

    @property
    def admin_skim_min(self) -> float:
        return float(self.game.get("admin_skim_min", 0.02))

    @property
    def admin_skim_max(self) -> float:
        return float(self.game.get("admin_skim_max", 0.04))

    @property
    def max_bet_per_ball(self) -> float:
        return float(self.game.get("max_bet_per_ball", 1000.0))

    @property
    def min_total_bet(self) -> float:
        return float(self.game.get("min_total_bet", 10.0))

    @property
    def max_total_bet(self) -> float:
        return float(self.game.get("max_total_bet", 5000.0))

    @property
    def max_balls_per_bet(self) -> int:
        return int(self.game.get("max_balls_per_bet", 4))

    @property
    def stale_round_minutes(self) -> float:
        return float(self.game.get("stale_round_minutes", 30))

    @property
    def history_limit(self) -> int:
        return int(self.game.get("history_limit", 10))

    @property
    def rng_seed(self) -> int | None:
        seed = self.game.get("rng_seed")
        return int(seed) if seed is not None else None

    @property
    def bet_conflict_retries(self) -> int:
        return int(self.storage.get("bet_conflict_retries", 3))

    @property
    def sweep_interval_sec(self) -> float:
        return float(self.sweeper.get("interval_sec", 60.0))

    @property
    def sweeper_enabled(self) -> bool:
        return bool(self.sweeper.get("enabled", True))

    @property
    def api_host(self) -> str:
        return self.api.get("host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return int(self.api.get("port", 8000))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
