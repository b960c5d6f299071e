"""
Settings for the novel server.

Every value is resolved from three sources, highest priority first:

    1. ``NOVEL_*`` environment variables
    2. ``config/server.ini`` (or ``config/server.example.ini`` when absent)
    3. Dataclass defaults below

The result is cached in the module-level ``config`` object at import time.

Usage:
    from novel_server.config import config

    print(config.server.port)
    print(config.monetization.author_share_percent)

Environment variables:
    NOVEL_HOST                  -> server.host
    NOVEL_PORT                  -> server.port
    NOVEL_PRODUCTION            -> security.production
    NOVEL_CORS_ORIGINS          -> security.cors_origins
    NOVEL_DB_PATH               -> database.path
    NOVEL_LOG_LEVEL             -> logging.level
    NOVEL_LOG_FORMAT            -> logging.format
    NOVEL_AUTHOR_SHARE_PERCENT  -> monetization.author_share_percent
    NOVEL_MAX_THREAD_DEPTH      -> community.max_thread_depth
    NOVEL_MAX_PAGE_SIZE         -> pagination.max_page_size
"""

import configparser
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

# =============================================================================
# PATHS
# =============================================================================

# Repository root: holds src/, config/ and the default data/ directory.
PROJECT_ROOT = Path(__file__).resolve().parents[2]

CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "server.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "server.example.ini"


# =============================================================================
# SETTINGS GROUPS
# =============================================================================


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"  # nosec B104 - binds every interface inside containers
    port: int = 8000


@dataclass
class SecuritySettings:
    """CORS policy, production flag and API docs exposure."""

    production: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = field(default_factory=lambda: ["*"])
    cors_allow_headers: list[str] = field(default_factory=lambda: ["*"])
    docs_enabled: Literal["auto", "enabled", "disabled"] = "auto"


@dataclass
class DatabaseSettings:
    path: str = "data/novel.db"

    @property
    def absolute_path(self) -> Path:
        """Resolve ``path`` against the project root unless already absolute."""
        candidate = Path(self.path)
        return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class MonetizationSettings:
    """
    Coin economy configuration.

    ``author_share_percent`` is the part of every paid unlock credited to the
    novel's author. The remainder stays with the platform.
    """

    author_share_percent: int = 70


@dataclass
class CommunitySettings:
    # 1 = top-level comments only, 2 = one level of replies.
    max_thread_depth: int = 2


@dataclass
class PaginationSettings:
    max_page_size: int = 100


@dataclass
class ServerConfig:
    """All settings groups, reachable through the ``config`` singleton."""

    server: ServerSettings = field(default_factory=ServerSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    monetization: MonetizationSettings = field(default_factory=MonetizationSettings)
    community: CommunitySettings = field(default_factory=CommunitySettings)
    pagination: PaginationSettings = field(default_factory=PaginationSettings)

    @property
    def is_production(self) -> bool:
        return self.security.production

    @property
    def docs_should_be_enabled(self) -> bool:
        """Explicit ``docs_enabled`` wins; ``auto`` hides docs in production."""
        mode = self.security.docs_enabled
        if mode == "auto":
            return not self.is_production
        return mode == "enabled"


# =============================================================================
# VALUE CONVERTERS
# =============================================================================
#
# Each converter turns a raw string into the typed value, or returns None when
# the raw value should be ignored and the current setting kept.


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "yes", "1", "on", "enabled")


def _parse_list(value: str) -> list[str]:
    """Split a comma-separated value, dropping blanks."""
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def _clamp_percent(value: int) -> int:
    return max(0, min(100, value))


def _one_of(*choices: str) -> Callable[[str], str | None]:
    def convert(value: str) -> str | None:
        lowered = value.strip().lower()
        return lowered if lowered in choices else None

    return convert


def _at_least_one(value: str) -> int:
    return max(1, int(value))


# (section, option, environment variable or None, converter)
_SETTINGS: tuple[tuple[str, str, str | None, Callable[[str], Any]], ...] = (
    ("server", "host", "NOVEL_HOST", str),
    ("server", "port", "NOVEL_PORT", int),
    ("security", "production", "NOVEL_PRODUCTION", _parse_bool),
    ("security", "cors_origins", "NOVEL_CORS_ORIGINS", _parse_list),
    ("security", "cors_allow_credentials", None, _parse_bool),
    ("security", "cors_allow_methods", None, _parse_list),
    ("security", "cors_allow_headers", None, _parse_list),
    ("security", "docs_enabled", None, _one_of("auto", "enabled", "disabled")),
    ("database", "path", "NOVEL_DB_PATH", str),
    ("logging", "level", "NOVEL_LOG_LEVEL", str.upper),
    ("logging", "format", "NOVEL_LOG_FORMAT", _one_of("simple", "detailed", "json")),
    (
        "monetization",
        "author_share_percent",
        "NOVEL_AUTHOR_SHARE_PERCENT",
        lambda v: _clamp_percent(int(v)),
    ),
    ("community", "max_thread_depth", "NOVEL_MAX_THREAD_DEPTH", _at_least_one),
    ("pagination", "max_page_size", "NOVEL_MAX_PAGE_SIZE", _at_least_one),
)


def _assign(cfg: ServerConfig, section: str, option: str, value: Any) -> None:
    if value is not None:
        setattr(getattr(cfg, section), option, value)


def _load_from_ini(parser: configparser.ConfigParser, cfg: ServerConfig) -> None:
    """Copy every recognised ``[section] option`` from ``parser`` into ``cfg``."""
    for section, option, _env, convert in _SETTINGS:
        if parser.has_option(section, option):
            _assign(cfg, section, option, convert(parser.get(section, option)))


def _apply_env_overrides(cfg: ServerConfig) -> None:
    """Overlay non-empty ``NOVEL_*`` environment variables onto ``cfg``."""
    for section, option, env_name, convert in _SETTINGS:
        if env_name and (raw := os.getenv(env_name)):
            _assign(cfg, section, option, convert(raw))


def load_config() -> ServerConfig:
    """
    Build a fresh ``ServerConfig`` from defaults, the INI file and the environment.

    ``config/server.ini`` is preferred; ``config/server.example.ini`` is read
    only when the former does not exist.
    """
    cfg = ServerConfig()

    ini_path = next((p for p in (CONFIG_FILE, CONFIG_EXAMPLE) if p.exists()), None)
    if ini_path is not None:
        parser = configparser.ConfigParser()
        parser.read(ini_path)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)
    return cfg


config = load_config()


# =============================================================================
# DIAGNOSTICS
# =============================================================================


def get_config_status() -> dict:
    """Where settings came from, plus the values operators ask about most."""
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "production_mode": config.is_production,
        "docs_enabled": config.docs_should_be_enabled,
        "author_share_percent": config.monetization.author_share_percent,
    }


def print_config_summary() -> None:
    status = get_config_status()
    rule = "=" * 60
    lines = [
        "",
        rule,
        "SERVER CONFIGURATION",
        rule,
        f"Config file:  {status['config_file_path']}",
        f"File exists:  {status['config_file_exists']}",
    ]
    if status["using_example"]:
        lines.append("WARNING: Using example config (copy to server.ini for production)")
    lines += [
        "-" * 60,
        f"Server:       {config.server.host}:{config.server.port}",
        f"Production:   {config.is_production}",
        f"Docs enabled: {config.docs_should_be_enabled}",
        f"Database:     {config.database.absolute_path}",
        f"Log level:    {config.logging.level}",
        f"Author share: {config.monetization.author_share_percent}%",
        rule,
        "",
    ]
    print("\n".join(lines))


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_database:
    """
    Point ``config.database.path`` at a throwaway file for the duration of a block.

    Usage:
        with use_test_database(tmp_path / "test.db"):
            database.init_database()
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.original_path: str | None = None

    def __enter__(self) -> Path:
        self.original_path = config.database.path
        config.database.path = str(self.db_path)
        return self.db_path

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_path is not None:
            config.database.path = self.original_path
        return None
