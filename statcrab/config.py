"""
Statcrab configuration handling.

Provides YAML configuration loading, environment overrides and validation.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml

DEFAULT_API_URL = "https://api.github.com/graphql"
DEFAULT_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


@dataclass
class StatcrabConfig:
    """
    Statcrab configuration.

    Can be loaded from a YAML file or created programmatically.
    """
    # Upstream
    github_token: str = ""
    api_url: str = DEFAULT_API_URL
    timeout: float = 10.0  # per-call deadline, seconds
    page_size: int = 100
    rate_limit_floor: int = 10
    user_agent: str = "statcrab"

    # Cache
    cache_max_capacity_mb: int = 32
    user_stats_ttl: int = 900  # 15 minutes
    language_ranking_ttl: int = 3600  # 1 hour
    cache_sweep_interval: int = 60  # seconds, 0 = disabled

    # Retry (NetworkError only)
    retry_max_attempts: int = 3
    retry_backoff_base: float = 0.5
    retry_backoff_max: float = 4.0

    # Logging
    log_level: str = "INFO"
    log_file: str = ""
    log_format: str = DEFAULT_LOG_FORMAT
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 3

    def __post_init__(self) -> None:
        if self.cache_max_capacity_mb <= 0:
            raise ValueError("cache_max_capacity_mb must be greater than 0")
        if self.user_stats_ttl <= 0 or self.language_ranking_ttl <= 0:
            raise ValueError("cache TTLs must be greater than 0")
        if not 1 <= self.page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")
        if self.retry_max_attempts < 1:
            raise ValueError("retry_max_attempts must be at least 1")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than 0")

    @property
    def cache_max_capacity_bytes(self) -> int:
        return self.cache_max_capacity_mb * 1024 * 1024

    @classmethod
    def load(cls, path: str) -> "StatcrabConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            StatcrabConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If config file is invalid YAML
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatcrabConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            StatcrabConfig instance
        """
        github_cfg = data.get("github", {})
        cache_cfg = data.get("cache", {})
        retry_cfg = data.get("retry", {})
        logging_cfg = data.get("logging", {})

        return cls(
            github_token=github_cfg.get("token", ""),
            api_url=github_cfg.get("api_url", DEFAULT_API_URL),
            timeout=github_cfg.get("timeout", 10.0),
            page_size=github_cfg.get("page_size", 100),
            rate_limit_floor=github_cfg.get("rate_limit_floor", 10),
            user_agent=github_cfg.get("user_agent", "statcrab"),
            cache_max_capacity_mb=cache_cfg.get("max_capacity_mb", 32),
            user_stats_ttl=cache_cfg.get("user_stats_ttl", 900),
            language_ranking_ttl=cache_cfg.get("language_ranking_ttl", 3600),
            cache_sweep_interval=cache_cfg.get("sweep_interval", 60),
            retry_max_attempts=retry_cfg.get("max_attempts", 3),
            retry_backoff_base=retry_cfg.get("backoff_base", 0.5),
            retry_backoff_max=retry_cfg.get("backoff_max", 4.0),
            log_level=logging_cfg.get("level", "INFO"),
            log_file=logging_cfg.get("file", ""),
            log_format=logging_cfg.get("format", DEFAULT_LOG_FORMAT),
            log_max_bytes=logging_cfg.get("max_bytes", 10485760),
            log_backup_count=logging_cfg.get("backup_count", 3),
        )

    @classmethod
    def from_env(cls, path: Optional[str] = None) -> "StatcrabConfig":
        """Load from an optional YAML file, then apply environment overrides."""
        config = cls.load(path) if path else cls()
        config.apply_env()
        return config

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> None:
        """
        Override settings from environment variables.

        Recognized: GITHUB_TOKEN, CACHE_MAX_CAPACITY_MB,
        CACHE_USER_STATS_TTL_SECONDS, CACHE_USER_LANGUAGES_TTL_SECONDS.
        Unparseable numbers are ignored.
        """
        env = os.environ if environ is None else environ

        token = env.get("GITHUB_TOKEN", "").strip()
        if token:
            self.github_token = token

        self.cache_max_capacity_mb = _env_int(env, "CACHE_MAX_CAPACITY_MB", self.cache_max_capacity_mb)
        self.user_stats_ttl = _env_int(env, "CACHE_USER_STATS_TTL_SECONDS", self.user_stats_ttl)
        self.language_ranking_ttl = _env_int(
            env, "CACHE_USER_LANGUAGES_TTL_SECONDS", self.language_ranking_ttl
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        The token is never written out.
        """
        return {
            "github": {
                "api_url": self.api_url,
                "timeout": self.timeout,
                "page_size": self.page_size,
                "rate_limit_floor": self.rate_limit_floor,
                "user_agent": self.user_agent,
            },
            "cache": {
                "max_capacity_mb": self.cache_max_capacity_mb,
                "user_stats_ttl": self.user_stats_ttl,
                "language_ranking_ttl": self.language_ranking_ttl,
                "sweep_interval": self.cache_sweep_interval,
            },
            "retry": {
                "max_attempts": self.retry_max_attempts,
                "backoff_base": self.retry_backoff_base,
                "backoff_max": self.retry_backoff_max,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
                "format": self.log_format,
                "max_bytes": self.log_max_bytes,
                "backup_count": self.log_backup_count,
            },
        }

    def save(self, path: str) -> None:
        """
        Save configuration to a YAML file.

        Args:
            path: Path to save the configuration file
        """
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, allow_unicode=True)


def _env_int(env: Dict[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default
