"""
Configuration loader for the lounge proxy.

Looks for config.yaml in this order:
1. Environment variable CONFIG_PATH
2. ./config.yaml (local development)
3. Falls back to default config

Environment variables (NODE_ENV, FRONTEND_URL, PORT, LOUNGE_API_URL,
LOG_LEVEL) always take precedence over the file.
"""

import os
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "proxy": {
        "server": {"host": "0.0.0.0", "port": 3000},
        "upstream": {
            "base_url": "https://lounge.mkcentral.com",
            "timeout_seconds": 30,
            "default_game": "mkworld",
            "user_agent": "lounge-proxy/1.0",
        },
        "cache": {
            "max_entries": 1000,
            "ttl_seconds": 60,
            "sweep_interval_seconds": 0,
        },
    }
}


class Config:
    def __init__(self, config_path: str | None = None):
        if config_path:
            self.config_path = Path(config_path)
        elif os.getenv("CONFIG_PATH"):
            self.config_path = Path(os.getenv("CONFIG_PATH"))
        elif Path("./config.yaml").exists():
            self.config_path = Path("./config.yaml")
        else:
            # No config found, will use defaults
            self.config_path = None

        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """
        Load configuration from the YAML file.

        Returns the default config if the file is missing or unreadable.
        """
        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
                    print(f"✓ Loaded config from: {self.config_path}")
                    return config_data
            except (OSError, yaml.YAMLError) as e:
                print(f"✗ Error loading config from {self.config_path}: {e}")
        elif self.config_path:
            print(f"⚠ Config file not found, using defaults. Tried: {self.config_path}")

        return DEFAULT_CONFIG

    def _section(self, name: str) -> dict[str, Any]:
        section = (self._config.get("proxy") or {}).get(name)
        return section if isinstance(section, dict) else {}

    def _default(self, section: str, key: str) -> Any:
        return DEFAULT_CONFIG["proxy"][section][key]

    def _value(self, section: str, key: str) -> Any:
        return self._section(section).get(key, self._default(section, key))

    # =========================================================================
    # Environment
    # =========================================================================

    @property
    def environment(self) -> str:
        """Deployment environment, read from NODE_ENV (or APP_ENV)."""
        return (os.getenv("NODE_ENV") or os.getenv("APP_ENV") or "development").lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def frontend_origins(self) -> list[str]:
        """
        CORS allow-list.

        Development is always permissive; production honours FRONTEND_URL
        (comma separated) and falls back to "*" when it is unset.
        """
        frontend_url = os.getenv("FRONTEND_URL", "").strip()
        if not self.is_production or not frontend_url:
            return ["*"]
        return [origin.strip().rstrip("/") for origin in frontend_url.split(",") if origin.strip()]

    @property
    def log_level(self) -> str:
        explicit = os.getenv("LOG_LEVEL")
        if explicit:
            return explicit.upper()
        return "WARNING" if self.is_production else "INFO"

    # =========================================================================
    # Server
    # =========================================================================

    @property
    def server_host(self) -> str:
        return self._value("server", "host")

    @property
    def server_port(self) -> int:
        env_port = os.getenv("PORT")
        if env_port and env_port.isdigit():
            return int(env_port)
        return int(self._value("server", "port"))

    # =========================================================================
    # Upstream ranking service
    # =========================================================================

    @property
    def lounge_api_url(self) -> str:
        env_url = os.getenv("LOUNGE_API_URL")
        if env_url:
            return env_url
        return self._value("upstream", "base_url")

    @property
    def upstream_timeout(self) -> float:
        return float(self._value("upstream", "timeout_seconds"))

    @property
    def default_game(self) -> str:
        return self._value("upstream", "default_game")

    @property
    def upstream_user_agent(self) -> str:
        return self._value("upstream", "user_agent")

    # =========================================================================
    # Response cache
    # =========================================================================

    @property
    def cache_max_entries(self) -> int:
        return int(self._value("cache", "max_entries"))

    @property
    def cache_ttl(self) -> float:
        """Default entry TTL in seconds; some endpoints use a multiple of it."""
        return float(self._value("cache", "ttl_seconds"))

    @property
    def cache_sweep_interval(self) -> float:
        """Seconds between background expiry sweeps (0 disables the sweep)."""
        return float(self._value("cache", "sweep_interval_seconds"))


# Global config singleton used across the proxy
config = Config()
