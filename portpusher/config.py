"""
Environment-driven configuration for portpusher.

Values are read from the process environment (and from a .env file if one is
present). Absent values fall back to the defaults below; malformed values raise
ConfigError, which is only ever raised at startup.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import dotenv


dotenv.load_dotenv()


# Defaults
LOG_LEVEL = "INFO"
LOG_PATH = None
LOG_ROTATION = "1 week"
LOG_RETENTION = "1 month"

DELAY_SUCCESS = 10  # minutes
DELAY_ERROR = 5  # minutes
HTTP_TIMEOUT = 30.0  # seconds

GLUETUN_HOST = "localhost"
GLUETUN_PORT = 8000

TRANSMISSION_HOST = "localhost"
TRANSMISSION_PORT = 9091
TRANSMISSION_USER = "admin"
TRANSMISSION_PASS = "password"

QBITTORRENT_HOST = "localhost"
QBITTORRENT_PORT = 8080
QBITTORRENT_USER = "admin"
QBITTORRENT_PASS = "adminadmin"

DELUGE_HOST = "localhost"
DELUGE_PORT = 8112
DELUGE_USER = "admin"
DELUGE_PASS = "deluge"

LOG_LEVELS = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARN": "WARNING",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
}

# Push order is fixed: Transmission, qBittorrent, Deluge
BACKENDS = ("transmission", "qbittorrent", "deluge")

BACKEND_DEFAULTS = {
    "transmission": (TRANSMISSION_HOST, TRANSMISSION_PORT, TRANSMISSION_USER, TRANSMISSION_PASS),
    "qbittorrent": (QBITTORRENT_HOST, QBITTORRENT_PORT, QBITTORRENT_USER, QBITTORRENT_PASS),
    "deluge": (DELUGE_HOST, DELUGE_PORT, DELUGE_USER, DELUGE_PASS),
}


class ConfigError(Exception):
    """Raised when an environment variable holds an invalid value."""
    pass


@dataclass(frozen=True)
class BackendConfig:
    """Connection details for one torrent client (or the Gluetun sidecar)."""
    name: str
    host: str
    port: int
    user: str = ""
    password: str = ""

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def __str__(self) -> str:
        return f"{self.name} host={self.host} port={self.port}"


def _get_log_level(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key)
    if value is None:
        return default
    level = LOG_LEVELS.get(value.strip().upper())
    if level is None:
        raise ConfigError(
            f"{key} has invalid value {value!r}. Valid values are DEBUG, INFO, WARN, ERROR"
        )
    return level


def _get_port(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None:
        return default
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"Invalid port number found in {key}: {value!r}")
    if not 1 <= port <= 65535:
        raise ConfigError(f"Invalid port number found in {key}: {value!r}")
    return port


def _get_minutes(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None:
        return default
    try:
        minutes = int(value)
    except ValueError:
        minutes = 0
    if minutes <= 0:
        raise ConfigError(
            f"{key} has invalid value {value!r}. Valid values are any number of minutes > 0"
        )
    return minutes


def _get_seconds(env: Mapping[str, str], key: str, default: float) -> float:
    value = env.get(key)
    if value is None:
        return default
    try:
        seconds = float(value)
    except ValueError:
        seconds = 0.0
    if seconds <= 0:
        raise ConfigError(
            f"{key} has invalid value {value!r}. Valid values are any number of seconds > 0"
        )
    return seconds


def _get_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None:
        return default
    return value.strip().lower() == "true"


def _get_backend(env: Mapping[str, str], name: str) -> BackendConfig:
    prefix = name.upper()
    host, port, user, password = BACKEND_DEFAULTS[name]
    return BackendConfig(
        name=name,
        host=env.get(f"{prefix}_HOST", host),
        port=_get_port(env, f"{prefix}_PORT", port),
        user=env.get(f"{prefix}_USER", user),
        password=env.get(f"{prefix}_PASS", password),
    )


class Config:
    """Validated runtime settings.

    Build one with Config.from_env(); the constructor itself performs no
    validation so tests can assemble settings directly.
    """

    def __init__(
        self,
        gluetun: BackendConfig,
        backends: List[BackendConfig],
        log_level: str = LOG_LEVEL,
        log_path: Optional[str] = LOG_PATH,
        delay_success: int = DELAY_SUCCESS,
        delay_error: int = DELAY_ERROR,
        http_timeout: float = HTTP_TIMEOUT,
        gluetun_api_key: Optional[str] = None,
    ):
        self.gluetun = gluetun
        self.backends = list(backends)
        self.log_level = log_level
        self.log_path = log_path
        self.delay_success = delay_success
        self.delay_error = delay_error
        self.http_timeout = http_timeout
        self.gluetun_api_key = gluetun_api_key

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Config":
        """Read and validate every setting, raising ConfigError on bad input."""
        if env is None:
            env = os.environ

        gluetun = BackendConfig(
            name="gluetun",
            host=env.get("GLUETUN_HOST", GLUETUN_HOST),
            port=_get_port(env, "GLUETUN_PORT", GLUETUN_PORT),
        )

        backends = [
            _get_backend(env, name)
            for name in BACKENDS
            if _get_bool(env, f"{name.upper()}_ENABLED", False)
        ]
        if not backends:
            raise ConfigError("No bittorrent clients are configured, nothing to do")

        return cls(
            gluetun=gluetun,
            backends=backends,
            log_level=_get_log_level(env, "PUSHER_LOG_LEVEL", LOG_LEVEL),
            log_path=env.get("PUSHER_LOG_PATH") or LOG_PATH,
            delay_success=_get_minutes(env, "PUSHER_DELAY_SUCCESS", DELAY_SUCCESS),
            # Upstream read PUSHER_DELAY_SUCCESS here too; the error delay has its own key
            delay_error=_get_minutes(env, "PUSHER_DELAY_ERROR", DELAY_ERROR),
            http_timeout=_get_seconds(env, "PUSHER_HTTP_TIMEOUT", HTTP_TIMEOUT),
            gluetun_api_key=env.get("GLUETUN_API_KEY") or None,
        )

    @property
    def delay_success_seconds(self) -> int:
        return self.delay_success * 60

    @property
    def delay_error_seconds(self) -> int:
        return self.delay_error * 60

    def summary(self) -> Dict[str, str]:
        """Settings worth logging at startup. Credentials are left out."""
        return {
            "gluetun": str(self.gluetun),
            "backends": ", ".join(str(b) for b in self.backends),
            "log_level": self.log_level,
            "delay_success": f"{self.delay_success}m",
            "delay_error": f"{self.delay_error}m",
            "http_timeout": f"{self.http_timeout}s",
        }
