"""
Configuration management for netdiagnose.

Loads defaults from environment variables or a .env file.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

from netdiagnose.errors import ConfigurationError
from netdiagnose.models import DEFAULT_PORTS, parse_ports


# Check common locations for .env
ENV_LOCATIONS = [
    Path.home() / ".netdiagnose" / ".env",
    Path.home() / ".config" / "netdiagnose" / ".env",
    Path.cwd() / ".env",
]


def load_env_file() -> Path | None:
    """Load the first .env file found. Returns its path, if any."""
    for env_path in ENV_LOCATIONS:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DiagnoseConfig:
    """Run defaults and capability settings."""

    # Probe defaults (overridable from the command line)
    ports: tuple[int, ...] = DEFAULT_PORTS
    ping_count: int = 4
    timeout: int = 3
    workers: int = 1

    # Capabilities
    nmap_path: str = ""
    ping_path: str = ""
    nameservers: list[str] = field(default_factory=list)
    verify_tls: bool = True

    # Diagnostic logging
    log_level: str = "WARNING"
    log_file: str = ""

    @classmethod
    def from_env(cls) -> "DiagnoseConfig":
        """Load configuration from environment variables."""
        ports_raw = os.getenv("NETDIAGNOSE_PORTS", "")
        nameservers_raw = os.getenv("NETDIAGNOSE_NAMESERVERS", "")
        return cls(
            ports=parse_ports(ports_raw) if ports_raw.strip() else DEFAULT_PORTS,
            ping_count=_env_int("NETDIAGNOSE_PING_COUNT", 4),
            timeout=_env_int("NETDIAGNOSE_TIMEOUT", 3),
            workers=_env_int("NETDIAGNOSE_WORKERS", 1),
            nmap_path=os.getenv("NETDIAGNOSE_NMAP_PATH", ""),
            ping_path=os.getenv("NETDIAGNOSE_PING_PATH", ""),
            nameservers=[ns.strip() for ns in nameservers_raw.split(",") if ns.strip()],
            verify_tls=_env_bool("NETDIAGNOSE_VERIFY_TLS", True),
            log_level=os.getenv("NETDIAGNOSE_LOG_LEVEL", "WARNING"),
            log_file=os.getenv("NETDIAGNOSE_LOG_FILE", ""),
        )


# Global config instance
_config: DiagnoseConfig | None = None


def get_config() -> DiagnoseConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        load_env_file()
        _config = DiagnoseConfig.from_env()
    return _config


def set_config(config: DiagnoseConfig | None) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
