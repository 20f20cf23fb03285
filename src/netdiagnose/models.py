"""
Data model for a diagnostic run.

A DiagnosticRequest describes what to probe, every probe produces exactly
one immutable ProbeResult, and the orchestrator collects them into a
DiagnosticReport.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from netaddr import valid_ipv4, valid_ipv6

from netdiagnose.errors import ConfigurationError


DEFAULT_PORTS = (22, 80, 443, 53, 25, 3389, 8080)


class ProbeCategory(str, Enum):
    """Kind of check a result belongs to."""
    DNS = "DNS"
    PORT = "PORT"
    LATENCY = "LATENCY"
    HTTP = "HTTP"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single probe invocation."""
    category: ProbeCategory
    label: str
    status: str
    detail: Mapping[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        # Freeze detail so nobody can mutate a recorded result
        frozen = MappingProxyType({str(k): str(v) for k, v in dict(self.detail).items()})
        object.__setattr__(self, "detail", frozen)

    @classmethod
    def now(
        cls,
        category: ProbeCategory,
        label: str,
        status: str,
        detail: Mapping[str, Any] | None = None,
    ) -> "ProbeResult":
        """Create a result stamped with the current UTC time."""
        return cls(
            category=category,
            label=label,
            status=status,
            detail=dict(detail or {}),
            timestamp=utc_now(),
        )

    @property
    def is_error(self) -> bool:
        return self.status.startswith("error:")

    @property
    def is_skipped(self) -> bool:
        return self.status.startswith("skipped:")

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "label": self.label,
            "status": self.status,
            "detail": dict(self.detail),
            "timestamp": self.timestamp.isoformat(),
        }


def parse_ports(value: str) -> tuple[int, ...]:
    """Parse a comma-separated port list such as ``"22, 80,443"``.

    Empty items are ignored. Range checks happen in DiagnosticRequest.
    """
    ports = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            ports.append(int(item))
        except ValueError:
            raise ConfigurationError(f"Invalid port: {item!r}") from None
    return tuple(ports)


@dataclass(frozen=True)
class DiagnosticRequest:
    """Validated input for one diagnostic run."""
    target: str
    ports: tuple[int, ...] = DEFAULT_PORTS
    ping_count: int = 4
    timeout_seconds: int = 3
    use_deep_scan: bool = False

    def __post_init__(self):
        object.__setattr__(self, "ports", tuple(self.ports))
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if any field is out of range."""
        if not isinstance(self.target, str) or not self.target.strip():
            raise ConfigurationError("Target is required")
        if any(ch.isspace() for ch in self.target):
            raise ConfigurationError(f"Target must not contain whitespace: {self.target!r}")
        for port in self.ports:
            if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
                raise ConfigurationError(f"Port out of range (1-65535): {port!r}")
        if self.ping_count < 1:
            raise ConfigurationError(f"Ping count must be at least 1, got {self.ping_count}")
        if self.timeout_seconds < 1:
            raise ConfigurationError(f"Timeout must be at least 1 second, got {self.timeout_seconds}")

    @property
    def unique_ports(self) -> list[int]:
        """Requested ports with duplicates removed, original order kept."""
        return list(dict.fromkeys(self.ports))

    @property
    def target_kind(self) -> str:
        if valid_ipv4(self.target):
            return "ipv4"
        if valid_ipv6(self.target):
            return "ipv6"
        return "hostname"

    @property
    def url_host(self) -> str:
        """Target in a form usable as a URL authority."""
        if self.target_kind == "ipv6":
            return f"[{self.target}]"
        return self.target

    def options_line(self) -> str:
        ports = ",".join(str(p) for p in self.ports)
        return (
            f"Options: ports={ports} ping_count={self.ping_count} "
            f"timeout={self.timeout_seconds} use_nmap={int(self.use_deep_scan)}"
        )


@dataclass
class DiagnosticReport:
    """Ordered results of one run plus run metadata."""
    request: DiagnosticRequest
    results: list[ProbeResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None
    stage: str = "INIT"
    interrupted: bool = False

    def add(self, result: ProbeResult) -> None:
        self.results.append(result)

    def by_category(self, category: ProbeCategory) -> list[ProbeResult]:
        return [r for r in self.results if r.category == category]

    def summary(self) -> dict[str, int]:
        """Result counts per category plus the number of errors."""
        counts = {c.value: 0 for c in ProbeCategory}
        for result in self.results:
            counts[result.category.value] += 1
        counts["errors"] = sum(1 for r in self.results if r.is_error)
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.request.target,
            "ports": list(self.request.ports),
            "ping_count": self.request.ping_count,
            "timeout_seconds": self.request.timeout_seconds,
            "use_deep_scan": self.request.use_deep_scan,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "stage": self.stage,
            "interrupted": self.interrupted,
            "results": [r.to_dict() for r in self.results],
        }
