"""
Shared fixtures: fake probes and an orchestrator factory.
"""

import time
from types import SimpleNamespace

import pytest

from netdiagnose.config import DiagnoseConfig, set_config
from netdiagnose.diag.nmap import DEEP_SCAN_LABEL
from netdiagnose.dns.core import RECORD_TYPES
from netdiagnose.http.client import build_url
from netdiagnose.models import ProbeCategory, ProbeResult
from netdiagnose.orchestrator import DiagnosticOrchestrator


class FakeResolverProbe:
    backend_name = "fake"

    def __init__(self, records: dict[str, list[str]] | None = None):
        self.records = records or {"A": ["192.0.2.10"]}
        self.calls = []

    def resolve(self, target: str) -> list[ProbeResult]:
        self.calls.append(target)
        results = []
        for rtype in RECORD_TYPES:
            values = self.records.get(rtype, [])
            status = "; ".join(values) if values else "no records"
            results.append(ProbeResult.now(ProbeCategory.DNS, f"{rtype} {target}", status))
        return results


class FakePortProbe:
    def __init__(self, statuses: dict[int, str] | None = None, delays: dict[int, float] | None = None):
        self.statuses = statuses or {}
        self.delays = delays or {}
        self.calls = []

    def probe(self, host: str, port: int, timeout_seconds: float) -> ProbeResult:
        self.calls.append(port)
        time.sleep(self.delays.get(port, 0))
        status = self.statuses.get(port, "filtered/timeout")
        if isinstance(status, BaseException):
            raise status
        return ProbeResult.now(ProbeCategory.PORT, f"Port {port}", status)


class FakeLatencyProbe:
    available = True

    def __init__(self, error: BaseException | None = None):
        self.error = error
        self.calls = []

    def ping(self, target: str, count: int, timeout_seconds: float) -> ProbeResult:
        self.calls.append((target, count, timeout_seconds))
        if self.error is not None:
            raise self.error
        return ProbeResult.now(
            ProbeCategory.LATENCY,
            f"ping {target}",
            "no response / blocked or unsupported",
            {"sent": str(count), "received": "0"},
        )


class FakeHttpProbe:
    def __init__(self):
        self.calls = []

    def fetch(self, scheme: str, target: str, timeout_seconds: float) -> ProbeResult:
        self.calls.append(scheme)
        return ProbeResult.now(
            ProbeCategory.HTTP,
            build_url(scheme, target),
            "error:Connection failed",
            {"http_code": "000", "connect_time_seconds": "-1", "total_time_seconds": "-1"},
        )


class FakeDeepScanner:
    def __init__(self):
        self.calls = []

    def scan(self, host: str, ports: list[int], timeout_seconds: float) -> ProbeResult:
        self.calls.append(list(ports))
        return ProbeResult.now(
            ProbeCategory.PORT,
            DEEP_SCAN_LABEL,
            "completed",
            {"output": "PORT    STATE SERVICE\n80/tcp  open  http\n443/tcp open  https\n"},
        )


@pytest.fixture(autouse=True)
def default_config():
    """Keep tests independent of the developer's environment."""
    set_config(DiagnoseConfig())
    yield
    set_config(None)


@pytest.fixture
def fakes():
    return SimpleNamespace(
        ResolverProbe=FakeResolverProbe,
        PortProbe=FakePortProbe,
        LatencyProbe=FakeLatencyProbe,
        HttpProbe=FakeHttpProbe,
        DeepScanner=FakeDeepScanner,
    )


@pytest.fixture
def make_orchestrator():
    """Build an orchestrator wired to fakes; keyword overrides replace a fake."""
    def _make(request, output_path, **overrides):
        probes = {
            "resolver_probe": FakeResolverProbe(),
            "port_probe": FakePortProbe(),
            "latency_probe": FakeLatencyProbe(),
            "http_probe": FakeHttpProbe(),
            "deep_scanner": None,
        }
        probes.update(overrides)
        return DiagnosticOrchestrator(request, output_path, **probes)
    return _make
