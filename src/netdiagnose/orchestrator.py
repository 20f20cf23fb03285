"""
Diagnostic run orchestration.

Runs the DNS, port, latency and HTTP stages against one target in a fixed
order, writing every result to the log sink as soon as it exists. A probe
failure is recorded and the run moves on; only an invalid request or an
unopenable log file stops a run.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable

from netdiagnose.config import DiagnoseConfig
from netdiagnose.diag.core import LatencyProbe, PortProbe
from netdiagnose.diag.nmap import NmapScanner
from netdiagnose.dns.core import ResolverProbe, select_resolver_backend
from netdiagnose.errors import CapabilityUnavailable
from netdiagnose.http.client import SCHEMES, HttpProbe, build_url
from netdiagnose.models import (
    DiagnosticReport,
    DiagnosticRequest,
    ProbeCategory,
    ProbeResult,
    utc_now,
)
from netdiagnose.sink import LogSink


logger = logging.getLogger(__name__)


class RunStage(str, Enum):
    INIT = "INIT"
    DNS = "DNS"
    PORTS = "PORTS"
    LATENCY = "LATENCY"
    HTTP = "HTTP"
    DONE = "DONE"


STAGE_ORDER = [RunStage.INIT, RunStage.DNS, RunStage.PORTS, RunStage.LATENCY, RunStage.HTTP, RunStage.DONE]

STAGE_BANNERS = {
    RunStage.DNS: "DNS lookups",
    RunStage.PORTS: "Port scanning",
    RunStage.LATENCY: "Latency test (ping)",
    RunStage.HTTP: "HTTP(S) checks",
}


class DiagnosticOrchestrator:
    """Runs one diagnostic request and produces its report.

    Construct one instance per run. Probes are injected so that callers
    (and tests) decide which capabilities are used; build_orchestrator()
    picks them from the host.
    """

    def __init__(
        self,
        request: DiagnosticRequest,
        output_path: str | Path,
        *,
        resolver_probe: ResolverProbe,
        port_probe: PortProbe,
        latency_probe: LatencyProbe,
        http_probe: HttpProbe,
        deep_scanner: NmapScanner | None = None,
        workers: int = 1,
        echo: Callable[[str], None] | None = None,
    ):
        self.request = request
        self.output_path = Path(output_path)
        self.resolver_probe = resolver_probe
        self.port_probe = port_probe
        self.latency_probe = latency_probe
        self.http_probe = http_probe
        self.deep_scanner = deep_scanner
        self.workers = max(1, workers)
        self.echo = echo

        self.stage = RunStage.INIT
        self.report: DiagnosticReport | None = None
        self._sink: LogSink | None = None

    def run(self) -> DiagnosticReport:
        """Execute every stage in order and return the report.

        Raises:
            ConfigurationError: the request is invalid.
            LogSinkError: the log file cannot be opened.
            KeyboardInterrupt: re-raised after the partial log is closed.
        """
        self.stage = RunStage.INIT
        self.request.validate()
        self.report = DiagnosticReport(request=self.request)
        self._sink = LogSink.open(self.output_path, echo=self.echo)

        try:
            self._sink.write(f"Starting network diagnostics for: {self.request.target}")
            self._sink.write(self.request.options_line())

            self._enter(RunStage.DNS)
            self._run_dns()

            self._enter(RunStage.PORTS)
            self._run_ports()

            self._enter(RunStage.LATENCY)
            self._run_latency()

            self._enter(RunStage.HTTP)
            self._run_http()

            self.stage = RunStage.DONE
            self.report.stage = self.stage.value
            self.report.finished_at = utc_now()
            summary = self.report.summary()
            self._sink.write(
                "Diagnostics complete: "
                + " ".join(f"{key.lower()}={value}" for key, value in summary.items())
            )
        except KeyboardInterrupt:
            self.report.interrupted = True
            self.report.finished_at = utc_now()
            self._sink.write(f"Run interrupted during {self.stage.value}")
            raise
        finally:
            self._sink.close()

        return self.report

    def _enter(self, stage: RunStage) -> None:
        expected = STAGE_ORDER[STAGE_ORDER.index(self.stage) + 1]
        if stage != expected:
            raise RuntimeError(f"Invalid stage transition {self.stage.value} -> {stage.value}")
        self.stage = stage
        self.report.stage = stage.value
        logger.debug("Entering stage %s", stage.value)
        self._sink.banner(STAGE_BANNERS[stage])

    def _emit(self, result: ProbeResult) -> None:
        self.report.add(result)
        self._sink.record(result)

    def _guard(self, category: ProbeCategory, label: str, func: Callable[[], ProbeResult]) -> ProbeResult:
        """Run a probe; any exception becomes an error result for its label."""
        try:
            return func()
        except Exception as e:
            logger.warning("Probe %s raised %r", label, e)
            return ProbeResult.now(category, label, f"error:{str(e) or e.__class__.__name__}")

    def _run_parallel(self, calls: list[tuple[ProbeCategory, str, Callable[[], ProbeResult]]]) -> None:
        """Run probes of one stage, emitting results in call order."""
        if self.workers == 1 or len(calls) < 2:
            for category, label, func in calls:
                self._emit(self._guard(category, label, func))
            return

        executor = ThreadPoolExecutor(max_workers=min(self.workers, len(calls)))
        futures: list[Future] = []
        try:
            for category, label, func in calls:
                futures.append(executor.submit(self._guard, category, label, func))
            for future in futures:
                self._emit(future.result())
        except KeyboardInterrupt:
            # Stop issuing new probes, let in-flight ones finish or time out
            for future in futures:
                future.cancel()
            raise
        finally:
            executor.shutdown(wait=True)

    def _run_dns(self) -> None:
        target = self.request.target
        self._sink.write(f"Using {self.resolver_probe.backend_name} resolver for DNS lookups")
        try:
            results = self.resolver_probe.resolve(target)
        except Exception as e:
            logger.warning("Resolver probe raised %r", e)
            results = [ProbeResult.now(ProbeCategory.DNS, f"DNS {target}", f"error:{e}")]
        for result in results:
            self._emit(result)

    def _run_ports(self) -> None:
        target = self.request.target
        timeout = self.request.timeout_seconds
        ports = self.request.unique_ports

        if self.request.use_deep_scan:
            if self.deep_scanner is not None:
                self._sink.write("nmap found -> running nmap scan (this can take a moment)")
                self._emit(self._guard(
                    ProbeCategory.PORT,
                    "deep-scan",
                    lambda: self.deep_scanner.scan(target, ports, timeout),
                ))
                return
            self._sink.write("nmap not available, falling back to lightweight port probes")
        else:
            self._sink.write("Using lightweight port probes")

        calls = []
        for port in ports:
            calls.append((
                ProbeCategory.PORT,
                f"Port {port}",
                lambda port=port: self.port_probe.probe(target, port, timeout),
            ))
        self._run_parallel(calls)

    def _run_latency(self) -> None:
        target = self.request.target
        if not self.latency_probe.available:
            self._sink.write("ping command not found; latency test reported as unsupported")
        self._emit(self._guard(
            ProbeCategory.LATENCY,
            f"ping {target}",
            lambda: self.latency_probe.ping(target, self.request.ping_count, self.request.timeout_seconds),
        ))

    def _run_http(self) -> None:
        host = self.request.url_host
        timeout = self.request.timeout_seconds
        calls = []
        for scheme in SCHEMES:
            calls.append((
                ProbeCategory.HTTP,
                build_url(scheme, host),
                lambda scheme=scheme: self.http_probe.fetch(scheme, host, timeout),
            ))
        self._run_parallel(calls)


def build_orchestrator(
    request: DiagnosticRequest,
    output_path: str | Path,
    config: DiagnoseConfig,
    workers: int | None = None,
    verify_tls: bool | None = None,
    echo: Callable[[str], None] | None = None,
) -> DiagnosticOrchestrator:
    """Select capabilities available on this host and wire an orchestrator."""
    deep_scanner = None
    if request.use_deep_scan:
        try:
            deep_scanner = NmapScanner.locate(config.nmap_path or None)
        except CapabilityUnavailable as e:
            logger.info("%s", e)

    return DiagnosticOrchestrator(
        request,
        output_path,
        resolver_probe=ResolverProbe(select_resolver_backend(config.nameservers or None)),
        port_probe=PortProbe(),
        latency_probe=LatencyProbe.locate(config.ping_path or None),
        http_probe=HttpProbe(verify_tls=config.verify_tls if verify_tls is None else verify_tls),
        deep_scanner=deep_scanner,
        workers=config.workers if workers is None else workers,
        echo=echo,
    )
