"""
Core diagnostics functionality: TCP port probes and ICMP latency.
"""

import logging
import platform
import re
import shutil
import socket
import subprocess
import time
from typing import Callable

from netdiagnose.errors import CapabilityUnavailable
from netdiagnose.models import ProbeCategory, ProbeResult


logger = logging.getLogger(__name__)


PORT_OPEN = "open"
PORT_CLOSED = "closed"
PORT_FILTERED = "filtered/timeout"

NO_ICMP_RESPONSE = "no response / blocked or unsupported"

# Common port to service mapping
PORT_SERVICES = {
    21: "ftp",
    22: "ssh",
    23: "telnet",
    25: "smtp",
    53: "dns",
    80: "http",
    110: "pop3",
    143: "imap",
    443: "https",
    465: "smtps",
    587: "submission",
    993: "imaps",
    995: "pop3s",
    3306: "mysql",
    3389: "rdp",
    5432: "postgresql",
    6379: "redis",
    8080: "http-alt",
    8443: "https-alt",
}


class PortProbe:
    """Single-attempt TCP connect check for one (host, port)."""

    def __init__(self, connector: Callable[..., socket.socket] = socket.create_connection):
        self.connector = connector

    def probe(self, host: str, port: int, timeout_seconds: float) -> ProbeResult:
        """Try one TCP connection and classify the outcome.

        Returns a PORT result with status open, closed, filtered/timeout or
        error:<reason>. Never raises.
        """
        label = f"Port {port}"
        detail = {}
        if port in PORT_SERVICES:
            detail["service"] = PORT_SERVICES[port]

        start = time.monotonic()
        try:
            sock = self.connector((host, port), timeout=timeout_seconds)
        except socket.timeout:
            status = PORT_FILTERED
        except ConnectionRefusedError:
            status = PORT_CLOSED
        except OSError as e:
            # Includes socket.gaierror for names that do not resolve
            status = f"error:{e.strerror or e}"
        except Exception as e:
            logger.warning("Unexpected error probing %s:%s: %r", host, port, e)
            status = f"error:{e}"
        else:
            detail["connect_ms"] = f"{(time.monotonic() - start) * 1000:.2f}"
            status = PORT_OPEN
            try:
                sock.close()
            except OSError:
                pass

        logger.debug("Port probe %s:%s -> %s", host, port, status)
        return ProbeResult.now(ProbeCategory.PORT, label, status, detail)


def find_ping(explicit_path: str | None = None) -> str:
    """Locate a ping executable or raise CapabilityUnavailable."""
    if explicit_path:
        found = shutil.which(explicit_path)
        if found:
            return found
        logger.warning("Configured ping path %r not found, checking PATH", explicit_path)
    found = shutil.which("ping")
    if not found:
        raise CapabilityUnavailable("ping", "ping command not found")
    return found


def build_ping_command(ping_path: str, host: str, count: int, timeout: float, system: str) -> list[str]:
    """Build the platform specific ping invocation."""
    if system == "windows":
        return [ping_path, "-n", str(count), "-w", str(int(timeout * 1000)), host]
    if system == "darwin":
        # macOS -W takes milliseconds
        return [ping_path, "-c", str(count), "-W", str(int(timeout * 1000)), host]
    return [ping_path, "-c", str(count), "-W", str(int(timeout)), host]


def parse_ping_output(stdout: str, count: int) -> dict[str, str]:
    """Extract packet and RTT statistics from ping output.

    Handles the Linux/BSD summary format and the Windows one. Missing
    statistics are simply left out of the returned mapping, except for
    sent/received/loss which always have a value.
    """
    stats = {"sent": str(count), "received": "0", "loss_percent": "100.0"}

    ip_match = re.search(r'\((\d+\.\d+\.\d+\.\d+)\)', stdout) or re.search(r'\[([0-9a-fA-F:.]+)\]', stdout)
    if ip_match:
        stats["ip"] = ip_match.group(1)

    unix_counts = re.search(r'(\d+) packets transmitted, (\d+) (?:packets )?received', stdout)
    win_counts = re.search(r'Sent = (\d+), Received = (\d+)', stdout)
    counts = unix_counts or win_counts
    if counts:
        stats["sent"] = counts.group(1)
        stats["received"] = counts.group(2)

    loss_match = re.search(r'(\d+(?:\.\d+)?)% (?:packet )?loss', stdout)
    if loss_match:
        stats["loss_percent"] = f"{float(loss_match.group(1)):.1f}"
    elif counts and int(stats["sent"]):
        lost = int(stats["sent"]) - int(stats["received"])
        stats["loss_percent"] = f"{lost * 100 / int(stats['sent']):.1f}"

    unix_rtt = re.search(r'= (\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)', stdout)
    win_rtt = re.search(r'Minimum = (\d+)ms, Maximum = (\d+)ms, Average = (\d+)ms', stdout)
    if unix_rtt:
        stats["rtt_min_ms"] = unix_rtt.group(1)
        stats["rtt_avg_ms"] = unix_rtt.group(2)
        stats["rtt_max_ms"] = unix_rtt.group(3)
    elif win_rtt:
        stats["rtt_min_ms"] = win_rtt.group(1)
        stats["rtt_max_ms"] = win_rtt.group(2)
        stats["rtt_avg_ms"] = win_rtt.group(3)

    return stats


def _summary_lines(stdout: str) -> str:
    """Keep the statistics block of the ping output."""
    lines = stdout.strip().splitlines()
    for i, line in enumerate(lines):
        if "statistics" in line.lower():
            return "\n".join(l.strip() for l in lines[i:] if l.strip())
    return "\n".join(l.strip() for l in lines[-3:] if l.strip())


class LatencyProbe:
    """Bounded ICMP echo test using the system ping command."""

    def __init__(self, ping_path: str | None = None, system: str | None = None):
        self.ping_path = ping_path
        self.system = (system or platform.system()).lower()

    @classmethod
    def locate(cls, explicit_path: str | None = None) -> "LatencyProbe":
        """Build a probe bound to the ping binary found on this host.

        A missing binary is not fatal: the probe then reports the latency
        test as unsupported.
        """
        try:
            return cls(ping_path=find_ping(explicit_path))
        except CapabilityUnavailable as e:
            logger.info("%s", e)
            return cls(ping_path=None)

    @property
    def available(self) -> bool:
        return self.ping_path is not None

    def ping(self, target: str, count: int, timeout_seconds: float) -> ProbeResult:
        """Send count echo requests and summarise the replies. Never raises."""
        label = f"ping {target}"
        if not self.ping_path:
            return ProbeResult.now(
                ProbeCategory.LATENCY,
                label,
                NO_ICMP_RESPONSE,
                {"sent": str(count), "received": "0", "reason": "ping command not found"},
            )

        if self.system not in ("linux", "darwin", "windows"):
            return ProbeResult.now(
                ProbeCategory.LATENCY,
                label,
                NO_ICMP_RESPONSE,
                {"sent": str(count), "received": "0", "reason": f"Unsupported platform: {self.system}"},
            )

        cmd = build_ping_command(self.ping_path, target, count, timeout_seconds, self.system)
        logger.debug("Running %s", " ".join(cmd))

        try:
            output = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout_seconds * count + 5,
            )
        except subprocess.TimeoutExpired as e:
            stdout = e.stdout.decode(errors="replace") if isinstance(e.stdout, bytes) else (e.stdout or "")
            detail = parse_ping_output(stdout, count)
            detail["reason"] = "Ping timed out"
            return self._result(label, detail)
        except FileNotFoundError:
            return ProbeResult.now(
                ProbeCategory.LATENCY,
                label,
                NO_ICMP_RESPONSE,
                {"sent": str(count), "received": "0", "reason": "ping command not found"},
            )
        except OSError as e:
            return ProbeResult.now(
                ProbeCategory.LATENCY,
                label,
                NO_ICMP_RESPONSE,
                {"sent": str(count), "received": "0", "reason": str(e)},
            )

        detail = parse_ping_output(output.stdout, count)
        summary = _summary_lines(output.stdout)
        if summary:
            detail["raw"] = summary
        if output.returncode != 0 and output.stderr.strip():
            detail["reason"] = output.stderr.strip().splitlines()[-1]
        return self._result(label, detail)

    @staticmethod
    def _result(label: str, detail: dict[str, str]) -> ProbeResult:
        received = int(detail.get("received", "0"))
        if received > 0:
            status = f"{received}/{detail['sent']} packets received"
        else:
            status = NO_ICMP_RESPONSE
        return ProbeResult.now(ProbeCategory.LATENCY, label, status, detail)
