"""
Diagnostics Module

Provides TCP port probes, ICMP latency measurement, and deep-scan
delegation to nmap.
"""

from netdiagnose.diag.core import (
    PortProbe,
    LatencyProbe,
    find_ping,
    parse_ping_output,
    PORT_OPEN,
    PORT_CLOSED,
    PORT_FILTERED,
    NO_ICMP_RESPONSE,
)
from netdiagnose.diag.nmap import NmapScanner, DEEP_SCAN_LABEL

__all__ = [
    "PortProbe",
    "LatencyProbe",
    "find_ping",
    "parse_ping_output",
    "PORT_OPEN",
    "PORT_CLOSED",
    "PORT_FILTERED",
    "NO_ICMP_RESPONSE",
    "NmapScanner",
    "DEEP_SCAN_LABEL",
]
