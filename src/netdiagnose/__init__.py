"""
netdiagnose - single-target network diagnostics

Runs DNS lookups, TCP port probes, an ICMP latency test and HTTP/HTTPS
checks against one host and records every outcome in a timestamped log.
"""

__version__ = "1.0.0"
