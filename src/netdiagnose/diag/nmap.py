"""
Deep-scan delegation to nmap.

The whole port set is handed to nmap in one call and its output is kept
verbatim as a single result.
"""

import logging
import os
import shutil
import subprocess

from netdiagnose.errors import CapabilityUnavailable
from netdiagnose.models import ProbeCategory, ProbeResult


logger = logging.getLogger(__name__)

DEEP_SCAN_LABEL = "deep-scan"

# Extra seconds on top of the per-port budget for nmap's own start-up
SCAN_OVERHEAD_SECONDS = 60


class NmapScanner:
    """Thin wrapper around the nmap executable."""

    def __init__(self, nmap_path: str):
        self.nmap_path = nmap_path

    @classmethod
    def locate(cls, nmap_path: str | None = None) -> "NmapScanner":
        """Find nmap: explicit path, then NETDIAGNOSE_NMAP_PATH, then PATH."""
        if nmap_path:
            found = shutil.which(nmap_path)
            if found:
                logger.info("Using explicitly provided nmap path: %s", found)
                return cls(found)
            logger.warning("nmap path %r not found or not executable, checking environment/PATH", nmap_path)

        env_path = os.environ.get("NETDIAGNOSE_NMAP_PATH")
        if env_path:
            found = shutil.which(env_path)
            if found:
                logger.info("Using nmap from NETDIAGNOSE_NMAP_PATH: %s", found)
                return cls(found)
            logger.warning("NETDIAGNOSE_NMAP_PATH (%r) not found or not executable, checking PATH", env_path)

        found = shutil.which("nmap")
        if found:
            logger.info("Using nmap found in PATH: %s", found)
            return cls(found)

        raise CapabilityUnavailable("nmap", "nmap executable not found")

    def build_command(self, host: str, ports: list[int]) -> list[str]:
        return [self.nmap_path, "-Pn", "-p", ",".join(str(p) for p in ports), host]

    def scan(self, host: str, ports: list[int], timeout_seconds: float) -> ProbeResult:
        """Run one nmap scan over all ports. Never raises."""
        cmd = self.build_command(host, ports)
        deadline = len(ports) * timeout_seconds + SCAN_OVERHEAD_SECONDS
        logger.debug("Executing nmap command: %s (deadline %ss)", " ".join(cmd), deadline)

        detail = {"command": " ".join(cmd)}
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=deadline,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            partial = e.stdout.decode(errors="replace") if isinstance(e.stdout, bytes) else (e.stdout or "")
            detail["output"] = partial
            return ProbeResult.now(
                ProbeCategory.PORT, DEEP_SCAN_LABEL, f"error:nmap timed out after {deadline}s", detail
            )
        except OSError as e:
            return ProbeResult.now(ProbeCategory.PORT, DEEP_SCAN_LABEL, f"error:{e}", detail)

        detail["output"] = proc.stdout
        if proc.returncode != 0:
            reason = proc.stderr.strip().splitlines()[-1] if proc.stderr.strip() else f"exit code {proc.returncode}"
            return ProbeResult.now(ProbeCategory.PORT, DEEP_SCAN_LABEL, f"error:{reason}", detail)

        return ProbeResult.now(ProbeCategory.PORT, DEEP_SCAN_LABEL, "completed", detail)
