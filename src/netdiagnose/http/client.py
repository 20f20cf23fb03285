"""
HTTP(S) reachability probe with connect and total timing.
"""

import logging
import time

import httpx

from netdiagnose.models import ProbeCategory, ProbeResult


logger = logging.getLogger(__name__)

SCHEMES = ("http", "https")

FAILED_HTTP_CODE = "000"
FAILED_TIME = "-1"

# httpcore trace event fired once the TCP handshake is done
CONNECT_COMPLETE_EVENT = "connection.connect_tcp.complete"


def build_url(scheme: str, host: str) -> str:
    """Root URL for a host. IPv6 literals must already be bracketed."""
    return f"{scheme}://{host}/"


def _seconds(value: float) -> str:
    return f"{value:.6f}"


class HttpProbe:
    """Fetches ``<scheme>://<target>/`` once and records status and timing.

    ``timeout_seconds`` bounds each connect/read step and the fetch as a
    whole: a body still arriving at the deadline is abandoned, and headers
    arriving after it count as a timeout.
    """

    def __init__(self, verify_tls: bool = True, transport: httpx.BaseTransport | None = None):
        self.verify_tls = verify_tls
        self.transport = transport

    def fetch(self, scheme: str, target: str, timeout_seconds: float) -> ProbeResult:
        """Probe one scheme. Failures are reported as http_code 000, never raised."""
        url = build_url(scheme, target)
        timings: dict[str, float] = {}
        start = time.monotonic()
        deadline = start + timeout_seconds
        timed_out = f"Request timed out after {timeout_seconds}s"

        def trace(event_name: str, info: dict) -> None:
            if event_name == CONNECT_COMPLETE_EVENT and "connect" not in timings:
                timings["connect"] = time.monotonic() - start

        try:
            with httpx.Client(
                timeout=httpx.Timeout(timeout_seconds),
                verify=self.verify_tls,
                follow_redirects=False,
                transport=self.transport,
            ) as client:
                # Status is known once headers arrive; body reading stops at the deadline
                with client.stream("GET", url, extensions={"trace": trace}) as response:
                    if time.monotonic() > deadline:
                        return self._failure(url, timed_out)
                    self._drain(response, deadline)
            total = time.monotonic() - start
        except httpx.ConnectError as e:
            return self._failure(url, f"Connection failed: {e}")
        except httpx.TimeoutException:
            return self._failure(url, timed_out)
        except httpx.HTTPError as e:
            return self._failure(url, str(e) or e.__class__.__name__)
        except Exception as e:
            logger.warning("Unexpected error fetching %s: %r", url, e)
            return self._failure(url, str(e) or e.__class__.__name__)

        # No TCP event when the transport does not connect (mocked, proxied)
        connect = timings.get("connect", 0.0)
        detail = {
            "http_code": f"{response.status_code:03d}",
            "connect_time_seconds": _seconds(connect),
            "total_time_seconds": _seconds(total),
        }
        logger.debug("HTTP probe %s -> %s", url, detail)
        return ProbeResult.now(ProbeCategory.HTTP, url, f"HTTP {response.status_code}", detail)

    @staticmethod
    def _drain(response: httpx.Response, deadline: float) -> None:
        """Read the body until it ends or the whole-request deadline passes."""
        for _ in response.iter_raw():
            if time.monotonic() >= deadline:
                logger.debug("Body of %s still arriving at deadline, closing", response.url)
                break

    @staticmethod
    def _failure(url: str, reason: str) -> ProbeResult:
        logger.debug("HTTP probe %s failed: %s", url, reason)
        detail = {
            "http_code": FAILED_HTTP_CODE,
            "connect_time_seconds": FAILED_TIME,
            "total_time_seconds": FAILED_TIME,
        }
        return ProbeResult.now(ProbeCategory.HTTP, url, f"error:{reason}", detail)
