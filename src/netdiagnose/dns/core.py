"""
Core DNS functionality.
"""

import logging
import socket
from typing import Protocol

import dns.exception
import dns.resolver

from netdiagnose.errors import ProbeNetworkError, ProbeTimeout
from netdiagnose.models import ProbeCategory, ProbeResult


logger = logging.getLogger(__name__)

RECORD_TYPES = ("A", "AAAA", "MX", "NS", "TXT")

# Per-query budget; not configurable from the command line
DEFAULT_DNS_TIMEOUT = 5.0

NO_RESOLVER = "skipped: no resolver available"


class ResolverBackend(Protocol):
    """A way of answering DNS queries."""
    name: str

    def query(self, name: str, record_type: str) -> list[str]:
        """Return record strings; an empty list means an empty answer.

        Raises:
            ProbeTimeout: no answer within the resolver lifetime.
            ProbeNetworkError: the query itself failed.
        """
        ...


class DnsPythonBackend:
    """Queries through dnspython, using the system nameservers by default."""

    name = "dnspython"

    def __init__(self, nameservers: list[str] | None = None, timeout: float = DEFAULT_DNS_TIMEOUT):
        # Raises dns.resolver.NoResolverConfiguration without resolv.conf
        self.resolver = dns.resolver.Resolver()
        if nameservers:
            self.resolver.nameservers = nameservers
        self.resolver.timeout = timeout
        self.resolver.lifetime = timeout

    def query(self, name: str, record_type: str) -> list[str]:
        try:
            answers = self.resolver.resolve(name, record_type)
        except dns.resolver.NoAnswer:
            return []
        except dns.resolver.NXDOMAIN:
            raise ProbeNetworkError("NXDOMAIN") from None
        except dns.resolver.NoNameservers:
            raise ProbeNetworkError("No Nameservers") from None
        except dns.exception.Timeout:
            raise ProbeTimeout(f"Timeout after {self.resolver.lifetime}s") from None
        except dns.exception.DNSException as e:
            raise ProbeNetworkError(str(e) or e.__class__.__name__) from None
        return [str(rdata) for rdata in answers]


class SystemResolverBackend:
    """Fallback on the platform resolver. Only answers address lookups."""

    name = "system"

    FAMILIES = {"A": socket.AF_INET, "AAAA": socket.AF_INET6}

    def query(self, name: str, record_type: str) -> list[str]:
        family = self.FAMILIES.get(record_type)
        if family is None:
            raise ProbeNetworkError("unsupported by system resolver")
        try:
            infos = socket.getaddrinfo(name, None, family, socket.SOCK_STREAM)
        except socket.gaierror as e:
            raise ProbeNetworkError(e.strerror or str(e)) from None
        # Deduplicate, keep resolver order
        return list(dict.fromkeys(info[4][0] for info in infos))


def select_resolver_backend(nameservers: list[str] | None = None) -> ResolverBackend:
    """Pick the best available backend: dnspython, else the system resolver."""
    try:
        backend = DnsPythonBackend(nameservers=nameservers)
        logger.info("Using dnspython for DNS lookups")
        return backend
    except dns.resolver.NoResolverConfiguration as e:
        logger.info("dnspython has no resolver configuration (%s), falling back to system resolver", e)
    except (OSError, ValueError) as e:
        logger.warning("Could not set up dnspython resolver: %s", e)

    logger.info("Using system resolver for DNS lookups")
    return SystemResolverBackend()


class ResolverProbe:
    """Looks up the fixed record-type set for a target."""

    def __init__(self, backend: ResolverBackend | None):
        self.backend = backend

    @property
    def backend_name(self) -> str:
        return self.backend.name if self.backend else "none"

    def resolve(self, target: str) -> list[ProbeResult]:
        """One result per record type, or a single skipped result."""
        if self.backend is None:
            return [ProbeResult.now(ProbeCategory.DNS, f"DNS {target}", NO_RESOLVER)]
        return [self.lookup(target, rtype) for rtype in RECORD_TYPES]

    def lookup(self, target: str, record_type: str) -> ProbeResult:
        label = f"{record_type} {target}"
        try:
            records = self.backend.query(target, record_type)
        except (ProbeNetworkError, ProbeTimeout) as e:
            return ProbeResult.now(ProbeCategory.DNS, label, f"error:{e}", {"backend": self.backend_name})

        detail = {
            "backend": self.backend_name,
            "count": str(len(records)),
        }
        if not records:
            return ProbeResult.now(ProbeCategory.DNS, label, "no records", detail)

        detail["records"] = "\n".join(records)
        return ProbeResult.now(ProbeCategory.DNS, label, "; ".join(records), detail)
