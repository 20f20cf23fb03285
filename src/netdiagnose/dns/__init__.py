"""
DNS Utilities Module

Provides the DNS stage of a diagnostic run and its resolver backends.
"""

from netdiagnose.dns.core import (
    ResolverProbe,
    ResolverBackend,
    DnsPythonBackend,
    SystemResolverBackend,
    select_resolver_backend,
    RECORD_TYPES,
)

__all__ = [
    "ResolverProbe",
    "ResolverBackend",
    "DnsPythonBackend",
    "SystemResolverBackend",
    "select_resolver_backend",
    "RECORD_TYPES",
]
