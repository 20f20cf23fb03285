"""
Exception hierarchy for netdiagnose.

Only ConfigurationError and LogSinkError are allowed to escape a run.
The probe-level errors are raised by backends and converted into
ProbeResult status values at the probe boundary.
"""


class NetDiagnoseError(Exception):
    """Base class for netdiagnose errors."""


class ConfigurationError(NetDiagnoseError):
    """Invalid diagnostic request or configuration value."""


class LogSinkError(NetDiagnoseError):
    """The report log file could not be opened."""


class CapabilityUnavailable(NetDiagnoseError):
    """A required external tool or library is missing."""

    def __init__(self, capability: str, reason: str = ""):
        self.capability = capability
        self.reason = reason
        message = f"{capability} unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ProbeTimeout(NetDiagnoseError):
    """A probe exceeded its bounded wait."""


class ProbeNetworkError(NetDiagnoseError):
    """Connection refused, unreachable network, resolution failure."""
