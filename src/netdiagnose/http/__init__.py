"""
HTTP reachability module.

Checks plain and TLS HTTP on the target root URL and reports the status
code with connect and total timing.
"""

from netdiagnose.http.client import (
    HttpProbe,
    SCHEMES,
    build_url,
)

__all__ = [
    "HttpProbe",
    "SCHEMES",
    "build_url",
]
