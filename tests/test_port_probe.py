import socket
import time
from unittest.mock import MagicMock

from netdiagnose.diag.core import PORT_CLOSED, PORT_FILTERED, PORT_OPEN, PortProbe
from netdiagnose.models import ProbeCategory


def test_open_port_on_localhost() -> None:
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        port = server.getsockname()[1]

        result = PortProbe().probe("127.0.0.1", port, 1)
    finally:
        server.close()

    assert result.category == ProbeCategory.PORT
    assert result.label == f"Port {port}"
    assert result.status == PORT_OPEN
    assert "connect_ms" in result.detail


def test_nothing_listening_is_closed_or_filtered_within_timeout() -> None:
    # A bound but not listening socket reserves the port and refuses connections
    placeholder = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        placeholder.bind(("127.0.0.1", 0))
        port = placeholder.getsockname()[1]

        start = time.monotonic()
        result = PortProbe().probe("127.0.0.1", port, 1)
        elapsed = time.monotonic() - start
    finally:
        placeholder.close()

    assert result.status in (PORT_CLOSED, PORT_FILTERED)
    assert elapsed < 1.5


def test_timeout_is_filtered() -> None:
    connector = MagicMock(side_effect=socket.timeout("timed out"))
    result = PortProbe(connector=connector).probe("192.0.2.1", 443, 1)

    assert result.status == PORT_FILTERED
    connector.assert_called_once_with(("192.0.2.1", 443), timeout=1)


def test_refused_is_closed() -> None:
    connector = MagicMock(side_effect=ConnectionRefusedError(111, "Connection refused"))
    result = PortProbe(connector=connector).probe("example.com", 22, 3)
    assert result.status == PORT_CLOSED
    assert result.detail["service"] == "ssh"


def test_resolution_failure_is_error() -> None:
    connector = MagicMock(side_effect=socket.gaierror(-2, "Name or service not known"))
    result = PortProbe(connector=connector).probe("no-such-host.invalid", 80, 3)
    assert result.status == "error:Name or service not known"


def test_unreachable_is_error() -> None:
    connector = MagicMock(side_effect=OSError(101, "Network is unreachable"))
    result = PortProbe(connector=connector).probe("192.0.2.1", 80, 3)
    assert result.status == "error:Network is unreachable"


def test_unexpected_exception_does_not_escape() -> None:
    connector = MagicMock(side_effect=RuntimeError("boom"))
    result = PortProbe(connector=connector).probe("example.com", 8080, 3)
    assert result.status == "error:boom"


def test_open_socket_is_closed_after_probe() -> None:
    sock = MagicMock()
    connector = MagicMock(return_value=sock)
    result = PortProbe(connector=connector).probe("example.com", 80, 3)
    assert result.status == PORT_OPEN
    sock.close.assert_called_once_with()
