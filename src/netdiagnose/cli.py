"""
netdiagnose command line interface.
"""

import re
import sys

import click
from rich.console import Console
from rich.table import Table

from netdiagnose import __version__
from netdiagnose.config import get_config
from netdiagnose.errors import ConfigurationError, LogSinkError
from netdiagnose.logging_config import setup_logging
from netdiagnose.models import DiagnosticRequest, ProbeCategory, parse_ports
from netdiagnose.orchestrator import build_orchestrator


EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INTERRUPTED = 130


def default_output_path(target: str) -> str:
    """Log path derived from the target, e.g. ./network_diagnostics.example.com.log"""
    safe_target = re.sub(r"[^a-zA-Z0-9._-]", "_", target)
    return f"./network_diagnostics.{safe_target}.log"


def _print_summary(console: Console, report, output: str) -> None:
    table = Table(title=f"Diagnostics: {report.request.target}", box=None)
    table.add_column("Stage", style="cyan")
    table.add_column("Results", style="white")
    table.add_column("Errors", style="white")

    for category in ProbeCategory:
        results = report.by_category(category)
        errors = sum(1 for r in results if r.is_error)
        error_str = f"[red]{errors}[/red]" if errors else "[green]0[/green]"
        table.add_row(category.value, str(len(results)), error_str)

    console.print(table)
    console.print(f"[dim]Log written to {output}[/dim]")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-t", "--target", required=True, help="Target hostname or IP (required)")
@click.option("-p", "--ports", help="Comma-separated list of ports (default: 22,80,443,53,25,3389,8080)")
@click.option("-o", "--output", help="Output log file (default: ./network_diagnostics.<target>.log)")
@click.option("-c", "--count", type=int, help="Number of pings for latency test (default: 4)")
@click.option("-T", "--timeout", type=int, help="Timeout seconds for each probe (default: 3)")
@click.option("-n", "--nmap", "use_nmap", is_flag=True, help="Use nmap if installed for port scanning")
@click.option("-w", "--workers", type=int, help="Probes run concurrently within a stage (default: 1)")
@click.option("--insecure", is_flag=True, help="Do not verify TLS certificates for HTTPS checks")
@click.option("-q", "--quiet", is_flag=True, help="Only write the log file, do not echo it")
@click.option("--debug", is_flag=True, help="Enable debug logging on stderr")
@click.version_option(__version__, "-V", "--version", prog_name="netdiagnose")
def cli(
    target: str,
    ports: str | None,
    output: str | None,
    count: int | None,
    timeout: int | None,
    use_nmap: bool,
    workers: int | None,
    insecure: bool,
    quiet: bool,
    debug: bool,
):
    """Perform network diagnostics for a given host/IP.

    Runs DNS lookups (A, AAAA, MX, NS, TXT), TCP port probes, a ping
    latency test and HTTP/HTTPS checks, writing a timestamped log.

    Examples:
        netdiagnose -t example.com
        netdiagnose -t 8.8.8.8 -p 53,443 -o /var/log/diag.log -c 6
    """
    console = Console()
    err_console = Console(stderr=True)

    try:
        config = get_config()
        setup_logging(level="DEBUG" if debug else config.log_level, log_file=config.log_file or None)

        request = DiagnosticRequest(
            target=target.strip(),
            ports=parse_ports(ports) if ports is not None else config.ports,
            ping_count=count if count is not None else config.ping_count,
            timeout_seconds=timeout if timeout is not None else config.timeout,
            use_deep_scan=use_nmap,
        )
        output_path = output or default_output_path(request.target)

        echo = None
        if not quiet:
            echo = lambda line: console.print(line, markup=False, highlight=False, soft_wrap=True)

        orchestrator = build_orchestrator(
            request,
            output_path,
            config,
            workers=workers,
            verify_tls=False if insecure else None,
            echo=echo,
        )
        report = orchestrator.run()
    except ConfigurationError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(EXIT_USAGE)
    except LogSinkError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(EXIT_USAGE)

    if not quiet:
        _print_summary(console, report, output_path)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Entry point. Returns the process exit code."""
    try:
        rv = cli.main(args=argv, prog_name="netdiagnose", standalone_mode=False)
    except click.UsageError as e:
        # Missing target, unknown option, bad option value
        e.show()
        return EXIT_USAGE
    except click.ClickException as e:
        e.show()
        return EXIT_USAGE
    except click.Abort:
        click.echo("Interrupted.", err=True)
        return EXIT_INTERRUPTED
    return rv if isinstance(rv, int) else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
