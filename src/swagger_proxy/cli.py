"""Command line entry point running the contract-checking proxy."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .api import create_app
from .errors import BindError, SpecError
from .proxy import Proxy
from .reporter import ConsoleReporter
from .spec import load_spec
from .watcher import SpecWatcher, reload_spec

logger = logging.getLogger(__name__)

app = typer.Typer(
    help='Reverse proxy that checks every upstream response against a Swagger 2.0 spec.',
    add_completion=False,
)

BIND_OPTION = typer.Option(
    ':1234',
    '--bind',
    envvar='SWAGGER_PROXY_BIND',
    help='Address to listen on, as host:port (an empty host listens on all interfaces).',
)

SPEC_OPTION = typer.Option(
    Path('./swagger.yml'),
    '--spec',
    envvar='SWAGGER_PROXY_SPEC',
    help='Path to the Swagger 2.0 document (JSON or YAML).',
    dir_okay=False,
)

TARGET_OPTION = typer.Option(
    'http://localhost:4321',
    '--target',
    envvar='SWAGGER_PROXY_TARGET',
    help='Base URL of the upstream service.',
)

VERBOSE_OPTION = typer.Option(
    default=False,
    envvar='SWAGGER_PROXY_VERBOSE',
    help='Log registered routes and reload activity.',
)
VERBOSE_OPTION.param_decls = ('--verbose',)

VERSION_OPTION = typer.Option(
    default=False,
    help='Show version and exit.',
)
VERSION_OPTION.param_decls = ('--version',)


def parse_bind(bind: str) -> tuple[str, int]:
    """Split ``host:port``; an empty host means every interface."""

    host, sep, port = bind.rpartition(':')
    if not sep or not port.isdigit():
        msg = f'Invalid bind address {bind!r}; expected host:port.'
        raise typer.BadParameter(msg)
    return host.strip('[]') or '0.0.0.0', int(port)  # nosec B104


def _configure_logging(console: Console, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(message)s',
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def print_pending(console: Console, proxy: Proxy) -> None:
    """Print the operations no request has exercised yet."""

    console.print('Pending Operations:')
    console.print('------------------')
    for number, operation in enumerate(proxy.pending_operations(), start=1):
        console.print(f'{number:03d}) id={operation.id}', markup=False, highlight=False)


async def _serve(proxy: Proxy, spec: Path, host: str, port: int) -> bool:
    config = uvicorn.Config(create_app(proxy), host=host, port=port, log_config=None)
    server = uvicorn.Server(config)
    watcher = SpecWatcher(spec, lambda: reload_spec(proxy, spec))
    await watcher.start()
    logger.info('SwaggerProxy %s listening on %s:%d -> %s', __version__, host, port, proxy.target)
    try:
        await server.serve()
    finally:
        await watcher.stop()
    return server.started


@app.command()
def main(
    bind: str = BIND_OPTION,
    spec: Path = SPEC_OPTION,
    target: str = TARGET_OPTION,
    verbose: bool = VERBOSE_OPTION,  # noqa: FBT001
    version: bool = VERSION_OPTION,  # noqa: FBT001
) -> None:
    """Proxy TARGET on BIND and report contract violations until interrupted."""
    console = Console(highlight=False)
    if version:
        console.print(f'swagger-proxy {__version__}')
        raise typer.Exit(0)

    _configure_logging(console, verbose)
    host, port = parse_bind(bind)

    try:
        document = load_spec(spec)
        proxy = Proxy(document, ConsoleReporter(console), target=target, verbose=verbose)
    except (SpecError, BindError) as exc:
        console.print(f'[red]Unable to load spec:[/red] {escape(str(exc))}')
        raise typer.Exit(1) from exc

    try:
        started = asyncio.run(_serve(proxy, spec, host, port))
    except KeyboardInterrupt:
        started = True
    if not started:
        raise typer.Exit(1)

    if proxy.reporter is not None:
        proxy.reporter.report()
    print_pending(console, proxy)


if __name__ == '__main__':  # pragma: no cover
    app()
