"""Main CLI application for agentquota."""

from __future__ import annotations

import logging
from enum import IntEnum

import typer

from agentquota.cli.atyper import ATyper

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

app = ATyper(
    name="agentquota",
    help="Track rate-limit quotas across AI coding assistants",
    add_completion=False,
    no_args_is_help=True,
)


class ExitCode(IntEnum):
    """Exit codes for agentquota."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 2
    NETWORK_ERROR = 3
    CONFIG_ERROR = 4
    PARTIAL_FAILURE = 5


def configure_logging(level: str | int) -> logging.Logger:
    """Send agentquota log records to stderr at the given level.

    Safe to call repeatedly; the handler is installed once.
    """
    logger = logging.getLogger("agentquota")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)
    if not any(getattr(h, "_agentquota", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._agentquota = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def _version_callback(value: bool) -> None:
    if value:
        from agentquota import __version__

        typer.echo(f"agentquota {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every strategy decision (DEBUG)"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """agentquota - Track rate-limit quotas across AI coding assistants."""
    from agentquota.config.settings import get_config

    if verbose:
        level = "DEBUG"
    elif log_level:
        level = log_level
    else:
        level = get_config().log_level
    configure_logging(level)

    ctx.meta["verbose"] = verbose


def run_app() -> None:
    """Run the CLI app."""
    app()


# Command modules register themselves with the app on import
from agentquota.cli.commands import catalog  # noqa: E402, F401
from agentquota.cli.commands import status  # noqa: E402, F401
