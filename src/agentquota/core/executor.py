"""External command execution with timeouts."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path

import msgspec

from agentquota.errors.fetch import CommandError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

# Checked before PATH so GUI-launched processes still find user-installed tools
SEARCH_DIRS = (
    Path("/usr/local/bin"),
    Path("/opt/homebrew/bin"),
    Path("/usr/bin"),
    Path.home() / ".local" / "bin",
    Path.home() / "bin",
)


class CommandResult(msgspec.Struct, frozen=True):
    """Captured output of a finished command."""

    output: str
    error_output: str
    exit_code: int

    @property
    def is_success(self) -> bool:
        return self.exit_code == 0


def is_executable(path: str | Path) -> bool:
    path = Path(path)
    return path.is_file() and os.access(path, os.X_OK)


def find_executable(name: str) -> str | None:
    """Find the path to an executable.

    Checks common install locations first, then falls back to PATH.
    """
    for directory in SEARCH_DIRS:
        candidate = directory / name
        if is_executable(candidate):
            return str(candidate)
    return shutil.which(name)


async def run(
    executable: str,
    args: Sequence[str] = (),
    env: Mapping[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> CommandResult:
    """Run a command and capture its output.

    Args:
        executable: Path to the program
        args: Arguments passed to the program
        env: Variables layered over the current environment
        timeout: Seconds before the process is killed

    Raises:
        CommandError: If the program cannot be started or exceeds the timeout.
    """
    process_env = None
    if env is not None:
        process_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=process_env,
        )
    except FileNotFoundError as e:
        raise CommandError.executable_not_found(executable) from e
    except OSError as e:
        raise CommandError.execution_failed(f"{executable}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        process.kill()
        await process.wait()
        logger.debug("%s timed out after %.1fs", executable, timeout)
        raise CommandError.timeout(executable) from None
    except asyncio.CancelledError:
        process.kill()
        await process.wait()
        raise

    result = CommandResult(
        output=stdout.decode(errors="replace"),
        error_output=stderr.decode(errors="replace"),
        exit_code=process.returncode if process.returncode is not None else -1,
    )
    logger.debug("%s exited with %d", executable, result.exit_code)
    return result


async def run_tool(
    name: str,
    args: Sequence[str] = (),
    env: Mapping[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> CommandResult:
    """Run a CLI tool by name, locating it first."""
    executable = find_executable(name)
    if executable is None:
        raise CommandError.executable_not_found(name)
    return await run(executable, args, env=env, timeout=timeout)
