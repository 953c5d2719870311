"""Language server process and port discovery for Antigravity."""

from __future__ import annotations

import logging
import re

import msgspec

from agentquota.core import executor
from agentquota.errors.fetch import CommandError
from agentquota.errors.fetch import ProbeError

logger = logging.getLogger(__name__)

PS_PATH = "/bin/ps"
LSOF_PATHS = ("/usr/sbin/lsof", "/usr/bin/lsof")

# language_server_macos, language_server_macos_arm, language_server_macos_x64
PROCESS_NAME_PREFIX = "language_server_macos"
APP_MARKER = "antigravity"

CSRF_TOKEN_FLAG = "--csrf_token"
EXTENSION_PORT_FLAG = "--extension_server_port"

LISTEN_PATTERN = re.compile(r":(\d+)\s+\(LISTEN\)")

DETECT_TIMEOUT = 8.0
AVAILABILITY_TIMEOUT = 5.0


class ProcessLine(msgspec.Struct, frozen=True):
    pid: int
    command: str


class ProcessInfo(msgspec.Struct, frozen=True):
    """What the probe needs from the running language server."""

    pid: int
    csrf_token: str
    extension_port: int | None = None


def parse_process_line(line: str) -> ProcessLine | None:
    """Split a `ps -o pid=,command=` line into pid and command."""
    parts = line.strip().split(None, 1)
    if len(parts) != 2:
        return None
    try:
        pid = int(parts[0])
    except ValueError:
        return None
    return ProcessLine(pid=pid, command=parts[1])


def is_antigravity_command_line(command: str) -> bool:
    """Check a lowercased command line for the Antigravity data directory."""
    if "--app_data_dir" in command and APP_MARKER in command:
        return True
    return "/antigravity/" in command or "\\antigravity\\" in command


def extract_flag(flag: str, command: str) -> str | None:
    """Read a `--flag=value` or `--flag value` argument."""
    match = re.search(re.escape(flag) + r"[=\s]+(\S+)", command, re.IGNORECASE)
    return match.group(1) if match else None


def extract_port(flag: str, command: str) -> int | None:
    raw = extract_flag(flag, command)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def find_process_info(ps_output: str) -> ProcessInfo:
    """Pick the Antigravity language server out of a process listing.

    Raises:
        ProbeError: not_running when no language server is listed at all;
            missing_auth_token when one is listed but is not Antigravity's
            or carries no CSRF token.
    """
    saw_language_server = False

    for line in ps_output.splitlines():
        match = parse_process_line(line)
        if match is None:
            continue
        lower = match.command.lower()
        if PROCESS_NAME_PREFIX not in lower:
            continue
        saw_language_server = True
        if not is_antigravity_command_line(lower):
            continue
        token = extract_flag(CSRF_TOKEN_FLAG, match.command)
        if token is None:
            continue
        return ProcessInfo(
            pid=match.pid,
            csrf_token=token,
            extension_port=extract_port(EXTENSION_PORT_FLAG, match.command),
        )

    if saw_language_server:
        raise ProbeError.missing_auth_token()
    raise ProbeError.not_running()


async def detect_process_info(timeout: float = DETECT_TIMEOUT) -> ProcessInfo:
    """List processes and locate the Antigravity language server."""
    result = await executor.run(
        PS_PATH, ["-ax", "-o", "pid=,command="], timeout=timeout
    )
    info = find_process_info(result.output)
    logger.debug(
        "Found Antigravity language server pid=%d extension_port=%s",
        info.pid,
        info.extension_port,
    )
    return info


async def language_server_listed(timeout: float = AVAILABILITY_TIMEOUT) -> bool:
    """Cheap check that some Antigravity language server appears in ps output."""
    try:
        result = await executor.run(PS_PATH, ["-ax", "-o", "command="], timeout=timeout)
    except CommandError as e:
        logger.debug("Process listing failed: %s", e)
        return False
    lower = result.output.lower()
    return PROCESS_NAME_PREFIX in lower and APP_MARKER in lower


def parse_listening_ports(output: str) -> list[int]:
    """Extract the distinct listening ports from lsof output, ascending."""
    return sorted({int(port) for port in LISTEN_PATTERN.findall(output)})


def find_lsof() -> str | None:
    for path in LSOF_PATHS:
        if executor.is_executable(path):
            return path
    return None


async def listening_ports(pid: int, timeout: float = DETECT_TIMEOUT) -> list[int]:
    """List the TCP ports the process is listening on."""
    lsof = find_lsof()
    if lsof is None:
        raise ProbeError.port_detection_failed("lsof not available")

    result = await executor.run(
        lsof,
        ["-nP", "-iTCP", "-sTCP:LISTEN", "-a", "-p", str(pid)],
        timeout=timeout,
    )
    ports = parse_listening_ports(result.output)
    if not ports:
        raise ProbeError.port_detection_failed("no listening ports found")
    logger.debug("Language server pid=%d listening on %s", pid, ports)
    return ports
