"""CLI strategy for Claude provider."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from agentquota.core import executor
from agentquota.core.context import FetchContext
from agentquota.core.context import FetchKind
from agentquota.errors.fetch import ProviderFetchError
from agentquota.models import ProviderID
from agentquota.models import ProviderIdentity
from agentquota.models import RateWindow
from agentquota.models import UsageSnapshot
from agentquota.strategies.base import FetchResult
from agentquota.strategies.base import make_result

logger = logging.getLogger(__name__)

# CSI, OSC and charset escapes, plus stray "[22m" fragments left behind
ANSI_PATTERNS = (
    re.compile(r"\x1b\[[0-9;?]*[A-Za-z]"),
    re.compile(r"\x1b\][^\x07]*(?:\x07|\x1b\\)"),
    re.compile(r"\x1b[()][AB012]"),
    re.compile(r"\[\d+m"),
)

PERCENT_PATTERN = re.compile(r"([0-9]{1,3}(?:\.[0-9]+)?)\s*%")
EMAIL_PATTERNS = (
    re.compile(r"Account:\s+([^\s@]+@[^\s@]+)", re.IGNORECASE),
    re.compile(r"Email:\s+([^\s@]+@[^\s@]+)", re.IGNORECASE),
    re.compile(r"([A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,})", re.IGNORECASE),
)
ORG_PATTERNS = (
    re.compile(r"Org:\s*(.+)", re.IGNORECASE),
    re.compile(r"Organization:\s*(.+)", re.IGNORECASE),
)

USED_KEYWORDS = ("used", "spent", "consumed")
REMAINING_KEYWORDS = ("left", "remaining", "available")

SESSION_LABEL = "current session"
WEEKLY_LABEL = "current week (all models)"
MODEL_LABELS = ("current week (opus)", "current week (sonnet only)", "current week (sonnet)")

SESSION_MINUTES = 5 * 60
WEEK_MINUTES = 7 * 24 * 60

# How many lines after a label may hold its percentage or reset text
PERCENT_LOOKAHEAD = 12
RESET_LOOKAHEAD = 14


def strip_ansi(text: str) -> str:
    for pattern in ANSI_PATTERNS:
        text = pattern.sub("", text)
    return text


def normalized_for_search(text: str) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join(text.lower().split())


def is_status_context_line(line: str) -> bool:
    """Model selector bars look like 'Opus | Sonnet | ...' and carry no usage."""
    if "|" not in line:
        return False
    lower = line.lower()
    return any(token in lower for token in ("opus", "sonnet", "haiku", "default"))


def percent_left_from_line(line: str) -> float | None:
    """Read a remaining percentage, inverting lines that report usage."""
    if is_status_context_line(line):
        return None
    match = PERCENT_PATTERN.search(line)
    if match is None:
        return None
    value = max(0.0, min(100.0, float(match.group(1))))
    lower = line.lower()
    if any(word in lower for word in USED_KEYWORDS):
        return 100.0 - value
    if any(word in lower for word in REMAINING_KEYWORDS):
        return value
    return None


def extract_percent_left(labels: Sequence[str], lines: Sequence[str]) -> float | None:
    normalized = [normalized_for_search(line) for line in lines]
    for label in labels:
        for idx, line in enumerate(normalized):
            if label not in line:
                continue
            for candidate in lines[idx : idx + PERCENT_LOOKAHEAD]:
                value = percent_left_from_line(candidate)
                if value is not None:
                    return value
    return None


def _clean_reset(raw: str) -> str:
    cleaned = raw.strip().strip(" )")
    if cleaned.count("(") > cleaned.count(")"):
        cleaned += ")"
    return cleaned


def extract_reset(labels: Sequence[str], lines: Sequence[str]) -> str | None:
    """Find the 'Resets ...' text that follows a label, before the next section."""
    normalized = [normalized_for_search(line) for line in lines]
    for label in labels:
        for idx, line in enumerate(normalized):
            if label not in line:
                continue
            for offset, candidate in enumerate(lines[idx : idx + RESET_LOOKAHEAD]):
                current = normalized[idx + offset]
                if current.startswith("current ") and label not in current:
                    break
                position = candidate.lower().find("resets")
                if position >= 0:
                    return _clean_reset(candidate[position:])
    return None


def extract_usage_error(text: str) -> str | None:
    lower = text.lower()
    if "do you trust the files in this folder?" in lower and SESSION_LABEL not in lower:
        return (
            "Claude CLI is waiting for a folder trust prompt. Run `claude` once "
            "and choose 'Yes, proceed', then retry."
        )
    if "token_expired" in lower or "token has expired" in lower:
        return "Claude CLI token expired. Run `claude login` to refresh."
    if "authentication_error" in lower:
        return "Claude CLI authentication error. Run `claude login`."
    if "failed to load usage data" in lower:
        return "Claude CLI could not load usage data. Open the CLI and retry `/usage`."
    return None


def trim_to_latest_panel(text: str) -> str:
    """Keep only the last usage panel when the TUI redrew several times."""
    position = text.lower().rfind("settings:")
    if position < 0:
        return text
    tail = text[position:]
    lower = tail.lower()
    if "usage" not in lower:
        return text
    has_usage_words = any(word in lower for word in ("used", "left", "remaining", "available"))
    if ("%" in lower and has_usage_words) or "loading usage" in lower:
        return tail
    return text


def _first_match(patterns: Sequence[re.Pattern[str]], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


def extract_identity(text: str) -> ProviderIdentity | None:
    email = _first_match(EMAIL_PATTERNS, text)
    organization = _first_match(ORG_PATTERNS, text)
    # The CLI shows "<email>'s Organization" for personal accounts
    if email and organization and organization.lower().startswith(email.lower()):
        organization = None
    if email is None and organization is None:
        return None
    return ProviderIdentity(email=email, organization=organization, auth_method="cli")


def parse_usage_output(output: str) -> UsageSnapshot:
    """Parse the `/usage` panel printed by the claude CLI.

    Expected format:
        Current session
        ███████▌   15% used
        Resets 3pm (Europe/London)

        Current week (all models)
        ██         4% used
        Resets Jan 22, 7pm (Europe/London)
    """
    clean = strip_ansi(output)
    if not clean.strip():
        raise ProviderFetchError.parse_error("Empty usage output", ProviderID.CLAUDE)

    if error := extract_usage_error(clean):
        raise ProviderFetchError.api_error(error, ProviderID.CLAUDE)

    panel = trim_to_latest_panel(clean)
    lines = panel.splitlines()

    session_left = extract_percent_left([SESSION_LABEL], lines)
    if session_left is None:
        raise ProviderFetchError.parse_error(
            "Missing Current session in usage output", ProviderID.CLAUDE
        )
    weekly_left = extract_percent_left([WEEKLY_LABEL], lines)
    model_left = extract_percent_left(MODEL_LABELS, lines)

    session_reset = extract_reset([SESSION_LABEL], lines)
    primary = RateWindow.create(
        100 - session_left,
        window_minutes=SESSION_MINUTES,
        reset_description=session_reset,
        label="Session",
    )

    secondary = None
    if weekly_left is not None:
        secondary = RateWindow.create(
            100 - weekly_left,
            window_minutes=WEEK_MINUTES,
            reset_description=extract_reset([WEEKLY_LABEL], lines),
            label="Weekly",
        )

    tertiary = None
    if model_left is not None:
        compact = "".join(panel.lower().split())
        tertiary = RateWindow.create(
            100 - model_left,
            window_minutes=WEEK_MINUTES,
            reset_description=extract_reset(MODEL_LABELS, lines),
            label="Opus" if "opus" in compact else "Sonnet",
        )

    return UsageSnapshot(
        provider_id=ProviderID.CLAUDE,
        primary=primary,
        secondary=secondary,
        tertiary=tertiary,
        identity=extract_identity(clean),
    )


class ClaudeCLIStrategy:
    """Fetch Claude usage by delegating to the claude CLI tool."""

    id = "claude-cli"
    kind = FetchKind.CLI

    COMMAND = "claude"
    USAGE_ARGS = ["/usage"]

    def __init__(self, timeout: float = 20.0) -> None:
        self.timeout = timeout

    async def is_available(self, context: FetchContext) -> bool:
        return executor.find_executable(self.COMMAND) is not None

    async def fetch(self, context: FetchContext) -> FetchResult:
        executable = executor.find_executable(self.COMMAND)
        if executable is None:
            raise ProviderFetchError.command_failed("Claude CLI not found", ProviderID.CLAUDE)

        result = await executor.run(executable, self.USAGE_ARGS, timeout=self.timeout)
        if not result.is_success and not result.output.strip():
            detail = result.error_output.strip() or f"exit code {result.exit_code}"
            raise ProviderFetchError.command_failed(detail, ProviderID.CLAUDE)

        snapshot = parse_usage_output(result.output)
        logger.debug("Parsed claude /usage output")
        return make_result(self, snapshot, "cli")

    def should_fallback(self, error: Exception, context: FetchContext) -> bool:
        return True
