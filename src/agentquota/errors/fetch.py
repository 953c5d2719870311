"""Exceptions raised by fetch strategies and the command executor."""

from __future__ import annotations

from enum import StrEnum

from agentquota.models import ProviderID


class FetchErrorKind(StrEnum):
    """Kinds of fetch failure."""

    NO_AVAILABLE_STRATEGY = "no_available_strategy"
    AUTHENTICATION_REQUIRED = "authentication_required"
    INVALID_CREDENTIALS = "invalid_credentials"
    NETWORK_ERROR = "network_error"
    PARSE_ERROR = "parse_error"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    COMMAND_FAILED = "command_failed"
    API_ERROR = "api_error"
    # Local discovery probe
    NOT_RUNNING = "not_running"
    MISSING_AUTH_TOKEN = "missing_auth_token"
    PORT_DETECTION_FAILED = "port_detection_failed"
    PARSE_FAILED = "parse_failed"


class ProviderFetchError(Exception):
    """A failed acquisition attempt, scoped to one provider."""

    def __init__(
        self,
        kind: FetchErrorKind,
        provider: ProviderID | None = None,
        detail: str | None = None,
        *,
        message: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.kind = kind
        self.provider = provider
        self.detail = detail
        self.retry_after = retry_after
        super().__init__(message or self._default_message())

    @property
    def message(self) -> str:
        return str(self)

    def _provider_name(self) -> str:
        return self.provider.display_name if self.provider else "provider"

    def _default_message(self) -> str:
        match self.kind:
            case FetchErrorKind.NO_AVAILABLE_STRATEGY:
                return f"No available fetch strategy for {self._provider_name()}"
            case FetchErrorKind.AUTHENTICATION_REQUIRED:
                return f"Authentication required for {self._provider_name()}"
            case FetchErrorKind.INVALID_CREDENTIALS:
                return f"Invalid credentials for {self._provider_name()}"
            case FetchErrorKind.NETWORK_ERROR:
                return f"Network error: {self.detail}"
            case FetchErrorKind.PARSE_ERROR:
                return f"Parse error: {self.detail}"
            case FetchErrorKind.TIMEOUT:
                return "Request timed out"
            case FetchErrorKind.RATE_LIMITED:
                if self.retry_after is not None:
                    return f"Rate limited (retry after {self.retry_after:g}s)"
                return "Rate limited"
            case FetchErrorKind.COMMAND_FAILED:
                return f"Command failed: {self.detail}"
            case FetchErrorKind.API_ERROR:
                return f"API error: {self.detail}"
            case FetchErrorKind.NOT_RUNNING:
                return "Antigravity not detected. Launch Antigravity and retry."
            case FetchErrorKind.MISSING_AUTH_TOKEN:
                return "Antigravity CSRF token not found. Restart the app and retry."
            case FetchErrorKind.PORT_DETECTION_FAILED:
                return f"Port detection failed: {self.detail}"
            case FetchErrorKind.PARSE_FAILED:
                return f"Parse failed: {self.detail}"
        return self.kind.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={str(self)!r})"

    @classmethod
    def no_available_strategy(cls, provider: ProviderID) -> ProviderFetchError:
        return cls(FetchErrorKind.NO_AVAILABLE_STRATEGY, provider)

    @classmethod
    def authentication_required(
        cls, provider: ProviderID, message: str | None = None
    ) -> ProviderFetchError:
        return cls(FetchErrorKind.AUTHENTICATION_REQUIRED, provider, message=message)

    @classmethod
    def invalid_credentials(cls, provider: ProviderID) -> ProviderFetchError:
        return cls(FetchErrorKind.INVALID_CREDENTIALS, provider)

    @classmethod
    def network_error(
        cls, detail: str, provider: ProviderID | None = None
    ) -> ProviderFetchError:
        return cls(FetchErrorKind.NETWORK_ERROR, provider, detail)

    @classmethod
    def parse_error(
        cls, detail: str, provider: ProviderID | None = None
    ) -> ProviderFetchError:
        return cls(FetchErrorKind.PARSE_ERROR, provider, detail)

    @classmethod
    def timeout(cls, provider: ProviderID | None = None) -> ProviderFetchError:
        return cls(FetchErrorKind.TIMEOUT, provider)

    @classmethod
    def rate_limited(
        cls, provider: ProviderID | None = None, retry_after: float | None = None
    ) -> ProviderFetchError:
        return cls(FetchErrorKind.RATE_LIMITED, provider, retry_after=retry_after)

    @classmethod
    def command_failed(
        cls, detail: str, provider: ProviderID | None = None
    ) -> ProviderFetchError:
        return cls(FetchErrorKind.COMMAND_FAILED, provider, detail)

    @classmethod
    def api_error(
        cls, detail: str, provider: ProviderID | None = None
    ) -> ProviderFetchError:
        return cls(FetchErrorKind.API_ERROR, provider, detail)


class ProbeError(ProviderFetchError):
    """Failure of the Antigravity local service discovery probe."""

    def __init__(self, kind: FetchErrorKind, detail: str | None = None) -> None:
        super().__init__(kind, ProviderID.ANTIGRAVITY, detail)

    @classmethod
    def not_running(cls) -> ProbeError:
        return cls(FetchErrorKind.NOT_RUNNING)

    @classmethod
    def missing_auth_token(cls) -> ProbeError:
        return cls(FetchErrorKind.MISSING_AUTH_TOKEN)

    @classmethod
    def port_detection_failed(cls, reason: str) -> ProbeError:
        return cls(FetchErrorKind.PORT_DETECTION_FAILED, reason)

    @classmethod
    def api_error(cls, code: str) -> ProbeError:  # type: ignore[override]
        return cls(FetchErrorKind.API_ERROR, code)

    @classmethod
    def parse_failed(cls, reason: str) -> ProbeError:
        return cls(FetchErrorKind.PARSE_FAILED, reason)


class CommandErrorKind(StrEnum):
    EXECUTABLE_NOT_FOUND = "executable_not_found"
    TIMEOUT = "timeout"
    EXECUTION_FAILED = "execution_failed"


class CommandError(Exception):
    """An external command could not be run to completion."""

    def __init__(self, kind: CommandErrorKind, detail: str) -> None:
        self.kind = kind
        self.detail = detail
        match kind:
            case CommandErrorKind.EXECUTABLE_NOT_FOUND:
                message = f"Executable not found: {detail}"
            case CommandErrorKind.TIMEOUT:
                message = f"Command timed out: {detail}"
            case _:
                message = f"Command execution failed: {detail}"
        super().__init__(message)

    @classmethod
    def executable_not_found(cls, name: str) -> CommandError:
        return cls(CommandErrorKind.EXECUTABLE_NOT_FOUND, name)

    @classmethod
    def timeout(cls, command: str) -> CommandError:
        return cls(CommandErrorKind.TIMEOUT, command)

    @classmethod
    def execution_failed(cls, detail: str) -> CommandError:
        return cls(CommandErrorKind.EXECUTION_FAILED, detail)
