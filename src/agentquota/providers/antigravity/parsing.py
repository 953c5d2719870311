"""Response envelopes returned by the Antigravity language server."""

from __future__ import annotations

import msgspec

from agentquota.errors.fetch import ProbeError
from agentquota.models import UsageSnapshot
from agentquota.normalize import ModelQuota
from agentquota.normalize import build_snapshot
from agentquota.normalize import parse_reset_time


class ResponseCode(msgspec.Struct, frozen=True):
    """Application status code, sent as either an integer or a string."""

    value: int | str

    @property
    def is_ok(self) -> bool:
        if isinstance(self.value, int):
            return self.value == 0
        lower = self.value.lower()
        return lower in ("ok", "success") or self.value == "0"

    @property
    def raw_value(self) -> str:
        return str(self.value)


class ModelAlias(msgspec.Struct, rename="camel"):
    model: str


class QuotaInfo(msgspec.Struct, rename="camel"):
    remaining_fraction: float | None = None
    reset_time: str | None = None


class ModelConfig(msgspec.Struct, rename="camel"):
    label: str
    model_or_alias: ModelAlias
    quota_info: QuotaInfo | None = None


class ModelConfigData(msgspec.Struct, rename="camel"):
    client_model_configs: list[ModelConfig] | None = None


class PlanInfo(msgspec.Struct, rename="camel"):
    plan_name: str | None = None
    plan_display_name: str | None = None
    display_name: str | None = None
    product_name: str | None = None
    plan_short_name: str | None = None

    @property
    def preferred_name(self) -> str | None:
        for name in (
            self.plan_display_name,
            self.display_name,
            self.product_name,
            self.plan_name,
            self.plan_short_name,
        ):
            if name and name.strip():
                return name.strip()
        return None


class PlanStatus(msgspec.Struct, rename="camel"):
    plan_info: PlanInfo | None = None


class UserStatus(msgspec.Struct, rename="camel"):
    email: str | None = None
    plan_status: PlanStatus | None = None
    cascade_model_config_data: ModelConfigData | None = None


class UserStatusResponse(msgspec.Struct, rename="camel"):
    code: int | str | None = None
    message: str | None = None
    user_status: UserStatus | None = None


class CommandModelConfigResponse(msgspec.Struct, rename="camel"):
    code: int | str | None = None
    message: str | None = None
    client_model_configs: list[ModelConfig] | None = None


def _decode(data: bytes, type_: type):
    try:
        return msgspec.json.decode(data, type=type_)
    except (msgspec.DecodeError, msgspec.ValidationError) as e:
        raise ProbeError.parse_failed(str(e)) from e


def _check_code(code: int | str | None) -> None:
    if code is None:
        return
    response_code = ResponseCode(code)
    if not response_code.is_ok:
        raise ProbeError.api_error(response_code.raw_value)


def quota_from_config(config: ModelConfig) -> ModelQuota | None:
    """Turn a model config into a quota; configs without quota info are skipped."""
    quota = config.quota_info
    if quota is None:
        return None
    return ModelQuota(
        label=config.label,
        model_id=config.model_or_alias.model,
        remaining_fraction=quota.remaining_fraction,
        reset_time=parse_reset_time(quota.reset_time),
    )


def quotas_from_configs(configs: list[ModelConfig] | None) -> list[ModelQuota]:
    quotas = (quota_from_config(c) for c in configs or [])
    return [q for q in quotas if q is not None]


def parse_user_status_response(data: bytes) -> UsageSnapshot:
    """Parse a GetUserStatus response into a snapshot.

    Raises:
        ProbeError: api_error for a non-success code, parse_failed for a
            malformed body or a missing userStatus.
    """
    response = _decode(data, UserStatusResponse)
    _check_code(response.code)

    user_status = response.user_status
    if user_status is None:
        raise ProbeError.parse_failed("Missing userStatus")

    config_data = user_status.cascade_model_config_data
    models = quotas_from_configs(config_data.client_model_configs if config_data else None)

    plan = None
    if user_status.plan_status and user_status.plan_status.plan_info:
        plan = user_status.plan_status.plan_info.preferred_name

    return build_snapshot(models, email=user_status.email, plan=plan)


def parse_command_model_response(data: bytes) -> UsageSnapshot:
    """Parse a GetCommandModelConfigs response; it carries no identity."""
    response = _decode(data, CommandModelConfigResponse)
    _check_code(response.code)
    return build_snapshot(quotas_from_configs(response.client_model_configs))
