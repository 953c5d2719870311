"""Tests for Antigravity response parsing."""
from __future__ import annotations

import json

import pytest

from agentquota.errors.fetch import FetchErrorKind
from agentquota.errors.fetch import ProbeError
from agentquota.models import ProviderID
from agentquota.normalize import NO_QUOTAS_LABEL
from agentquota.providers.antigravity.parsing import ResponseCode
from agentquota.providers.antigravity.parsing import parse_command_model_response
from agentquota.providers.antigravity.parsing import parse_user_status_response


def model_config(label, fraction=None, reset=None, model="MODEL_X"):
    config = {"label": label, "modelOrAlias": {"model": model}}
    if fraction is not None or reset is not None:
        quota = {}
        if fraction is not None:
            quota["remainingFraction"] = fraction
        if reset is not None:
            quota["resetTime"] = reset
        config["quotaInfo"] = quota
    return config


def user_status_body(configs, code=None, email="dev@example.com", plan=None):
    body = {
        "userStatus": {
            "email": email,
            "cascadeModelConfigData": {"clientModelConfigs": configs},
        }
    }
    if plan is not None:
        body["userStatus"]["planStatus"] = {"planInfo": plan}
    if code is not None:
        body["code"] = code
    return json.dumps(body).encode()


class TestResponseCode:
    """Tests for ResponseCode."""

    @pytest.mark.parametrize("value", [0, "0", "ok", "OK", "Success", "success"])
    def test_ok(self, value):
        assert ResponseCode(value).is_ok

    @pytest.mark.parametrize("value", [1, 7, "error", "PERMISSION_DENIED", "00"])
    def test_not_ok(self, value):
        assert not ResponseCode(value).is_ok

    def test_raw_value(self):
        assert ResponseCode(7).raw_value == "7"


class TestParseUserStatus:
    """Tests for parse_user_status_response."""

    def test_full_response(self):
        data = user_status_body(
            [
                model_config("Gemini 3 Flash", 0.9),
                model_config("Claude Sonnet 4.5", 0.4, "2025-01-16T00:00:00Z"),
                model_config("Gemini 3 Pro (Low)", 0.75),
                model_config("No Quota Model"),
            ],
            plan={"planName": "free", "planDisplayName": "Antigravity Pro"},
        )

        snapshot = parse_user_status_response(data)

        assert snapshot.provider_id == ProviderID.ANTIGRAVITY
        assert snapshot.primary.label == "Claude Sonnet 4.5"
        assert snapshot.primary.used_percent == pytest.approx(60.0)
        assert snapshot.primary.resets_at is not None
        assert snapshot.secondary.label == "Gemini 3 Pro (Low)"
        assert snapshot.tertiary.label == "Gemini 3 Flash"
        assert snapshot.identity.email == "dev@example.com"
        assert snapshot.identity.plan == "Antigravity Pro"

    def test_string_success_code(self):
        data = user_status_body([model_config("Claude", 0.5)], code="OK")
        assert parse_user_status_response(data).primary.label == "Claude"

    def test_error_code(self):
        """A non-success code raises api_error with the code."""
        data = user_status_body([], code="PERMISSION_DENIED")

        with pytest.raises(ProbeError) as exc_info:
            parse_user_status_response(data)

        assert exc_info.value.kind == FetchErrorKind.API_ERROR
        assert exc_info.value.detail == "PERMISSION_DENIED"

    def test_integer_error_code(self):
        data = user_status_body([], code=16)

        with pytest.raises(ProbeError) as exc_info:
            parse_user_status_response(data)

        assert exc_info.value.detail == "16"

    def test_missing_user_status(self):
        with pytest.raises(ProbeError) as exc_info:
            parse_user_status_response(b'{"code": 0}')

        assert exc_info.value.kind == FetchErrorKind.PARSE_FAILED

    def test_malformed_json(self):
        with pytest.raises(ProbeError) as exc_info:
            parse_user_status_response(b"<html>")

        assert exc_info.value.kind == FetchErrorKind.PARSE_FAILED

    def test_missing_fraction_is_exhausted(self):
        data = user_status_body([model_config("Claude", reset="1736985600")])

        snapshot = parse_user_status_response(data)

        assert snapshot.primary.used_percent == 100.0
        assert snapshot.primary.resets_at is not None

    def test_no_models(self):
        snapshot = parse_user_status_response(b'{"userStatus": {}}')

        assert snapshot.primary.label == NO_QUOTAS_LABEL
        assert snapshot.primary.used_percent == 0.0
        assert snapshot.secondary is None

    def test_plan_name_fallback(self):
        data = user_status_body(
            [], plan={"planName": "  ", "productName": "Antigravity Free"}
        )
        assert parse_user_status_response(data).identity.plan == "Antigravity Free"


class TestParseCommandModel:
    """Tests for parse_command_model_response."""

    def test_models(self):
        data = json.dumps(
            {"clientModelConfigs": [model_config("x", 0.3), model_config("y", 0.1)]}
        ).encode()

        snapshot = parse_command_model_response(data)

        assert snapshot.primary.label == "y"
        assert snapshot.secondary.label == "x"
        assert snapshot.identity.email is None

    def test_error_code(self):
        with pytest.raises(ProbeError) as exc_info:
            parse_command_model_response(b'{"code": "unavailable"}')

        assert exc_info.value.kind == FetchErrorKind.API_ERROR
