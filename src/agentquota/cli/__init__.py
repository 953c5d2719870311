"""CLI framework for agentquota."""
from __future__ import annotations

from agentquota.cli.app import ExitCode
from agentquota.cli.app import app
from agentquota.cli.app import run_app

__all__ = ["app", "run_app", "ExitCode"]
