"""Credential file access for agentquota.

Credentials are produced by the providers' own tools (Claude CLI, Codex CLI,
Gemini CLI) or stored by the user under the agentquota credentials
directory. This module only reads them.
"""

from __future__ import annotations

import json
import logging
import stat
from pathlib import Path

from agentquota.config.paths import credentials_dir

logger = logging.getLogger(__name__)


def credential_path(provider_id: str, credential_type: str) -> Path:
    """Get the path for a provider's stored credential file."""
    return credentials_dir() / provider_id / f"{credential_type}.json"


def has_secure_permissions(path: Path) -> bool:
    """Verify credential file has secure permissions (0o600 or stricter)."""
    mode = path.stat().st_mode
    return not (mode & (stat.S_IRGRP | stat.S_IWGRP | stat.S_IROTH | stat.S_IWOTH))


def read_credential(path: Path, *, require_secure: bool = False) -> bytes | None:
    """Read a credential file if it exists.

    Returns None when the file is missing or cannot be read. With
    require_secure, files readable or writable by group or others are
    ignored.
    """
    if not path.is_file():
        return None

    try:
        if require_secure and not has_secure_permissions(path):
            logger.warning("Ignoring credential file with open permissions: %s", path)
            return None
        return path.read_bytes()
    except OSError as e:
        logger.debug("Cannot read credential file %s: %s", path, e)
        return None


def read_json_credential(path: Path, *, require_secure: bool = False) -> dict | None:
    """Read and decode a JSON credential file.

    Returns None when the file is missing, unreadable, or not a JSON object.
    """
    content = read_credential(path, require_secure=require_secure)
    if content is None:
        return None
    try:
        data = json.loads(content)
    except (UnicodeDecodeError, ValueError):
        logger.debug("Credential file is not valid JSON: %s", path)
        return None
    return data if isinstance(data, dict) else None

