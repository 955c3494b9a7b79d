"""Shared configuration helpers read from the environment."""

from __future__ import annotations

import json
import os
from typing import Any

_PROFILE_KEY_TABLE = str.maketrans({"/": "_", "-": "_", ".": "_"})


def load_repo_profile(repo: str) -> dict[str, Any] | None:
    """Return the JSON profile stored in ``REPO_PROFILE_<repo>``, or None."""
    key = "REPO_PROFILE_" + repo.translate(_PROFILE_KEY_TABLE)
    raw = os.environ.get(key, "")
    if not raw:
        return None
    try:
        profile = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return profile if isinstance(profile, dict) else None


def env_or(key: str, fallback: str) -> str:
    """Return the environment variable's value, or ``fallback`` when unset or empty."""
    return os.environ.get(key) or fallback