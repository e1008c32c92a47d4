from __future__ import annotations

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LEVEL_ENV_VAR = "ONVIF_LITE_LOG_LEVEL"
DEBUG_ENV_VAR = "ONVIF_LITE_DEBUG"


def _level_from_text(text: str) -> Optional[int]:
    text = text.strip()
    if text.isdigit():
        return int(text)
    # getLevelName maps registered names back to their numbers.
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else None


def resolve_env_level() -> Optional[int]:
    """Level requested through the environment, or None when nothing usable is set."""
    raw = os.environ.get(LEVEL_ENV_VAR)
    if raw:
        level = _level_from_text(raw)
        if level is not None:
            return level
    if os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in ("1", "true", "yes", "on"):
        return logging.DEBUG
    return None


def configure_logging(default_level: Union[int, str] = logging.INFO) -> int:
    """
    Set the root logger level, adding a stderr handler if none exists.

    ``ONVIF_LITE_LOG_LEVEL`` (name or number) wins over ``default_level``;
    otherwise a truthy ``ONVIF_LITE_DEBUG`` selects DEBUG. Returns the level
    applied.
    """
    if isinstance(default_level, str):
        fallback = _level_from_text(default_level)
        if fallback is None:
            fallback = logging.INFO
    else:
        fallback = default_level

    env_level = resolve_env_level()
    level = env_level if env_level is not None else fallback

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level)
    return level


__all__ = ["configure_logging", "resolve_env_level"]
