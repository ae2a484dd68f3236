"""Settings read from Streamlit secrets, with constants as fallback."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import streamlit as st

from core.constants import (
    APP_TIMEZONE,
    AVG_REPAIR_STALE_SECONDS,
    DEFAULT_STORAGE_ROOT,
    MONTH_REFRESH_SECONDS,
    TODAY_REFRESH_SECONDS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshIntervals:
    """How long each dashboard query result stays fresh, in seconds."""

    today: float = TODAY_REFRESH_SECONDS
    month: float = MONTH_REFRESH_SECONDS
    avg_repair: float = AVG_REPAIR_STALE_SECONDS


def _secret_section(name: str) -> Optional[Any]:
    # st.secrets raises when no secrets.toml exists; that is a normal local setup
    try:
        if hasattr(st, "secrets") and name in st.secrets:
            return st.secrets[name]
    except Exception:
        logger.debug("No secrets available for [%s]", name)
    return None


def _positive_number(section, key: str, default: float) -> float:
    if not section or key not in section:
        return default
    try:
        value = float(section[key])
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s=%r", key, section[key])
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r", key, value)
        return default
    return value


def get_refresh_intervals() -> RefreshIntervals:
    """Return dashboard polling intervals from `[dashboard]` secrets."""
    section = _secret_section("dashboard")
    return RefreshIntervals(
        today=_positive_number(section, "today_refresh_seconds", TODAY_REFRESH_SECONDS),
        month=_positive_number(section, "month_refresh_seconds", MONTH_REFRESH_SECONDS),
        avg_repair=_positive_number(
            section, "avg_repair_stale_seconds", AVG_REPAIR_STALE_SECONDS
        ),
    )


def get_storage_root() -> Path:
    section = _secret_section("storage")
    if section and section.get("root"):
        return Path(section["root"])
    return Path(DEFAULT_STORAGE_ROOT)


def get_app_timezone() -> ZoneInfo:
    section = _secret_section("app")
    name = section.get("timezone") if section else None
    if name:
        try:
            return ZoneInfo(name)
        except ZoneInfoNotFoundError:
            logger.warning("Unknown timezone %r, using %s", name, APP_TIMEZONE)
    return ZoneInfo(APP_TIMEZONE)
