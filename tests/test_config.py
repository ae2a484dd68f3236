"""Tests for settings read from secrets."""
from pathlib import Path
from zoneinfo import ZoneInfo

from core import config
from core.config import RefreshIntervals


def use_secrets(monkeypatch, secrets):
    monkeypatch.setattr(config, "_secret_section", lambda name: secrets.get(name))


def test_defaults_without_secrets(monkeypatch):
    use_secrets(monkeypatch, {})
    assert config.get_refresh_intervals() == RefreshIntervals(5, 30, 300)
    assert config.get_storage_root() == Path("data/storage")
    assert config.get_app_timezone() == ZoneInfo("Asia/Kolkata")


def test_overrides(monkeypatch):
    use_secrets(monkeypatch, {
        "dashboard": {"today_refresh_seconds": "10", "month_refresh_seconds": 60},
        "storage": {"root": "/srv/photos"},
        "app": {"timezone": "Europe/London"},
    })
    intervals = config.get_refresh_intervals()
    assert (intervals.today, intervals.month, intervals.avg_repair) == (10.0, 60.0, 300)
    assert config.get_storage_root() == Path("/srv/photos")
    assert config.get_app_timezone() == ZoneInfo("Europe/London")


def test_bad_values_fall_back(monkeypatch):
    use_secrets(monkeypatch, {
        "dashboard": {"today_refresh_seconds": "soon", "month_refresh_seconds": -1},
        "app": {"timezone": "Mars/Olympus"},
    })
    assert config.get_refresh_intervals() == RefreshIntervals()
    assert config.get_app_timezone() == ZoneInfo("Asia/Kolkata")
