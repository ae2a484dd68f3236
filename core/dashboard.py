# ---------- dashboard.py ----------
"""Dashboard metrics: today's and this month's completed jobs, revenue,
active jobs and average repair time.

Each metric comes from its own query and goes stale on its own interval.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

import pandas as pd

from core.config import RefreshIntervals
from core.constants import ACTIVE_JOB_STATUSES, APP_TIMEZONE, AVG_REPAIR_SAMPLE
from core.gateway import DataGateway
from core.job_cards import list_recent
from core.job_totals import calculate_job_total

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class DashboardMetrics:
    today_revenue: float = 0.0
    monthly_revenue: float = 0.0
    today_completed_jobs: int = 0
    completed_jobs: int = 0
    active_jobs: int = 0
    avg_repair_days: float = 0.0

    @property
    def avg_repair_time(self) -> str:
        return f"{self.avg_repair_days} days"


def parse_timestamp(value: Any, tz: ZoneInfo) -> Optional[datetime]:
    """Parse a stored date/timestamp; naive values are taken as UTC."""
    if value in (None, ""):
        return None
    ts = pd.to_datetime(value, errors="coerce", utc=False)
    if ts is None or pd.isna(ts):
        return None
    dt = ts.to_pydatetime()
    if dt.tzinfo is None:
        # Date-only values are local days; bare timestamps are UTC
        if isinstance(value, str) and len(value) <= 10:
            return dt.replace(tzinfo=tz)
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _in_window(row: Mapping[str, Any], start: datetime, end: Optional[datetime],
               tz: ZoneInfo) -> bool:
    # Completion date decides; jobs never stamped fall back to creation time
    stamp = parse_timestamp(row.get("actual_completion_date"), tz)
    if stamp is None:
        stamp = parse_timestamp(row.get("created_at"), tz)
    if stamp is None:
        return False
    return stamp >= start and (end is None or stamp < end)


def _localize(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=ZoneInfo(APP_TIMEZONE))
    return now


def _month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    # Day 28 + 4 days always lands in the next month
    next_month = (start.replace(day=28) + timedelta(days=4)).replace(day=1)
    return start, next_month


def _bound(value: datetime, days: int) -> str:
    # Stored stamps mix offsets, naive UTC and bare dates, so SQL compares
    # on the date prefix with a day of slack; _in_window decides exactly
    return (value + timedelta(days=days)).date().isoformat()


def _fetch_completed_between(gateway: DataGateway, garage_id: str, start: datetime,
                             end: datetime) -> List[Dict[str, Any]]:
    """Completed jobs whose completion (or creation, if never stamped) is near the window."""
    low, high = _bound(start, -1), _bound(end, 1)
    return gateway.select(
        "job_cards",
        {"garage_id": garage_id, "status": "Completed"},
        any_of=[
            {"actual_completion_date__gte": low, "actual_completion_date__lt": high},
            {
                "actual_completion_date": None,
                "created_at__gte": low,
                "created_at__lt": high,
            },
        ],
    )


def _completed_in_window(gateway: DataGateway, garage_id: str, start: datetime,
                         end: datetime, tz: ZoneInfo) -> Tuple[int, float]:
    rows = _fetch_completed_between(gateway, garage_id, start, end)
    matched = [r for r in rows if _in_window(r, start, end, tz)]
    revenue = sum(calculate_job_total(r) for r in matched)
    return len(matched), revenue


def fetch_today_completed(gateway: DataGateway, garage_id: str,
                          now: datetime) -> Tuple[int, float]:
    """(count, revenue) of jobs completed today in `now`'s timezone.

    A naive `now` is taken to be in the app timezone.
    """
    now = _localize(now)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return _completed_in_window(
        gateway, garage_id, start, start + timedelta(days=1), now.tzinfo
    )


def fetch_month_completed(gateway: DataGateway, garage_id: str,
                          now: datetime) -> Tuple[int, float]:
    """(count, revenue) of jobs completed since the first of the month."""
    now = _localize(now)
    start, end = _month_bounds(now)
    return _completed_in_window(gateway, garage_id, start, end, now.tzinfo)


def fetch_average_repair_days(gateway: DataGateway, garage_id: str,
                              tz: Optional[ZoneInfo] = None) -> float:
    """Mean days from creation to completion over recent completed jobs."""
    tz = tz or ZoneInfo(APP_TIMEZONE)
    rows = gateway.select(
        "job_cards",
        {"garage_id": garage_id, "status": "Completed"},
        columns=["created_at", "actual_completion_date"],
        order="actual_completion_date",
        descending=True,
        limit=AVG_REPAIR_SAMPLE,
        not_null=["actual_completion_date"],
    )
    if not rows:
        return 0.0
    total_days = 0.0
    for row in rows:
        start = parse_timestamp(row.get("created_at"), tz)
        end = parse_timestamp(row.get("actual_completion_date"), tz)
        if start is None or end is None:
            continue
        # Clock skew or bad data must not pull the mean below zero
        total_days += max(0.0, (end - start).total_seconds() / SECONDS_PER_DAY)
    return round(total_days / len(rows), 1)


def count_active_jobs(rows: Iterable[Mapping[str, Any]]) -> int:
    return sum(1 for r in rows if r.get("status") in ACTIVE_JOB_STATUSES)


@dataclass
class _CacheEntry:
    value: Any = None
    fetched_at: Optional[float] = None
    loading: bool = False


class MetricsAggregator:
    """Caches each dashboard query per garage and refreshes stale ones.

    Stale queries run concurrently on a small thread pool. `is_loading`
    is true while any of them is in flight.
    """

    def __init__(self, gateway: DataGateway, intervals: Optional[RefreshIntervals] = None,
                 clock: Callable[[], float] = time.monotonic,
                 tz: Optional[ZoneInfo] = None):
        self.gateway = gateway
        self.intervals = intervals or RefreshIntervals()
        self.clock = clock
        self.tz = tz or ZoneInfo(APP_TIMEZONE)
        self._entries: Dict[Tuple[str, str], _CacheEntry] = {}
        self._lock = threading.Lock()

    def _queries(self, garage_id: str, now: datetime) -> Dict[str, Tuple[float, Callable[[], Any]]]:
        return {
            "today_completed_jobs": (
                self.intervals.today,
                lambda: fetch_today_completed(self.gateway, garage_id, now),
            ),
            "monthly_stats": (
                self.intervals.month,
                lambda: fetch_month_completed(self.gateway, garage_id, now),
            ),
            "avg_repair_time": (
                self.intervals.avg_repair,
                lambda: fetch_average_repair_days(self.gateway, garage_id, self.tz),
            ),
            "active_jobs": (
                self.intervals.today,
                lambda: count_active_jobs(list_recent(self.gateway, garage_id)),
            ),
        }

    def _entry(self, name: str, garage_id: str) -> _CacheEntry:
        with self._lock:
            return self._entries.setdefault((name, garage_id), _CacheEntry())

    def _is_stale(self, entry: _CacheEntry, max_age: float) -> bool:
        return entry.fetched_at is None or self.clock() - entry.fetched_at >= max_age

    def _run(self, name: str, garage_id: str, fetch: Callable[[], Any]) -> None:
        entry = self._entry(name, garage_id)
        try:
            value = fetch()
        except Exception:
            # Keep showing the previous value; try again next poll
            logger.exception("Error fetching %s for garage %s", name, garage_id)
        else:
            entry.value = value
            entry.fetched_at = self.clock()
        finally:
            entry.loading = False

    def is_loading(self, garage_id: Optional[str]) -> bool:
        if not garage_id:
            return False
        with self._lock:
            return any(
                e.loading for (_, gid), e in self._entries.items() if gid == garage_id
            )

    def refresh(self, garage_id: Optional[str], now: Optional[datetime] = None) -> DashboardMetrics:
        """Re-run stale queries for `garage_id` and return current metrics."""
        if not garage_id:
            return DashboardMetrics()
        now = now or datetime.now(self.tz)

        stale: List[Tuple[str, Callable[[], Any]]] = []
        for name, (max_age, fetch) in self._queries(garage_id, now).items():
            entry = self._entry(name, garage_id)
            if not entry.loading and self._is_stale(entry, max_age):
                entry.loading = True
                stale.append((name, fetch))

        if stale:
            with ThreadPoolExecutor(max_workers=len(stale)) as pool:
                for name, fetch in stale:
                    pool.submit(self._run, name, garage_id, fetch)

        return self.snapshot(garage_id)

    def snapshot(self, garage_id: str) -> DashboardMetrics:
        today = self._entry("today_completed_jobs", garage_id).value or (0, 0.0)
        month = self._entry("monthly_stats", garage_id).value or (0, 0.0)
        return DashboardMetrics(
            today_revenue=today[1],
            monthly_revenue=month[1],
            today_completed_jobs=today[0],
            completed_jobs=month[0],
            active_jobs=self._entry("active_jobs", garage_id).value or 0,
            avg_repair_days=self._entry("avg_repair_time", garage_id).value or 0.0,
        )

    def invalidate(self, garage_id: Optional[str] = None) -> None:
        with self._lock:
            for (name, gid), entry in self._entries.items():
                if garage_id is None or gid == garage_id:
                    entry.fetched_at = None


def monthly_revenue_by_day(gateway: DataGateway, garage_id: str,
                           now: datetime) -> pd.DataFrame:
    """Revenue of this month's completed jobs grouped by completion day."""
    now = _localize(now)
    tz = now.tzinfo
    start, end = _month_bounds(now)
    records = []
    for row in _fetch_completed_between(gateway, garage_id, start, end):
        if not _in_window(row, start, end, tz):
            continue
        stamp = parse_timestamp(row.get("actual_completion_date"), tz) or \
            parse_timestamp(row.get("created_at"), tz)
        records.append({"day": stamp.astimezone(tz).date(), "revenue": calculate_job_total(row)})
    if not records:
        return pd.DataFrame(columns=["day", "revenue"])
    return pd.DataFrame(records).groupby("day", as_index=False)["revenue"].sum()
