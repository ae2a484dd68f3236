# ---------- services.py ----------
"""Cached data access and change watching used by the Streamlit pages."""
from __future__ import annotations

import logging
from typing import Optional

import pandas as pd
import streamlit as st

from core.accounts import list_transactions
from core.gateway import DataGateway
from core.inventory import list_inventory, low_stock_items
from core.job_cards import list_recent

logger = logging.getLogger(__name__)

VERSIONS_KEY = "cache_versions"
SUBSCRIPTIONS_KEY = "change_subscriptions"


class CacheVersions(dict):
    """Per-session table -> version counters.

    A plain mapping so change callbacks from other threads can bump it. The
    gateway holds `on_change` weakly, so when the session's state is dropped
    its subscriptions go with it.
    """

    def bump(self, table: str) -> None:
        self[table] = self.get(table, 0) + 1

    def on_change(self, event: str, table: str) -> None:
        logger.info("%s change detected on %s, refreshing", event, table)
        self.bump(table)


def _versions() -> CacheVersions:
    if VERSIONS_KEY not in st.session_state:
        st.session_state[VERSIONS_KEY] = CacheVersions()
    return st.session_state[VERSIONS_KEY]


def cache_version(name: str) -> int:
    return _versions().get(name, 0)


def bump_cache_version(name: str) -> None:
    _versions().bump(name)


def watch_table(gateway: DataGateway, table: str, garage_id: Optional[str]) -> None:
    """Subscribe once per session to writes on `table` for this garage.

    A change bumps the table's cache version, so the next render re-fetches
    the whole set instead of merging rows.
    """
    if not garage_id:
        return
    if SUBSCRIPTIONS_KEY not in st.session_state:
        st.session_state[SUBSCRIPTIONS_KEY] = {}
    subscriptions = st.session_state[SUBSCRIPTIONS_KEY]
    current = subscriptions.get(table)
    if current is not None and current.filters.get("garage_id") == garage_id:
        return
    if current is not None:
        current.unsubscribe()

    subscriptions[table] = gateway.subscribe(
        table, {"garage_id": garage_id}, _versions().on_change
    )


def get_inventory(gateway: DataGateway, garage_id: str, search: str = "") -> pd.DataFrame:
    """Inventory for the garage. Cached for 30 seconds or until a write."""
    @st.cache_data(ttl=30)
    def _fetch_inventory(cache_key: str, garage_id: str, search: str):
        return list_inventory(gateway, garage_id, search)

    cache_key = f"inventory_{garage_id}_{cache_version('inventory')}"
    return _fetch_inventory(cache_key, garage_id, search)


def get_low_stock(gateway: DataGateway, garage_id: str) -> pd.DataFrame:
    @st.cache_data(ttl=30)
    def _fetch_low_stock(cache_key: str, garage_id: str):
        return low_stock_items(gateway, garage_id)

    cache_key = f"low_stock_{garage_id}_{cache_version('inventory')}"
    return _fetch_low_stock(cache_key, garage_id)


def get_transactions(gateway: DataGateway, garage_id: str) -> pd.DataFrame:
    @st.cache_data(ttl=30)
    def _fetch_transactions(cache_key: str, garage_id: str):
        return list_transactions(gateway, garage_id)

    cache_key = f"accounts_{garage_id}_{cache_version('accounts')}"
    return _fetch_transactions(cache_key, garage_id)


def get_recent_job_cards(gateway: DataGateway, garage_id: str, limit: int = 5) -> pd.DataFrame:
    """Latest job cards. Cached for 10 seconds."""
    @st.cache_data(ttl=10)
    def _fetch_recent(cache_key: str, garage_id: str, limit: int):
        rows = list_recent(gateway, garage_id, limit=limit)
        return pd.DataFrame(rows)

    cache_key = f"jobs_{garage_id}_{limit}_{cache_version('job_cards')}"
    return _fetch_recent(cache_key, garage_id, limit)
