# ---------- gateway.py ----------
"""Table-style access to the garage database.

Every screen talks to the database through `DataGateway`: select / insert /
update / delete by table name and a filter dict, plus change subscriptions so
pages can re-fetch when a table they show is written to.
"""
from __future__ import annotations

import inspect
import json
import logging
import threading
import uuid
import weakref
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from core.errors import PersistenceError
from core.schema import JSON_COLUMNS, TABLE_COLUMNS, DBConnection, is_postgres

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, str], None]

RANGE_OPERATORS = {"gte": ">=", "gt": ">", "lte": "<=", "lt": "<"}


def split_filter_key(key: str):
    """``"created_at__gte"`` -> ``("created_at", ">=")``; plain keys use ``=``."""
    column, sep, suffix = key.rpartition("__")
    if sep and suffix in RANGE_OPERATORS:
        return column, RANGE_OPERATORS[suffix]
    return key, "="


class Subscription:
    """Handle returned by `DataGateway.subscribe`.

    A bound-method callback is held weakly: once its object is garbage
    collected the subscription is dead and the gateway drops it.
    """

    def __init__(self, gateway: "DataGateway", table: str,
                 filters: Mapping[str, Any], callback: ChangeCallback):
        self.gateway = gateway
        self.table = table
        self.filters = dict(filters or {})
        if inspect.ismethod(callback):
            self._callback_ref = weakref.WeakMethod(callback)
        else:
            self._callback_ref = lambda: callback
        self.active = True

    @property
    def callback(self) -> Optional[ChangeCallback]:
        return self._callback_ref()

    @property
    def alive(self) -> bool:
        return self.active and self.callback is not None

    def matches(self, table: str, record: Mapping[str, Any]) -> bool:
        if table != self.table:
            return False
        for column, expected in self.filters.items():
            # Unknown column on the event: assume it may concern us
            if column in record and record[column] != expected:
                return False
        return True

    def unsubscribe(self) -> None:
        self.gateway._remove_subscription(self)
        self.active = False


class DataGateway:
    """Query/insert/update/delete against a DB-API connection."""

    def __init__(self, conn: DBConnection):
        self.conn = conn
        self.is_postgres = is_postgres(conn)
        self.placeholder = "%s" if self.is_postgres else "?"
        # One shared connection; cursors must not interleave across threads
        self._lock = threading.RLock()
        self._subscriptions: List[Subscription] = []
        self._subscriptions_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Identifiers and values
    # ------------------------------------------------------------------

    def _check_table(self, table: str) -> None:
        if table not in TABLE_COLUMNS:
            raise ValueError(f"Unknown table: {table}")

    def _check_columns(self, table: str, columns: Iterable[str]) -> None:
        known = TABLE_COLUMNS[table]
        for column in columns:
            if column not in known:
                raise ValueError(f"Unknown column {column!r} for table {table}")

    def _encode(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        json_cols = JSON_COLUMNS.get(table, ())
        encoded = {}
        for column, value in row.items():
            if column in json_cols and value is not None and not isinstance(value, str):
                value = json.dumps(value)
            elif isinstance(value, (date, datetime)):
                value = value.isoformat()
            encoded[column] = value
        return encoded

    def _decode(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        json_cols = JSON_COLUMNS.get(table, ())
        for column, value in row.items():
            if isinstance(value, Decimal):
                row[column] = float(value)
            elif isinstance(value, (date, datetime)):
                row[column] = value.isoformat()
            elif column in json_cols:
                if value in (None, ""):
                    row[column] = []
                elif isinstance(value, str):
                    try:
                        row[column] = json.loads(value)
                    except ValueError:
                        logger.warning("Bad JSON in %s.%s, treating as empty", table, column)
                        row[column] = []
        return row

    def _conditions(self, table: str, filters: Mapping[str, Any]):
        """AND-able SQL conditions for one filter dict.

        Keys may carry a range suffix: ``col__gte``, ``col__gt``, ``col__lte``
        or ``col__lt``.
        """
        self._check_columns(table, [split_filter_key(k)[0] for k in filters])
        clauses, params = [], []
        for key, value in filters.items():
            column, op = split_filter_key(key)
            if op != "=":
                clauses.append(f"{column} {op} {self.placeholder}")
                params.append(value)
            elif value is None:
                clauses.append(f"{column} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    clauses.append("1=0")
                    continue
                marks = ", ".join([self.placeholder] * len(values))
                clauses.append(f"{column} IN ({marks})")
                params.extend(values)
            else:
                clauses.append(f"{column} = {self.placeholder}")
                params.append(value)
        return clauses, params

    def _where(self, table: str, filters: Optional[Mapping[str, Any]],
               not_null: Sequence[str] = (),
               any_of: Sequence[Mapping[str, Any]] = ()):
        clauses, params = self._conditions(table, filters or {})
        self._check_columns(table, not_null)
        for column in not_null:
            clauses.append(f"{column} IS NOT NULL")
        if any_of:
            groups = []
            for group in any_of:
                group_clauses, group_params = self._conditions(table, group)
                groups.append("(" + " AND ".join(group_clauses or ["1=1"]) + ")")
                params.extend(group_params)
            clauses.append("(" + " OR ".join(groups) + ")")
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return where, params

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, operation: str, table: str, sql: str, params: Sequence[Any],
                 fetch: bool = False):
        with self._lock:
            cur = self.conn.cursor()
            try:
                cur.execute(sql, tuple(params))
                if fetch:
                    columns = [d[0] for d in cur.description or ()]
                    result = [dict(zip(columns, r)) for r in cur.fetchall()]
                else:
                    result = cur.rowcount
                self.conn.commit()
                return result
            except Exception as e:
                self.conn.rollback()
                logger.exception("Failed to %s %s", operation, table)
                raise PersistenceError(operation, table, str(e)) from e
            finally:
                cur.close()

    def select(
        self,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        columns: str | Sequence[str] = "*",
        order: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        not_null: Sequence[str] = (),
        any_of: Sequence[Mapping[str, Any]] = (),
    ) -> List[Dict[str, Any]]:
        """Return matching rows as dicts.

        A list/tuple filter value means IN, ``None`` means IS NULL. Rows must
        also match at least one of the `any_of` filter dicts, when given.
        """
        self._check_table(table)
        if columns == "*":
            column_sql = "*"
        else:
            self._check_columns(table, columns)
            column_sql = ", ".join(columns)
        where, params = self._where(table, filters, not_null, any_of)
        sql = f"SELECT {column_sql} FROM {table}{where}"
        if order:
            self._check_columns(table, [order])
            sql += f" ORDER BY {order} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        rows = self._execute("read", table, sql, params, fetch=True)
        return [self._decode(table, row) for row in rows]

    def select_one(self, table: str, filters: Mapping[str, Any],
                   columns: str | Sequence[str] = "*") -> Optional[Dict[str, Any]]:
        rows = self.select(table, filters, columns=columns, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert one row, assigning `id` and `created_at` when absent."""
        self._check_table(table)
        row = dict(row)
        if not row.get("id"):
            row["id"] = str(uuid.uuid4())
        if "created_at" in TABLE_COLUMNS[table] and not row.get("created_at"):
            row["created_at"] = datetime.now(timezone.utc).isoformat()
        self._check_columns(table, row)
        encoded = self._encode(table, row)
        column_sql = ", ".join(encoded)
        marks = ", ".join([self.placeholder] * len(encoded))
        self._execute(
            "insert", table,
            f"INSERT INTO {table} ({column_sql}) VALUES ({marks})",
            list(encoded.values()),
        )
        self._notify("INSERT", table, row)
        return row

    def update(self, table: str, values: Mapping[str, Any],
               filters: Mapping[str, Any]) -> int:
        """Update rows matching `filters`; returns the affected row count."""
        self._check_table(table)
        if not filters:
            raise ValueError(f"Refusing unscoped update on {table}")
        if not values:
            return 0
        self._check_columns(table, values)
        encoded = self._encode(table, values)
        set_sql = ", ".join(f"{c} = {self.placeholder}" for c in encoded)
        where, params = self._where(table, filters)
        count = self._execute(
            "update", table,
            f"UPDATE {table} SET {set_sql}{where}",
            list(encoded.values()) + params,
        )
        if count:
            self._notify("UPDATE", table, {**filters, **values})
        return count

    def delete(self, table: str, filters: Mapping[str, Any]) -> int:
        self._check_table(table)
        if not filters:
            raise ValueError(f"Refusing unscoped delete on {table}")
        where, params = self._where(table, filters)
        count = self._execute("delete", table, f"DELETE FROM {table}{where}", params)
        if count:
            self._notify("DELETE", table, dict(filters))
        return count

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------

    def subscribe(self, table: str, filters: Optional[Mapping[str, Any]],
                  callback: ChangeCallback) -> Subscription:
        """Call `callback(event, table)` after writes to matching rows.

        Pass a bound method to tie the subscription to its object's lifetime.
        """
        self._check_table(table)
        subscription = Subscription(self, table, filters or {}, callback)
        with self._subscriptions_lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._subscriptions_lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscription_count(self) -> int:
        with self._subscriptions_lock:
            return len(self._subscriptions)

    def _notify(self, event: str, table: str, record: Mapping[str, Any]) -> None:
        with self._subscriptions_lock:
            dead = [s for s in self._subscriptions if not s.alive]
            for subscription in dead:
                self._subscriptions.remove(subscription)
                subscription.active = False
            targets = [s for s in self._subscriptions if s.matches(table, record)]
        if dead:
            logger.info("Dropped %d subscriptions whose owners are gone", len(dead))
        for subscription in targets:
            callback = subscription.callback
            if callback is None:
                continue
            try:
                callback(event, table)
            except Exception:
                logger.exception("Change callback failed for %s", table)
