# ---------- schema.py ----------
"""Table definitions for the garage database (PostgreSQL or SQLite)."""
from __future__ import annotations

import logging
import sqlite3
from typing import Dict, Tuple, Union

try:
    import psycopg2
    import psycopg2.extensions
except ImportError:
    psycopg2 = None

logger = logging.getLogger(__name__)

# Type alias for database connections
DBConnection = Union[sqlite3.Connection, "psycopg2.extensions.connection"]

# Column whitelist per table; the gateway refuses any other identifier.
TABLE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "garages": ("id", "name", "created_at"),
    "staff": ("id", "name", "role", "garage_id", "created_at"),
    "job_cards": (
        "id",
        "customer_name",
        "customer_phone",
        "car_make",
        "car_model",
        "car_number",
        "work_description",
        "status",
        "assigned_staff",
        "labor_hours",
        "hourly_rate",
        "manual_labor_cost",
        "total_price",
        "estimated_completion_date",
        "actual_completion_date",
        "notes",
        "parts",
        "selected_services",
        "job_date",
        "gst_slab_id",
        "garage_id",
        "created_at",
    ),
    "job_photos": (
        "id",
        "job_card_id",
        "url",
        "photo_type",
        "file_name",
        "content_type",
        "size",
        "created_at",
    ),
    "inventory": (
        "id",
        "item_name",
        "quantity",
        "min_stock_level",
        "unit_price",
        "supplier",
        "garage_id",
        "created_at",
    ),
    "accounts": (
        "id",
        "date",
        "description",
        "amount",
        "type",
        "category",
        "garage_id",
        "created_at",
    ),
}

# Stored as JSON text, decoded on read
JSON_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "job_cards": ("parts", "selected_services"),
}


def is_postgres(conn: DBConnection) -> bool:
    """Check if connection is PostgreSQL."""
    return psycopg2 is not None and isinstance(conn, psycopg2.extensions.connection)


def init_schema(conn: DBConnection) -> None:
    """Create tables for a new database (safe to run on existing DB)."""
    is_pg = is_postgres(conn)

    # NUMERIC for PostgreSQL, REAL for SQLite
    real_type = "NUMERIC(12,2)" if is_pg else "REAL"
    ts_default = "TIMESTAMPTZ DEFAULT now()" if is_pg else "TEXT DEFAULT CURRENT_TIMESTAMP"

    cur = conn.cursor()

    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS garages (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at {ts_default}
        )
        """
    )
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS staff (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            role TEXT,
            garage_id TEXT NOT NULL REFERENCES garages(id),
            created_at {ts_default}
        )
        """
    )
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS job_cards (
            id TEXT PRIMARY KEY,
            customer_name TEXT NOT NULL,
            customer_phone TEXT NOT NULL,
            car_make TEXT NOT NULL,
            car_model TEXT NOT NULL,
            car_number TEXT NOT NULL,
            work_description TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'Pending',
            assigned_staff TEXT,
            labor_hours {real_type} DEFAULT 0,
            hourly_rate {real_type} DEFAULT 0,
            manual_labor_cost {real_type} DEFAULT 0,
            total_price {real_type},
            estimated_completion_date TEXT,
            actual_completion_date TEXT,
            notes TEXT,
            parts TEXT DEFAULT '[]',
            selected_services TEXT DEFAULT '[]',
            job_date TEXT,
            gst_slab_id TEXT,
            garage_id TEXT NOT NULL REFERENCES garages(id),
            created_at {ts_default}
        )
        """
    )
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS job_photos (
            id TEXT PRIMARY KEY,
            job_card_id TEXT NOT NULL REFERENCES job_cards(id),
            url TEXT NOT NULL,
            photo_type TEXT,
            file_name TEXT,
            content_type TEXT,
            size INTEGER,
            created_at {ts_default}
        )
        """
    )
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS inventory (
            id TEXT PRIMARY KEY,
            item_name TEXT NOT NULL,
            quantity INTEGER NOT NULL DEFAULT 0,
            min_stock_level INTEGER DEFAULT 0,
            unit_price {real_type} DEFAULT 0,
            supplier TEXT,
            garage_id TEXT NOT NULL REFERENCES garages(id),
            created_at {ts_default}
        )
        """
    )
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS accounts (
            id TEXT PRIMARY KEY,
            date TEXT NOT NULL,
            description TEXT,
            amount {real_type} NOT NULL DEFAULT 0,
            type TEXT NOT NULL,
            category TEXT,
            garage_id TEXT NOT NULL REFERENCES garages(id),
            created_at {ts_default}
        )
        """
    )

    for table in ("staff", "job_cards", "inventory", "accounts"):
        cur.execute(
            f"CREATE INDEX IF NOT EXISTS idx_{table}_garage ON {table}(garage_id)"
        )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_job_photos_job ON job_photos(job_card_id)"
    )

    conn.commit()
    logger.info("Schema ready (%s)", "postgres" if is_pg else "sqlite")
