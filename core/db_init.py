"""Create and return a database connection (PostgreSQL or SQLite).
Schema creation is delegated to `schema.init_schema(conn)` so table
definitions live in one place.
"""
import logging
import sqlite3
from pathlib import Path

import streamlit as st

from core.constants import SQLITE_PATH
from core.schema import init_schema

logger = logging.getLogger(__name__)


def init_db():
    """Initialize database connection.
    Uses PostgreSQL in production (Supabase credentials in secrets) or SQLite locally.
    Connection reuse is handled by caching in app.py.
    """
    try:
        has_postgres = hasattr(st, 'secrets') and 'postgres' in st.secrets
    except Exception:
        logger.info('No secrets file found, using SQLite')
        has_postgres = False

    if has_postgres:
        import psycopg2

        try:
            # Supabase requires SSL; keyword form handles special characters in password
            conn = psycopg2.connect(
                host=st.secrets["postgres"]["host"],
                port=int(st.secrets["postgres"]["port"]),
                database=st.secrets["postgres"]["database"],
                user=st.secrets["postgres"]["user"],
                password=st.secrets["postgres"]["password"],
                sslmode='require',
                connect_timeout=10,
                options='-c statement_timeout=30000'
            )
            conn.autocommit = False
        except Exception as e:
            logger.exception('PostgreSQL connection failed')
            st.error(f"⚠️ PostgreSQL connection failed: {str(e)}")
            st.warning("\U0001F4DD Check: 1) Supabase project is ACTIVE (not paused), 2) Secrets are correct, 3) Database allows connections")
            # Do not fall back to SQLite when PostgreSQL secrets are provided.
            st.stop()
    else:
        conn = connect_sqlite()

    init_schema(conn)
    return conn


def connect_sqlite(path=SQLITE_PATH) -> sqlite3.Connection:
    """Create a SQLite connection (ensures the parent directory exists)."""
    db_path = Path(path)
    if str(path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
