"""Reusable UI components."""
import base64
from pathlib import Path

import pandas as pd
import streamlit as st

from core.errors import GarageError, PersistenceError, ValidationError

STATUS_CLASSES = {
    "Completed": "status-completed",
    "In Progress": "status-in-progress",
    "Pending": "status-pending",
    "Parts Ordered": "status-parts-ordered",
}


def status_badge(status: str) -> str:
    css = STATUS_CLASSES.get(status, "status-other")
    return f'<span class="status-badge {css}">{status}</span>'


def format_money(value) -> str:
    try:
        return f"₹{float(value):,.2f}"
    except (TypeError, ValueError):
        return "₹0.00"


def image_to_base64(image_path):
    """Convert a stored photo file to a base64 data URI for thumbnails."""
    try:
        file_path = Path(image_path)
        if not file_path.exists():
            return None
        with open(file_path, 'rb') as f:
            b64 = base64.b64encode(f.read()).decode()
        mime_types = {
            '.jpg': 'image/jpeg',
            '.jpeg': 'image/jpeg',
            '.png': 'image/png',
            '.gif': 'image/gif',
            '.webp': 'image/webp',
        }
        mime = mime_types.get(file_path.suffix.lower(), 'image/png')
        return f"data:{mime};base64,{b64}"
    except OSError:
        return None


def render_table(df: pd.DataFrame, columns: dict, empty_message: str, **column_config):
    """Show `df` with friendly headers; `columns` maps db name -> header."""
    if df.empty:
        st.info(empty_message)
        return
    display_df = df.copy()
    for c in columns:
        if c not in display_df.columns:
            display_df[c] = ""
    display_df = display_df[list(columns)].rename(columns=columns)
    st.dataframe(
        display_df,
        use_container_width=True,
        hide_index=True,
        column_config=column_config or None,
    )


def show_error(error: Exception) -> None:
    """Report a service error the way the pages expect."""
    if isinstance(error, ValidationError):
        st.error(f"Validation Error: {error}")
    elif isinstance(error, PersistenceError):
        st.error("Something went wrong talking to the database. Please try again.")
    elif isinstance(error, GarageError):
        st.error(str(error))
    else:
        raise error


def flash(message: str, icon: str = "✅") -> None:
    """Queue a toast to show after the next rerun."""
    st.session_state["flash_message"] = (message, icon)


def show_flash() -> None:
    pending = st.session_state.pop("flash_message", None)
    if pending:
        st.toast(pending[0], icon=pending[1])
