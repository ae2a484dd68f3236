"""Accounts page: income and expense transactions."""
from datetime import datetime

import pandas as pd
import streamlit as st

from core.accounts import delete_transaction, save_transaction, summarize
from core.config import get_app_timezone
from core.constants import TRANSACTION_CATEGORIES, TRANSACTION_TYPES
from core.errors import GarageError
from core.services import bump_cache_version, get_transactions, watch_table
from ui.components import flash, format_money, show_error, show_flash


def _format_date(value):
    dt = pd.to_datetime(value, errors="coerce")
    if pd.isna(dt):
        return "" if value is None else str(value)
    return dt.strftime("%d %b %Y")


def render(gateway, garage):
    """Render the accounts page."""
    st.header("\U0001F4B0 Accounts")
    show_flash()
    if not garage:
        st.info("Select a garage to see its accounts")
        return

    watch_table(gateway, "accounts", garage["id"])
    df = get_transactions(gateway, garage["id"])

    income, expenses, net = summarize(df)
    col1, col2, col3 = st.columns(3)
    col1.metric("Total Income", format_money(income))
    col2.metric("Total Expenses", format_money(expenses))
    col3.metric("Net Profit", format_money(net))

    # Type drives the category list, so it sits outside the form
    txn_type = st.radio("New transaction type", TRANSACTION_TYPES, horizontal=True)
    with st.form("add_transaction_form", clear_on_submit=True):
        description = st.text_input("Description")
        col1, col2, col3 = st.columns(3)
        amount = col1.number_input("Amount", min_value=0.0, step=100.0)
        category = col2.selectbox("Category", TRANSACTION_CATEGORIES[txn_type])
        txn_date = col3.date_input("Date", value=datetime.now(get_app_timezone()).date())
        if st.form_submit_button("➕ Add Transaction"):
            try:
                save_transaction(
                    gateway,
                    garage["id"],
                    {
                        "description": description,
                        "amount": amount,
                        "type": txn_type,
                        "category": category,
                        "date": txn_date,
                    },
                )
            except GarageError as e:
                show_error(e)
            else:
                bump_cache_version("accounts")
                flash(f"{txn_type} transaction has been added.", "\U0001F4B0")
                st.rerun()

    if df.empty:
        st.info("No transactions yet")
        return

    display_df = df.copy()
    display_df["date"] = display_df["date"].map(_format_date)
    display_df["amount"] = display_df["amount"].map(format_money)
    display_df = display_df[["date", "description", "category", "type", "amount"]].rename(
        columns={
            "date": "Date",
            "description": "Description",
            "category": "Category",
            "type": "Type",
            "amount": "Amount",
        }
    )
    st.dataframe(display_df, use_container_width=True, hide_index=True)

    with st.expander("✏️ Edit or delete a transaction"):
        labels = {
            r["id"]: f"{_format_date(r['date'])} · {r['description']} · {format_money(r['amount'])}"
            for _, r in df.iterrows()
        }
        txn_id = st.selectbox("Transaction", list(labels), format_func=lambda i: labels[i])
        row = df[df["id"] == txn_id].iloc[0]
        edit_type = st.radio(
            "Type", TRANSACTION_TYPES, horizontal=True,
            index=TRANSACTION_TYPES.index(row["type"]), key=f"edit_type_{txn_id}",
        )
        categories = TRANSACTION_CATEGORIES[edit_type]
        with st.form(f"edit_transaction_{txn_id}"):
            description = st.text_input("Description", value=row["description"])
            col1, col2 = st.columns(2)
            amount = col1.number_input("Amount", min_value=0.0, value=float(row["amount"]))
            category = col2.selectbox(
                "Category", categories,
                index=categories.index(row["category"]) if row["category"] in categories else 0,
            )
            col1, col2 = st.columns(2)
            save_clicked = col1.form_submit_button("\U0001F4BE Save")
            delete_clicked = col2.form_submit_button("\U0001F5D1️ Delete")
        if save_clicked or delete_clicked:
            try:
                if delete_clicked:
                    delete_transaction(gateway, garage["id"], txn_id)
                    message = "Transaction has been removed from records."
                else:
                    save_transaction(
                        gateway,
                        garage["id"],
                        {
                            "description": description,
                            "amount": amount,
                            "type": edit_type,
                            "category": category,
                            "date": row["date"],
                        },
                        transaction_id=txn_id,
                    )
                    message = "Transaction has been updated."
            except GarageError as e:
                show_error(e)
            else:
                bump_cache_version("accounts")
                flash(message, "\U0001F4B0")
                st.rerun()
