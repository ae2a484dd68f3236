"""Staff page: who can be assigned to job cards."""
import streamlit as st

from core.errors import GarageError
from core.staff import add_staff, list_staff, remove_staff
from ui.components import flash, render_table, show_error, show_flash


def render(gateway, garage):
    st.header("\U0001F465 Staff")
    show_flash()
    if not garage:
        st.info("Select a garage to manage its staff")
        return

    with st.form("add_staff_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        name = col1.text_input("Name")
        role = col2.text_input("Role", placeholder="Mechanic, Advisor…")
        if st.form_submit_button("➕ Add Staff"):
            try:
                add_staff(gateway, garage["id"], name, role)
            except GarageError as e:
                show_error(e)
            else:
                flash(f"{name.strip()} added", "\U0001F465")
                st.rerun()

    df = list_staff(gateway, garage["id"])
    render_table(df, {"name": "Name", "role": "Role"}, "No staff added yet")
    if df.empty:
        return

    names = dict(zip(df["id"], df["name"]))
    col1, col2 = st.columns([4, 1])
    staff_id = col1.selectbox("Remove staff member", list(names), format_func=lambda i: names[i])
    if col2.button("\U0001F5D1️ Remove"):
        try:
            remove_staff(gateway, garage["id"], staff_id)
        except GarageError as e:
            show_error(e)
        else:
            flash(f"{names[staff_id]} removed", "\U0001F465")
            st.rerun()
