"""Sidebar menu and garage selector."""
import streamlit as st

from core.constants import (
    MENU_ACCOUNTS,
    MENU_DASHBOARD,
    MENU_INVENTORY,
    MENU_JOB_CARDS,
    MENU_STAFF,
)
from core.errors import GarageError
from core.garage_context import (
    create_garage,
    get_current_garage,
    list_garages,
    set_current_garage,
)

MENU = [MENU_DASHBOARD, MENU_JOB_CARDS, MENU_INVENTORY, MENU_ACCOUNTS, MENU_STAFF]


def render_sidebar_menu():
    """Render the sidebar navigation menu."""
    if (
        "menu_selection" not in st.session_state
        or st.session_state.menu_selection not in MENU
    ):
        st.session_state.menu_selection = MENU[0]
    return st.sidebar.radio("Select Page", MENU, key="menu_selection")


def render_garage_selector(gateway):
    """Pick the active garage; returns it, or None when there is none."""
    garages = list_garages(gateway)
    current = get_current_garage()

    st.sidebar.markdown("---")
    if garages:
        ids = [g["id"] for g in garages]
        names = {g["id"]: g["name"] for g in garages}
        index = ids.index(current["id"]) if current and current["id"] in ids else 0
        chosen = st.sidebar.selectbox(
            "Garage", ids, index=index, format_func=lambda gid: names[gid],
            key="garage_select",
        )
        set_current_garage({"id": chosen, "name": names[chosen]})
    else:
        set_current_garage(None)
        st.sidebar.info("Create a garage to get started.")

    with st.sidebar.expander("➕ New garage"):
        with st.form("new_garage_form", clear_on_submit=True):
            name = st.text_input("Garage name")
            if st.form_submit_button("Create"):
                try:
                    garage = create_garage(gateway, name)
                except GarageError as e:
                    st.error(str(e))
                else:
                    set_current_garage(garage)
                    st.session_state.pop("garage_select", None)
                    st.toast(f"Garage {garage['name']} created", icon="\U0001F3E2")
                    st.rerun()

    return get_current_garage()
