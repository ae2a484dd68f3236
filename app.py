"""Garage Manager - Main Application Entry Point."""
import logging

import streamlit as st

from core.constants import (
    MENU_ACCOUNTS,
    MENU_DASHBOARD,
    MENU_INVENTORY,
    MENU_JOB_CARDS,
    MENU_STAFF,
)
from core.db_init import init_db
from core.gateway import DataGateway
from core.mobile_styles import apply_mobile_styles
from ui.sidebar import render_garage_selector, render_sidebar_menu

# Import page render functions
from page_modules import accounts, dashboard, inventory, job_cards, staff

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Page configuration
st.set_page_config(
    page_title="Garage Manager",
    page_icon="\U0001F527",
    layout="wide",
)

# Apply mobile-friendly styles
apply_mobile_styles()


# One connection and gateway per process (cached across reruns and sessions)
@st.cache_resource
def get_gateway():
    return DataGateway(init_db())


gateway = get_gateway()

# Render sidebar menu and garage selector
menu = render_sidebar_menu()
garage = render_garage_selector(gateway)

# Page routing
pages = {
    MENU_DASHBOARD: lambda: dashboard.render(gateway, garage),
    MENU_JOB_CARDS: lambda: job_cards.render(gateway, garage),
    MENU_INVENTORY: lambda: inventory.render(gateway, garage),
    MENU_ACCOUNTS: lambda: accounts.render(gateway, garage),
    MENU_STAFF: lambda: staff.render(gateway, garage),
}

# Render selected page
if menu not in pages:
    menu = MENU_DASHBOARD
pages[menu]()
