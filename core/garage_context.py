"""The active garage (tenant) for this browser session.

Services never read this themselves; pages pass `garage["id"]` into every
call. ``None`` means no garage is selected and nothing may be queried.
"""
import logging
from typing import Dict, List, Optional

import streamlit as st

from core.errors import ValidationError
from core.gateway import DataGateway

logger = logging.getLogger(__name__)

SESSION_KEY = "current_garage"


def list_garages(gateway: DataGateway) -> List[Dict]:
    return gateway.select("garages", order="name")


def create_garage(gateway: DataGateway, name: str) -> Dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError(["Garage name is required"])
    row = gateway.insert("garages", {"name": name})
    logger.info("Created garage %s", name)
    return row


def get_current_garage() -> Optional[Dict]:
    return st.session_state.get(SESSION_KEY)


def set_current_garage(garage: Optional[Dict]) -> None:
    previous = st.session_state.get(SESSION_KEY)
    st.session_state[SESSION_KEY] = (
        {"id": garage["id"], "name": garage.get("name", "")} if garage else None
    )
    if (previous or {}).get("id") != (garage or {}).get("id"):
        logger.info("Switched garage to %s", (garage or {}).get("name"))
