"""Garage staff, used to assign job cards."""
import logging
from typing import List, Optional

import pandas as pd

from core.errors import GarageRequiredError, PersistenceError, ValidationError
from core.gateway import DataGateway

logger = logging.getLogger(__name__)


def list_staff(gateway: DataGateway, garage_id: Optional[str]) -> pd.DataFrame:
    if not garage_id:
        raise GarageRequiredError("staff")
    rows = gateway.select("staff", {"garage_id": garage_id}, order="name")
    return pd.DataFrame(rows, columns=["id", "name", "role", "garage_id", "created_at"])


def staff_options(gateway: DataGateway, garage_id: Optional[str]) -> List[str]:
    """Staff names for the 'Assigned staff' picker."""
    if not garage_id:
        return []
    rows = gateway.select("staff", {"garage_id": garage_id}, columns=["name"], order="name")
    return [r["name"] for r in rows]


def add_staff(gateway: DataGateway, garage_id: Optional[str], name: str,
              role: str = "") -> str:
    if not garage_id:
        raise GarageRequiredError("staff")
    name = (name or "").strip()
    if not name:
        raise ValidationError(["Staff name is required"])
    row = gateway.insert(
        "staff", {"name": name, "role": (role or "").strip(), "garage_id": garage_id}
    )
    logger.info("Added staff member %s", name)
    return row["id"]


def remove_staff(gateway: DataGateway, garage_id: Optional[str], staff_id: str) -> None:
    if not garage_id:
        raise GarageRequiredError("staff")
    if not gateway.delete("staff", {"id": staff_id, "garage_id": garage_id}):
        raise PersistenceError("delete", "staff", "staff member not found")
