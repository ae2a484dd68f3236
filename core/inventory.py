# ---------- inventory.py ----------
"""Inventory rows: listing, editing, and stock deduction for job cards."""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from core.errors import (
    GarageRequiredError,
    PartialInventoryFailure,
    PersistenceError,
    ValidationError,
)
from core.gateway import DataGateway
from core.models import JobCardPart

logger = logging.getLogger(__name__)

INVENTORY_COLUMNS = [
    "id",
    "item_name",
    "quantity",
    "min_stock_level",
    "unit_price",
    "supplier",
    "garage_id",
    "created_at",
]


def _require_garage(garage_id: Optional[str]) -> str:
    if not garage_id:
        raise GarageRequiredError("inventory")
    return garage_id


def _as_part(part: Union[JobCardPart, Mapping[str, Any]]) -> JobCardPart:
    return part if isinstance(part, JobCardPart) else JobCardPart.from_dict(part)


def eligible_parts(parts: Iterable[Union[JobCardPart, Mapping[str, Any]]]) -> List[JobCardPart]:
    """Parts that reference a real inventory row and are marked in stock."""
    return [p for p in (_as_part(part) for part in parts or []) if p.is_eligible]


def adjust_inventory_quantities(
    gateway: DataGateway,
    parts: Iterable[Union[JobCardPart, Mapping[str, Any]]],
    garage_id: Optional[str],
    job_card_id: Optional[str] = None,
) -> None:
    """Deduct consumed quantities from inventory, one item at a time.

    Stock is clamped at zero. Items that cannot be read, or that belong to
    another garage, are skipped. Items whose write fails are collected and
    reported together through `PartialInventoryFailure` once every item has
    been attempted.

    This is a read-then-write per item with no locking: two saves touching the
    same row at the same time can lose one of the deductions.
    """
    garage_id = _require_garage(garage_id)
    to_deduct = eligible_parts(parts)
    if not to_deduct:
        logger.info("No inventory parts to update for job %s", job_card_id)
        return

    failed: List[str] = []
    for part in to_deduct:
        try:
            item = gateway.select_one(
                "inventory",
                {"id": part.inventory_id, "garage_id": garage_id},
                columns=["id", "quantity", "item_name", "garage_id"],
            )
        except PersistenceError:
            logger.error("Could not read inventory item %s, skipping", part.inventory_id)
            continue

        if item is None:
            logger.error("Inventory item not found: %s", part.inventory_id)
            continue

        if item.get("garage_id") != garage_id:
            logger.error(
                "SECURITY VIOLATION: inventory item %s belongs to garage %s, not %s",
                part.inventory_id, item.get("garage_id"), garage_id,
            )
            continue

        # Stock is counted in whole units; an opened unit counts as used
        consumed = math.ceil(part.quantity or 0)
        current = int(item.get("quantity") or 0)
        new_quantity = max(0, current - consumed)

        try:
            gateway.update(
                "inventory",
                {"quantity": new_quantity},
                {"id": part.inventory_id, "garage_id": garage_id},
            )
        except PersistenceError:
            logger.error("Failed to update stock for %s", item.get("item_name"))
            failed.append(item.get("item_name") or part.name or part.inventory_id)
            continue

        logger.info(
            "Deducted %s from %s for job %s: %s -> %s",
            consumed, item.get("item_name"), job_card_id, current, new_quantity,
        )

    if failed:
        raise PartialInventoryFailure(failed)


def list_inventory(gateway: DataGateway, garage_id: Optional[str],
                   search: str = "") -> pd.DataFrame:
    """Inventory rows for a garage ordered by name, optionally searched."""
    garage_id = _require_garage(garage_id)
    rows = gateway.select("inventory", {"garage_id": garage_id}, order="item_name")
    if not rows:
        return pd.DataFrame(columns=INVENTORY_COLUMNS)
    df = pd.DataFrame(rows)
    df["supplier"] = df["supplier"].fillna("")
    if search:
        mask = df["item_name"].str.contains(search, case=False, na=False, regex=False)
        mask = mask | df["supplier"].str.contains(search, case=False, na=False, regex=False)
        df = df[mask]
    return df.reset_index(drop=True)


def _validate_item(item: Mapping[str, Any]) -> Dict[str, Any]:
    errors = []
    name = str(item.get("item_name") or "").strip()
    if not name:
        errors.append("Item name is required")
    try:
        unit_price = float(item.get("unit_price") or 0)
    except (TypeError, ValueError):
        unit_price = 0.0
    if unit_price <= 0:
        errors.append("Unit price must be greater than zero")
    try:
        quantity = int(item.get("quantity") or 0)
        min_stock = int(item.get("min_stock_level") or 0)
    except (TypeError, ValueError):
        errors.append("Quantity and minimum stock must be whole numbers")
        quantity, min_stock = 0, 0
    if quantity < 0 or min_stock < 0:
        errors.append("Quantity and minimum stock cannot be negative")
    if errors:
        raise ValidationError(errors)
    return {
        "item_name": name,
        "quantity": quantity,
        "min_stock_level": min_stock,
        "unit_price": unit_price,
        "supplier": str(item.get("supplier") or "").strip(),
    }


def add_inventory_item(gateway: DataGateway, garage_id: Optional[str],
                       item: Mapping[str, Any]) -> Dict[str, Any]:
    garage_id = _require_garage(garage_id)
    values = _validate_item(item)
    values["garage_id"] = garage_id
    row = gateway.insert("inventory", values)
    logger.info("Added inventory item %s", row["item_name"])
    return row


def update_inventory_item(gateway: DataGateway, garage_id: Optional[str],
                          item_id: str, item: Mapping[str, Any]) -> None:
    garage_id = _require_garage(garage_id)
    values = _validate_item(item)
    count = gateway.update("inventory", values, {"id": item_id, "garage_id": garage_id})
    if not count:
        raise PersistenceError("update", "inventory", "item not found")


def delete_inventory_item(gateway: DataGateway, garage_id: Optional[str],
                          item_id: str) -> None:
    garage_id = _require_garage(garage_id)
    count = gateway.delete("inventory", {"id": item_id, "garage_id": garage_id})
    if not count:
        raise PersistenceError("delete", "inventory", "item not found")


def low_stock_items(gateway: DataGateway, garage_id: Optional[str]) -> pd.DataFrame:
    """Items at or below their minimum stock level."""
    df = list_inventory(gateway, garage_id)
    if df.empty:
        return df
    # Compare in pandas; mixed numeric column types differ between backends
    quantity = pd.to_numeric(df["quantity"], errors="coerce").fillna(0)
    minimum = pd.to_numeric(df["min_stock_level"], errors="coerce").fillna(0)
    return df[quantity <= minimum].reset_index(drop=True)


def inventory_options(gateway: DataGateway, garage_id: Optional[str]) -> List[Dict[str, Any]]:
    """Items offered in the job-card part picker."""
    df = list_inventory(gateway, garage_id)
    return df[["id", "item_name", "quantity", "unit_price"]].to_dict("records")
