"""Income and expense ledger."""
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

import pandas as pd

from core.constants import TRANSACTION_CATEGORIES, TRANSACTION_TYPES
from core.errors import GarageRequiredError, PersistenceError, ValidationError
from core.gateway import DataGateway

logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = ["id", "date", "description", "amount", "type", "category", "garage_id"]


def _require_garage(garage_id: Optional[str]) -> str:
    if not garage_id:
        raise GarageRequiredError("accounts")
    return garage_id


def list_transactions(gateway: DataGateway, garage_id: Optional[str]) -> pd.DataFrame:
    """Transactions for a garage, newest first, with `type` as Income/Expense."""
    garage_id = _require_garage(garage_id)
    rows = gateway.select("accounts", {"garage_id": garage_id}, order="date", descending=True)
    if not rows:
        return pd.DataFrame(columns=ACCOUNT_COLUMNS)
    df = pd.DataFrame(rows)
    df["type"] = df["type"].map(lambda t: "Income" if str(t).lower() == "income" else "Expense")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0)
    df["description"] = df["description"].fillna("")
    df["category"] = df["category"].fillna("Other")
    return df[ACCOUNT_COLUMNS]


def validate_transaction(txn: Mapping[str, Any]) -> dict:
    errors = []
    description = str(txn.get("description") or "").strip()
    if not description:
        errors.append("Description is required")
    try:
        amount = float(txn.get("amount") or 0)
    except (TypeError, ValueError):
        amount = 0.0
    if amount <= 0:
        errors.append("Amount must be greater than zero")
    txn_type = txn.get("type")
    if txn_type not in TRANSACTION_TYPES:
        errors.append("Type must be Income or Expense")
    category = txn.get("category") or ""
    if txn_type in TRANSACTION_CATEGORIES and category not in TRANSACTION_CATEGORIES[txn_type]:
        errors.append(f"Category is required for {txn_type}")
    if errors:
        raise ValidationError(errors)
    return {
        "description": description,
        "amount": amount,
        "type": txn_type.lower(),
        "category": category,
    }


def save_transaction(gateway: DataGateway, garage_id: Optional[str],
                     txn: Mapping[str, Any], transaction_id: Optional[str] = None) -> str:
    """Insert a transaction, or update it when `transaction_id` is given."""
    garage_id = _require_garage(garage_id)
    values = validate_transaction(txn)
    txn_date = txn.get("date") or datetime.now(timezone.utc)
    values["date"] = txn_date.isoformat() if hasattr(txn_date, "isoformat") else str(txn_date)
    if transaction_id:
        # Ownership is part of the filter, so another garage's id matches nothing
        count = gateway.update(
            "accounts", values, {"id": transaction_id, "garage_id": garage_id}
        )
        if not count:
            raise PersistenceError("update", "accounts", "transaction not found")
        logger.info("Updated transaction %s", transaction_id)
        return transaction_id
    values["garage_id"] = garage_id
    row = gateway.insert("accounts", values)
    logger.info("Added %s transaction %s", values["type"], row["id"])
    return row["id"]


def delete_transaction(gateway: DataGateway, garage_id: Optional[str],
                       transaction_id: str) -> None:
    garage_id = _require_garage(garage_id)
    count = gateway.delete("accounts", {"id": transaction_id, "garage_id": garage_id})
    if not count:
        raise PersistenceError("delete", "accounts", "transaction not found")


def summarize(df: pd.DataFrame) -> Tuple[float, float, float]:
    """Return (total income, total expenses, net profit)."""
    if df.empty:
        return 0.0, 0.0, 0.0
    income = float(df.loc[df["type"] == "Income", "amount"].sum())
    expenses = float(df.loc[df["type"] == "Expense", "amount"].sum())
    return income, expenses, income - expenses
