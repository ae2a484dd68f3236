# ---------- constants.py ----------
"""Project-wide constants and configuration defaults."""
from typing import Dict, List

JOB_STATUSES: List[str] = [
    "Pending",
    "In Progress",
    "Parts Ordered",
    "Ready for Pickup",
    "Completed",
]
ACTIVE_JOB_STATUSES: List[str] = ["In Progress", "Pending", "Parts Ordered"]
INVOICE_READY_STATUSES: List[str] = ["Completed", "Ready for Pickup"]

TRANSACTION_TYPES: List[str] = ["Income", "Expense"]
TRANSACTION_CATEGORIES: Dict[str, List[str]] = {
    "Income": ["Service", "Parts Sale", "Other"],
    "Expense": ["Parts", "Tools", "Salary", "Rent", "Utilities", "Other"],
}

PHOTO_TYPES: List[str] = ["before", "after"]
PHOTO_BUCKET = "job-cards"

# Parts with these inventory ids are ad-hoc and never touch stock
UNTRACKED_INVENTORY_IDS = ("", "custom")

MIN_STOCK_LEVEL_DEFAULT: int = 10

COMPLETED_JOBS_LIMIT = 50
RECENT_JOBS_LIMIT = 100
AVG_REPAIR_SAMPLE = 20

# Dashboard polling, in seconds (overridable from secrets)
TODAY_REFRESH_SECONDS = 5
MONTH_REFRESH_SECONDS = 30
AVG_REPAIR_STALE_SECONDS = 5 * 60

APP_TIMEZONE = "Asia/Kolkata"
DEFAULT_STORAGE_ROOT = "data/storage"
SQLITE_PATH = "data/garage.db"

# Sidebar menu labels (keep in sync across app and sidebar)
MENU_DASHBOARD = "\U0001F4C8 Dashboard"
MENU_JOB_CARDS = "\U0001F527 Job Cards"
MENU_INVENTORY = "\U0001F5C2️ Inventory"
MENU_ACCOUNTS = "\U0001F4B0 Accounts"
MENU_STAFF = "\U0001F465 Staff"
