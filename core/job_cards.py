# ---------- job_cards.py ----------
"""Load, validate and save job cards.

Saving a job card is a short sequence: validate, write the `job_cards` row,
deduct consumed parts from inventory, then upload any staged photos. Only the
row write decides success. Stock and photo problems after that point are
reported as warnings (stock) or only logged (photos).
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from core.constants import (
    COMPLETED_JOBS_LIMIT,
    INVOICE_READY_STATUSES,
    PHOTO_BUCKET,
    RECENT_JOBS_LIMIT,
)
from core.errors import (
    GarageRequiredError,
    PartialInventoryFailure,
    PersistenceError,
    PhotoUploadFailure,
    SaveInProgressError,
    ValidationError,
)
from core.gateway import DataGateway
from core.inventory import adjust_inventory_quantities
from core.models import JobCard, StagedPhoto
from core.storage import LocalObjectStorage

logger = logging.getLogger(__name__)

MODE_CREATE = "create"
MODE_UPDATE = "update"

STATE_IDLE = "idle"
STATE_VALIDATING = "validating"
STATE_SAVING = "saving"
STATE_SUCCESS = "success"
STATE_FAILED = "failed"

INVENTORY_PENDING = "pending"
INVENTORY_DONE = "done"
INVENTORY_WARNED = "warned"

STOCK_WARNING = "Job card saved but inventory quantities could not be updated"


@dataclass
class SaveResult:
    job_id: str
    mode: str
    inventory_warnings: List[str] = field(default_factory=list)
    photo_failures: int = 0

    @property
    def message(self) -> str:
        if self.mode == MODE_UPDATE:
            return "Job card has been successfully updated."
        return "Job card has been successfully created."

    @property
    def warning(self) -> Optional[str]:
        if not self.inventory_warnings:
            return None
        return f"{STOCK_WARNING}: " + ", ".join(self.inventory_warnings)


def validate_job_card(job_card: JobCard) -> List[str]:
    """Return every missing required field, in form order."""
    checks = [
        (job_card.customer.name, "Customer name is required"),
        (job_card.customer.phone, "Customer phone is required"),
        (job_card.car.make, "Car make is required"),
        (job_card.car.model, "Car model is required"),
        (job_card.car.plate, "License plate is required"),
        (job_card.description, "Work description is required"),
        (job_card.assigned_staff, "Assigned staff is required"),
    ]
    return [message for value, message in checks if not str(value or "").strip()]


class JobCardWorkflow:
    """One job-card editor's save pipeline.

    At most one save runs per instance; a second call while one is in
    flight raises `SaveInProgressError` instead of waiting.
    """

    def __init__(self, gateway: DataGateway, storage: LocalObjectStorage):
        self.gateway = gateway
        self.storage = storage
        self.state = STATE_IDLE
        self.inventory_state: Optional[str] = None
        self._save_lock = threading.Lock()
        self._last_photo_stamp = 0

    @property
    def is_saving(self) -> bool:
        return self._save_lock.locked()

    def validate(self, job_card: JobCard) -> List[str]:
        return validate_job_card(job_card)

    def save(self, job_card: JobCard, mode: str, garage_id: Optional[str],
             photos: Iterable[StagedPhoto] = ()) -> SaveResult:
        if mode not in (MODE_CREATE, MODE_UPDATE):
            raise ValueError(f"Unknown save mode: {mode}")
        if not garage_id:
            raise GarageRequiredError("job_cards")
        if not self._save_lock.acquire(blocking=False):
            logger.info("Save already in progress, rejecting duplicate submission")
            raise SaveInProgressError("A save is already in progress")
        try:
            return self._save(job_card, mode, garage_id, list(photos))
        finally:
            self._save_lock.release()

    def _save(self, job_card: JobCard, mode: str, garage_id: str,
              photos: List[StagedPhoto]) -> SaveResult:
        self.state = STATE_VALIDATING
        self.inventory_state = None
        errors = self.validate(job_card)
        if errors:
            self.state = STATE_IDLE
            raise ValidationError(errors)

        self.state = STATE_SAVING
        logger.info("Saving job card (%s) for garage %s", mode, garage_id)
        row = job_card.to_row(garage_id)
        try:
            if mode == MODE_UPDATE:
                if not job_card.id:
                    raise PersistenceError("update", "job_cards", "job card has no id")
                count = self.gateway.update(
                    "job_cards", row, {"id": job_card.id, "garage_id": garage_id}
                )
                if not count:
                    raise PersistenceError("update", "job_cards", "job card not found")
                job_id = job_card.id
            else:
                job_id = self.gateway.insert("job_cards", row)["id"]
        except PersistenceError:
            self.state = STATE_FAILED
            logger.exception("Error saving job card")
            raise

        result = SaveResult(job_id=job_id, mode=mode)

        if job_card.parts:
            self.inventory_state = INVENTORY_PENDING
            try:
                adjust_inventory_quantities(
                    self.gateway, job_card.parts, garage_id, job_card_id=job_id
                )
                self.inventory_state = INVENTORY_DONE
            except PartialInventoryFailure as e:
                self.inventory_state = INVENTORY_WARNED
                result.inventory_warnings = e.items
            except Exception:
                # Row is committed; stock accuracy is best-effort
                logger.exception("Failed to update inventory quantities")
                self.inventory_state = INVENTORY_WARNED
                result.inventory_warnings = ["inventory"]

        result.photo_failures = self._upload_photos(job_id, photos)
        self.state = STATE_SUCCESS
        logger.info("Job card %s saved (%s)", job_id, mode)
        return result

    def _photo_stamp(self) -> int:
        # Millisecond stamps, strictly increasing so paths never collide
        stamp = max(int(time.time() * 1000), self._last_photo_stamp + 1)
        self._last_photo_stamp = stamp
        return stamp

    def _upload_photos(self, job_id: str, photos: List[StagedPhoto]) -> int:
        failures = 0
        for photo in photos:
            path = f"{job_id}/{self._photo_stamp()}.{photo.extension}"
            try:
                self.storage.upload(PHOTO_BUCKET, path, photo.content)
                self.gateway.insert(
                    "job_photos",
                    {
                        "job_card_id": job_id,
                        "url": path,
                        "photo_type": photo.photo_type,
                        "file_name": photo.file_name,
                        "content_type": photo.content_type,
                        "size": photo.size,
                    },
                )
            except (PhotoUploadFailure, PersistenceError):
                failures += 1
                logger.exception("Error uploading photo %s", photo.file_name)
        return failures

    def load(self, job_id: str, garage_id: Optional[str]) -> Optional[JobCard]:
        if not garage_id:
            raise GarageRequiredError("job_cards")
        row = self.gateway.select_one("job_cards", {"id": job_id, "garage_id": garage_id})
        return JobCard.from_row(row) if row else None


def list_completed(gateway: DataGateway, garage_id: Optional[str],
                   limit: int = COMPLETED_JOBS_LIMIT) -> List[JobCard]:
    """Job cards ready for invoicing, newest first."""
    if not garage_id:
        raise GarageRequiredError("job_cards")
    rows = gateway.select(
        "job_cards",
        {"garage_id": garage_id, "status": INVOICE_READY_STATUSES},
        order="created_at",
        descending=True,
        limit=limit,
    )
    return [JobCard.from_row(r) for r in rows]


def list_recent(gateway: DataGateway, garage_id: Optional[str],
                limit: int = RECENT_JOBS_LIMIT) -> List[dict]:
    """Most recent job-card rows of any status."""
    if not garage_id:
        raise GarageRequiredError("job_cards")
    return gateway.select(
        "job_cards", {"garage_id": garage_id},
        order="created_at", descending=True, limit=limit,
    )


def list_photos(gateway: DataGateway, job_id: str) -> List[dict]:
    return gateway.select("job_photos", {"job_card_id": job_id}, order="created_at")
