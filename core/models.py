"""Job card aggregate and its row mapping."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from core.constants import UNTRACKED_INVENTORY_IDS


def _number(value: Any, default: float = 0.0) -> float:
    if value in (None, ""):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class Customer:
    name: str = ""
    phone: str = ""


@dataclass
class Car:
    make: str = ""
    model: str = ""
    plate: str = ""


@dataclass
class JobCardPart:
    name: str = ""
    quantity: float = 0
    unit_price: float = 0.0
    inventory_id: str = ""  # "" or "custom" = not tracked in inventory
    in_stock: bool = False

    @property
    def is_eligible(self) -> bool:
        """Whether this line consumes stock from a real inventory row."""
        return (
            bool(self.inventory_id)
            and self.in_stock
            and self.inventory_id not in UNTRACKED_INVENTORY_IDS
        )

    @property
    def line_total(self) -> float:
        return _number(self.quantity) * _number(self.unit_price)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobCardPart":
        unit_price = data.get("unitPrice")
        if unit_price in (None, ""):
            unit_price = data.get("unit_price")
        inventory_id = data.get("inventoryId")
        if inventory_id is None:
            inventory_id = data.get("inventory_id")
        in_stock = data.get("inStock")
        if in_stock is None:
            in_stock = data.get("in_stock", False)
        return cls(
            name=str(data.get("name") or ""),
            quantity=_number(data.get("quantity")),
            unit_price=_number(unit_price),
            inventory_id=str(inventory_id or ""),
            in_stock=bool(in_stock),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "inventoryId": self.inventory_id,
            "inStock": self.in_stock,
        }


@dataclass
class Service:
    service_name: str = ""
    price: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Service":
        return cls(
            service_name=str(data.get("service_name") or data.get("serviceName") or ""),
            price=_number(data.get("price")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"service_name": self.service_name, "price": self.price}


@dataclass
class StagedPhoto:
    """A photo picked in the form, not yet uploaded."""

    file_name: str
    content: bytes
    photo_type: str = "before"  # 'before' or 'after'
    content_type: str = ""

    @property
    def extension(self) -> str:
        if "." in self.file_name:
            return self.file_name.rsplit(".", 1)[-1].lower()
        return "bin"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class JobCard:
    id: str = ""
    customer: Customer = field(default_factory=Customer)
    car: Car = field(default_factory=Car)
    description: str = ""
    status: str = "Pending"
    assigned_staff: str = ""
    labor_hours: float = 0.0
    hourly_rate: float = 0.0
    manual_labor_cost: float = 0.0
    parts: List[JobCardPart] = field(default_factory=list)
    selected_services: List[Service] = field(default_factory=list)
    notes: str = ""
    job_date: Optional[str] = None
    estimated_completion_date: Optional[str] = None
    actual_completion_date: Optional[str] = None
    gst_slab_id: Optional[str] = None
    garage_id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def blank(cls, today: Optional[date] = None) -> "JobCard":
        today = today or date.today()
        return cls(job_date=today.isoformat())

    def to_row(self, garage_id: str) -> Dict[str, Any]:
        """Columns written to `job_cards`; the tenant comes from the caller."""
        return {
            "customer_name": self.customer.name,
            "customer_phone": self.customer.phone,
            "car_make": self.car.make,
            "car_model": self.car.model,
            "car_number": self.car.plate,
            "work_description": self.description,
            "status": self.status,
            "assigned_staff": self.assigned_staff or None,
            "labor_hours": self.labor_hours or 0,
            "hourly_rate": self.hourly_rate or 0,
            "manual_labor_cost": self.manual_labor_cost or 0,
            "estimated_completion_date": self.estimated_completion_date,
            "actual_completion_date": self.actual_completion_date,
            "notes": self.notes,
            "parts": [p.to_dict() for p in self.parts],
            "job_date": self.job_date,
            "gst_slab_id": self.gst_slab_id or None,
            "selected_services": [s.to_dict() for s in self.selected_services],
            "garage_id": garage_id,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "JobCard":
        return cls(
            id=str(row.get("id") or ""),
            customer=Customer(
                name=row.get("customer_name") or "",
                phone=row.get("customer_phone") or "",
            ),
            car=Car(
                make=row.get("car_make") or "",
                model=row.get("car_model") or "",
                plate=row.get("car_number") or "",
            ),
            description=row.get("work_description") or "",
            status=row.get("status") or "Pending",
            assigned_staff=row.get("assigned_staff") or "",
            labor_hours=_number(row.get("labor_hours")),
            hourly_rate=_number(row.get("hourly_rate")),
            manual_labor_cost=_number(row.get("manual_labor_cost")),
            parts=[JobCardPart.from_dict(p) for p in row.get("parts") or []],
            selected_services=[
                Service.from_dict(s) for s in row.get("selected_services") or []
            ],
            notes=row.get("notes") or "",
            job_date=row.get("job_date"),
            estimated_completion_date=row.get("estimated_completion_date"),
            actual_completion_date=row.get("actual_completion_date"),
            gst_slab_id=row.get("gst_slab_id"),
            garage_id=row.get("garage_id"),
            created_at=row.get("created_at"),
        )
