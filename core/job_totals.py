"""Money total of a job card."""
import logging
from typing import Any, Mapping, Union

from core.models import JobCard

logger = logging.getLogger(__name__)


def _num(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def calculate_job_total(job: Union[Mapping[str, Any], JobCard]) -> float:
    """Return the billable total of a `job_cards` row.

    An explicit positive `total_price` wins outright. Otherwise the total is
    manual labour + parts (quantity x unit price) + hours x rate + services.
    Missing values count as zero, negatives pass through, nothing is rounded.
    """
    if isinstance(job, JobCard):
        job = job.to_row(job.garage_id or "")

    explicit = _num(job.get("total_price"))
    if explicit > 0:
        return explicit

    total = _num(job.get("manual_labor_cost"))

    for part in job.get("parts") or []:
        price = part.get("unitPrice")
        if price in (None, "", 0):
            price = part.get("unit_price")
        total += _num(part.get("quantity")) * _num(price)

    hours = _num(job.get("labor_hours"))
    rate = _num(job.get("hourly_rate"))
    if hours and rate:
        total += hours * rate

    for service in job.get("selected_services") or []:
        total += _num(service.get("price"))

    logger.debug("Job %s total %s", job.get("id"), total)
    return total
