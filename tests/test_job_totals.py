"""Tests for the job total calculation."""
from core.job_totals import calculate_job_total
from core.models import Car, Customer, JobCard, JobCardPart, Service


class TestExplicitTotal:

    def test_positive_total_wins(self):
        job = {
            "total_price": 1200,
            "manual_labor_cost": 500,
            "parts": [{"quantity": 3, "unitPrice": 100}],
            "labor_hours": 2,
            "hourly_rate": 300,
        }
        assert calculate_job_total(job) == 1200

    def test_total_as_string(self):
        assert calculate_job_total({"total_price": "950.5", "manual_labor_cost": 10}) == 950.5

    def test_zero_total_is_ignored(self):
        assert calculate_job_total({"total_price": 0, "manual_labor_cost": 300}) == 300

    def test_negative_total_is_ignored(self):
        assert calculate_job_total({"total_price": -5, "manual_labor_cost": 300}) == 300


class TestAccumulatedTotal:

    def test_labor_plus_parts(self):
        job = {
            "manual_labor_cost": 500,
            "parts": [{"quantity": 2, "unitPrice": 150}],
        }
        assert calculate_job_total(job) == 800

    def test_all_components(self):
        job = {
            "manual_labor_cost": 100,
            "parts": [
                {"quantity": 2, "unitPrice": 50},
                {"quantity": 1, "unit_price": 25},
            ],
            "labor_hours": 1.5,
            "hourly_rate": 200,
            "selected_services": [{"service_name": "Wash", "price": 75}],
        }
        assert calculate_job_total(job) == 100 + 100 + 25 + 300 + 75

    def test_hours_without_rate_add_nothing(self):
        assert calculate_job_total({"labor_hours": 4, "hourly_rate": None}) == 0
        assert calculate_job_total({"labor_hours": None, "hourly_rate": 250}) == 0

    def test_missing_fields_count_as_zero(self):
        assert calculate_job_total({}) == 0
        assert calculate_job_total({"parts": [{"name": "Bolt"}]}) == 0
        assert calculate_job_total({"parts": None, "selected_services": None}) == 0

    def test_negative_values_pass_through(self):
        job = {"manual_labor_cost": -100, "selected_services": [{"price": 40}]}
        assert calculate_job_total(job) == -60

    def test_no_rounding(self):
        job = {"parts": [{"quantity": 3, "unitPrice": 0.1}]}
        assert calculate_job_total(job) == 3 * 0.1

    def test_accepts_job_card(self):
        card = JobCard(
            customer=Customer(name="A", phone="1"),
            car=Car(make="M", model="S", plate="P"),
            manual_labor_cost=500,
            parts=[JobCardPart(name="Pad", quantity=2, unit_price=150)],
            selected_services=[Service(service_name="Alignment", price=200)],
        )
        assert calculate_job_total(card) == 1000
