"""Tests for error handling on the job card page."""
import pytest

import page_modules.job_cards as page
from core.errors import GarageRequiredError, PersistenceError
from core.job_cards import MODE_CREATE


@pytest.fixture
def shown_errors(monkeypatch, workflow):
    errors = []
    monkeypatch.setattr(page, "_workflow", lambda gw: workflow)
    monkeypatch.setattr(page, "show_error", errors.append)
    return errors


@pytest.fixture
def saved_job(workflow, garage_id, job_card):
    return workflow.save(job_card, MODE_CREATE, garage_id).job_id


class TestRenderView:

    def test_load_failure_is_reported(self, gateway, garage_id, saved_job, shown_errors):
        gateway.fail_reads.add(("job_cards", saved_job))
        page._render_view(gateway, {"id": garage_id}, saved_job)
        assert len(shown_errors) == 1
        assert isinstance(shown_errors[0], PersistenceError)

    def test_photo_listing_failure_is_reported(self, gateway, garage_id, saved_job,
                                               shown_errors):
        gateway.fail_reads.add(("job_photos", None))
        page._render_view(gateway, {"id": garage_id}, saved_job)
        assert len(shown_errors) == 1
        assert isinstance(shown_errors[0], PersistenceError)

    def test_missing_garage_is_reported(self, gateway, saved_job, shown_errors):
        page._render_view(gateway, {"id": None}, saved_job)
        assert len(shown_errors) == 1
        assert isinstance(shown_errors[0], GarageRequiredError)


class TestFormChoices:

    def test_lists_inventory_and_staff(self, gateway, garage_id, make_item):
        make_item(name="Spark Plug")
        gateway.insert("staff", {"name": "Ravi", "garage_id": garage_id})
        options, staff = page._form_choices(gateway, garage_id)
        assert [o["item_name"] for o in options] == ["Spark Plug"]
        assert staff == ["Ravi"]

    def test_requires_garage(self, gateway):
        with pytest.raises(GarageRequiredError):
            page._form_choices(gateway, None)
