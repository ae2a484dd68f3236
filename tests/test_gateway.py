"""Tests for the table gateway and change subscriptions."""
import gc

import pytest

from core.errors import PersistenceError
from core.gateway import DataGateway


@pytest.fixture
def plain_gateway(conn):
    return DataGateway(conn)


@pytest.fixture
def stocked(plain_gateway, garage_id):
    for name, qty in (("Bulb", 3), ("Fuse", 0), ("Hose", 7)):
        plain_gateway.insert(
            "inventory",
            {"item_name": name, "quantity": qty, "unit_price": 10, "garage_id": garage_id},
        )
    return plain_gateway


class TestSelect:

    def test_equality_and_order(self, stocked, garage_id):
        rows = stocked.select("inventory", {"garage_id": garage_id}, order="quantity",
                              descending=True)
        assert [r["item_name"] for r in rows] == ["Hose", "Bulb", "Fuse"]

    def test_in_filter(self, stocked):
        rows = stocked.select("inventory", {"item_name": ["Bulb", "Hose"]}, order="item_name")
        assert [r["item_name"] for r in rows] == ["Bulb", "Hose"]

    def test_empty_in_filter_matches_nothing(self, stocked):
        assert stocked.select("inventory", {"item_name": []}) == []

    def test_none_means_is_null(self, stocked):
        assert len(stocked.select("inventory", {"supplier": None})) == 3

    def test_columns_and_limit(self, stocked):
        rows = stocked.select("inventory", columns=["item_name"], order="item_name", limit=1)
        assert rows == [{"item_name": "Bulb"}]

    def test_range_filters(self, stocked):
        rows = stocked.select("inventory", {"quantity__gte": 3, "quantity__lt": 7})
        assert [r["item_name"] for r in rows] == ["Bulb"]
        rows = stocked.select("inventory", {"quantity__gt": 3}, order="item_name")
        assert [r["item_name"] for r in rows] == ["Hose"]

    def test_any_of_groups(self, stocked):
        rows = stocked.select(
            "inventory",
            {"unit_price": 10},
            order="item_name",
            any_of=[{"quantity": 0}, {"item_name": "Hose", "quantity__lte": 7}],
        )
        assert [r["item_name"] for r in rows] == ["Fuse", "Hose"]

    def test_unknown_range_column_rejected(self, stocked):
        with pytest.raises(ValueError):
            stocked.select("inventory", {"price__gte": 1})
        with pytest.raises(ValueError):
            stocked.select("inventory", any_of=[{"price": 1}])

    def test_unknown_identifiers_rejected(self, stocked):
        with pytest.raises(ValueError):
            stocked.select("inventory", {"quantity; DROP TABLE inventory": 1})
        with pytest.raises(ValueError):
            stocked.select("customers")
        with pytest.raises(ValueError):
            stocked.select("inventory", order="price")


class TestWrites:

    def test_insert_assigns_id_and_timestamp(self, plain_gateway):
        row = plain_gateway.insert("garages", {"name": "North"})
        assert row["id"]
        assert row["created_at"]
        assert plain_gateway.select_one("garages", {"id": row["id"]})["name"] == "North"

    def test_json_columns_round_trip(self, plain_gateway, garage_id):
        parts = [{"name": "Pad", "quantity": 2, "unitPrice": 150.0}]
        job = plain_gateway.insert("job_cards", {
            "customer_name": "A", "customer_phone": "1", "car_make": "M",
            "car_model": "S", "car_number": "P", "work_description": "W",
            "parts": parts, "garage_id": garage_id,
        })
        stored = plain_gateway.select_one("job_cards", {"id": job["id"]})
        assert stored["parts"] == parts
        assert stored["selected_services"] == []

    def test_update_returns_count(self, stocked):
        assert stocked.update("inventory", {"quantity": 1}, {"item_name": "Fuse"}) == 1
        assert stocked.update("inventory", {"quantity": 1}, {"item_name": "Nope"}) == 0

    def test_unscoped_writes_refused(self, stocked):
        with pytest.raises(ValueError):
            stocked.update("inventory", {"quantity": 0}, {})
        with pytest.raises(ValueError):
            stocked.delete("inventory", {})

    def test_delete(self, stocked):
        assert stocked.delete("inventory", {"item_name": "Bulb"}) == 1
        assert stocked.select_one("inventory", {"item_name": "Bulb"}) is None

    def test_driver_error_becomes_persistence_error(self, plain_gateway):
        # Missing NOT NULL columns
        with pytest.raises(PersistenceError):
            plain_gateway.insert("inventory", {"item_name": "Orphan"})
        # Connection is still usable after the rollback
        assert plain_gateway.select("inventory") == []


class TestSubscriptions:

    def test_matching_writes_notify(self, plain_gateway, garage_id, other_garage_id):
        events = []
        plain_gateway.subscribe("inventory", {"garage_id": garage_id},
                                lambda event, table: events.append((event, table)))

        item = plain_gateway.insert(
            "inventory", {"item_name": "Bulb", "quantity": 1, "garage_id": garage_id}
        )
        plain_gateway.insert(
            "inventory", {"item_name": "Bulb", "quantity": 1, "garage_id": other_garage_id}
        )
        plain_gateway.update("inventory", {"quantity": 0},
                             {"id": item["id"], "garage_id": garage_id})
        plain_gateway.delete("inventory", {"id": item["id"], "garage_id": garage_id})

        assert events == [
            ("INSERT", "inventory"),
            ("UPDATE", "inventory"),
            ("DELETE", "inventory"),
        ]

    def test_unsubscribe_stops_events(self, plain_gateway, garage_id):
        events = []
        sub = plain_gateway.subscribe("garages", None, lambda e, t: events.append(e))
        plain_gateway.insert("garages", {"name": "One"})
        sub.unsubscribe()
        plain_gateway.insert("garages", {"name": "Two"})
        assert events == ["INSERT"]
        assert not sub.active

    def test_dropped_owner_is_pruned_on_next_write(self, plain_gateway):
        class Listener:
            def __init__(self):
                self.events = []

            def on_change(self, event, table):
                self.events.append(event)

        kept, dropped = Listener(), Listener()
        plain_gateway.subscribe("garages", None, kept.on_change)
        plain_gateway.subscribe("garages", None, dropped.on_change)
        assert plain_gateway.subscription_count == 2

        del dropped
        gc.collect()
        plain_gateway.insert("garages", {"name": "After"})

        assert plain_gateway.subscription_count == 1
        assert kept.events == ["INSERT"]

    def test_failing_callback_does_not_break_write(self, plain_gateway):
        def explode(event, table):
            raise RuntimeError("boom")

        plain_gateway.subscribe("garages", None, explode)
        row = plain_gateway.insert("garages", {"name": "Still saved"})
        assert plain_gateway.select_one("garages", {"id": row["id"]}) is not None
