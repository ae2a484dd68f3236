"""Tests for inventory listing, editing and stock deduction."""
import pytest

from core.errors import (
    GarageRequiredError,
    PartialInventoryFailure,
    PersistenceError,
    ValidationError,
)
from core.inventory import (
    add_inventory_item,
    adjust_inventory_quantities,
    delete_inventory_item,
    eligible_parts,
    inventory_options,
    list_inventory,
    low_stock_items,
    update_inventory_item,
)
from core.models import JobCardPart


def stock_of(gateway, item_id):
    return gateway.select_one("inventory", {"id": item_id})["quantity"]


class TestEligibleParts:

    def test_filters_untracked_and_out_of_stock(self):
        parts = [
            JobCardPart(name="a", quantity=1, inventory_id="inv-1", in_stock=True),
            JobCardPart(name="b", quantity=1, inventory_id="custom", in_stock=True),
            JobCardPart(name="c", quantity=1, inventory_id="", in_stock=True),
            JobCardPart(name="d", quantity=1, inventory_id="inv-2", in_stock=False),
        ]
        assert [p.name for p in eligible_parts(parts)] == ["a"]

    def test_accepts_stored_dicts(self):
        parts = [{"name": "a", "quantity": 1, "inventoryId": "inv-1", "inStock": True}]
        assert eligible_parts(parts)[0].inventory_id == "inv-1"


class TestAdjustInventory:

    def test_deducts_consumed_quantity(self, gateway, garage_id, make_item):
        item_id = make_item(quantity=10)
        parts = [JobCardPart(name="Oil Filter", quantity=3, inventory_id=item_id, in_stock=True)]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert stock_of(gateway, item_id) == 7

    def test_clamps_at_zero(self, gateway, garage_id, make_item):
        item_id = make_item(quantity=5)
        parts = [JobCardPart(name="Oil Filter", quantity=8, inventory_id=item_id, in_stock=True)]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert stock_of(gateway, item_id) == 0

    def test_fractional_quantity_rounds_up_to_whole_units(self, gateway, garage_id, make_item):
        item_id = make_item(quantity=10)
        parts = [JobCardPart(name="Coolant", quantity=2.5, inventory_id=item_id, in_stock=True)]
        adjust_inventory_quantities(gateway, parts, garage_id)
        stored = stock_of(gateway, item_id)
        assert stored == 7
        assert isinstance(stored, int)

    @pytest.mark.parametrize("before,consumed", [(0, 0), (0, 4), (3, 3), (9, 2), (2, 50)])
    def test_never_negative(self, gateway, garage_id, make_item, before, consumed):
        item_id = make_item(quantity=before)
        parts = [JobCardPart(name="x", quantity=consumed, inventory_id=item_id, in_stock=True)]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert stock_of(gateway, item_id) == max(0, before - consumed)

    def test_skips_ineligible_parts(self, gateway, garage_id, make_item):
        item_id = make_item(quantity=10)
        parts = [
            JobCardPart(name="x", quantity=4, inventory_id=item_id, in_stock=False),
            JobCardPart(name="y", quantity=4, inventory_id="custom", in_stock=True),
        ]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert stock_of(gateway, item_id) == 10

    def test_other_garage_row_is_untouched(self, gateway, garage_id, other_garage_id, make_item):
        foreign_id = make_item(quantity=10, garage=other_garage_id)
        parts = [JobCardPart(name="x", quantity=4, inventory_id=foreign_id, in_stock=True)]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert stock_of(gateway, foreign_id) == 10

    def test_tenant_guard_when_fetch_leaks(self, gateway, garage_id, other_garage_id, make_item):
        foreign_id = make_item(quantity=10, garage=other_garage_id)
        original = gateway.select_one

        def leaky_select_one(table, filters, columns="*"):
            # Simulate a backend that ignores the garage filter
            return original(table, {"id": filters["id"]}, columns=columns)

        gateway.select_one = leaky_select_one
        updates = []
        gateway.update = lambda *args, **kwargs: updates.append(args)

        parts = [JobCardPart(name="x", quantity=4, inventory_id=foreign_id, in_stock=True)]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert updates == []

    def test_missing_row_is_skipped(self, gateway, garage_id, make_item):
        item_id = make_item(quantity=10)
        parts = [
            JobCardPart(name="gone", quantity=1, inventory_id="no-such-id", in_stock=True),
            JobCardPart(name="ok", quantity=1, inventory_id=item_id, in_stock=True),
        ]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert stock_of(gateway, item_id) == 9

    def test_read_failure_is_skipped(self, gateway, garage_id, make_item):
        bad_id = make_item(name="Bad", quantity=10)
        good_id = make_item(name="Good", quantity=10)
        gateway.fail_reads.add(("inventory", bad_id))
        parts = [
            JobCardPart(name="Bad", quantity=1, inventory_id=bad_id, in_stock=True),
            JobCardPart(name="Good", quantity=1, inventory_id=good_id, in_stock=True),
        ]
        adjust_inventory_quantities(gateway, parts, garage_id)
        assert stock_of(gateway, good_id) == 9

    def test_write_failure_names_item_and_continues(self, gateway, garage_id, make_item):
        bad_id = make_item(name="Spark Plug", quantity=10)
        good_id = make_item(name="Air Filter", quantity=10)
        gateway.fail_updates.add(("inventory", bad_id))
        parts = [
            JobCardPart(name="Spark Plug", quantity=2, inventory_id=bad_id, in_stock=True),
            JobCardPart(name="Air Filter", quantity=2, inventory_id=good_id, in_stock=True),
        ]
        with pytest.raises(PartialInventoryFailure) as exc:
            adjust_inventory_quantities(gateway, parts, garage_id)
        assert exc.value.items == ["Spark Plug"]
        assert stock_of(gateway, bad_id) == 10
        assert stock_of(gateway, good_id) == 8

    def test_requires_garage(self, gateway):
        with pytest.raises(GarageRequiredError):
            adjust_inventory_quantities(gateway, [], None)


class TestInventoryItems:

    def test_add_and_list(self, gateway, garage_id):
        add_inventory_item(
            gateway, garage_id,
            {"item_name": "Wiper", "unit_price": 120, "quantity": 4, "supplier": "Acme"},
        )
        add_inventory_item(gateway, garage_id, {"item_name": "Battery", "unit_price": 4000})
        df = list_inventory(gateway, garage_id)
        assert list(df["item_name"]) == ["Battery", "Wiper"]

    def test_add_validation_reports_all_errors(self, gateway, garage_id):
        with pytest.raises(ValidationError) as exc:
            add_inventory_item(gateway, garage_id, {"item_name": "", "unit_price": 0})
        assert exc.value.errors == [
            "Item name is required",
            "Unit price must be greater than zero",
        ]

    def test_search_by_name_or_supplier(self, gateway, garage_id, make_item):
        make_item(name="Oil Filter")
        make_item(name="Brake Fluid")
        assert list(list_inventory(gateway, garage_id, "brake")["item_name"]) == ["Brake Fluid"]
        assert len(list_inventory(gateway, garage_id, "bosch")) == 2

    def test_list_is_tenant_scoped(self, gateway, garage_id, other_garage_id, make_item):
        make_item(name="Mine")
        make_item(name="Theirs", garage=other_garage_id)
        assert list(list_inventory(gateway, garage_id)["item_name"]) == ["Mine"]

    def test_update_and_delete_scoped(self, gateway, garage_id, other_garage_id, make_item):
        item_id = make_item(name="Coolant", quantity=3)
        with pytest.raises(PersistenceError):
            update_inventory_item(
                gateway, other_garage_id, item_id,
                {"item_name": "Hacked", "unit_price": 1},
            )
        with pytest.raises(PersistenceError):
            delete_inventory_item(gateway, other_garage_id, item_id)

        update_inventory_item(
            gateway, garage_id, item_id,
            {"item_name": "Coolant 1L", "unit_price": 300, "quantity": 6},
        )
        assert gateway.select_one("inventory", {"id": item_id})["item_name"] == "Coolant 1L"
        delete_inventory_item(gateway, garage_id, item_id)
        assert gateway.select_one("inventory", {"id": item_id}) is None

    def test_low_stock(self, gateway, garage_id, make_item):
        make_item(name="Low", quantity=2, min_stock_level=5)
        make_item(name="Edge", quantity=5, min_stock_level=5)
        make_item(name="Fine", quantity=9, min_stock_level=5)
        assert list(low_stock_items(gateway, garage_id)["item_name"]) == ["Edge", "Low"]

    def test_options(self, gateway, garage_id, make_item):
        item_id = make_item(name="Belt", quantity=1, unit_price=99)
        assert inventory_options(gateway, garage_id) == [
            {"id": item_id, "item_name": "Belt", "quantity": 1, "unit_price": 99.0}
        ]
