"""
Tests for the Catalog Service
"""
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from stockflow.core.exceptions import (
    AccessDeniedError, DuplicateError, NotFoundError, ReferentialIntegrityError, ValidationError
)
from stockflow.models import Item
from stockflow.services.catalog import CatalogService


@pytest.fixture
def admin_catalog(db_session: Session, admin) -> CatalogService:
    return CatalogService(db_session, admin)


def item_data(catalog, **overrides):
    data = {
        "sku": "NUT-M8",
        "name": "M8 Nut",
        "category_id": catalog.category_id,
        "lead_time_days": 5,
        "daily_consumption_rate": Decimal("2.00"),
        "safety_stock": 3,
        "reorder_point": 13,
        "unit_price": Decimal("0.40"),
    }
    data.update(overrides)
    return data


class TestCategoriesAndWarehouses:
    """Test suite for categories and warehouses"""

    def test_create_and_list_categories(self, admin_catalog):
        admin_catalog.create_category({"name": "Tools"})
        admin_catalog.create_category({"name": "Adhesives"})

        assert [c.name for c in admin_catalog.list_categories()] == ["Adhesives", "Tools"]

    def test_duplicate_category(self, admin_catalog):
        admin_catalog.create_category({"name": "Tools"})

        with pytest.raises(DuplicateError) as exc_info:
            admin_catalog.create_category({"name": "Tools"})

        assert exc_info.value.details["field"] == "name"

    def test_category_with_items_cannot_be_deleted(self, catalog, admin_catalog):
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            admin_catalog.delete_category(catalog.category_id)

        assert exc_info.value.details["dependents"] == {"items": 1}

    def test_warehouse_code_upper_cased(self, admin_catalog):
        warehouse = admin_catalog.create_warehouse({"code": " wh09 ", "name": "Overflow"})

        assert warehouse.code == "WH09"

    def test_duplicate_warehouse_code(self, catalog, admin_catalog):
        with pytest.raises(DuplicateError):
            admin_catalog.create_warehouse({"code": "wh01", "name": "Another main"})

    def test_warehouse_code_locked_once_stocked(self, catalog, make_location, admin_catalog):
        make_location(catalog.item_id, catalog.main_id, 5)

        with pytest.raises(ReferentialIntegrityError):
            admin_catalog.update_warehouse(catalog.main_id, {"code": "WH10"})

    def test_rename_warehouse_keeps_code(self, catalog, make_location, admin_catalog):
        make_location(catalog.item_id, catalog.main_id, 5)

        warehouse = admin_catalog.update_warehouse(catalog.main_id, {"name": "Central", "code": "wh01"})

        assert warehouse.name == "Central"
        assert warehouse.code == "WH01"

    def test_delete_empty_warehouse(self, admin_catalog):
        warehouse = admin_catalog.create_warehouse({"code": "TMP", "name": "Temporary"})

        admin_catalog.delete_warehouse(warehouse.id)

        with pytest.raises(NotFoundError):
            admin_catalog.get_warehouse(warehouse.id)

    def test_stocked_warehouse_cannot_be_deleted(self, catalog, make_location, admin_catalog):
        make_location(catalog.item_id, catalog.branch_id, 5)

        with pytest.raises(ReferentialIntegrityError) as exc_info:
            admin_catalog.delete_warehouse(catalog.branch_id)

        assert exc_info.value.details["dependents"] == {"stock_locations": 1}


class TestItems:
    """Test suite for item maintenance"""

    def test_create_item(self, catalog, admin_catalog, admin):
        item = admin_catalog.create_item(item_data(catalog))

        assert item.id is not None
        assert item.unit_of_measure == "pcs"
        assert item.created_by == admin.user_id

    def test_duplicate_sku(self, catalog, admin_catalog):
        with pytest.raises(DuplicateError):
            admin_catalog.create_item(item_data(catalog, sku="BOLT-M8"))

    def test_negative_fields_rejected(self, catalog, admin_catalog):
        with pytest.raises(ValidationError) as exc_info:
            admin_catalog.create_item(item_data(catalog, safety_stock=-1))

        assert exc_info.value.details["field"] == "safety_stock"

    def test_unknown_category(self, catalog, admin_catalog):
        with pytest.raises(NotFoundError):
            admin_catalog.create_item(item_data(catalog, category_id=999))

    def test_update_item(self, catalog, admin_catalog, admin):
        item = admin_catalog.update_item(catalog.item_id, {"reorder_point": 25, "name": None})

        assert item.reorder_point == 25
        assert item.name == "M8 Hex Bolt"
        assert item.updated_by == admin.user_id

    def test_search_items(self, catalog, admin_catalog):
        admin_catalog.create_item(item_data(catalog))

        assert [i.sku for i in admin_catalog.list_items(search="bolt")] == ["BOLT-M8"]
        assert len(admin_catalog.list_items(category_id=catalog.category_id)) == 2

    def test_item_in_use_cannot_be_deleted(self, catalog, admin_catalog):
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            admin_catalog.delete_item(catalog.item_id)

        assert exc_info.value.details["dependents"] == {"supplier_items": 1}

    def test_recommended_reorder_point(self, catalog, admin_catalog):
        item = admin_catalog.create_item(item_data(catalog))

        assert CatalogService.recommended_reorder_point(item) == 13

    def test_recommended_reorder_point_without_consumption(self):
        item = Item(sku="X", name="X", lead_time_days=10, daily_consumption_rate=Decimal("0"), safety_stock=4)

        assert CatalogService.recommended_reorder_point(item) == 4


class TestSuppliers:
    """Test suite for suppliers and their item terms"""

    def test_supplier_with_terms_cannot_be_deleted(self, catalog, admin_catalog):
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            admin_catalog.delete_supplier(catalog.supplier_id)

        assert set(exc_info.value.details["dependents"]) == {"supplier_items", "preferred_for_items"}

    def test_delete_unused_supplier(self, catalog, admin_catalog):
        admin_catalog.delete_supplier(catalog.other_supplier_id)

        assert [s.name for s in admin_catalog.list_suppliers()] == ["Acme Supplies"]

    def test_duplicate_supplier_item(self, catalog, admin_catalog):
        with pytest.raises(DuplicateError):
            admin_catalog.add_supplier_item({
                "supplier_id": catalog.supplier_id,
                "item_id": catalog.item_id,
                "unit_price": Decimal("1.90"),
            })

    def test_supplier_items_preferred_first(self, catalog, admin_catalog):
        admin_catalog.add_supplier_item({
            "supplier_id": catalog.other_supplier_id,
            "item_id": catalog.item_id,
            "unit_price": Decimal("1.50"),
        })

        terms = admin_catalog.list_supplier_items(item_id=catalog.item_id)

        assert [t.supplier_id for t in terms] == [catalog.supplier_id, catalog.other_supplier_id]

    def test_update_terms_keeps_pair(self, catalog, admin_catalog):
        terms = admin_catalog.update_supplier_item(catalog.terms_id, {
            "unit_price": Decimal("1.80"),
            "supplier_id": catalog.other_supplier_id,
        })

        assert terms.unit_price == Decimal("1.80")
        assert terms.supplier_id == catalog.supplier_id

    def test_remove_terms(self, catalog, admin_catalog):
        admin_catalog.remove_supplier_item(catalog.terms_id)

        assert admin_catalog.supplier_terms(catalog.supplier_id, catalog.item_id) is None


class TestCatalogAccess:
    """Test suite for role gating on reference data"""

    def test_supplier_can_read(self, db_session, catalog, supplier_user):
        service = CatalogService(db_session, supplier_user)

        assert service.get_item(catalog.item_id).sku == "BOLT-M8"

    @pytest.mark.parametrize("identity_fixture", ["manager", "warehouse_user", "supplier_user"])
    def test_only_admin_writes(self, request, db_session, identity_fixture):
        service = CatalogService(db_session, request.getfixturevalue(identity_fixture))

        with pytest.raises(AccessDeniedError):
            service.create_category({"name": "Forbidden"})
