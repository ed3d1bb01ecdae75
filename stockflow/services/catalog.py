"""
Catalog Service
Categories, warehouses, suppliers, items and supplier item terms
"""
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.exceptions import (
    DuplicateError, NotFoundError, ReferentialIntegrityError, ValidationError
)
from stockflow.core.logging import get_logger
from stockflow.core.permissions import authorize
from stockflow.core.security import Identity
from stockflow.models import (
    Category, Item, PurchaseOrder, PurchaseRequest, StockLocation, Supplier,
    SupplierItem, TransferOrder, Warehouse
)

logger = get_logger("business")

NON_NEGATIVE_ITEM_FIELDS = ("lead_time_days", "daily_consumption_rate", "safety_stock", "reorder_point", "unit_price")


class CatalogService:
    """
    Reference data maintenance

    Reads are open to every role; writes are admin only. Deleting a record
    that other records still point at is refused rather than cascaded.
    """

    def __init__(self, db: Session, current_user: Identity):
        self.db = db
        self.current_user = current_user

    # Categories

    @authorize("catalog.read")
    def list_categories(self, include_inactive: bool = False) -> List[Category]:
        query = self.db.query(Category)
        if not include_inactive:
            query = query.filter(Category.is_active.is_(True))
        return query.order_by(Category.name).all()

    @authorize("catalog.read")
    def get_category(self, category_id: int) -> Category:
        return self._get(Category, category_id)

    @authorize("catalog.write")
    def create_category(self, data: Dict) -> Category:
        category = Category(**data)
        return self._save(category, f"Category '{data.get('name')}' already exists", field="name")

    @authorize("catalog.write")
    def update_category(self, category_id: int, data: Dict) -> Category:
        category = self._get(Category, category_id)
        self._apply(category, data)
        return self._save(category, f"Category '{category.name}' already exists", field="name")

    @authorize("catalog.write")
    def delete_category(self, category_id: int) -> None:
        category = self._get(Category, category_id)
        dependents = self.db.query(Item).filter(Item.category_id == category_id).count()
        self._refuse_if_dependents("Category", category_id, {"items": dependents})
        self._delete(category)

    # Warehouses

    @authorize("catalog.read")
    def list_warehouses(self, include_inactive: bool = False) -> List[Warehouse]:
        query = self.db.query(Warehouse)
        if not include_inactive:
            query = query.filter(Warehouse.is_active.is_(True))
        return query.order_by(Warehouse.code).all()

    @authorize("catalog.read")
    def get_warehouse(self, warehouse_id: int) -> Warehouse:
        return self._get(Warehouse, warehouse_id)

    @authorize("catalog.write")
    def create_warehouse(self, data: Dict) -> Warehouse:
        data = dict(data)
        data["code"] = data["code"].strip().upper()
        warehouse = Warehouse(**data)
        return self._save(warehouse, f"Warehouse code {data['code']} already exists", field="code")

    @authorize("catalog.write")
    def update_warehouse(self, warehouse_id: int, data: Dict) -> Warehouse:
        warehouse = self._get(Warehouse, warehouse_id)
        if data.get("code"):
            code = data["code"].strip().upper()
            # Location codes embed the warehouse code
            if code != warehouse.code and self.db.query(StockLocation).filter(
                StockLocation.warehouse_id == warehouse_id
            ).count():
                raise ReferentialIntegrityError(
                    "Cannot change the code of a warehouse that has stock locations",
                    entity="Warehouse",
                    id=warehouse_id,
                )
            data = dict(data, code=code)
        self._apply(warehouse, data)
        return self._save(warehouse, f"Warehouse code {warehouse.code} already exists", field="code")

    @authorize("catalog.write")
    def delete_warehouse(self, warehouse_id: int) -> None:
        warehouse = self._get(Warehouse, warehouse_id)
        self._refuse_if_dependents("Warehouse", warehouse_id, {
            "stock_locations": self.db.query(StockLocation).filter(
                StockLocation.warehouse_id == warehouse_id).count(),
            "purchase_requests": self.db.query(PurchaseRequest).filter(
                PurchaseRequest.warehouse_id == warehouse_id).count(),
            "purchase_orders": self.db.query(PurchaseOrder).filter(
                PurchaseOrder.warehouse_id == warehouse_id).count(),
            "transfer_orders": self.db.query(TransferOrder).filter(or_(
                TransferOrder.from_warehouse_id == warehouse_id,
                TransferOrder.to_warehouse_id == warehouse_id,
            )).count(),
        })
        self._delete(warehouse)

    # Suppliers

    @authorize("catalog.read")
    def list_suppliers(self, include_inactive: bool = False) -> List[Supplier]:
        query = self.db.query(Supplier)
        if not include_inactive:
            query = query.filter(Supplier.is_active.is_(True))
        return query.order_by(Supplier.name).all()

    @authorize("catalog.read")
    def get_supplier(self, supplier_id: int) -> Supplier:
        return self._get(Supplier, supplier_id)

    @authorize("catalog.write")
    def create_supplier(self, data: Dict) -> Supplier:
        return self._save(Supplier(**data), "Supplier already exists")

    @authorize("catalog.write")
    def update_supplier(self, supplier_id: int, data: Dict) -> Supplier:
        supplier = self._get(Supplier, supplier_id)
        self._apply(supplier, data)
        return self._save(supplier, "Supplier already exists")

    @authorize("catalog.write")
    def delete_supplier(self, supplier_id: int) -> None:
        supplier = self._get(Supplier, supplier_id)
        self._refuse_if_dependents("Supplier", supplier_id, {
            "supplier_items": self.db.query(SupplierItem).filter(
                SupplierItem.supplier_id == supplier_id).count(),
            "purchase_orders": self.db.query(PurchaseOrder).filter(
                PurchaseOrder.supplier_id == supplier_id).count(),
            "preferred_for_items": self.db.query(Item).filter(
                Item.preferred_supplier_id == supplier_id).count(),
        })
        self._delete(supplier)

    # Items

    @authorize("catalog.read")
    def list_items(
        self,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        include_inactive: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Item]:
        query = self.db.query(Item)
        if category_id is not None:
            query = query.filter(Item.category_id == category_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Item.sku.ilike(pattern), Item.name.ilike(pattern)))
        if not include_inactive:
            query = query.filter(Item.is_active.is_(True))
        return query.order_by(Item.sku).offset(skip).limit(limit).all()

    @authorize("catalog.read")
    def get_item(self, item_id: int) -> Item:
        return self._get(Item, item_id)

    @authorize("catalog.write")
    def create_item(self, data: Dict) -> Item:
        self._validate_item(data)
        self._get(Category, data["category_id"])
        if data.get("preferred_supplier_id"):
            self._get(Supplier, data["preferred_supplier_id"])
        item = Item(**data, created_by=self.current_user.user_id)
        return self._save(item, f"Item SKU {data.get('sku')} already exists", field="sku")

    @authorize("catalog.write")
    def update_item(self, item_id: int, data: Dict) -> Item:
        item = self._get(Item, item_id)
        self._validate_item(data)
        if data.get("category_id"):
            self._get(Category, data["category_id"])
        if data.get("preferred_supplier_id"):
            self._get(Supplier, data["preferred_supplier_id"])
        self._apply(item, data)
        item.updated_by = self.current_user.user_id
        return self._save(item, f"Item SKU {item.sku} already exists", field="sku")

    @authorize("catalog.write")
    def delete_item(self, item_id: int) -> None:
        item = self._get(Item, item_id)
        self._refuse_if_dependents("Item", item_id, {
            "stock_locations": self.db.query(StockLocation).filter(
                StockLocation.item_id == item_id).count(),
            "supplier_items": self.db.query(SupplierItem).filter(
                SupplierItem.item_id == item_id).count(),
            "purchase_requests": self.db.query(PurchaseRequest).filter(
                PurchaseRequest.item_id == item_id).count(),
            "purchase_orders": self.db.query(PurchaseOrder).filter(
                PurchaseOrder.item_id == item_id).count(),
            "transfer_orders": self.db.query(TransferOrder).filter(
                TransferOrder.item_id == item_id).count(),
        })
        self._delete(item)

    @staticmethod
    def recommended_reorder_point(item: Item) -> int:
        """Consumption over the lead time plus safety stock"""
        demand = float(item.daily_consumption_rate or 0) * (item.lead_time_days or 0)
        return int(round(demand)) + (item.safety_stock or 0)

    # Supplier items

    @authorize("catalog.read")
    def list_supplier_items(
        self,
        supplier_id: Optional[int] = None,
        item_id: Optional[int] = None,
    ) -> List[SupplierItem]:
        query = self.db.query(SupplierItem).filter(SupplierItem.is_active.is_(True))
        if supplier_id is not None:
            query = query.filter(SupplierItem.supplier_id == supplier_id)
        if item_id is not None:
            query = query.filter(SupplierItem.item_id == item_id)
        return query.order_by(SupplierItem.is_preferred.desc(), SupplierItem.unit_price).all()

    @authorize("catalog.write")
    def add_supplier_item(self, data: Dict) -> SupplierItem:
        self._get(Supplier, data["supplier_id"])
        self._get(Item, data["item_id"])
        existing = self.db.query(SupplierItem).filter(
            SupplierItem.supplier_id == data["supplier_id"],
            SupplierItem.item_id == data["item_id"],
        ).first()
        if existing:
            raise DuplicateError(
                "Supplier already offers this item",
                supplier_id=data["supplier_id"],
                item_id=data["item_id"],
            )
        return self._save(SupplierItem(**data), "Supplier already offers this item")

    @authorize("catalog.write")
    def update_supplier_item(self, supplier_item_id: int, data: Dict) -> SupplierItem:
        supplier_item = self._get(SupplierItem, supplier_item_id)
        data = {k: v for k, v in data.items() if k not in ("supplier_id", "item_id")}
        self._apply(supplier_item, data)
        return self._save(supplier_item, "Supplier already offers this item")

    @authorize("catalog.write")
    def remove_supplier_item(self, supplier_item_id: int) -> None:
        self._delete(self._get(SupplierItem, supplier_item_id))

    def supplier_terms(self, supplier_id: int, item_id: int) -> Optional[SupplierItem]:
        """Active terms for a supplier/item pair, if any"""
        return self.db.query(SupplierItem).filter(
            SupplierItem.supplier_id == supplier_id,
            SupplierItem.item_id == item_id,
            SupplierItem.is_active.is_(True),
        ).first()

    # Helpers

    def _get(self, model, record_id: int):
        record = self.db.get(model, record_id)
        if record is None:
            raise NotFoundError(model.__name__, record_id)
        return record

    @staticmethod
    def _apply(record, data: Dict) -> None:
        for field, value in data.items():
            if value is not None:
                setattr(record, field, value)

    @staticmethod
    def _validate_item(data: Dict) -> None:
        for field in NON_NEGATIVE_ITEM_FIELDS:
            value = data.get(field)
            if value is not None and value < 0:
                raise ValidationError(f"{field} cannot be negative", field=field, value=value)

    def _save(self, record, duplicate_message: str, **details):
        try:
            self.db.add(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(duplicate_message, **details)
        self.db.refresh(record)
        logger.info(f"{type(record).__name__} {record.id} saved by user {self.current_user.user_id}")
        return record

    def _delete(self, record) -> None:
        self.db.delete(record)
        self.db.commit()
        logger.info(f"{type(record).__name__} {record.id} deleted by user {self.current_user.user_id}")

    @staticmethod
    def _refuse_if_dependents(entity: str, record_id: int, counts: Dict[str, int]) -> None:
        blocking = {name: count for name, count in counts.items() if count}
        if blocking:
            logger.warning(f"Refused delete of {entity} {record_id}: dependents {blocking}")
            raise ReferentialIntegrityError(
                f"{entity} {record_id} still has dependent records",
                entity=entity,
                id=record_id,
                dependents=blocking,
            )
