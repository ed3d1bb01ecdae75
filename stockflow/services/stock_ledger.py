"""
Stock Ledger Service
Owns per-(item, warehouse) stock quantities and their locations
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.config import Settings, settings as default_settings
from stockflow.core.exceptions import (
    DuplicateError, InvalidStateError, NegativeStockError, NotFoundError,
    ValidationError
)
from stockflow.core.logging import get_logger
from stockflow.core.permissions import authorize
from stockflow.core.security import Identity
from stockflow.models import Item, StockLocation, Warehouse, build_location_code

logger = get_logger("business")

LOCATION_FIELDS = ("aisle", "rack", "bin")


class StockLedgerService:
    """
    Stock ledger operations

    ``adjust`` is the only path that changes ``current_stock`` after a
    location exists. It runs as one guarded UPDATE so concurrent writers on
    the same record serialize in the database and can never take the
    quantity below zero.
    """

    def __init__(
        self,
        db: Session,
        current_user: Optional[Identity] = None,
        config: Optional[Settings] = None,
    ):
        self.db = db
        self.current_user = current_user or Identity.system()
        self.config = config or default_settings

    # ------------------------------------------------------------------
    # Ledger primitives used by the workflows
    # ------------------------------------------------------------------

    def find_location(self, item_id: int, warehouse_id: int) -> Optional[StockLocation]:
        return self.db.query(StockLocation).filter(
            StockLocation.item_id == item_id,
            StockLocation.warehouse_id == warehouse_id,
            StockLocation.is_active.is_(True),
        ).first()

    def get_stock(self, item_id: int, warehouse_id: int) -> int:
        location = self.find_location(item_id, warehouse_id)
        if location is None:
            raise NotFoundError(
                "StockLocation", f"item={item_id} warehouse={warehouse_id}"
            )
        return location.current_stock

    def adjust(self, item_id: int, warehouse_id: int, delta: int, commit: bool = True) -> int:
        """
        Apply ``delta`` to the location's stock and return the new quantity

        Raises NegativeStockError if the result would be below zero.
        """
        location_id = self.db.query(StockLocation.id).filter(
            StockLocation.item_id == item_id,
            StockLocation.warehouse_id == warehouse_id,
            StockLocation.is_active.is_(True),
        ).scalar()
        if location_id is None:
            raise NotFoundError(
                "StockLocation", f"item={item_id} warehouse={warehouse_id}"
            )
        return self.adjust_location(location_id, delta, commit=commit)

    def adjust_location(self, location_id: int, delta: int, commit: bool = True) -> int:
        updated = self.db.query(StockLocation).filter(
            StockLocation.id == location_id,
            StockLocation.current_stock + delta >= 0,
        ).update(
            {
                StockLocation.current_stock: StockLocation.current_stock + delta,
                StockLocation.version: StockLocation.version + 1,
            },
            synchronize_session=False,
        )

        if updated == 0:
            current = self.db.query(StockLocation.current_stock).filter(
                StockLocation.id == location_id
            ).scalar()
            if commit:
                self.db.rollback()
            if current is None:
                raise NotFoundError("StockLocation", location_id)
            logger.warning(
                f"Rejected adjustment of {delta} on location {location_id}: stock is {current}"
            )
            raise NegativeStockError(
                f"Adjustment of {delta} would take stock below zero",
                location_id=location_id,
                current_stock=current,
                delta=delta,
            )

        new_quantity = self.db.query(StockLocation.current_stock).filter(
            StockLocation.id == location_id
        ).scalar()

        if commit:
            self.db.commit()

        logger.info(f"Location {location_id} adjusted by {delta}, now {new_quantity}")
        return new_quantity

    def lock_locations(self, location_ids: Iterable[int]) -> List[StockLocation]:
        """Row-lock locations in ascending id order (no-op on SQLite)"""
        return self.db.query(StockLocation).filter(
            StockLocation.id.in_(sorted(set(location_ids)))
        ).order_by(StockLocation.id).with_for_update().all()

    def ensure_location(
        self,
        item_id: int,
        warehouse_id: int,
        min_stock: Optional[int] = None,
        max_stock: Optional[int] = None,
    ) -> StockLocation:
        """
        Return the active location for the pair, creating one if needed

        A created location starts empty and is committed immediately, so this
        must be called before the caller opens its own write transaction.
        Defaults come from DEFAULT_MIN_STOCK / DEFAULT_MAX_STOCK.
        """
        location = self.find_location(item_id, warehouse_id)
        if location is not None:
            return location

        warehouse = self._get_warehouse(warehouse_id)
        self._get_item(item_id)

        location = StockLocation(
            item_id=item_id,
            warehouse_id=warehouse_id,
            aisle="A",
            rack="01",
            bin=self._free_bin(warehouse, "A", "01"),
            current_stock=0,
            min_stock=self.config.DEFAULT_MIN_STOCK if min_stock is None else min_stock,
            max_stock=self.config.DEFAULT_MAX_STOCK if max_stock is None else max_stock,
        )
        location.location_code = build_location_code(warehouse.code, location.aisle, location.rack, location.bin)

        try:
            self.db.add(location)
            self.db.commit()
        except IntegrityError:
            # Lost a race with another creator for the same pair
            self.db.rollback()
            location = self.find_location(item_id, warehouse_id)
            if location is None:
                raise
            return location

        logger.info(
            f"Created stock location {location.location_code} for item {item_id} "
            f"in warehouse {warehouse_id}"
        )
        return location

    # ------------------------------------------------------------------
    # Location management
    # ------------------------------------------------------------------

    @authorize("stock.read")
    def list_locations(
        self,
        warehouse_id: Optional[int] = None,
        item_id: Optional[int] = None,
        include_inactive: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[StockLocation]:
        query = self.db.query(StockLocation)
        if warehouse_id is not None:
            query = query.filter(StockLocation.warehouse_id == warehouse_id)
        if item_id is not None:
            query = query.filter(StockLocation.item_id == item_id)
        if not include_inactive:
            query = query.filter(StockLocation.is_active.is_(True))
        return query.order_by(StockLocation.location_code).offset(skip).limit(limit).all()

    @authorize("stock.read")
    def get_location(self, location_id: int) -> StockLocation:
        location = self.db.get(StockLocation, location_id)
        if location is None:
            raise NotFoundError("StockLocation", location_id)
        return location

    @authorize("stock.write")
    def create_location(self, data: Dict) -> StockLocation:
        """Create a location with an optional opening balance"""
        item_id = data["item_id"]
        warehouse_id = data["warehouse_id"]
        warehouse = self._get_warehouse(warehouse_id)
        self._get_item(item_id)

        if self.find_location(item_id, warehouse_id) is not None:
            raise DuplicateError(
                "An active stock location already exists for this item and warehouse",
                item_id=item_id,
                warehouse_id=warehouse_id,
            )

        opening = data.get("current_stock", 0) or 0
        if opening < 0:
            raise ValidationError("Opening stock cannot be negative", field="current_stock")

        aisle = data.get("aisle") or "A"
        rack = data.get("rack") or "01"
        bin_code = data.get("bin") or self._free_bin(warehouse, aisle, rack)
        max_stock = data.get("max_stock")
        if max_stock is None:
            max_stock = self.config.DEFAULT_MAX_STOCK
        min_stock = data.get("min_stock")
        if min_stock is None:
            min_stock = self.config.DEFAULT_MIN_STOCK
        self._check_thresholds(min_stock, max_stock)

        location = StockLocation(
            item_id=item_id,
            warehouse_id=warehouse_id,
            aisle=aisle,
            rack=rack,
            bin=bin_code,
            location_code=build_location_code(warehouse.code, aisle, rack, bin_code),
            current_stock=opening,
            min_stock=min_stock,
            max_stock=max_stock,
        )
        self._commit_location(location)
        logger.info(f"Stock location {location.location_code} created with opening stock {opening}")
        return location

    @authorize("stock.write")
    def update_location(self, location_id: int, data: Dict) -> StockLocation:
        """
        Update placement and thresholds

        Stock quantity is not editable here; the code is regenerated when
        aisle, rack or bin changes.
        """
        location = self.get_location(location_id)

        if "current_stock" in data and data["current_stock"] is not None:
            raise ValidationError(
                "current_stock changes only through receipts and transfers",
                field="current_stock",
            )

        min_stock = data["min_stock"] if data.get("min_stock") is not None else location.min_stock
        max_stock = data["max_stock"] if data.get("max_stock") is not None else location.max_stock
        self._check_thresholds(min_stock, max_stock)

        placement_changed = False
        for field in LOCATION_FIELDS:
            value = data.get(field)
            if value is not None and value != getattr(location, field):
                setattr(location, field, value)
                placement_changed = True

        location.min_stock = min_stock
        location.max_stock = max_stock
        if max_stock < min_stock:
            logger.warning(f"Location {location.id} max_stock {max_stock} below min_stock {min_stock}")

        if placement_changed:
            location.regenerate_code()

        self._commit_location(location)
        return location

    @authorize("stock.write")
    def delete_location(self, location_id: int) -> None:
        location = self.get_location(location_id)
        if location.current_stock > 0:
            raise InvalidStateError(
                "Cannot delete a location that still holds stock",
                current_stock=location.current_stock,
            )
        self.db.delete(location)
        self.db.commit()
        logger.info(f"Stock location {location_id} deleted")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _commit_location(self, location: StockLocation) -> None:
        try:
            self.db.add(location)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(
                f"Location code {location.location_code} is already in use",
                location_code=location.location_code,
            )
        self.db.refresh(location)

    @staticmethod
    def _check_thresholds(min_stock: int, max_stock: int) -> None:
        if min_stock < 0:
            raise ValidationError("min_stock cannot be negative", field="min_stock", value=min_stock)
        if max_stock < 1:
            raise ValidationError("max_stock must be at least 1", field="max_stock", value=max_stock)

    def _free_bin(self, warehouse: Warehouse, aisle: str, rack: str) -> str:
        prefix = build_location_code(warehouse.code, aisle, rack, "")
        taken = {
            code for (code,) in self.db.query(StockLocation.location_code).filter(
                StockLocation.location_code.like(f"{prefix}%")
            )
        }
        bin_number = 1
        while build_location_code(warehouse.code, aisle, rack, f"{bin_number:02d}") in taken:
            bin_number += 1
        return f"{bin_number:02d}"

    def _get_warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self.db.get(Warehouse, warehouse_id)
        if warehouse is None:
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    def _get_item(self, item_id: int) -> Item:
        item = self.db.get(Item, item_id)
        if item is None:
            raise NotFoundError("Item", item_id)
        return item
