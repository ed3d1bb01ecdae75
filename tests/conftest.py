"""
Test Configuration and Fixtures
Shared testing infrastructure for StockFlow
"""
from decimal import Decimal
from types import SimpleNamespace
from typing import Callable, Dict, Generator, List, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from stockflow.api import deps
from stockflow.core.database import create_db_engine, get_db, init_db
from stockflow.core.events import EventBus
from stockflow.core.notifications import Notifier
from stockflow.core.security import Identity, Role, create_access_token
from stockflow.main import app
from stockflow.models import Category, Item, Supplier, SupplierItem, Warehouse
from stockflow.services.goods_receipts import GoodsReceiptService
from stockflow.services.purchase_orders import PurchaseOrderService
from stockflow.services.purchase_requests import PurchaseRequestService
from stockflow.services.scheduler import AutomaticTriggerScheduler
from stockflow.services.stock_ledger import StockLedgerService
from stockflow.services.transfers import TransferService

ADMIN_ID = 1
MANAGER_ID = 2
WAREHOUSE_ID = 3
SUPPLIER_USER_ID = 4
OTHER_SUPPLIER_USER_ID = 5


class RecordingNotifier(Notifier):
    """Notifier that keeps messages in memory instead of sending them"""

    def __init__(self):
        super().__init__(background=False)
        self.sent: List[Tuple[str, str, str]] = []

    def notify(self, recipient: str, subject: str, body: str) -> None:
        self.sent.append((recipient, subject, body))

    def subjects_for(self, recipient: str) -> List[str]:
        return [subject for to, subject, _ in self.sent if to == recipient]


@pytest.fixture(scope="function")
def engine(tmp_path):
    """File-backed SQLite so concurrent sessions see each other's commits"""
    test_engine = create_db_engine(f"sqlite:///{tmp_path / 'stockflow_test.db'}")
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# Identities

@pytest.fixture
def admin() -> Identity:
    return Identity(user_id=ADMIN_ID, role=Role.ADMIN)


@pytest.fixture
def manager() -> Identity:
    return Identity(user_id=MANAGER_ID, role=Role.MANAGER)


@pytest.fixture
def warehouse_user() -> Identity:
    return Identity(user_id=WAREHOUSE_ID, role=Role.WAREHOUSE)


@pytest.fixture
def supplier_user() -> Identity:
    return Identity(user_id=SUPPLIER_USER_ID, role=Role.SUPPLIER)


@pytest.fixture
def other_supplier_user() -> Identity:
    return Identity(user_id=OTHER_SUPPLIER_USER_ID, role=Role.SUPPLIER)


# Collaborators

@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


# Seed data

@pytest.fixture
def catalog(db_session: Session) -> SimpleNamespace:
    """Two warehouses, one supplier with terms, one item with reorder point 10"""
    category = Category(name="Fasteners", description="Bolts, nuts and screws")
    main = Warehouse(code="WH01", name="Main Warehouse", capacity=10000)
    branch = Warehouse(code="WH02", name="Branch Warehouse", capacity=2000)
    supplier = Supplier(
        name="Acme Supplies",
        contact_person="Jo Smith",
        email="orders@acme.example",
        user_id=SUPPLIER_USER_ID,
    )
    other_supplier = Supplier(name="Globex Parts", email="sales@globex.example", user_id=OTHER_SUPPLIER_USER_ID)
    db_session.add_all([category, main, branch, supplier, other_supplier])
    db_session.commit()

    item = Item(
        sku="BOLT-M8",
        name="M8 Hex Bolt",
        category_id=category.id,
        lead_time_days=7,
        daily_consumption_rate=Decimal("1.50"),
        safety_stock=2,
        reorder_point=10,
        unit_price=Decimal("2.50"),
        preferred_supplier_id=supplier.id,
    )
    db_session.add(item)
    db_session.commit()

    terms = SupplierItem(
        supplier_id=supplier.id,
        item_id=item.id,
        unit_price=Decimal("2.00"),
        lead_time_days=5,
        minimum_order_quantity=10,
        is_preferred=True,
    )
    db_session.add(terms)
    db_session.commit()

    return SimpleNamespace(
        category_id=category.id,
        main_id=main.id,
        branch_id=branch.id,
        supplier_id=supplier.id,
        other_supplier_id=other_supplier.id,
        item_id=item.id,
        terms_id=terms.id,
    )


@pytest.fixture
def make_location(db_session: Session, admin: Identity) -> Callable:
    """Factory creating a stock location with an opening balance"""
    def _make(item_id: int, warehouse_id: int, stock: int, min_stock: int = 10, max_stock: int = 100):
        return StockLedgerService(db_session, admin).create_location({
            "item_id": item_id,
            "warehouse_id": warehouse_id,
            "current_stock": stock,
            "min_stock": min_stock,
            "max_stock": max_stock,
        })
    return _make


# Service factories wired to the recording collaborators

@pytest.fixture
def pr_service(db_session, notifier) -> Callable[[Identity], PurchaseRequestService]:
    return lambda identity: PurchaseRequestService(db_session, identity, notifier=notifier)


@pytest.fixture
def po_service(db_session, notifier) -> Callable[[Identity], PurchaseOrderService]:
    return lambda identity: PurchaseOrderService(db_session, identity, notifier=notifier)


@pytest.fixture
def grn_service(db_session, notifier, event_bus) -> Callable[[Identity], GoodsReceiptService]:
    return lambda identity: GoodsReceiptService(db_session, identity, notifier=notifier, event_bus=event_bus)


@pytest.fixture
def transfer_service(db_session, event_bus) -> Callable[[Identity], TransferService]:
    return lambda identity: TransferService(db_session, identity, event_bus=event_bus)


@pytest.fixture
def acknowledged_po(catalog, db_session, manager, admin, supplier_user, pr_service, po_service):
    """A purchase order for 50 units that the supplier has acknowledged"""
    request = pr_service(manager).create_request(catalog.item_id, catalog.main_id, 50)
    pr_service(manager).set_status(request.id, "approve")
    order = pr_service(manager).create_po_from_pr(request.id, catalog.supplier_id)
    po_service(admin).approve_order(order.id)
    po_service(supplier_user).respond(order.id, "acknowledge")
    db_session.refresh(order)
    return order


@pytest.fixture
def scheduler(session_factory, event_bus, notifier) -> Generator[AutomaticTriggerScheduler, None, None]:
    trigger = AutomaticTriggerScheduler(
        session_factory,
        interval_minutes=60,
        recheck_delay_seconds=0.05,
        event_bus=event_bus,
        notifier=notifier,
    )
    yield trigger
    trigger.close()


# API

@pytest.fixture(scope="function")
def client(session_factory, scheduler) -> Generator[TestClient, None, None]:
    """Create a test client with database and scheduler overrides"""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_trigger_scheduler] = lambda: scheduler
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def auth_headers_for(user_id: int, role: Role) -> Dict[str, str]:
    token = create_access_token(user_id, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return auth_headers_for(ADMIN_ID, Role.ADMIN)


@pytest.fixture
def manager_headers() -> Dict[str, str]:
    return auth_headers_for(MANAGER_ID, Role.MANAGER)


@pytest.fixture
def warehouse_headers() -> Dict[str, str]:
    return auth_headers_for(WAREHOUSE_ID, Role.WAREHOUSE)


@pytest.fixture
def supplier_headers() -> Dict[str, str]:
    return auth_headers_for(SUPPLIER_USER_ID, Role.SUPPLIER)
