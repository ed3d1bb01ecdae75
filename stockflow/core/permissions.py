"""
Operation permissions

Each workflow operation declares the roles allowed to invoke it here, and
service methods are wrapped with ``authorize`` which checks the table once
before the method body runs.
"""
from functools import wraps
from typing import Callable, Dict, FrozenSet

from .exceptions import AccessDeniedError
from .logging import get_logger
from .security import Role

security_logger = get_logger("security")

ADMIN = Role.ADMIN
MANAGER = Role.MANAGER
WAREHOUSE = Role.WAREHOUSE
SUPPLIER = Role.SUPPLIER

INTERNAL_STAFF = frozenset({ADMIN, MANAGER, WAREHOUSE})
APPROVERS = frozenset({ADMIN, MANAGER})

OPERATION_ROLES: Dict[str, FrozenSet[Role]] = {
    # Catalog
    "catalog.read": frozenset({ADMIN, MANAGER, WAREHOUSE, SUPPLIER}),
    "catalog.write": frozenset({ADMIN}),
    # Stock ledger
    "stock.read": INTERNAL_STAFF,
    "stock.write": APPROVERS,
    # Purchase requests
    "pr.read": INTERNAL_STAFF,
    "pr.create": APPROVERS,
    "pr.edit": APPROVERS,
    "pr.delete": APPROVERS,
    "pr.decide": APPROVERS,
    "pr.convert": APPROVERS,
    "pr.validate_quantity": APPROVERS,
    "pr.auto_create": INTERNAL_STAFF,
    # Purchase orders
    "po.read": frozenset({ADMIN, MANAGER, WAREHOUSE, SUPPLIER}),
    "po.create": APPROVERS,
    "po.approve": frozenset({ADMIN}),
    "po.edit": frozenset({ADMIN}),
    "po.cancel": frozenset({ADMIN}),
    "po.respond": frozenset({SUPPLIER}),
    "po.request_delay": frozenset({SUPPLIER}),
    "po.decide_delay": APPROVERS,
    # Goods receipts
    "grn.read": INTERNAL_STAFF,
    "grn.create": frozenset({WAREHOUSE}),
    "grn.approve": frozenset({MANAGER}),
    # Transfers
    "transfer.read": INTERNAL_STAFF,
    "transfer.create": INTERNAL_STAFF,
    "transfer.edit": INTERNAL_STAFF,
    "transfer.submit": INTERNAL_STAFF,
    "transfer.cancel": INTERNAL_STAFF,
    "transfer.approve": APPROVERS,
    "transfer.complete": frozenset({ADMIN, WAREHOUSE}),
    # Automatic trigger
    "scheduler.control": APPROVERS,
    # Dashboard
    "dashboard.read": INTERNAL_STAFF,
}


def check_permission(operation: str, role: Role) -> None:
    """Raise AccessDeniedError unless role may perform operation"""
    allowed = OPERATION_ROLES[operation]
    if role not in allowed:
        security_logger.warning(f"Denied {operation} for role {role.value}")
        raise AccessDeniedError(
            f"Role '{role.value}' may not perform {operation}",
            operation=operation,
            required_roles=sorted(r.value for r in allowed),
        )


def authorize(operation: str) -> Callable:
    """
    Gate a service method on the caller's role

    The wrapped method's instance must expose ``current_user`` (an Identity).
    """
    if operation not in OPERATION_ROLES:
        raise KeyError(f"Unknown operation {operation}")

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            check_permission(operation, self.current_user.role)
            return func(self, *args, **kwargs)
        wrapper.operation = operation
        return wrapper

    return decorator
