"""
Custom Application Exceptions
"""
from typing import Any, Dict, Optional


class StockFlowError(Exception):
    """Base exception for the StockFlow application"""

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": type(self).__name__, "detail": self.message, **self.details}


class ValidationError(StockFlowError):
    """Raised when input is malformed or out of range"""
    pass


class InvalidQuantityError(ValidationError):
    """Raised when a received or transferred quantity is outside its bounds"""
    pass


class NotFoundError(StockFlowError):
    """Raised when a referenced record does not exist"""

    def __init__(self, entity: str, entity_id: Any, message: Optional[str] = None):
        super().__init__(message or f"{entity} {entity_id} not found", entity=entity, id=entity_id)


class AccessDeniedError(StockFlowError):
    """Raised on role or ownership mismatch"""
    pass


class InvalidStateError(StockFlowError):
    """Raised when an operation is not valid from the document's current status"""
    pass


class AlreadyDecidedError(InvalidStateError):
    """Raised when approving or rejecting a document that is already decided"""
    pass


class AlreadyConvertedError(InvalidStateError):
    """Raised when a purchase request cannot be turned into a purchase order"""
    pass


class ReferentialIntegrityError(InvalidStateError):
    """Raised when deleting a record that others still depend on"""
    pass


class DuplicateError(StockFlowError):
    """Raised when a unique business key already exists"""
    pass


class DuplicateGRNError(DuplicateError):
    """Raised when a purchase order already has a goods receipt"""
    pass


class StockError(StockFlowError):
    """Base class for ledger quantity violations"""
    pass


class NegativeStockError(StockError):
    """Raised when an adjustment would drive stock below zero"""
    pass


class InsufficientStockError(StockError):
    """Raised when a source location cannot cover a transfer"""
    pass
