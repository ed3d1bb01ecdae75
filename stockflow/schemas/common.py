"""
StockFlow Common Schemas
Shared Pydantic models for error bodies
"""
from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """
    Standard error response model

    Domain errors are rendered as their class name, message and any
    structured details (field, current status, available quantity...).
    """
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "error": "AlreadyDecidedError",
                "detail": "GoodsReceiptNote 7 was already approved",
                "current_status": "approved",
            }
        },
    )

    error: str = Field(..., description="Error class name")
    detail: str = Field(..., description="Human-readable error message")

