"""
API Request and Response Models.

Pydantic models for parsing API requests and serializing responses.

Request models reject malformed JSON up front (types, lengths, ranges) so the
OpenAPI schema documents the limits. services.sale_commands repeats the same
rules for callers that do not go through HTTP.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from domain.sale_item import MAX_ITEM_QUANTITY, MIN_ITEM_QUANTITY
from services.sale_commands import (
    CANCELLATION_REASON_MAX_LENGTH,
    CUSTOMER_NAME_MAX_LENGTH,
    PRODUCT_DESCRIPTION_MAX_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
    SALE_NUMBER_MAX_LENGTH,
)


# ============================================================================
# Request Models
# ============================================================================

class SaleCustomerRequest(BaseModel):
    """Customer snapshot captured on the sale."""
    id: UUID
    name: str = Field(..., min_length=1, max_length=CUSTOMER_NAME_MAX_LENGTH)
    email: EmailStr


class SaleBranchRequest(BaseModel):
    """Branch snapshot captured on the sale."""
    id: UUID
    name: str = Field(..., min_length=1)
    address: str = ""


class SaleItemRequest(BaseModel):
    """One requested line on a new sale."""
    product_id: UUID
    product_name: str = Field(..., min_length=1, max_length=PRODUCT_NAME_MAX_LENGTH)
    product_description: str = Field("", max_length=PRODUCT_DESCRIPTION_MAX_LENGTH)
    quantity: int = Field(
        ...,
        ge=MIN_ITEM_QUANTITY,
        le=MAX_ITEM_QUANTITY,
        description="Units of the product (1-20); 4+ get 10% off, 10+ get 20% off"
    )
    unit_price: Decimal = Field(..., gt=0)


class CreateSaleRequest(BaseModel):
    """Request to create a sale with its initial items."""
    sale_number: str = Field(..., min_length=1, max_length=SALE_NUMBER_MAX_LENGTH)
    customer: SaleCustomerRequest
    branch: SaleBranchRequest
    items: List[SaleItemRequest] = Field(
        ...,
        min_length=1,
        description="Initial items; repeated products are merged into one line"
    )
    currency: str = Field("BRL", min_length=3, max_length=3)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "sale_number": "S-2025-0001",
                "customer": {
                    "id": "123e4567-e89b-12d3-a456-426614174000",
                    "name": "Maria Silva",
                    "email": "maria@example.com"
                },
                "branch": {
                    "id": "123e4567-e89b-12d3-a456-426614174001",
                    "name": "Centro",
                    "address": "Av. Paulista, 1000"
                },
                "items": [
                    {
                        "product_id": "123e4567-e89b-12d3-a456-426614174002",
                        "product_name": "Beer 350ml",
                        "product_description": "Pilsen can",
                        "quantity": 4,
                        "unit_price": "10.00"
                    }
                ],
                "currency": "BRL"
            }
        }
    )


class AddItemRequest(BaseModel):
    """Request to add a product to an existing sale."""
    product_id: UUID
    product_name: str = Field(..., min_length=1, max_length=PRODUCT_NAME_MAX_LENGTH)
    product_description: str = Field("", max_length=PRODUCT_DESCRIPTION_MAX_LENGTH)
    quantity: int = Field(..., ge=MIN_ITEM_QUANTITY, le=MAX_ITEM_QUANTITY)
    unit_price: Decimal = Field(..., gt=0)
    currency: str = Field("BRL", min_length=3, max_length=3)


class ModifyItemRequest(BaseModel):
    """Request to change the quantity and/or the unit price of an item."""
    quantity: Optional[int] = Field(None, ge=MIN_ITEM_QUANTITY, le=MAX_ITEM_QUANTITY)
    unit_price: Optional[Decimal] = Field(None, gt=0)
    currency: str = Field("BRL", min_length=3, max_length=3)


class CancelSaleRequest(BaseModel):
    """Optional body for cancelling a sale."""
    reason: Optional[str] = Field(None, max_length=CANCELLATION_REASON_MAX_LENGTH)


# ============================================================================
# Response Models
# ============================================================================

class CustomerResponse(BaseModel):
    id: UUID
    name: str
    email: str


class BranchResponse(BaseModel):
    id: UUID
    name: str
    address: str


class ProductResponse(BaseModel):
    id: UUID
    name: str
    description: str


class SaleItemResponse(BaseModel):
    """Single line item in API response."""
    id: UUID
    product: ProductResponse
    quantity: int
    unit_price: Decimal
    discount_percentage: Decimal
    total_amount: Decimal
    currency: str


class SaleResponse(BaseModel):
    """Sale with its items and the derived facts used by clients."""
    id: UUID
    sale_number: str
    sale_date: datetime
    customer: CustomerResponse
    branch: BranchResponse
    status: str  # "Active" or "Cancelled"
    total_amount: Decimal
    currency: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    items: List[SaleItemResponse]
    total_items_count: int
    has_discounted_items: bool
    is_eligible_for_bulk_discount: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174003",
                "sale_number": "S-2025-0001",
                "sale_date": "2025-01-01T12:00:00Z",
                "status": "Active",
                "total_amount": "36.00",
                "currency": "BRL",
                "total_items_count": 4,
                "has_discounted_items": True,
                "is_eligible_for_bulk_discount": True
            }
        }
    )


class SaleListResponse(BaseModel):
    """One page of sales plus paging metadata."""
    items: List[SaleResponse]
    current_page: int
    page_size: int
    total_count: int
    total_pages: int
    has_previous: bool
    has_next: bool


class AddItemResponse(BaseModel):
    sale: SaleResponse
    item: SaleItemResponse
    merged: bool


class ModifyItemResponse(BaseModel):
    sale: SaleResponse
    item: SaleItemResponse
    previous_quantity: int
    previous_unit_price: Decimal
    previous_discount_percentage: Decimal
    previous_total_amount: Decimal
    quantity_changed: bool
    price_changed: bool
    discount_changed: bool


class RemoveItemResponse(BaseModel):
    sale: SaleResponse
    removed_item: SaleItemResponse
    sale_is_empty: bool


class CancelSaleResponse(BaseModel):
    sale: SaleResponse
    cancellation_reason: Optional[str] = None
    was_successfully_cancelled: bool = True


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    errors: List[str] = Field(default_factory=list)
    status_code: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Validation failed",
                "detail": "Page must be greater than 0",
                "errors": ["Page must be greater than 0"],
                "status_code": 400
            }
        }
    )
