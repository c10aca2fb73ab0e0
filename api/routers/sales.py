"""
Sales API Endpoints.

Endpoints for creating, browsing and changing sales. Each endpoint builds a
command, calls services.sale_service and shapes the projection into a response.
Domain errors are translated to HTTP statuses by the handlers in api.main.
"""

from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from api.dependencies import get_sale_repository
from api.models import (
    AddItemRequest,
    AddItemResponse,
    BranchResponse,
    CancelSaleRequest,
    CancelSaleResponse,
    CreateSaleRequest,
    CustomerResponse,
    ModifyItemRequest,
    ModifyItemResponse,
    ProductResponse,
    RemoveItemResponse,
    SaleItemResponse,
    SaleListResponse,
    SaleResponse,
)
from api.settings import Settings, get_settings
from domain.projection import SaleItemProjection, project_item, project_sale
from domain.sale import Sale, SaleStatus
from domain.time import as_utc
from repositories.sale_repository import DEFAULT_PAGE_SIZE, ORDER_BY_SALE_DATE, SaleQuery, SaleRepository
from services import sale_service
from services.sale_commands import (
    AddItemToSaleCommand,
    CancelSaleCommand,
    CreateSaleCommand,
    ModifySaleItemCommand,
    RemoveSaleItemCommand,
    SaleItemInput,
)

router = APIRouter()


def _item_response(item: SaleItemProjection) -> SaleItemResponse:
    return SaleItemResponse(
        id=item.item_id,
        product=ProductResponse(
            id=item.product.id,
            name=item.product.name,
            description=item.product.description,
        ),
        quantity=item.quantity,
        unit_price=item.unit_price.amount,
        discount_percentage=item.discount_percentage,
        total_amount=item.total_amount.quantized().amount,
        currency=item.unit_price.currency,
    )


def _sale_response(sale: Sale) -> SaleResponse:
    projection = project_sale(sale)
    return SaleResponse(
        id=projection.sale_id,
        sale_number=projection.sale_number,
        sale_date=projection.sale_date,
        customer=CustomerResponse(
            id=projection.customer.id,
            name=projection.customer.name,
            email=projection.customer.email,
        ),
        branch=BranchResponse(
            id=projection.branch.id,
            name=projection.branch.name,
            address=projection.branch.address,
        ),
        status=projection.status.value,
        total_amount=projection.total_amount.quantized().amount,
        currency=projection.currency,
        created_at=projection.created_at,
        cancelled_at=projection.cancelled_at,
        items=[_item_response(item) for item in projection.items],
        total_items_count=projection.total_items_count,
        has_discounted_items=projection.has_discounted_items,
        is_eligible_for_bulk_discount=projection.is_eligible_for_bulk_discount,
    )


def _parse_status(status: Optional[str]) -> Union[SaleStatus, str, None]:
    """Case-insensitive match; unknown values are passed through for SaleQuery to reject."""

    if status is None:
        return None
    for candidate in SaleStatus:
        if candidate.value.lower() == status.strip().lower():
            return candidate
    return status


@router.post(
    "/sales",
    response_model=SaleResponse,
    status_code=201,
    summary="Create Sale",
    description="Create a sale with its customer, branch and initial items. Quantity discounts are applied per item."
)
def create_sale(request: CreateSaleRequest, repository: SaleRepository = Depends(get_sale_repository)):
    """
    Create a new sale.

    **Discount tiers (per item):**
    - 1 to 3 units: no discount
    - 4 to 9 units: 10%
    - 10 to 20 units: 20%
    - More than 20 identical items: rejected

    Items with the same product are merged into one line.
    """
    command = CreateSaleCommand(
        sale_number=request.sale_number,
        customer_id=request.customer.id,
        customer_name=request.customer.name,
        customer_email=request.customer.email,
        branch_id=request.branch.id,
        branch_name=request.branch.name,
        branch_address=request.branch.address,
        currency=request.currency,
        items=tuple(
            SaleItemInput(
                product_id=item.product_id,
                product_name=item.product_name,
                product_description=item.product_description,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in request.items
        ),
    )
    sale = sale_service.create_sale(repository, command)
    return _sale_response(sale)


@router.get(
    "/sales",
    response_model=SaleListResponse,
    summary="List Sales",
    description="Browse sales with optional filters, ordering and pagination."
)
def list_sales(
    page: int = Query(1, description="Page number (1-based)"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, description="Items per page (1-100)"),
    customer_id: Optional[UUID] = Query(None, description="Filter by customer ID"),
    branch_id: Optional[UUID] = Query(None, description="Filter by branch ID"),
    status: Optional[str] = Query(None, description="Filter by status ('Active' or 'Cancelled')"),
    start_date: Optional[datetime] = Query(None, description="Sales on or after this timestamp"),
    end_date: Optional[datetime] = Query(None, description="Sales on or before this timestamp"),
    sale_number: Optional[str] = Query(None, description="Sale number contains"),
    customer_name: Optional[str] = Query(None, description="Customer name contains"),
    order_by: str = Query(ORDER_BY_SALE_DATE, description="SaleDate, TotalAmount, SaleNumber or CustomerName"),
    order_direction: str = Query("desc", description="'asc' or 'desc'"),
    repository: SaleRepository = Depends(get_sale_repository),
):
    """
    Query sales.

    **Example usage:**
    - Latest sales: `GET /api/v1/sales`
    - Cancelled sales of a branch: `GET /api/v1/sales?branch_id=...&status=Cancelled`
    - Biggest sales first: `GET /api/v1/sales?order_by=TotalAmount&order_direction=desc`
    """
    query = SaleQuery(
        page=page,
        page_size=page_size,
        customer_id=customer_id,
        branch_id=branch_id,
        status=_parse_status(status),
        start_date=as_utc(start_date) if start_date is not None else None,
        end_date=as_utc(end_date) if end_date is not None else None,
        sale_number=sale_number,
        customer_name=customer_name,
        order_by=order_by,
        order_direction=order_direction,
    )
    result = sale_service.list_sales(repository, query).map(_sale_response)

    return SaleListResponse(
        items=list(result.items),
        current_page=result.current_page,
        page_size=result.page_size,
        total_count=result.total_count,
        total_pages=result.total_pages,
        has_previous=result.has_previous,
        has_next=result.has_next,
    )


@router.get("/sales/{sale_id}", response_model=SaleResponse, summary="Get Sale")
def get_sale(sale_id: UUID, repository: SaleRepository = Depends(get_sale_repository)):
    return _sale_response(sale_service.get_sale(repository, sale_id))


@router.delete("/sales/{sale_id}", status_code=204, summary="Delete Sale")
def delete_sale(sale_id: UUID, repository: SaleRepository = Depends(get_sale_repository)):
    sale_service.delete_sale(repository, sale_id)
    return Response(status_code=204)


@router.post(
    "/sales/{sale_id}/items",
    response_model=AddItemResponse,
    summary="Add Item to Sale",
    description="Add a product to an active sale. A product already on the sale has its quantity increased."
)
def add_item(sale_id: UUID, request: AddItemRequest, repository: SaleRepository = Depends(get_sale_repository)):
    command = AddItemToSaleCommand(
        sale_id=sale_id,
        currency=request.currency,
        item=SaleItemInput(
            product_id=request.product_id,
            product_name=request.product_name,
            product_description=request.product_description,
            quantity=request.quantity,
            unit_price=request.unit_price,
        ),
    )
    result = sale_service.add_item_to_sale(repository, command)
    return AddItemResponse(
        sale=_sale_response(result.sale),
        item=_item_response(project_item(result.item)),
        merged=result.merged,
    )


@router.patch(
    "/sales/{sale_id}/items/{item_id}",
    response_model=ModifyItemResponse,
    summary="Modify Sale Item",
    description="Change the quantity and/or unit price of an item. The discount tier follows the quantity."
)
def modify_item(
    sale_id: UUID,
    item_id: UUID,
    request: ModifyItemRequest,
    repository: SaleRepository = Depends(get_sale_repository),
):
    command = ModifySaleItemCommand(
        sale_id=sale_id,
        item_id=item_id,
        quantity=request.quantity,
        unit_price=request.unit_price,
        currency=request.currency,
    )
    result = sale_service.modify_sale_item(repository, command)
    return ModifyItemResponse(
        sale=_sale_response(result.sale),
        item=_item_response(project_item(result.item)),
        previous_quantity=result.previous_quantity,
        previous_unit_price=result.previous_unit_price.amount,
        previous_discount_percentage=result.previous_discount_percentage,
        previous_total_amount=result.previous_total_amount.quantized().amount,
        quantity_changed=result.quantity_changed,
        price_changed=result.price_changed,
        discount_changed=result.discount_changed,
    )


@router.delete(
    "/sales/{sale_id}/items/{item_id}",
    response_model=RemoveItemResponse,
    summary="Remove Sale Item",
    description="Remove an item from an active sale. The last item of a sale cannot be removed."
)
def remove_item(sale_id: UUID, item_id: UUID, repository: SaleRepository = Depends(get_sale_repository)):
    result = sale_service.remove_sale_item(repository, RemoveSaleItemCommand(sale_id=sale_id, item_id=item_id))
    return RemoveItemResponse(
        sale=_sale_response(result.sale),
        removed_item=_item_response(result.removed_item),
        sale_is_empty=not result.sale.items,
    )


@router.post(
    "/sales/{sale_id}/cancel",
    response_model=CancelSaleResponse,
    summary="Cancel Sale",
    description="Cancel an active sale that is still inside the cancellation window."
)
def cancel_sale(
    sale_id: UUID,
    request: Optional[CancelSaleRequest] = None,
    repository: SaleRepository = Depends(get_sale_repository),
    settings: Settings = Depends(get_settings),
):
    command = CancelSaleCommand(sale_id=sale_id, reason=request.reason if request else None)
    result = sale_service.cancel_sale(
        repository,
        command,
        max_cancellation_days=settings.max_cancellation_days,
    )
    return CancelSaleResponse(sale=_sale_response(result.sale), cancellation_reason=result.reason)


@router.post("/sales/{sale_id}/reactivate", response_model=SaleResponse, summary="Reactivate Sale")
def reactivate_sale(sale_id: UUID, repository: SaleRepository = Depends(get_sale_repository)):
    return _sale_response(sale_service.reactivate_sale(repository, sale_id))
