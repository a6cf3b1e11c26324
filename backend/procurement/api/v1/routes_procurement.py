from typing import List, Optional

from fastapi import APIRouter, Depends, status

from ...core.security import (
    ALL_ROLES,
    FULFILMENT_ROLES,
    PLANNING_ROLES,
    SUPPLIER_ROLES,
    UserContext,
    require_role,
)
from ...models.distribution import (
    DistributionPlan,
    DistributionStrategy,
    DistributionSuggestion,
    DistributionValidationResult,
)
from ...models.purchase_orders import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderItemUpdate,
    PurchaseOrderStatus,
    PurchaseOrderStatusUpdate,
    RejectionRequest,
    SupplierConfirmation,
)
from ...services.dependencies import get_procurement_service
from ...services.procurement_service import ProcurementService


router = APIRouter(prefix="/procurement", tags=["procurement"])


@router.get("/orders/{order_id}/suggestion", response_model=DistributionSuggestion)
async def suggest_distribution(
    order_id: str,
    strategy: Optional[DistributionStrategy] = None,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> DistributionSuggestion:
    return service.suggest_distribution(order_id, strategy)


@router.post("/orders/{order_id}/validate", response_model=DistributionValidationResult)
async def validate_distribution(
    order_id: str,
    plan: DistributionPlan,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> DistributionValidationResult:
    return service.validate_distribution_plan(order_id, plan)


@router.post(
    "/orders/{order_id}/purchase-orders",
    response_model=List[PurchaseOrder],
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase_orders(
    order_id: str,
    plan: DistributionPlan,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> List[PurchaseOrder]:
    if plan.created_by is None:
        plan.created_by = user.user_id
    return service.create_purchase_orders(order_id, plan)


@router.get("/orders/{order_id}/purchase-orders", response_model=List[PurchaseOrder])
async def list_order_purchase_orders(
    order_id: str,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> List[PurchaseOrder]:
    return service.get_purchase_orders_by_customer_order(order_id)


@router.get("/suppliers/{supplier_id}/purchase-orders", response_model=List[PurchaseOrder])
async def list_supplier_purchase_orders(
    supplier_id: str,
    status: Optional[PurchaseOrderStatus] = None,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> List[PurchaseOrder]:
    return service.get_purchase_orders_by_supplier(supplier_id, status)


@router.get("/purchase-orders/{purchase_order_id}", response_model=PurchaseOrder)
async def get_purchase_order(
    purchase_order_id: str,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> PurchaseOrder:
    return service.get_purchase_order(purchase_order_id)


@router.post("/purchase-orders/{purchase_order_id}/confirm", response_model=PurchaseOrder)
async def confirm_purchase_order(
    purchase_order_id: str,
    confirmation: SupplierConfirmation,
    user: UserContext = Depends(require_role(SUPPLIER_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> PurchaseOrder:
    if confirmation.confirmed_by is None:
        confirmation.confirmed_by = user.user_id
    return service.confirm_purchase_order(purchase_order_id, confirmation)


@router.post("/purchase-orders/{purchase_order_id}/reject", response_model=PurchaseOrder)
async def reject_purchase_order(
    purchase_order_id: str,
    payload: RejectionRequest,
    user: UserContext = Depends(require_role(SUPPLIER_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> PurchaseOrder:
    return service.reject_purchase_order(purchase_order_id, payload.reason)


@router.post("/purchase-orders/{purchase_order_id}/status", response_model=PurchaseOrder)
async def update_purchase_order_status(
    purchase_order_id: str,
    payload: PurchaseOrderStatusUpdate,
    user: UserContext = Depends(require_role(FULFILMENT_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> PurchaseOrder:
    return service.update_purchase_order_status(purchase_order_id, payload.status, payload.reason)


@router.patch(
    "/purchase-orders/{purchase_order_id}/items/{item_id}",
    response_model=PurchaseOrderItem,
)
async def update_purchase_order_item(
    purchase_order_id: str,
    item_id: str,
    update: PurchaseOrderItemUpdate,
    user: UserContext = Depends(require_role(SUPPLIER_ROLES)),
    service: ProcurementService = Depends(get_procurement_service),
) -> PurchaseOrderItem:
    return service.update_purchase_order_item(purchase_order_id, item_id, update)
