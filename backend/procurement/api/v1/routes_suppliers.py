from typing import List, Optional

from fastapi import APIRouter, Depends, status

from ...core.security import ALL_ROLES, PLANNING_ROLES, UserContext, require_role
from ...models.orders import ProductType
from ...models.suppliers import (
    CapacityUpdateRequest,
    CreateSupplierRequest,
    PerformanceUpdateRequest,
    Supplier,
    TotalCapacityResponse,
)
from ...services.dependencies import get_supplier_service
from ...services.supplier_service import SupplierService


router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@router.post("", response_model=Supplier, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    payload: CreateSupplierRequest,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> Supplier:
    return service.create_supplier(payload)


@router.get("", response_model=List[Supplier])
async def list_suppliers(
    active_only: bool = False,
    product_type: Optional[ProductType] = None,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> List[Supplier]:
    return service.list_suppliers(active_only=active_only, product_type=product_type)


# Registered before /{supplier_id} so "capacity" is not taken for an id.
@router.get("/capacity/{product_type}", response_model=TotalCapacityResponse)
async def get_total_capacity(
    product_type: ProductType,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> TotalCapacityResponse:
    return TotalCapacityResponse(
        product_type=product_type,
        total_available_capacity=service.get_total_available_capacity(product_type),
    )


@router.get("/{supplier_id}", response_model=Supplier)
async def get_supplier(
    supplier_id: str,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> Supplier:
    return service.get_supplier(supplier_id)


@router.put("/{supplier_id}/capabilities/{product_type}", response_model=Supplier)
async def update_capacity(
    supplier_id: str,
    product_type: ProductType,
    payload: CapacityUpdateRequest,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> Supplier:
    return service.update_supplier_capacity(
        supplier_id,
        product_type,
        payload.max_monthly_capacity,
        payload.current_commitments,
    )


@router.post("/{supplier_id}/performance", response_model=Supplier)
async def record_performance(
    supplier_id: str,
    payload: PerformanceUpdateRequest,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> Supplier:
    return service.update_supplier_performance(
        supplier_id,
        payload.was_on_time,
        payload.quality_score,
        payload.delivery_days,
    )


@router.post("/{supplier_id}/activate", response_model=Supplier)
async def activate_supplier(
    supplier_id: str,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> Supplier:
    return service.activate_supplier(supplier_id)


@router.post("/{supplier_id}/deactivate", response_model=Supplier)
async def deactivate_supplier(
    supplier_id: str,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: SupplierService = Depends(get_supplier_service),
) -> Supplier:
    return service.deactivate_supplier(supplier_id)
