from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from ...core.security import ALL_ROLES, ORDERING_ROLES, PLANNING_ROLES, UserContext, require_role
from ...models.orders import (
    CreateOrderRequest,
    CustomerOrder,
    OrderStatus,
    OrderStatusChange,
    OrderStatusUpdate,
    UpdateOrderRequest,
)
from ...services.dependencies import get_order_service
from ...services.order_service import OrderService


router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=CustomerOrder, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CreateOrderRequest,
    user: UserContext = Depends(require_role(ORDERING_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> CustomerOrder:
    if payload.created_by is None:
        payload.created_by = user.user_id
    return service.create_order(payload)


@router.get("", response_model=List[CustomerOrder])
async def list_orders(
    status: Optional[OrderStatus] = None,
    customer_id: Optional[str] = None,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> List[CustomerOrder]:
    return service.list_orders(status=status, customer_id=customer_id)


@router.get("/at-risk", response_model=List[CustomerOrder])
async def list_at_risk_orders(
    today: Optional[date] = None,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> List[CustomerOrder]:
    return service.get_at_risk_orders(today)


@router.get("/{order_id}", response_model=CustomerOrder)
async def get_order(
    order_id: str,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> CustomerOrder:
    return service.get_order(order_id)


@router.put("/{order_id}", response_model=CustomerOrder)
async def update_order(
    order_id: str,
    payload: UpdateOrderRequest,
    user: UserContext = Depends(require_role(ORDERING_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> CustomerOrder:
    return service.update_order(order_id, payload)


@router.post("/{order_id}/status", response_model=CustomerOrder)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    user: UserContext = Depends(require_role(PLANNING_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> CustomerOrder:
    return service.update_order_status(
        order_id, payload.status, payload.notes, changed_by=user.user_id
    )


@router.get("/{order_id}/history", response_model=List[OrderStatusChange])
async def get_order_status_history(
    order_id: str,
    user: UserContext = Depends(require_role(ALL_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> List[OrderStatusChange]:
    return service.get_order_status_history(order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    user: UserContext = Depends(require_role(ORDERING_ROLES)),
    service: OrderService = Depends(get_order_service),
) -> Response:
    service.delete_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
