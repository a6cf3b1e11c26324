from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..core.clock import ensure_utc
from ..engine.lifecycle import StatusLifecycle, linear


class ProductType(str, Enum):
    lmr = "LMR"
    ffv = "FFV"


class OrderStatus(str, Enum):
    submitted = "submitted"
    under_review = "under_review"
    planning_in_progress = "planning_in_progress"
    purchase_orders_created = "purchase_orders_created"
    awaiting_supplier_confirmation = "awaiting_supplier_confirmation"
    in_production = "in_production"
    ready_for_delivery = "ready_for_delivery"
    delivered = "delivered"
    cancelled = "cancelled"


CUSTOMER_ORDER_LIFECYCLE: StatusLifecycle[OrderStatus] = StatusLifecycle(
    "Customer order",
    forward=linear(
        [
            OrderStatus.submitted,
            OrderStatus.under_review,
            OrderStatus.planning_in_progress,
            OrderStatus.purchase_orders_created,
            OrderStatus.awaiting_supplier_confirmation,
            OrderStatus.in_production,
            OrderStatus.ready_for_delivery,
            OrderStatus.delivered,
        ]
    ),
    cancelled=OrderStatus.cancelled,
    terminal=[OrderStatus.delivered],
)

# Item and header edits are only accepted before planning starts.
EDITABLE_ORDER_STATUSES = frozenset({OrderStatus.submitted, OrderStatus.under_review})

# Orders still waiting for planning this close to delivery count as at risk.
AT_RISK_WINDOW_DAYS = 3


class OrderItemRequest(BaseModel):
    product_code: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=20)
    unit_price: Optional[float] = Field(default=None, ge=0)
    specifications: Optional[str] = Field(default=None, max_length=1000)


class OrderItem(OrderItemRequest):
    id: str


class OrderStatusChange(BaseModel):
    from_status: OrderStatus
    to_status: OrderStatus
    changed_at: datetime
    changed_by: Optional[str] = None
    notes: Optional[str] = None


class CustomerOrder(BaseModel):
    id: str
    order_number: str
    customer_id: str
    customer_name: str
    product_type: ProductType
    requested_delivery_date: datetime
    status: OrderStatus = OrderStatus.submitted
    items: List[OrderItem] = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=500)
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    status_history: List[OrderStatusChange] = Field(default_factory=list)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        return CUSTOMER_ORDER_LIFECYCLE.can_transition(self.status, new_status)

    def transition_to(
        self,
        new_status: OrderStatus,
        at: datetime,
        changed_by: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        CUSTOMER_ORDER_LIFECYCLE.ensure_transition(self.id, self.status, new_status)
        self.status_history.append(
            OrderStatusChange(
                from_status=self.status,
                to_status=new_status,
                changed_at=at,
                changed_by=changed_by,
                notes=notes,
            )
        )
        self.status = new_status
        self.updated_at = at

    def is_overdue(self, today: date) -> bool:
        if self.status in (OrderStatus.delivered, OrderStatus.cancelled):
            return False
        return self.requested_delivery_date.date() < today

    def is_at_risk(self, today: date, window_days: int = AT_RISK_WINDOW_DAYS) -> bool:
        if self.is_overdue(today):
            return True
        if self.status not in EDITABLE_ORDER_STATUSES:
            return False
        return self.requested_delivery_date.date() <= today + timedelta(days=window_days)


class CreateOrderRequest(BaseModel):
    customer_id: str = Field(..., min_length=1, max_length=50)
    customer_name: str = Field(..., min_length=1, max_length=200)
    product_type: ProductType
    requested_delivery_date: datetime
    items: List[OrderItemRequest]
    notes: Optional[str] = Field(default=None, max_length=500)
    created_by: Optional[str] = None

    @field_validator("requested_delivery_date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class UpdateOrderRequest(BaseModel):
    customer_name: Optional[str] = Field(default=None, max_length=200)
    requested_delivery_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    items: Optional[List[OrderItemRequest]] = None

    @field_validator("requested_delivery_date")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None
