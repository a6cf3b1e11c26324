from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from ..core.clock import ensure_utc
from ..core.errors import DomainValidationError
from ..engine.lifecycle import StatusLifecycle


class PurchaseOrderStatus(str, Enum):
    created = "created"
    sent_to_supplier = "sent_to_supplier"
    confirmed = "confirmed"
    rejected = "rejected"
    in_production = "in_production"
    ready_for_shipment = "ready_for_shipment"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


PURCHASE_ORDER_LIFECYCLE: StatusLifecycle[PurchaseOrderStatus] = StatusLifecycle(
    "Purchase order",
    forward={
        PurchaseOrderStatus.created: {PurchaseOrderStatus.sent_to_supplier},
        PurchaseOrderStatus.sent_to_supplier: {
            PurchaseOrderStatus.confirmed,
            PurchaseOrderStatus.rejected,
        },
        PurchaseOrderStatus.confirmed: {PurchaseOrderStatus.in_production},
        PurchaseOrderStatus.in_production: {PurchaseOrderStatus.ready_for_shipment},
        PurchaseOrderStatus.ready_for_shipment: {PurchaseOrderStatus.shipped},
        PurchaseOrderStatus.shipped: {PurchaseOrderStatus.delivered},
    },
    cancelled=PurchaseOrderStatus.cancelled,
    terminal=[PurchaseOrderStatus.delivered],
)

# A supplier has accepted the order once it reaches any of these.
CONFIRMED_STATUSES = frozenset(
    {
        PurchaseOrderStatus.confirmed,
        PurchaseOrderStatus.in_production,
        PurchaseOrderStatus.ready_for_shipment,
        PurchaseOrderStatus.shipped,
        PurchaseOrderStatus.delivered,
    }
)

CLOSED_STATUSES = frozenset(
    {
        PurchaseOrderStatus.rejected,
        PurchaseOrderStatus.delivered,
        PurchaseOrderStatus.cancelled,
    }
)


class PurchaseOrderItem(BaseModel):
    id: str
    order_item_id: str
    product_code: str
    description: str
    allocated_quantity: int = Field(..., gt=0)
    unit: str
    unit_price: Optional[float] = Field(default=None, ge=0)
    specifications: Optional[str] = Field(default=None, max_length=1000)
    packaging_details: Optional[str] = Field(default=None, max_length=500)
    delivery_method: Optional[str] = Field(default=None, max_length=100)
    estimated_delivery_date: Optional[datetime] = None
    supplier_notes: Optional[str] = None

    @property
    def total_price(self) -> float:
        return (self.unit_price or 0.0) * self.allocated_quantity

    def validate_item(self) -> None:
        if not self.order_item_id:
            raise DomainValidationError("Order item ID is required")
        if not self.product_code.strip():
            raise DomainValidationError("Product code is required")
        if not self.description.strip():
            raise DomainValidationError("Description is required")
        if self.allocated_quantity <= 0:
            raise DomainValidationError("Allocated quantity must be greater than 0")
        if not self.unit.strip():
            raise DomainValidationError("Unit is required")
        if self.unit_price is not None and self.unit_price < 0:
            raise DomainValidationError("Unit price cannot be negative")

    def validate_allocation(self, original_quantity: int) -> None:
        if self.allocated_quantity > original_quantity:
            raise DomainValidationError(
                f"Cannot allocate {self.allocated_quantity} units when original "
                f"order quantity is {original_quantity}"
            )

    def set_packaging_details(
        self,
        packaging_details: str,
        delivery_method: Optional[str] = None,
    ) -> None:
        if not packaging_details.strip():
            raise DomainValidationError("Packaging details cannot be empty")
        if len(packaging_details) > 500:
            raise DomainValidationError("Packaging details cannot exceed 500 characters")
        self.packaging_details = packaging_details

        if delivery_method and delivery_method.strip():
            if len(delivery_method) > 100:
                raise DomainValidationError("Delivery method cannot exceed 100 characters")
            self.delivery_method = delivery_method

    def set_estimated_delivery_date(
        self,
        estimated: datetime,
        now: datetime,
        required_by: datetime,
    ) -> None:
        estimated = ensure_utc(estimated)
        if estimated <= now:
            raise DomainValidationError("Estimated delivery date must be in the future")
        if estimated > required_by:
            raise DomainValidationError(
                "Estimated delivery date cannot be later than required delivery "
                f"date ({required_by:%Y-%m-%d})"
            )
        self.estimated_delivery_date = estimated

    def update_unit_price(self, unit_price: float) -> None:
        if unit_price < 0:
            raise DomainValidationError("Unit price cannot be negative")
        self.unit_price = unit_price

    def add_supplier_notes(self, notes: str, at: datetime) -> None:
        if not notes or not notes.strip():
            return
        if len(notes) > 500:
            raise DomainValidationError("Supplier notes cannot exceed 500 characters")
        if not self.supplier_notes:
            self.supplier_notes = notes
        else:
            self.supplier_notes += f"\n{at:%Y-%m-%d %H:%M}: {notes}"


class PurchaseOrder(BaseModel):
    id: str
    purchase_order_number: str
    customer_order_id: str
    supplier_id: str
    status: PurchaseOrderStatus = PurchaseOrderStatus.created
    required_delivery_date: datetime
    items: List[PurchaseOrderItem] = []
    total_value: float = 0.0
    notes: Optional[str] = None
    supplier_notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    @computed_field
    @property
    def total_quantity(self) -> int:
        return sum(item.allocated_quantity for item in self.items)

    @property
    def is_confirmed(self) -> bool:
        return self.status in CONFIRMED_STATUSES

    def find_item(self, item_id: str) -> Optional[PurchaseOrderItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def calculate_total_value(self) -> float:
        self.total_value = round(sum(item.total_price for item in self.items), 2)
        return self.total_value

    def validate_purchase_order(self, now: datetime) -> None:
        if not self.purchase_order_number.strip():
            raise DomainValidationError("Purchase order number is required")
        if not self.items:
            raise DomainValidationError(
                f"Purchase order {self.purchase_order_number} must contain at least one item"
            )
        if self.required_delivery_date <= now:
            raise DomainValidationError("Required delivery date must be in the future")
        for item in self.items:
            item.validate_item()

    def can_transition_to(self, new_status: PurchaseOrderStatus) -> bool:
        return PURCHASE_ORDER_LIFECYCLE.can_transition(self.status, new_status)

    def transition_to(
        self,
        new_status: PurchaseOrderStatus,
        at: datetime,
        reason: Optional[str] = None,
    ) -> None:
        PURCHASE_ORDER_LIFECYCLE.ensure_transition(self.id, self.status, new_status)
        if new_status == PurchaseOrderStatus.rejected and not (reason and reason.strip()):
            raise DomainValidationError("Rejection reason is required")

        self.status = new_status
        self.updated_at = at

        if new_status == PurchaseOrderStatus.confirmed:
            self.confirmed_at = at
        elif new_status == PurchaseOrderStatus.rejected:
            self.rejected_at = at
            self.rejection_reason = reason.strip()
        elif new_status == PurchaseOrderStatus.shipped:
            self.shipped_at = at
        elif new_status == PurchaseOrderStatus.delivered:
            self.delivered_at = at

    def confirm(self, at: datetime, supplier_notes: Optional[str] = None) -> None:
        self.transition_to(PurchaseOrderStatus.confirmed, at)
        if supplier_notes:
            self.supplier_notes = supplier_notes

    def reject(self, reason: str, at: datetime) -> None:
        self.transition_to(PurchaseOrderStatus.rejected, at, reason=reason)


class PurchaseOrderItemUpdate(BaseModel):
    packaging_details: Optional[str] = None
    delivery_method: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    unit_price: Optional[float] = None
    supplier_notes: Optional[str] = None
    specifications: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("estimated_delivery_date")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


class PurchaseOrderItemConfirmation(PurchaseOrderItemUpdate):
    purchase_order_item_id: str


class SupplierConfirmation(BaseModel):
    supplier_notes: Optional[str] = None
    item_confirmations: List[PurchaseOrderItemConfirmation] = []
    confirmed_by: Optional[str] = None


class RejectionRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class PurchaseOrderStatusUpdate(BaseModel):
    status: PurchaseOrderStatus
    reason: Optional[str] = None
