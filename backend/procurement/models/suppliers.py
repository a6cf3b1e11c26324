from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.errors import DomainValidationError
from .orders import ProductType


class SupplierCapability(BaseModel):
    product_type: ProductType
    max_monthly_capacity: int = Field(..., gt=0)
    current_commitments: int = Field(default=0, ge=0)
    quality_rating: float = Field(default=3.0, ge=0, le=5)
    is_active: bool = True

    @property
    def available_capacity(self) -> int:
        return max(0, self.max_monthly_capacity - self.current_commitments)

    @property
    def is_over_committed(self) -> bool:
        return self.current_commitments > self.max_monthly_capacity

    @property
    def capacity_utilization_rate(self) -> float:
        if self.max_monthly_capacity <= 0:
            return 0.0
        return self.current_commitments / self.max_monthly_capacity


class SupplierPerformanceMetrics(BaseModel):
    on_time_delivery_rate: float = Field(default=0.0, ge=0, le=1)
    quality_score: float = Field(default=0.0, ge=0, le=5)
    total_orders_completed: int = Field(default=0, ge=0)
    total_orders_on_time: int = Field(default=0, ge=0)
    total_orders_late: int = Field(default=0, ge=0)
    total_orders_cancelled: int = Field(default=0, ge=0)
    customer_satisfaction_rate: Optional[float] = Field(default=None, ge=0, le=1)
    average_delivery_days: Optional[float] = Field(default=None, ge=0)
    last_updated: Optional[datetime] = None

    @property
    def overall_performance_score(self) -> float:
        quality = self.quality_score / 5.0
        if self.customer_satisfaction_rate is not None:
            score = (
                self.on_time_delivery_rate * 0.4
                + quality * 0.4
                + self.customer_satisfaction_rate * 0.2
            )
        else:
            score = self.on_time_delivery_rate * 0.5 + quality * 0.5
        return round(score, 3)

    @property
    def is_reliable_supplier(self) -> bool:
        return self.on_time_delivery_rate >= 0.85 and self.quality_score >= 3.5

    @property
    def is_preferred_supplier(self) -> bool:
        return self.on_time_delivery_rate >= 0.95 and self.quality_score >= 4.0

    def record_delivery(
        self,
        was_on_time: bool,
        quality_score: float,
        delivery_days: int,
        at: datetime,
    ) -> None:
        """Fold one completed delivery into the running metrics."""
        if not 0 <= quality_score <= 5:
            raise DomainValidationError("Quality score must be between 0 and 5")
        if delivery_days < 0:
            raise DomainValidationError("Delivery days cannot be negative")

        previous_completed = self.total_orders_completed

        if previous_completed > 0:
            self.quality_score = (
                self.quality_score * previous_completed + quality_score
            ) / (previous_completed + 1)
            if self.average_delivery_days is not None:
                self.average_delivery_days = (
                    self.average_delivery_days * previous_completed + delivery_days
                ) / (previous_completed + 1)
            else:
                self.average_delivery_days = float(delivery_days)
        else:
            self.quality_score = quality_score
            self.average_delivery_days = float(delivery_days)

        self.total_orders_completed = previous_completed + 1
        if was_on_time:
            self.total_orders_on_time += 1
        else:
            self.total_orders_late += 1

        deliveries = self.total_orders_on_time + self.total_orders_late
        self.on_time_delivery_rate = (
            self.total_orders_on_time / deliveries if deliveries > 0 else 0.0
        )
        self.last_updated = at


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    contact_email: str = Field(default="", max_length=255)
    contact_phone: str = Field(default="", max_length=20)
    address: str = Field(default="", max_length=500)
    contact_person_name: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=1000)
    is_active: bool = True
    capabilities: List[SupplierCapability] = []
    performance: Optional[SupplierPerformanceMetrics] = None


class CreateSupplierRequest(SupplierBase):
    pass


class Supplier(SupplierBase):
    id: str
    created_at: datetime
    updated_at: datetime

    def get_capability(
        self,
        product_type: ProductType,
        active_only: bool = False,
    ) -> Optional[SupplierCapability]:
        for capability in self.capabilities:
            if capability.product_type != product_type:
                continue
            if active_only and not capability.is_active:
                continue
            return capability
        return None

    def can_handle_product_type(self, product_type: ProductType) -> bool:
        return self.get_capability(product_type, active_only=True) is not None

    def get_available_capacity(self, product_type: ProductType) -> int:
        capability = self.get_capability(product_type)
        return capability.available_capacity if capability else 0

    def has_capacity_for(self, product_type: ProductType, required_quantity: int) -> bool:
        return self.get_available_capacity(product_type) >= required_quantity


class CapacityUpdateRequest(BaseModel):
    max_monthly_capacity: int = Field(..., gt=0)
    current_commitments: int = Field(default=0, ge=0)


class PerformanceUpdateRequest(BaseModel):
    was_on_time: bool
    quality_score: float = Field(..., ge=0, le=5)
    delivery_days: int = Field(..., ge=0)


class TotalCapacityResponse(BaseModel):
    product_type: ProductType
    total_available_capacity: int
