from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .orders import ProductType


class DistributionStrategy(str, Enum):
    even_distribution = "even_distribution"
    performance_based = "performance_based"
    capacity_based = "capacity_based"
    balanced = "balanced"


class SupplierAllocationInfo(BaseModel):
    """Eligibility snapshot of one supplier for one product type."""

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    supplier_name: str
    product_type: ProductType
    available_capacity: int
    max_monthly_capacity: int
    current_commitments: int
    quality_rating: float
    on_time_delivery_rate: float
    quality_score: float
    overall_performance_score: float
    is_preferred_supplier: bool = False
    is_reliable_supplier: bool = False
    last_updated: Optional[datetime] = None

    @property
    def capacity_utilization_rate(self) -> float:
        if self.max_monthly_capacity <= 0:
            return 0.0
        return self.current_commitments / self.max_monthly_capacity


class SupplierAllocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_id: str
    supplier_name: str = ""
    allocated_quantity: int = Field(..., gt=0)
    allocation_percentage: float = 0.0
    available_capacity: int = 0
    performance_score: float = 0.0
    quality_rating: float = 0.0
    on_time_delivery_rate: float = 0.0
    allocation_reason: Optional[str] = None


class DistributionSuggestion(BaseModel):
    customer_order_id: str
    total_quantity: int
    product_type: ProductType
    allocations: List[SupplierAllocation] = []
    strategy: DistributionStrategy = DistributionStrategy.balanced
    total_capacity_utilization: float = 0.0
    notes: Optional[str] = None
    generated_at: datetime

    @computed_field
    @property
    def total_allocated(self) -> int:
        return sum(a.allocated_quantity for a in self.allocations)

    @computed_field
    @property
    def unallocated_quantity(self) -> int:
        return max(0, self.total_quantity - self.total_allocated)

    @computed_field
    @property
    def is_fully_allocated(self) -> bool:
        return self.total_allocated == self.total_quantity


class DistributionPlan(BaseModel):
    customer_order_id: str = ""
    allocations: List[SupplierAllocation] = []
    strategy: DistributionStrategy = DistributionStrategy.balanced
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def total_allocated_quantity(self) -> int:
        return sum(a.allocated_quantity for a in self.allocations)

    @classmethod
    def from_suggestion(
        cls,
        suggestion: DistributionSuggestion,
        created_by: Optional[str] = None,
    ) -> "DistributionPlan":
        return cls(
            customer_order_id=suggestion.customer_order_id,
            allocations=list(suggestion.allocations),
            strategy=suggestion.strategy,
            notes=suggestion.notes,
            created_by=created_by,
            created_at=suggestion.generated_at,
        )


class SupplierCapacityValidation(BaseModel):
    supplier_id: str
    supplier_name: str
    requested_quantity: int
    available_capacity: int
    has_sufficient_capacity: bool
    capacity_shortfall: int = 0
    validation_message: Optional[str] = None


class DistributionValidationResult(BaseModel):
    is_valid: bool = True
    errors: List[str] = []
    warnings: List[str] = []
    supplier_validations: List[SupplierCapacityValidation] = []

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

