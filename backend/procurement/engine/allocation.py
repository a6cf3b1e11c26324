"""
Allocation strategies
=====================
Split a customer order's quantity across eligible suppliers:

- EVEN_DISTRIBUTION: equal shares, remainder to the first suppliers
- PERFORMANCE_BASED: shares weighted by performance score (+ preferred/reliable bonus)
- CAPACITY_BASED: fill the suppliers with the most free capacity first
- BALANCED: shares weighted by a performance/capacity-headroom composite,
  followed by a top-up pass for whatever rounding and capacity caps left over

Every strategy returns fresh, immutable SupplierAllocation records. No
allocation is ever larger than the supplier's available capacity, and
quantities below the minimum allocation unit are dropped.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..models.distribution import (
    DistributionStrategy,
    SupplierAllocation,
    SupplierAllocationInfo,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationConfig:
    min_allocation_quantity: int = 1
    preferred_supplier_bonus: float = 0.2
    reliable_supplier_bonus: float = 0.1
    performance_weight: float = 0.6
    capacity_weight: float = 0.4


class AllocationStrategy(ABC):
    strategy_type: DistributionStrategy

    def __init__(self, config: Optional[AllocationConfig] = None) -> None:
        self.config = config or AllocationConfig()

    @abstractmethod
    def allocate(
        self,
        suppliers: Sequence[SupplierAllocationInfo],
        total_quantity: int,
    ) -> List[SupplierAllocation]:
        """Split ``total_quantity`` across ``suppliers``."""

    def performance_weight(self, supplier: SupplierAllocationInfo) -> float:
        weight = supplier.overall_performance_score
        if supplier.is_preferred_supplier:
            weight += self.config.preferred_supplier_bonus
        elif supplier.is_reliable_supplier:
            weight += self.config.reliable_supplier_bonus
        return weight

    def _build(
        self,
        supplier: SupplierAllocationInfo,
        quantity: int,
        total_quantity: int,
        reason: str,
    ) -> SupplierAllocation:
        return SupplierAllocation(
            supplier_id=supplier.supplier_id,
            supplier_name=supplier.supplier_name,
            allocated_quantity=quantity,
            allocation_percentage=quantity / total_quantity * 100,
            available_capacity=supplier.available_capacity,
            performance_score=supplier.overall_performance_score,
            quality_rating=supplier.quality_rating,
            on_time_delivery_rate=supplier.on_time_delivery_rate,
            allocation_reason=reason,
        )

    def _allocate_weighted(
        self,
        ranked: Sequence[SupplierAllocationInfo],
        weights: Dict[str, float],
        total_quantity: int,
        reason_format: str,
    ) -> List[SupplierAllocation]:
        allocations: List[SupplierAllocation] = []
        remaining = total_quantity

        total_weight = sum(weights.values())
        if total_weight <= 0:
            # Degenerate scores; every supplier counts the same.
            weights = {key: 1.0 for key in weights}
            total_weight = float(len(weights))

        for supplier in ranked:
            if remaining <= 0:
                break

            weight = weights[supplier.supplier_id]
            target = int(round(weight / total_weight * total_quantity))
            quantity = min(target, supplier.available_capacity, remaining)

            if quantity >= self.config.min_allocation_quantity:
                allocations.append(
                    self._build(
                        supplier,
                        quantity,
                        total_quantity,
                        reason_format.format(weight=weight, supplier=supplier),
                    )
                )
                remaining -= quantity

        return allocations


class EvenDistributionStrategy(AllocationStrategy):
    strategy_type = DistributionStrategy.even_distribution

    def allocate(self, suppliers, total_quantity):
        allocations: List[SupplierAllocation] = []
        remaining = total_quantity
        base, remainder = divmod(total_quantity, len(suppliers))

        for index, supplier in enumerate(suppliers):
            if remaining <= 0:
                break

            share = base + (1 if index < remainder else 0)
            quantity = min(share, supplier.available_capacity, remaining)

            if quantity >= self.config.min_allocation_quantity:
                allocations.append(
                    self._build(supplier, quantity, total_quantity, "Even distribution")
                )
                remaining -= quantity

        return allocations


class PerformanceBasedStrategy(AllocationStrategy):
    strategy_type = DistributionStrategy.performance_based

    def allocate(self, suppliers, total_quantity):
        ranked = sorted(suppliers, key=lambda s: s.overall_performance_score, reverse=True)
        weights = {s.supplier_id: self.performance_weight(s) for s in suppliers}
        return self._allocate_weighted(
            ranked,
            weights,
            total_quantity,
            "Performance-based (score: {supplier.overall_performance_score:.2f})",
        )


class CapacityBasedStrategy(AllocationStrategy):
    strategy_type = DistributionStrategy.capacity_based

    def allocate(self, suppliers, total_quantity):
        allocations: List[SupplierAllocation] = []
        remaining = total_quantity

        for supplier in sorted(suppliers, key=lambda s: s.available_capacity, reverse=True):
            if remaining <= 0:
                break

            quantity = min(supplier.available_capacity, remaining)
            if quantity >= self.config.min_allocation_quantity:
                allocations.append(
                    self._build(
                        supplier,
                        quantity,
                        total_quantity,
                        f"Capacity-based (available: {supplier.available_capacity})",
                    )
                )
                remaining -= quantity

        return allocations


class BalancedStrategy(AllocationStrategy):
    strategy_type = DistributionStrategy.balanced

    def composite_score(self, supplier: SupplierAllocationInfo) -> float:
        capacity_score = 1.0 - supplier.capacity_utilization_rate
        return (
            self.performance_weight(supplier) * self.config.performance_weight
            + capacity_score * self.config.capacity_weight
        )

    def allocate(self, suppliers, total_quantity):
        weights = {s.supplier_id: self.composite_score(s) for s in suppliers}
        ranked = sorted(suppliers, key=lambda s: weights[s.supplier_id], reverse=True)

        allocations = self._allocate_weighted(
            ranked,
            weights,
            total_quantity,
            "Balanced (composite score: {weight:.2f})",
        )
        return self._top_up(ranked, allocations, total_quantity)

    def _top_up(
        self,
        ranked: Sequence[SupplierAllocationInfo],
        allocations: List[SupplierAllocation],
        total_quantity: int,
    ) -> List[SupplierAllocation]:
        """Hand out what the weighted pass left behind.

        Already-allocated suppliers absorb the leftover first, best performer
        first. Candidates the weighted pass rounded down to nothing only pick
        up what those suppliers had no headroom for.
        """
        leftover = total_quantity - sum(a.allocated_quantity for a in allocations)
        if leftover <= 0:
            return allocations

        by_id = {s.supplier_id: s for s in ranked}
        topped: Dict[str, SupplierAllocation] = {}

        for allocation in sorted(allocations, key=lambda a: a.performance_score, reverse=True):
            if leftover <= 0:
                break
            headroom = by_id[allocation.supplier_id].available_capacity - allocation.allocated_quantity
            extra = min(headroom, leftover)
            if extra > 0:
                quantity = allocation.allocated_quantity + extra
                topped[allocation.supplier_id] = allocation.model_copy(
                    update={
                        "allocated_quantity": quantity,
                        "allocation_percentage": quantity / total_quantity * 100,
                    }
                )
                leftover -= extra

        result = [topped.get(a.supplier_id, a) for a in allocations]

        allocated_ids = {a.supplier_id for a in allocations}
        for supplier in ranked:
            if leftover < self.config.min_allocation_quantity:
                break
            if supplier.supplier_id in allocated_ids:
                continue
            quantity = min(supplier.available_capacity, leftover)
            if quantity >= self.config.min_allocation_quantity:
                result.append(
                    self._build(
                        supplier,
                        quantity,
                        total_quantity,
                        f"Balanced top-up (composite score: {self.composite_score(supplier):.2f})",
                    )
                )
                leftover -= quantity

        if leftover > 0:
            logger.debug("Balanced allocation left %d units without capacity", leftover)
        return result


STRATEGIES = {
    DistributionStrategy.even_distribution: EvenDistributionStrategy,
    DistributionStrategy.performance_based: PerformanceBasedStrategy,
    DistributionStrategy.capacity_based: CapacityBasedStrategy,
    DistributionStrategy.balanced: BalancedStrategy,
}


def get_strategy(
    strategy: DistributionStrategy,
    config: Optional[AllocationConfig] = None,
) -> AllocationStrategy:
    strategy_cls = STRATEGIES.get(strategy, BalancedStrategy)
    return strategy_cls(config)


def calculate_optimal_distribution(
    suppliers: Sequence[SupplierAllocationInfo],
    total_quantity: int,
    strategy: DistributionStrategy = DistributionStrategy.balanced,
    config: Optional[AllocationConfig] = None,
) -> List[SupplierAllocation]:
    if not suppliers or total_quantity <= 0:
        return []

    logger.debug(
        "Calculating distribution for %d units across %d suppliers using %s",
        total_quantity,
        len(suppliers),
        strategy.value,
    )
    return get_strategy(strategy, config).allocate(suppliers, total_quantity)


def calculate_total_capacity_utilization(
    suppliers: Sequence[SupplierAllocationInfo],
    allocations: Sequence[SupplierAllocation],
) -> float:
    """Allocated units over the free capacity of the suppliers that got them."""
    if not suppliers or not allocations:
        return 0.0

    by_id = {s.supplier_id: s for s in suppliers}
    used = 0
    available = 0
    for allocation in allocations:
        supplier = by_id.get(allocation.supplier_id)
        if supplier is not None:
            used += allocation.allocated_quantity
            available += supplier.available_capacity

    return used / available if available > 0 else 0.0
