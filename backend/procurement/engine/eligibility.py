import logging
from typing import Iterable, List

from ..models.distribution import SupplierAllocationInfo
from ..models.orders import ProductType
from ..models.suppliers import Supplier


logger = logging.getLogger(__name__)


def filter_eligible_suppliers(
    suppliers: Iterable[Supplier],
    product_type: ProductType,
    required_quantity: int,
    min_performance_threshold: float = 0.7,
    min_allocation_quantity: int = 1,
) -> List[SupplierAllocationInfo]:
    """Return allocation candidates ordered best performer first.

    ``required_quantity`` is informational: a supplier only needs room for a
    single allocation unit to be a candidate, the allocation engine decides how
    much each one takes.
    """
    eligible: List[SupplierAllocationInfo] = []

    for supplier in suppliers:
        if not supplier.is_active:
            continue

        capability = supplier.get_capability(product_type, active_only=True)
        if capability is None:
            logger.debug(
                "Skipping supplier %s - no active capability for %s",
                supplier.id,
                product_type.value,
            )
            continue

        performance = supplier.performance
        if performance is None:
            logger.debug("Skipping supplier %s - no performance data available", supplier.id)
            continue

        if capability.available_capacity < min_allocation_quantity:
            logger.debug(
                "Skipping supplier %s - insufficient capacity for %s (available %d)",
                supplier.id,
                product_type.value,
                capability.available_capacity,
            )
            continue

        score = performance.overall_performance_score
        if score < min_performance_threshold:
            logger.debug(
                "Skipping supplier %s - performance score %.3f below threshold %.3f",
                supplier.id,
                score,
                min_performance_threshold,
            )
            continue

        eligible.append(
            SupplierAllocationInfo(
                supplier_id=supplier.id,
                supplier_name=supplier.name,
                product_type=product_type,
                available_capacity=capability.available_capacity,
                max_monthly_capacity=capability.max_monthly_capacity,
                current_commitments=capability.current_commitments,
                quality_rating=capability.quality_rating,
                on_time_delivery_rate=performance.on_time_delivery_rate,
                quality_score=performance.quality_score,
                overall_performance_score=score,
                is_preferred_supplier=performance.is_preferred_supplier,
                is_reliable_supplier=performance.is_reliable_supplier,
                last_updated=performance.last_updated,
            )
        )

    logger.info(
        "Found %d eligible suppliers for %s (requested %d units)",
        len(eligible),
        product_type.value,
        required_quantity,
    )
    return sorted(eligible, key=lambda s: s.overall_performance_score, reverse=True)
