import logging
from typing import List, Optional

from ..core.clock import Clock, SystemClock
from ..engine.allocation import (
    AllocationConfig,
    calculate_optimal_distribution,
    calculate_total_capacity_utilization,
)
from ..engine.eligibility import filter_eligible_suppliers
from ..models.distribution import (
    DistributionPlan,
    DistributionStrategy,
    DistributionSuggestion,
    DistributionValidationResult,
    SupplierAllocation,
    SupplierAllocationInfo,
    SupplierCapacityValidation,
)
from ..models.orders import CustomerOrder, ProductType
from .ports import CustomerOrderRepository, SupplierRepository


logger = logging.getLogger(__name__)

NO_ELIGIBLE_SUPPLIERS_NOTE = "No eligible suppliers available for this product type"


class DistributionService:
    def __init__(
        self,
        suppliers: SupplierRepository,
        orders: CustomerOrderRepository,
        clock: Optional[Clock] = None,
        config: Optional[AllocationConfig] = None,
        min_performance_threshold: float = 0.7,
        capacity_warning_ratio: float = 0.9,
    ) -> None:
        self.suppliers = suppliers
        self.orders = orders
        self.clock = clock or SystemClock()
        self.config = config or AllocationConfig()
        self.min_performance_threshold = min_performance_threshold
        self.capacity_warning_ratio = capacity_warning_ratio

    def get_eligible_suppliers(
        self,
        product_type: ProductType,
        required_quantity: int,
    ) -> List[SupplierAllocationInfo]:
        return filter_eligible_suppliers(
            self.suppliers.list(active_only=True),
            product_type,
            required_quantity,
            min_performance_threshold=self.min_performance_threshold,
            min_allocation_quantity=self.config.min_allocation_quantity,
        )

    def calculate_optimal_distribution(
        self,
        suppliers: List[SupplierAllocationInfo],
        total_quantity: int,
        strategy: DistributionStrategy = DistributionStrategy.balanced,
    ) -> List[SupplierAllocation]:
        return calculate_optimal_distribution(suppliers, total_quantity, strategy, self.config)

    def generate_distribution_suggestion(
        self,
        order: CustomerOrder,
        strategy: DistributionStrategy = DistributionStrategy.balanced,
    ) -> DistributionSuggestion:
        total_quantity = order.total_quantity
        logger.info(
            "Generating distribution suggestion for order %s with %d units of %s",
            order.id,
            total_quantity,
            order.product_type.value,
        )

        eligible = self.get_eligible_suppliers(order.product_type, total_quantity)
        if not eligible:
            logger.warning("No eligible suppliers found for product type %s", order.product_type.value)
            return DistributionSuggestion(
                customer_order_id=order.id,
                total_quantity=total_quantity,
                product_type=order.product_type,
                strategy=strategy,
                notes=NO_ELIGIBLE_SUPPLIERS_NOTE,
                generated_at=self.clock.now(),
            )

        allocations = self.calculate_optimal_distribution(eligible, total_quantity, strategy)
        suggestion = DistributionSuggestion(
            customer_order_id=order.id,
            total_quantity=total_quantity,
            product_type=order.product_type,
            allocations=allocations,
            strategy=strategy,
            total_capacity_utilization=calculate_total_capacity_utilization(eligible, allocations),
            generated_at=self.clock.now(),
        )

        if not suggestion.is_fully_allocated:
            suggestion.notes = (
                f"Unable to fully allocate order. {suggestion.unallocated_quantity} "
                "units remain unallocated."
            )
            logger.warning(
                "Order %s could not be fully allocated. Missing %d units",
                order.id,
                suggestion.unallocated_quantity,
            )

        logger.info(
            "Generated distribution suggestion for order %s with %d suppliers",
            order.id,
            len(allocations),
        )
        return suggestion

    def validate_distribution(self, plan: DistributionPlan) -> DistributionValidationResult:
        result = DistributionValidationResult()

        if not plan.allocations:
            result.add_error("Distribution plan must contain at least one allocation")
            return result

        order = self.orders.get(plan.customer_order_id) if plan.customer_order_id else None

        for allocation in plan.allocations:
            supplier = self.suppliers.get(allocation.supplier_id)
            if supplier is None:
                result.add_error(f"Supplier {allocation.supplier_id} not found")
                continue

            if not supplier.is_active:
                result.add_error(f"Supplier {supplier.name} is not active")
                continue

            if order is None:
                result.add_error(f"Customer order {plan.customer_order_id} not found")
                continue

            capability = supplier.get_capability(order.product_type, active_only=True)
            available = capability.available_capacity if capability else 0
            requested = allocation.allocated_quantity
            validation = SupplierCapacityValidation(
                supplier_id=supplier.id,
                supplier_name=supplier.name,
                requested_quantity=requested,
                available_capacity=available,
                has_sufficient_capacity=capability is not None and available >= requested,
            )

            if capability is None:
                validation.capacity_shortfall = requested
                validation.validation_message = (
                    f"Supplier {supplier.name} has no active capability for {order.product_type.value}"
                )
                result.add_error(validation.validation_message)
            elif not validation.has_sufficient_capacity:
                validation.capacity_shortfall = requested - available
                validation.validation_message = (
                    f"Insufficient capacity. Requested: {requested}, Available: {available}"
                )
                result.add_error(validation.validation_message)
            elif available - requested < available * (1 - self.capacity_warning_ratio):
                validation.validation_message = (
                    f"Allocation will use >{self.capacity_warning_ratio:.0%} of available capacity"
                )
                result.add_warning(validation.validation_message)

            result.supplier_validations.append(validation)

        if not result.is_valid:
            logger.warning(
                "Distribution plan for order %s failed validation: %s",
                plan.customer_order_id,
                "; ".join(result.errors),
            )
        return result
