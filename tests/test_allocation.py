import pytest
from pydantic import ValidationError

from backend.procurement.engine.allocation import (
    AllocationConfig,
    BalancedStrategy,
    calculate_optimal_distribution,
    calculate_total_capacity_utilization,
)
from backend.procurement.models.distribution import (
    DistributionStrategy,
    SupplierAllocationInfo,
)
from backend.procurement.models.orders import ProductType


def _info(
    supplier_id: str,
    available: int,
    score: float,
    max_capacity: int = None,
    preferred: bool = False,
    reliable: bool = False,
) -> SupplierAllocationInfo:
    max_capacity = max_capacity or available
    return SupplierAllocationInfo(
        supplier_id=supplier_id,
        supplier_name=supplier_id.title(),
        product_type=ProductType.lmr,
        available_capacity=available,
        max_monthly_capacity=max_capacity,
        current_commitments=max_capacity - available,
        quality_rating=4.0,
        on_time_delivery_rate=score,
        quality_score=4.0,
        overall_performance_score=score,
        is_preferred_supplier=preferred,
        is_reliable_supplier=reliable,
    )


def _quantities(allocations):
    return {a.supplier_id: a.allocated_quantity for a in allocations}


@pytest.mark.parametrize("strategy", list(DistributionStrategy))
def test_empty_input_yields_no_allocations(strategy):
    assert calculate_optimal_distribution([], 100, strategy) == []
    assert calculate_optimal_distribution([_info("a", 10, 0.9)], 0, strategy) == []


@pytest.mark.parametrize("strategy", list(DistributionStrategy))
def test_allocations_respect_total_and_capacity(strategy):
    suppliers = [_info("a", 7, 0.95), _info("b", 40, 0.8), _info("c", 3, 0.75)]

    allocations = calculate_optimal_distribution(suppliers, 45, strategy)

    assert sum(a.allocated_quantity for a in allocations) <= 45
    capacity = {s.supplier_id: s.available_capacity for s in suppliers}
    for allocation in allocations:
        assert 1 <= allocation.allocated_quantity <= capacity[allocation.supplier_id]


class TestEvenDistribution:
    def test_remainder_goes_to_first_suppliers(self):
        suppliers = [_info("a", 100, 0.9), _info("b", 100, 0.8), _info("c", 100, 0.7)]

        allocations = calculate_optimal_distribution(
            suppliers, 10, DistributionStrategy.even_distribution
        )

        assert _quantities(allocations) == {"a": 4, "b": 3, "c": 3}
        assert all(a.allocation_reason == "Even distribution" for a in allocations)

    def test_capped_share_is_not_redistributed(self):
        suppliers = [_info("a", 2, 0.9), _info("b", 100, 0.8), _info("c", 100, 0.7)]

        allocations = calculate_optimal_distribution(
            suppliers, 9, DistributionStrategy.even_distribution
        )

        assert _quantities(allocations) == {"a": 2, "b": 3, "c": 3}


class TestCapacityBased:
    def test_largest_capacity_first(self):
        suppliers = [_info("a", 70, 0.9), _info("b", 30, 0.6)]

        allocations = calculate_optimal_distribution(
            suppliers, 80, DistributionStrategy.capacity_based
        )

        assert _quantities(allocations) == {"a": 70, "b": 10}
        assert sum(a.allocated_quantity for a in allocations) == 80
        assert allocations[0].allocation_reason == "Capacity-based (available: 70)"
        assert allocations[1].allocation_percentage == pytest.approx(12.5)

    def test_visits_by_capacity_not_score(self):
        suppliers = [_info("small", 10, 0.99), _info("large", 50, 0.71)]

        allocations = calculate_optimal_distribution(
            suppliers, 40, DistributionStrategy.capacity_based
        )

        assert _quantities(allocations) == {"large": 40}


class TestPerformanceBased:
    def test_bonus_shifts_share_to_preferred_supplier(self):
        suppliers = [_info("a", 100, 0.9, preferred=True), _info("b", 100, 0.7)]

        allocations = calculate_optimal_distribution(
            suppliers, 18, DistributionStrategy.performance_based
        )

        assert _quantities(allocations) == {"a": 11, "b": 7}
        assert allocations[0].allocation_reason == "Performance-based (score: 0.90)"

    def test_rounds_half_to_even(self):
        suppliers = [_info("a", 100, 0.8), _info("b", 100, 0.8)]

        allocations = calculate_optimal_distribution(
            suppliers, 5, DistributionStrategy.performance_based
        )

        # Both targets are 2.5, which rounds to 2.
        assert _quantities(allocations) == {"a": 2, "b": 2}

    def test_candidates_below_one_unit_are_dropped(self):
        suppliers = [_info("a", 100, 0.99), _info("b", 100, 0.01)]

        allocations = calculate_optimal_distribution(
            suppliers, 10, DistributionStrategy.performance_based
        )

        assert _quantities(allocations) == {"a": 10}

    def test_no_leftover_pass(self):
        suppliers = [_info("a", 5, 0.9), _info("b", 100, 0.9)]

        allocations = calculate_optimal_distribution(
            suppliers, 20, DistributionStrategy.performance_based
        )

        assert _quantities(allocations) == {"a": 5, "b": 10}


class TestBalanced:
    def test_second_pass_tops_up_suppliers_with_headroom(self):
        suppliers = [_info("a", 10, 0.9, preferred=True), _info("b", 100, 0.8)]

        allocations = calculate_optimal_distribution(suppliers, 50)

        assert _quantities(allocations) == {"a": 10, "b": 40}
        top_up = next(a for a in allocations if a.supplier_id == "b")
        assert top_up.allocation_percentage == pytest.approx(80.0)
        assert top_up.allocation_reason.startswith("Balanced (composite score:")

    def test_composite_score_blends_performance_and_headroom(self):
        strategy = BalancedStrategy(AllocationConfig())
        busy = _info("busy", 20, 0.8, max_capacity=100, reliable=True)

        # 0.6 * (0.8 + 0.1) + 0.4 * (1 - 0.8)
        assert strategy.composite_score(busy) == pytest.approx(0.62)

    def test_rounding_leftover_is_placed(self):
        suppliers = [_info("a", 100, 0.8), _info("b", 100, 0.8)]

        allocations = calculate_optimal_distribution(suppliers, 1)

        assert sum(a.allocated_quantity for a in allocations) == 1

    def test_fully_allocates_when_capacity_suffices(self):
        suppliers = [_info("a", 33, 0.91), _info("b", 21, 0.77), _info("c", 50, 0.73)]

        allocations = calculate_optimal_distribution(suppliers, 97)

        assert sum(a.allocated_quantity for a in allocations) == 97

    def test_allocations_are_immutable(self):
        allocations = calculate_optimal_distribution([_info("a", 10, 0.9)], 5)

        with pytest.raises(ValidationError):
            allocations[0].allocated_quantity = 1


def test_total_capacity_utilization_over_allocated_suppliers():
    suppliers = [_info("a", 10, 0.9), _info("b", 100, 0.8), _info("c", 100, 0.8)]
    allocations = calculate_optimal_distribution(
        suppliers[:2], 50, DistributionStrategy.capacity_based
    )

    utilization = calculate_total_capacity_utilization(suppliers, allocations)

    assert utilization == pytest.approx(50 / 100)
