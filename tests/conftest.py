from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from backend.procurement.core.clock import FixedClock, SequentialIdGenerator
from backend.procurement.models.orders import (
    CustomerOrder,
    OrderItem,
    OrderStatus,
    ProductType,
)
from backend.procurement.models.suppliers import (
    Supplier,
    SupplierCapability,
    SupplierPerformanceMetrics,
)
from backend.procurement.services.distribution_service import DistributionService
from backend.procurement.services.order_service import OrderService
from backend.procurement.services.procurement_service import ProcurementService
from backend.procurement.services.store import InMemoryStore
from backend.procurement.services.supplier_service import SupplierService


NOW = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def ids() -> SequentialIdGenerator:
    return SequentialIdGenerator()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def make_supplier(store, ids, clock):
    def _make(
        name: str,
        capacity: int = 100,
        commitments: int = 0,
        on_time: float = 0.9,
        quality: float = 4.0,
        satisfaction: Optional[float] = None,
        product_type: ProductType = ProductType.lmr,
        is_active: bool = True,
        capability_active: bool = True,
        with_performance: bool = True,
        save: bool = True,
    ) -> Supplier:
        performance = None
        if with_performance:
            performance = SupplierPerformanceMetrics(
                on_time_delivery_rate=on_time,
                quality_score=quality,
                customer_satisfaction_rate=satisfaction,
                total_orders_completed=10,
                last_updated=clock.now(),
            )
        supplier = Supplier(
            id=f"sup-{name.lower().replace(' ', '-')}",
            name=name,
            contact_email=f"{name.lower().replace(' ', '.')}@example.com",
            is_active=is_active,
            capabilities=[
                SupplierCapability(
                    product_type=product_type,
                    max_monthly_capacity=capacity,
                    current_commitments=commitments,
                    quality_rating=quality,
                    is_active=capability_active,
                )
            ],
            performance=performance,
            created_at=clock.now(),
            updated_at=clock.now(),
        )
        if save:
            store.suppliers.save(supplier)
        return supplier

    return _make


@pytest.fixture
def make_order(store, ids, clock):
    def _make(
        quantities: List[int],
        status: OrderStatus = OrderStatus.submitted,
        product_type: ProductType = ProductType.lmr,
        unit_prices: Optional[List[float]] = None,
    ) -> CustomerOrder:
        prices = unit_prices or [None] * len(quantities)
        items = [
            OrderItem(
                id=ids.new_id(),
                product_code=f"SKU-{index:03d}",
                description=f"Item {index}",
                quantity=quantity,
                unit="kg",
                unit_price=price,
            )
            for index, (quantity, price) in enumerate(zip(quantities, prices), start=1)
        ]
        order = CustomerOrder(
            id=ids.new_id(),
            order_number=f"ORD-20250101-{ids.random_digits(1000, 9999)}",
            customer_id="CUST-1",
            customer_name="Fresh Market",
            product_type=product_type,
            requested_delivery_date=clock.now() + timedelta(days=31),
            status=status,
            items=items,
            created_at=clock.now(),
            updated_at=clock.now(),
        )
        store.customer_orders.save(order)
        return order

    return _make


@pytest.fixture
def distribution_service(store, clock) -> DistributionService:
    return DistributionService(store.suppliers, store.customer_orders, clock=clock)


@pytest.fixture
def procurement_service(store, clock, ids, distribution_service) -> ProcurementService:
    return ProcurementService(
        store.customer_orders,
        store.purchase_orders,
        store.suppliers,
        distribution_service,
        clock=clock,
        ids=ids,
    )


@pytest.fixture
def order_service(store, clock, ids) -> OrderService:
    return OrderService(store.customer_orders, clock=clock, ids=ids)


@pytest.fixture
def supplier_service(store, clock, ids) -> SupplierService:
    return SupplierService(store.suppliers, clock=clock, ids=ids)
