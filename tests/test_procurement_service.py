import logging
from datetime import timedelta

import pytest

from backend.procurement.core.errors import (
    DomainValidationError,
    InvalidStateError,
    NotFoundError,
    PlanValidationError,
)
from backend.procurement.models.distribution import DistributionPlan, SupplierAllocation
from backend.procurement.models.orders import OrderStatus, ProductType
from backend.procurement.models.purchase_orders import (
    PurchaseOrderItemConfirmation,
    PurchaseOrderItemUpdate,
    PurchaseOrderStatus,
    SupplierConfirmation,
)


class FlakyPurchaseOrders:
    """Purchase order repository that fails on the n-th new purchase order."""

    def __init__(self, inner, fail_on: int, fail_delete: bool = False):
        self.inner = inner
        self.fail_on = fail_on
        self.fail_delete = fail_delete
        self.created = 0

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def save(self, purchase_order):
        if self.inner.get(purchase_order.id) is None:
            self.created += 1
            if self.created == self.fail_on:
                raise RuntimeError("database unavailable")
        return self.inner.save(purchase_order)

    def delete(self, purchase_order_id):
        if self.fail_delete:
            raise RuntimeError("delete failed")
        return self.inner.delete(purchase_order_id)


class FlakyCustomerOrders:
    """Customer order repository whose writes always fail."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def save(self, order):
        raise RuntimeError("order store unavailable")


def _plan(*allocations, created_by=None):
    return DistributionPlan(
        allocations=[
            SupplierAllocation(supplier_id=supplier.id, allocated_quantity=quantity)
            for supplier, quantity in allocations
        ],
        created_by=created_by,
    )


@pytest.fixture
def planning_order(make_order):
    return make_order(
        [50, 30],
        status=OrderStatus.planning_in_progress,
        unit_prices=[1.5, 2.0],
    )


@pytest.fixture
def three_suppliers(make_supplier):
    return [make_supplier("Alpha Foods"), make_supplier("Beta Farms"), make_supplier("Gamma Agro")]


@pytest.fixture
def three_purchase_orders(procurement_service, make_order, three_suppliers):
    order = make_order([60], status=OrderStatus.planning_in_progress)
    alpha, beta, gamma = three_suppliers
    purchase_orders = procurement_service.create_purchase_orders(
        order.id, _plan((alpha, 20), (beta, 20), (gamma, 20))
    )
    return order, purchase_orders


class TestCreatePurchaseOrders:
    def test_creates_one_purchase_order_per_allocation(
        self, procurement_service, store, make_supplier, planning_order
    ):
        alpha = make_supplier("Alpha Foods")
        beta = make_supplier("Beta Farms")

        created = procurement_service.create_purchase_orders(
            planning_order.id, _plan((alpha, 50), (beta, 30), created_by="planner-1")
        )

        assert [po.purchase_order_number for po in created] == [
            f"PO-{planning_order.order_number}-ALP-001",
            f"PO-{planning_order.order_number}-BET-002",
        ]
        assert all(po.status == PurchaseOrderStatus.sent_to_supplier for po in created)
        assert all(po.created_by == "planner-1" for po in created)
        assert all(
            po.required_delivery_date == planning_order.requested_delivery_date for po in created
        )

        # Items are consumed smallest first, independently per purchase order.
        alpha_po, beta_po = created
        assert [i.allocated_quantity for i in alpha_po.items] == [30, 20]
        assert [i.allocated_quantity for i in beta_po.items] == [30]
        assert alpha_po.total_value == 90.0
        assert alpha_po.total_quantity == 50

        stored_order = store.customer_orders.get(planning_order.id)
        assert stored_order.status == OrderStatus.purchase_orders_created
        assert len(store.purchase_orders.list_by_customer_order(planning_order.id)) == 2

    def test_customer_order_must_be_in_planning(
        self, procurement_service, store, make_supplier, make_order
    ):
        alpha = make_supplier("Alpha Foods")
        order = make_order([10], status=OrderStatus.under_review)

        with pytest.raises(InvalidStateError) as excinfo:
            procurement_service.create_purchase_orders(order.id, _plan((alpha, 10)))

        assert excinfo.value.current == OrderStatus.under_review
        assert store.purchase_orders.list_by_customer_order(order.id) == []
        assert store.customer_orders.get(order.id).status == OrderStatus.under_review

    def test_unknown_customer_order(self, procurement_service, make_supplier):
        alpha = make_supplier("Alpha Foods")

        with pytest.raises(NotFoundError):
            procurement_service.create_purchase_orders("ord-missing", _plan((alpha, 10)))

    def test_invalid_plan_is_rejected(self, procurement_service, store, make_supplier, planning_order):
        alpha = make_supplier("Alpha Foods", capacity=40)

        with pytest.raises(PlanValidationError) as excinfo:
            procurement_service.create_purchase_orders(planning_order.id, _plan((alpha, 80)))

        assert excinfo.value.errors == ["Insufficient capacity. Requested: 80, Available: 40"]
        assert store.purchase_orders.list_by_customer_order(planning_order.id) == []

    def test_failure_mid_creation_rolls_back(
        self, store, clock, ids, distribution_service, make_order, three_suppliers
    ):
        from backend.procurement.services.procurement_service import ProcurementService

        order = make_order([60], status=OrderStatus.planning_in_progress)
        purchase_orders = FlakyPurchaseOrders(store.purchase_orders, fail_on=2)
        service = ProcurementService(
            store.customer_orders,
            purchase_orders,
            store.suppliers,
            distribution_service,
            clock=clock,
            ids=ids,
        )
        alpha, beta, gamma = three_suppliers

        with pytest.raises(RuntimeError, match="database unavailable"):
            service.create_purchase_orders(order.id, _plan((alpha, 20), (beta, 20), (gamma, 20)))

        assert purchase_orders.created == 2
        assert store.purchase_orders.list_by_customer_order(order.id) == []
        assert store.customer_orders.get(order.id).status == OrderStatus.planning_in_progress

    def test_cleanup_errors_do_not_mask_the_original_error(
        self, store, clock, ids, distribution_service, make_order, three_suppliers, caplog
    ):
        from backend.procurement.services.procurement_service import ProcurementService

        order = make_order([60], status=OrderStatus.planning_in_progress)
        service = ProcurementService(
            store.customer_orders,
            FlakyPurchaseOrders(store.purchase_orders, fail_on=3, fail_delete=True),
            store.suppliers,
            distribution_service,
            clock=clock,
            ids=ids,
        )
        alpha, beta, gamma = three_suppliers

        with pytest.raises(RuntimeError, match="database unavailable"):
            service.create_purchase_orders(order.id, _plan((alpha, 20), (beta, 20), (gamma, 20)))

        cleanup_errors = [r for r in caplog.records if "Error cleaning up" in r.getMessage()]
        assert len(cleanup_errors) == 2
        assert all(r.levelno == logging.ERROR for r in cleanup_errors)

    def test_failed_order_save_rolls_back_purchase_orders(
        self, store, clock, ids, distribution_service, make_order, three_suppliers
    ):
        from backend.procurement.services.procurement_service import ProcurementService

        order = make_order([60], status=OrderStatus.planning_in_progress)
        service = ProcurementService(
            FlakyCustomerOrders(store.customer_orders),
            store.purchase_orders,
            store.suppliers,
            distribution_service,
            clock=clock,
            ids=ids,
        )
        alpha, beta, gamma = three_suppliers

        with pytest.raises(RuntimeError, match="order store unavailable"):
            service.create_purchase_orders(order.id, _plan((alpha, 20), (beta, 20), (gamma, 20)))

        assert store.purchase_orders.list_by_customer_order(order.id) == []
        stored = store.customer_orders.get(order.id)
        assert stored.status == OrderStatus.planning_in_progress
        assert stored.status_history == []

    def test_plan_for_another_order_is_rejected(
        self, procurement_service, store, make_supplier, make_order, planning_order
    ):
        fresh = make_supplier("Fresh Farm", product_type=ProductType.ffv)
        ffv_order = make_order([40], status=OrderStatus.planning_in_progress, product_type=ProductType.ffv)
        plan = _plan((fresh, 40))
        plan.customer_order_id = ffv_order.id

        with pytest.raises(DomainValidationError, match=ffv_order.id):
            procurement_service.create_purchase_orders(planning_order.id, plan)

        assert store.purchase_orders.list_by_customer_order(planning_order.id) == []
        assert store.purchase_orders.list_by_customer_order(ffv_order.id) == []
        assert store.customer_orders.get(planning_order.id).status == OrderStatus.planning_in_progress

    def test_validating_a_plan_for_another_order(
        self, procurement_service, make_supplier, make_order, planning_order
    ):
        fresh = make_supplier("Fresh Farm", product_type=ProductType.ffv)
        ffv_order = make_order([40], product_type=ProductType.ffv)
        plan = _plan((fresh, 40))
        plan.customer_order_id = ffv_order.id

        result = procurement_service.validate_distribution_plan(planning_order.id, plan)

        assert not result.is_valid
        assert result.errors == [
            f"Distribution plan belongs to customer order {ffv_order.id}, not {planning_order.id}"
        ]

    def test_creation_is_recorded_in_status_history(
        self, procurement_service, store, make_supplier, planning_order
    ):
        alpha = make_supplier("Alpha Foods")

        procurement_service.create_purchase_orders(
            planning_order.id, _plan((alpha, 80), created_by="planner-1")
        )

        [change] = store.customer_orders.get(planning_order.id).status_history
        assert change.from_status == OrderStatus.planning_in_progress
        assert change.to_status == OrderStatus.purchase_orders_created
        assert change.changed_by == "planner-1"
        assert change.notes == "1 purchase orders created"

    def test_short_supplier_name_in_number(self, procurement_service, make_supplier, planning_order):
        tiny = make_supplier("Ab")

        number = procurement_service.generate_purchase_order_number(tiny.id, planning_order.id)

        assert number == f"PO-{planning_order.order_number}-AB-001"


class TestConfirmationFlow:
    def test_first_confirmation_moves_to_awaiting(self, procurement_service, store, three_purchase_orders):
        order, purchase_orders = three_purchase_orders

        procurement_service.confirm_purchase_order(purchase_orders[0].id, SupplierConfirmation())

        assert store.customer_orders.get(order.id).status == OrderStatus.awaiting_supplier_confirmation

    def test_last_confirmation_moves_to_production(
        self, procurement_service, store, three_purchase_orders
    ):
        order, purchase_orders = three_purchase_orders
        for purchase_order in purchase_orders[:2]:
            procurement_service.confirm_purchase_order(purchase_order.id, SupplierConfirmation())
        assert store.customer_orders.get(order.id).status == OrderStatus.awaiting_supplier_confirmation

        procurement_service.confirm_purchase_order(purchase_orders[2].id, SupplierConfirmation())

        assert store.customer_orders.get(order.id).status == OrderStatus.in_production

    def test_single_purchase_order_steps_through_to_production(
        self, procurement_service, store, make_supplier, make_order
    ):
        order = make_order([60], status=OrderStatus.planning_in_progress)
        alpha = make_supplier("Alpha Foods")
        [purchase_order] = procurement_service.create_purchase_orders(order.id, _plan((alpha, 60)))

        procurement_service.confirm_purchase_order(purchase_order.id, SupplierConfirmation())

        stored = store.customer_orders.get(order.id)
        assert stored.status == OrderStatus.in_production
        assert [c.to_status for c in stored.status_history] == [
            OrderStatus.purchase_orders_created,
            OrderStatus.awaiting_supplier_confirmation,
            OrderStatus.in_production,
        ]
        assert stored.status_history[-1].notes == "1 of 1 purchase orders confirmed"

    def test_rejected_purchase_order_blocks_production(
        self, procurement_service, store, three_purchase_orders
    ):
        order, purchase_orders = three_purchase_orders
        procurement_service.reject_purchase_order(purchase_orders[0].id, "No capacity this month")
        for purchase_order in purchase_orders[1:]:
            procurement_service.confirm_purchase_order(purchase_order.id, SupplierConfirmation())

        assert store.customer_orders.get(order.id).status == OrderStatus.awaiting_supplier_confirmation

    def test_sync_is_idempotent(self, procurement_service, store, three_purchase_orders):
        order, purchase_orders = three_purchase_orders
        for purchase_order in purchase_orders:
            procurement_service.confirm_purchase_order(purchase_order.id, SupplierConfirmation())

        procurement_service.sync_customer_order_status(order.id)
        procurement_service.sync_customer_order_status(order.id)

        assert store.customer_orders.get(order.id).status == OrderStatus.in_production

    def test_confirm_twice_is_rejected(self, procurement_service, three_purchase_orders):
        _, purchase_orders = three_purchase_orders
        procurement_service.confirm_purchase_order(purchase_orders[0].id, SupplierConfirmation())

        with pytest.raises(InvalidStateError):
            procurement_service.confirm_purchase_order(purchase_orders[0].id, SupplierConfirmation())

    def test_confirmation_applies_item_details(self, procurement_service, clock, three_purchase_orders):
        _, purchase_orders = three_purchase_orders
        item = purchase_orders[0].items[0]

        confirmed = procurement_service.confirm_purchase_order(
            purchase_orders[0].id,
            SupplierConfirmation(
                supplier_notes="Confirmed for week 3",
                item_confirmations=[
                    PurchaseOrderItemConfirmation(
                        purchase_order_item_id=item.id,
                        packaging_details="Crates of 10",
                        delivery_method="Truck",
                        estimated_delivery_date=clock.now() + timedelta(days=20),
                        unit_price=2.5,
                    )
                ],
            ),
        )

        assert confirmed.confirmed_at == clock.now()
        assert confirmed.supplier_notes == "Confirmed for week 3"
        assert confirmed.total_value == 50.0
        assert confirmed.items[0].packaging_details == "Crates of 10"
        assert confirmed.items[0].delivery_method == "Truck"

    def test_bad_item_confirmation_persists_nothing(
        self, procurement_service, store, clock, three_purchase_orders
    ):
        _, purchase_orders = three_purchase_orders
        item = purchase_orders[0].items[0]

        with pytest.raises(DomainValidationError, match="later than required"):
            procurement_service.confirm_purchase_order(
                purchase_orders[0].id,
                SupplierConfirmation(
                    item_confirmations=[
                        PurchaseOrderItemConfirmation(
                            purchase_order_item_id=item.id,
                            estimated_delivery_date=clock.now() + timedelta(days=60),
                        )
                    ]
                ),
            )

        stored = store.purchase_orders.get(purchase_orders[0].id)
        assert stored.status == PurchaseOrderStatus.sent_to_supplier

    def test_reject_requires_reason(self, procurement_service, three_purchase_orders):
        _, purchase_orders = three_purchase_orders

        with pytest.raises(DomainValidationError):
            procurement_service.reject_purchase_order(purchase_orders[0].id, "   ")

    def test_reject_stamps_reason(self, procurement_service, clock, three_purchase_orders):
        _, purchase_orders = three_purchase_orders

        rejected = procurement_service.reject_purchase_order(purchase_orders[0].id, "Out of stock")

        assert rejected.status == PurchaseOrderStatus.rejected
        assert rejected.rejected_at == clock.now()
        assert rejected.rejection_reason == "Out of stock"


class TestPurchaseOrderUpdates:
    def test_fulfilment_progression(self, procurement_service, clock, three_purchase_orders):
        _, purchase_orders = three_purchase_orders
        po_id = purchase_orders[0].id
        procurement_service.update_purchase_order_status(po_id, PurchaseOrderStatus.confirmed)

        for status in (
            PurchaseOrderStatus.in_production,
            PurchaseOrderStatus.ready_for_shipment,
            PurchaseOrderStatus.shipped,
        ):
            clock.advance(days=1)
            procurement_service.update_purchase_order_status(po_id, status)
        shipped_at = clock.now()
        clock.advance(days=2)
        delivered = procurement_service.update_purchase_order_status(
            po_id, PurchaseOrderStatus.delivered
        )

        assert delivered.shipped_at == shipped_at
        assert delivered.delivered_at == clock.now()
        with pytest.raises(InvalidStateError):
            procurement_service.update_purchase_order_status(po_id, PurchaseOrderStatus.cancelled)

    def test_skipping_a_step_is_rejected(self, procurement_service, three_purchase_orders):
        _, purchase_orders = three_purchase_orders

        with pytest.raises(InvalidStateError):
            procurement_service.update_purchase_order_status(
                purchase_orders[0].id, PurchaseOrderStatus.shipped
            )

    def test_item_notes_are_appended(self, procurement_service, clock, three_purchase_orders):
        _, purchase_orders = three_purchase_orders
        po = purchase_orders[0]
        item_id = po.items[0].id

        procurement_service.update_purchase_order_item(
            po.id, item_id, PurchaseOrderItemUpdate(supplier_notes="Packed")
        )
        item = procurement_service.update_purchase_order_item(
            po.id, item_id, PurchaseOrderItemUpdate(supplier_notes="Ships early")
        )

        assert item.supplier_notes == "Packed\n2025-01-01 09:00: Ships early"

    def test_items_of_closed_orders_are_locked(self, procurement_service, three_purchase_orders):
        _, purchase_orders = three_purchase_orders
        po = purchase_orders[0]
        procurement_service.reject_purchase_order(po.id, "Out of stock")

        with pytest.raises(InvalidStateError):
            procurement_service.update_purchase_order_item(
                po.id, po.items[0].id, PurchaseOrderItemUpdate(unit_price=3.0)
            )

    def test_unknown_item(self, procurement_service, three_purchase_orders):
        _, purchase_orders = three_purchase_orders

        with pytest.raises(NotFoundError):
            procurement_service.update_purchase_order_item(
                purchase_orders[0].id, "missing", PurchaseOrderItemUpdate(unit_price=3.0)
            )

    def test_purchase_orders_by_supplier(self, procurement_service, three_purchase_orders, three_suppliers):
        _, purchase_orders = three_purchase_orders
        alpha = three_suppliers[0]
        procurement_service.confirm_purchase_order(purchase_orders[0].id, SupplierConfirmation())

        assert len(procurement_service.get_purchase_orders_by_supplier(alpha.id)) == 1
        assert procurement_service.get_purchase_orders_by_supplier(
            alpha.id, PurchaseOrderStatus.sent_to_supplier
        ) == []
