"""
Purchase order orchestration
============================
Turns a validated distribution plan into purchase orders, one per supplier
allocation, and keeps the customer order's status in step with the
confirmation state of its purchase orders.

Creation is all-or-nothing from the caller's point of view: if anything fails
after the first purchase order has been persisted, every purchase order
created by that call is deleted again and the original error is re-raised.
"""
import logging
from typing import List, Optional

from ..core.clock import Clock, IdGenerator, SystemClock, UuidGenerator
from ..core.errors import (
    DomainValidationError,
    InvalidStateError,
    NotFoundError,
    PlanValidationError,
)
from ..models.distribution import (
    DistributionPlan,
    DistributionStrategy,
    DistributionSuggestion,
    DistributionValidationResult,
    SupplierAllocation,
)
from ..models.orders import CustomerOrder, OrderStatus
from ..models.purchase_orders import (
    CLOSED_STATUSES,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderItemUpdate,
    PurchaseOrderStatus,
    SupplierConfirmation,
)
from ..models.suppliers import Supplier
from .distribution_service import DistributionService
from .events import ProcurementEvents
from .ports import CustomerOrderRepository, PurchaseOrderRepository, SupplierRepository


logger = logging.getLogger(__name__)


class ProcurementService:
    def __init__(
        self,
        orders: CustomerOrderRepository,
        purchase_orders: PurchaseOrderRepository,
        suppliers: SupplierRepository,
        distribution: DistributionService,
        clock: Optional[Clock] = None,
        ids: Optional[IdGenerator] = None,
        events: Optional[ProcurementEvents] = None,
        default_strategy: DistributionStrategy = DistributionStrategy.balanced,
    ) -> None:
        self.orders = orders
        self.purchase_orders = purchase_orders
        self.suppliers = suppliers
        self.distribution = distribution
        self.clock = clock or SystemClock()
        self.ids = ids or UuidGenerator()
        self.events = events or ProcurementEvents(clock=self.clock)
        self.default_strategy = default_strategy

    # Planning

    def suggest_distribution(
        self,
        customer_order_id: str,
        strategy: Optional[DistributionStrategy] = None,
    ) -> DistributionSuggestion:
        logger.info("Generating supplier distribution suggestion for order %s", customer_order_id)
        order = self._get_customer_order(customer_order_id)
        return self.distribution.generate_distribution_suggestion(
            order, strategy or self.default_strategy
        )

    def validate_distribution_plan(
        self,
        customer_order_id: str,
        plan: DistributionPlan,
    ) -> DistributionValidationResult:
        if self.orders.get(customer_order_id) is None:
            result = DistributionValidationResult()
            result.add_error(f"Customer order {customer_order_id} not found")
            return result

        if plan.customer_order_id and plan.customer_order_id != customer_order_id:
            result = DistributionValidationResult()
            result.add_error(self._plan_mismatch_message(customer_order_id, plan))
            return result

        plan.customer_order_id = customer_order_id
        return self.distribution.validate_distribution(plan)

    def create_purchase_orders(
        self,
        customer_order_id: str,
        plan: DistributionPlan,
    ) -> List[PurchaseOrder]:
        logger.info(
            "Creating purchase orders for customer order %s with %d supplier allocations",
            customer_order_id,
            len(plan.allocations),
        )

        order = self._get_customer_order(customer_order_id)
        if order.status != OrderStatus.planning_in_progress:
            raise InvalidStateError(
                "Customer order",
                customer_order_id,
                order.status,
                OrderStatus.purchase_orders_created,
                message=(
                    f"Customer order {customer_order_id} is not in planning state. "
                    f"Current status: {order.status.value}"
                ),
            )

        if plan.customer_order_id and plan.customer_order_id != customer_order_id:
            raise DomainValidationError(self._plan_mismatch_message(customer_order_id, plan))
        plan.customer_order_id = customer_order_id

        validation = self.distribution.validate_distribution(plan)
        if not validation.is_valid:
            raise PlanValidationError(validation.errors, validation.warnings)

        created: List[PurchaseOrder] = []
        try:
            for allocation in plan.allocations:
                supplier = self.suppliers.get(allocation.supplier_id)
                if supplier is None:
                    logger.warning(
                        "Supplier %s not found, skipping allocation", allocation.supplier_id
                    )
                    continue

                purchase_order = self._create_purchase_order_for_supplier(
                    order, supplier, allocation, plan.created_by, created
                )
                logger.debug(
                    "Created purchase order %s for supplier %s with %d units",
                    purchase_order.purchase_order_number,
                    supplier.name,
                    allocation.allocated_quantity,
                )

            order.transition_to(
                OrderStatus.purchase_orders_created,
                self.clock.now(),
                changed_by=plan.created_by,
                notes=f"{len(created)} purchase orders created",
            )
            self.orders.save(order)
        except Exception:
            logger.exception("Error creating purchase orders for customer order %s", customer_order_id)
            self._cleanup(created)
            raise

        self.events.audit(
            "purchase_orders_created",
            "customer_order",
            customer_order_id,
            count=len(created),
            created_by=plan.created_by,
        )
        for purchase_order in created:
            self.events.notify(
                "purchase_order_sent",
                purchase_order.supplier_id,
                f"New purchase order {purchase_order.purchase_order_number}",
                purchase_order_id=purchase_order.id,
            )

        logger.info(
            "Successfully created %d purchase orders for customer order %s",
            len(created),
            customer_order_id,
        )
        return created

    @staticmethod
    def _plan_mismatch_message(customer_order_id: str, plan: DistributionPlan) -> str:
        return (
            f"Distribution plan belongs to customer order {plan.customer_order_id}, "
            f"not {customer_order_id}"
        )

    def generate_purchase_order_number(self, supplier_id: str, customer_order_id: str) -> str:
        supplier = self.suppliers.get(supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier", supplier_id)
        order = self._get_customer_order(customer_order_id)
        return self._purchase_order_number(order, supplier)

    def _purchase_order_number(self, order: CustomerOrder, supplier: Supplier) -> str:
        supplier_code = supplier.name[:3].upper()
        sequence = self.purchase_orders.count_by_customer_order(order.id) + 1
        return f"PO-{order.order_number}-{supplier_code}-{sequence:03d}"

    def _create_purchase_order_for_supplier(
        self,
        order: CustomerOrder,
        supplier: Supplier,
        allocation: SupplierAllocation,
        created_by: Optional[str],
        created: List[PurchaseOrder],
    ) -> PurchaseOrder:
        now = self.clock.now()
        purchase_order = PurchaseOrder(
            id=self.ids.new_id(),
            purchase_order_number=self._purchase_order_number(order, supplier),
            customer_order_id=order.id,
            supplier_id=supplier.id,
            required_delivery_date=order.requested_delivery_date,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

        remaining = allocation.allocated_quantity
        for order_item in sorted(order.items, key=lambda i: i.quantity):
            if remaining <= 0:
                break

            quantity = min(remaining, order_item.quantity)
            item = PurchaseOrderItem(
                id=self.ids.new_id(),
                order_item_id=order_item.id,
                product_code=order_item.product_code,
                description=order_item.description,
                allocated_quantity=quantity,
                unit=order_item.unit,
                unit_price=order_item.unit_price,
                specifications=order_item.specifications,
            )
            item.validate_item()
            item.validate_allocation(order_item.quantity)
            purchase_order.items.append(item)
            remaining -= quantity

        purchase_order.validate_purchase_order(now)
        purchase_order.calculate_total_value()

        self.purchase_orders.save(purchase_order)
        created.append(purchase_order)

        purchase_order.transition_to(PurchaseOrderStatus.sent_to_supplier, self.clock.now())
        self.purchase_orders.save(purchase_order)
        return purchase_order

    def _cleanup(self, created: List[PurchaseOrder]) -> None:
        for purchase_order in created:
            try:
                self.purchase_orders.delete(purchase_order.id)
            except Exception:
                logger.exception("Error cleaning up purchase order %s", purchase_order.id)

    # Supplier responses

    def confirm_purchase_order(
        self,
        purchase_order_id: str,
        confirmation: SupplierConfirmation,
    ) -> PurchaseOrder:
        logger.info("Confirming purchase order %s", purchase_order_id)
        purchase_order = self.get_purchase_order(purchase_order_id)
        now = self.clock.now()

        purchase_order.confirm(now, confirmation.supplier_notes)
        for item_confirmation in confirmation.item_confirmations:
            item = purchase_order.find_item(item_confirmation.purchase_order_item_id)
            if item is None:
                logger.warning(
                    "Purchase order item %s not found on %s, ignoring confirmation",
                    item_confirmation.purchase_order_item_id,
                    purchase_order_id,
                )
                continue
            self._apply_item_update(purchase_order, item, item_confirmation)

        purchase_order.calculate_total_value()
        self.purchase_orders.save(purchase_order)

        self.events.audit(
            "purchase_order_confirmed",
            "purchase_order",
            purchase_order.id,
            customer_order_id=purchase_order.customer_order_id,
            confirmed_by=confirmation.confirmed_by,
        )
        self.sync_customer_order_status(purchase_order.customer_order_id)

        logger.info("Purchase order %s confirmed successfully", purchase_order_id)
        return purchase_order

    def reject_purchase_order(self, purchase_order_id: str, reason: str) -> PurchaseOrder:
        logger.info("Rejecting purchase order %s with reason: %s", purchase_order_id, reason)
        purchase_order = self.get_purchase_order(purchase_order_id)

        purchase_order.reject(reason, self.clock.now())
        self.purchase_orders.save(purchase_order)

        self.events.audit(
            "purchase_order_rejected",
            "purchase_order",
            purchase_order.id,
            customer_order_id=purchase_order.customer_order_id,
            reason=purchase_order.rejection_reason,
        )
        return purchase_order

    def update_purchase_order_status(
        self,
        purchase_order_id: str,
        new_status: PurchaseOrderStatus,
        reason: Optional[str] = None,
    ) -> PurchaseOrder:
        if new_status == PurchaseOrderStatus.confirmed:
            return self.confirm_purchase_order(purchase_order_id, SupplierConfirmation())

        purchase_order = self.get_purchase_order(purchase_order_id)
        previous = purchase_order.status
        purchase_order.transition_to(new_status, self.clock.now(), reason=reason)
        self.purchase_orders.save(purchase_order)

        logger.info(
            "Purchase order %s moved from %s to %s",
            purchase_order.purchase_order_number,
            previous.value,
            new_status.value,
        )
        self.events.audit(
            "status_change",
            "purchase_order",
            purchase_order.id,
            previous=previous.value,
            current=new_status.value,
        )
        return purchase_order

    def update_purchase_order_item(
        self,
        purchase_order_id: str,
        item_id: str,
        update: PurchaseOrderItemUpdate,
    ) -> PurchaseOrderItem:
        logger.info("Updating purchase order item %s on %s", item_id, purchase_order_id)
        purchase_order = self.get_purchase_order(purchase_order_id)
        if purchase_order.status in CLOSED_STATUSES:
            raise InvalidStateError(
                "Purchase order",
                purchase_order_id,
                purchase_order.status,
                purchase_order.status,
                message=(
                    f"Cannot update items of purchase order {purchase_order_id} "
                    f"in status {purchase_order.status.value}"
                ),
            )

        item = purchase_order.find_item(item_id)
        if item is None:
            raise NotFoundError("Purchase order item", item_id)

        self._apply_item_update(purchase_order, item, update)
        purchase_order.calculate_total_value()
        purchase_order.updated_at = self.clock.now()
        self.purchase_orders.save(purchase_order)
        return item

    def _apply_item_update(
        self,
        purchase_order: PurchaseOrder,
        item: PurchaseOrderItem,
        update: PurchaseOrderItemUpdate,
    ) -> None:
        now = self.clock.now()
        if update.packaging_details:
            item.set_packaging_details(update.packaging_details, update.delivery_method)
        if update.estimated_delivery_date is not None:
            item.set_estimated_delivery_date(
                update.estimated_delivery_date, now, purchase_order.required_delivery_date
            )
        if update.unit_price is not None:
            item.update_unit_price(update.unit_price)
        if update.supplier_notes:
            item.add_supplier_notes(update.supplier_notes, now)
        if update.specifications:
            item.specifications = update.specifications

    def sync_customer_order_status(self, customer_order_id: str) -> Optional[CustomerOrder]:
        """Advance the customer order once its suppliers start confirming.

        Safe to call repeatedly: an order that is already past the relevant
        status is left alone.
        """
        purchase_orders = self.purchase_orders.list_by_customer_order(customer_order_id)
        if not purchase_orders:
            return None

        confirmed = [po for po in purchase_orders if po.is_confirmed]
        if not confirmed:
            return None

        order = self.orders.get(customer_order_id)
        if order is None:
            return None

        now = self.clock.now()
        notes = f"{len(confirmed)} of {len(purchase_orders)} purchase orders confirmed"
        previous = order.status
        if order.status == OrderStatus.purchase_orders_created:
            order.transition_to(OrderStatus.awaiting_supplier_confirmation, now, notes=notes)
        if len(confirmed) == len(purchase_orders) and (
            order.status == OrderStatus.awaiting_supplier_confirmation
        ):
            order.transition_to(OrderStatus.in_production, now, notes=notes)

        if order.status == previous:
            return order

        self.orders.save(order)
        logger.info(
            "Customer order %s moved from %s to %s (%d of %d purchase orders confirmed)",
            order.order_number,
            previous.value,
            order.status.value,
            len(confirmed),
            len(purchase_orders),
        )
        self.events.audit(
            "status_change",
            "customer_order",
            order.id,
            previous=previous.value,
            current=order.status.value,
        )
        return order

    # Queries

    def get_purchase_order(self, purchase_order_id: str) -> PurchaseOrder:
        purchase_order = self.purchase_orders.get(purchase_order_id)
        if purchase_order is None:
            raise NotFoundError("Purchase order", purchase_order_id)
        return purchase_order

    def get_purchase_orders_by_customer_order(self, customer_order_id: str) -> List[PurchaseOrder]:
        logger.debug("Getting purchase orders for customer order %s", customer_order_id)
        return self.purchase_orders.list_by_customer_order(customer_order_id)

    def get_purchase_orders_by_supplier(
        self,
        supplier_id: str,
        status: Optional[PurchaseOrderStatus] = None,
    ) -> List[PurchaseOrder]:
        logger.debug("Getting purchase orders for supplier %s (status=%s)", supplier_id, status)
        return self.purchase_orders.list_by_supplier(supplier_id, status)

    def _get_customer_order(self, customer_order_id: str) -> CustomerOrder:
        order = self.orders.get(customer_order_id)
        if order is None:
            raise NotFoundError("Customer order", customer_order_id)
        return order
