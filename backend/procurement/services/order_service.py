import logging
from datetime import date
from typing import List, Optional

from ..core.clock import Clock, IdGenerator, SystemClock, UuidGenerator
from ..core.errors import DomainValidationError, InvalidStateError, NotFoundError
from ..models.orders import (
    EDITABLE_ORDER_STATUSES,
    CreateOrderRequest,
    CustomerOrder,
    OrderItem,
    OrderItemRequest,
    OrderStatus,
    OrderStatusChange,
    UpdateOrderRequest,
)
from .events import ProcurementEvents
from .ports import CustomerOrderRepository


logger = logging.getLogger(__name__)


class OrderService:
    def __init__(
        self,
        orders: CustomerOrderRepository,
        clock: Optional[Clock] = None,
        ids: Optional[IdGenerator] = None,
        events: Optional[ProcurementEvents] = None,
    ) -> None:
        self.orders = orders
        self.clock = clock or SystemClock()
        self.ids = ids or UuidGenerator()
        self.events = events or ProcurementEvents(clock=self.clock)

    def create_order(self, payload: CreateOrderRequest) -> CustomerOrder:
        now = self.clock.now()
        if not payload.customer_id.strip():
            raise DomainValidationError("Customer ID is required")
        if not payload.customer_name.strip():
            raise DomainValidationError("Customer name is required")
        self._ensure_future(payload.requested_delivery_date)
        if not payload.items:
            raise DomainValidationError("Order must contain at least one item")

        order = CustomerOrder(
            id=self.ids.new_id(),
            order_number=self.generate_order_number(),
            customer_id=payload.customer_id,
            customer_name=payload.customer_name,
            product_type=payload.product_type,
            requested_delivery_date=payload.requested_delivery_date,
            items=self._build_items(payload.items),
            notes=payload.notes,
            created_by=payload.created_by,
            created_at=now,
            updated_at=now,
        )
        self.orders.save(order)

        logger.info(
            "Created customer order %s for %s (%d units of %s)",
            order.order_number,
            order.customer_id,
            order.total_quantity,
            order.product_type.value,
        )
        self.events.audit("create", "customer_order", order.id, order_number=order.order_number)
        return order

    def generate_order_number(self) -> str:
        prefix = f"ORD-{self.clock.now():%Y%m%d}-"
        while True:
            candidate = f"{prefix}{self.ids.random_digits(1000, 9999)}"
            if not self.orders.order_number_exists(candidate):
                return candidate

    def get_order(self, order_id: str) -> CustomerOrder:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Customer order", order_id)
        return order

    def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[str] = None,
    ) -> List[CustomerOrder]:
        return self.orders.list(status=status, customer_id=customer_id)

    def update_order(self, order_id: str, payload: UpdateOrderRequest) -> CustomerOrder:
        order = self.get_order(order_id)
        if order.status not in EDITABLE_ORDER_STATUSES:
            raise InvalidStateError(
                "Customer order",
                order_id,
                order.status,
                order.status,
                message=f"Cannot update customer order {order_id} in status {order.status.value}",
            )

        if payload.customer_name is not None:
            if not payload.customer_name.strip():
                raise DomainValidationError("Customer name is required")
            order.customer_name = payload.customer_name
        if payload.requested_delivery_date is not None:
            self._ensure_future(payload.requested_delivery_date)
            order.requested_delivery_date = payload.requested_delivery_date
        if payload.notes is not None:
            order.notes = payload.notes
        if payload.items is not None:
            if not payload.items:
                raise DomainValidationError("Order must contain at least one item")
            order.items = self._build_items(payload.items)

        order.updated_at = self.clock.now()
        self.orders.save(order)
        logger.info("Updated customer order %s", order.order_number)
        return order

    def update_order_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        notes: Optional[str] = None,
        changed_by: Optional[str] = None,
    ) -> CustomerOrder:
        order = self.get_order(order_id)
        previous = order.status
        order.transition_to(new_status, self.clock.now(), changed_by=changed_by, notes=notes)
        if notes:
            order.notes = notes
        self.orders.save(order)

        logger.info(
            "Customer order %s moved from %s to %s",
            order.order_number,
            previous.value,
            new_status.value,
        )
        self.events.audit(
            "status_change",
            "customer_order",
            order.id,
            previous=previous.value,
            current=new_status.value,
            changed_by=changed_by,
        )
        self.events.notify(
            "order_status_changed",
            order.customer_id,
            f"Order {order.order_number} is now {new_status.value}",
        )
        return order

    def get_order_status_history(self, order_id: str) -> List[OrderStatusChange]:
        order = self.get_order(order_id)
        return sorted(order.status_history, key=lambda change: change.changed_at)

    def get_at_risk_orders(self, today: Optional[date] = None) -> List[CustomerOrder]:
        """Orders that are overdue, or due soon and not yet past review."""
        today = today or self.clock.now().date()
        at_risk = [order for order in self.orders.list() if order.is_at_risk(today)]
        return sorted(at_risk, key=lambda order: order.requested_delivery_date)

    def delete_order(self, order_id: str) -> None:
        order = self.get_order(order_id)
        if order.status != OrderStatus.submitted:
            raise InvalidStateError(
                "Customer order",
                order_id,
                order.status,
                order.status,
                message=f"Only submitted orders can be deleted (order {order_id} is {order.status.value})",
            )
        self.orders.delete(order_id)
        logger.info("Deleted customer order %s", order.order_number)
        self.events.audit("delete", "customer_order", order_id)

    def _ensure_future(self, delivery_date) -> None:
        if delivery_date <= self.clock.now():
            raise DomainValidationError("Requested delivery date must be in the future")

    def _build_items(self, items: List[OrderItemRequest]) -> List[OrderItem]:
        return [OrderItem(id=self.ids.new_id(), **item.model_dump()) for item in items]
