"""Collaborator interfaces the procurement services depend on."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from ..models.orders import CustomerOrder, OrderStatus
from ..models.purchase_orders import PurchaseOrder, PurchaseOrderStatus
from ..models.suppliers import Supplier


class SupplierRepository(Protocol):
    def get(self, supplier_id: str) -> Optional[Supplier]: ...

    def list(self, active_only: bool = False) -> List[Supplier]: ...

    def save(self, supplier: Supplier) -> Supplier: ...


class CustomerOrderRepository(Protocol):
    def get(self, order_id: str) -> Optional[CustomerOrder]: ...

    def list(
        self,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[str] = None,
    ) -> List[CustomerOrder]: ...

    def save(self, order: CustomerOrder) -> CustomerOrder: ...

    def delete(self, order_id: str) -> bool: ...

    def order_number_exists(self, order_number: str) -> bool: ...


class PurchaseOrderRepository(Protocol):
    def get(self, purchase_order_id: str) -> Optional[PurchaseOrder]: ...

    def list_by_customer_order(self, customer_order_id: str) -> List[PurchaseOrder]: ...

    def list_by_supplier(
        self,
        supplier_id: str,
        status: Optional[PurchaseOrderStatus] = None,
    ) -> List[PurchaseOrder]: ...

    def count_by_customer_order(self, customer_order_id: str) -> int: ...

    def save(self, purchase_order: PurchaseOrder) -> PurchaseOrder: ...

    def delete(self, purchase_order_id: str) -> bool: ...


class EventBus(Protocol):
    def publish(self, topic: str, event: Dict[str, Any]) -> None: ...
