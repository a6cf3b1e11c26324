import threading
from typing import Dict, List, Optional

from ..models.orders import CustomerOrder, OrderStatus
from ..models.purchase_orders import PurchaseOrder, PurchaseOrderStatus
from ..models.suppliers import Supplier


class InMemorySupplierRepository:
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self.suppliers: Dict[str, Supplier] = {}

    def get(self, supplier_id: str) -> Optional[Supplier]:
        with self._lock:
            supplier = self.suppliers.get(supplier_id)
            return supplier.model_copy(deep=True) if supplier else None

    def list(self, active_only: bool = False) -> List[Supplier]:
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in sorted(self.suppliers.values(), key=lambda s: s.name)
                if s.is_active or not active_only
            ]

    def save(self, supplier: Supplier) -> Supplier:
        with self._lock:
            self.suppliers[supplier.id] = supplier.model_copy(deep=True)
        return supplier


class InMemoryCustomerOrderRepository:
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self.orders: Dict[str, CustomerOrder] = {}

    def get(self, order_id: str) -> Optional[CustomerOrder]:
        with self._lock:
            order = self.orders.get(order_id)
            return order.model_copy(deep=True) if order else None

    def list(
        self,
        status: Optional[OrderStatus] = None,
        customer_id: Optional[str] = None,
    ) -> List[CustomerOrder]:
        with self._lock:
            orders = [
                o.model_copy(deep=True)
                for o in self.orders.values()
                if (status is None or o.status == status)
                and (customer_id is None or o.customer_id == customer_id)
            ]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def save(self, order: CustomerOrder) -> CustomerOrder:
        with self._lock:
            self.orders[order.id] = order.model_copy(deep=True)
        return order

    def delete(self, order_id: str) -> bool:
        with self._lock:
            return self.orders.pop(order_id, None) is not None

    def order_number_exists(self, order_number: str) -> bool:
        with self._lock:
            return any(o.order_number == order_number for o in self.orders.values())


class InMemoryPurchaseOrderRepository:
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self.purchase_orders: Dict[str, PurchaseOrder] = {}

    def get(self, purchase_order_id: str) -> Optional[PurchaseOrder]:
        with self._lock:
            po = self.purchase_orders.get(purchase_order_id)
            return po.model_copy(deep=True) if po else None

    def list_by_customer_order(self, customer_order_id: str) -> List[PurchaseOrder]:
        with self._lock:
            pos = [
                po.model_copy(deep=True)
                for po in self.purchase_orders.values()
                if po.customer_order_id == customer_order_id
            ]
        return sorted(pos, key=lambda po: po.created_at, reverse=True)

    def list_by_supplier(
        self,
        supplier_id: str,
        status: Optional[PurchaseOrderStatus] = None,
    ) -> List[PurchaseOrder]:
        with self._lock:
            pos = [
                po.model_copy(deep=True)
                for po in self.purchase_orders.values()
                if po.supplier_id == supplier_id and (status is None or po.status == status)
            ]
        return sorted(pos, key=lambda po: po.created_at, reverse=True)

    def count_by_customer_order(self, customer_order_id: str) -> int:
        with self._lock:
            return sum(
                1 for po in self.purchase_orders.values() if po.customer_order_id == customer_order_id
            )

    def save(self, purchase_order: PurchaseOrder) -> PurchaseOrder:
        with self._lock:
            self.purchase_orders[purchase_order.id] = purchase_order.model_copy(deep=True)
        return purchase_order

    def delete(self, purchase_order_id: str) -> bool:
        with self._lock:
            return self.purchase_orders.pop(purchase_order_id, None) is not None


class InMemoryStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.suppliers = InMemorySupplierRepository(self._lock)
        self.customer_orders = InMemoryCustomerOrderRepository(self._lock)
        self.purchase_orders = InMemoryPurchaseOrderRepository(self._lock)

    def clear(self) -> None:
        with self._lock:
            self.suppliers.suppliers.clear()
            self.customer_orders.orders.clear()
            self.purchase_orders.purchase_orders.clear()


store = InMemoryStore()
