import logging
import threading
from typing import Dict, List, Optional, Tuple

from ..core.clock import Clock, SystemClock
from ..models.suppliers import Supplier
from .ports import SupplierRepository


logger = logging.getLogger(__name__)


class CachedSupplierRepository:
    """Read-through cache in front of a supplier repository.

    Entries expire after ``ttl_seconds``; any write drops the whole cache so
    capacity and performance changes are visible to the next read. A TTL of
    zero disables caching.
    """

    def __init__(
        self,
        inner: SupplierRepository,
        ttl_seconds: float = 60.0,
        clock: Optional[Clock] = None,
    ) -> None:
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._suppliers: Dict[str, Tuple[float, Optional[Supplier]]] = {}
        self._listings: Dict[bool, Tuple[float, List[Supplier]]] = {}

    def _fresh(self, stored_at: float) -> bool:
        return self.clock.now().timestamp() - stored_at < self.ttl_seconds

    def get(self, supplier_id: str) -> Optional[Supplier]:
        if self.ttl_seconds <= 0:
            return self.inner.get(supplier_id)

        with self._lock:
            entry = self._suppliers.get(supplier_id)
        if entry is not None and self._fresh(entry[0]):
            supplier = entry[1]
            return supplier.model_copy(deep=True) if supplier else None

        supplier = self.inner.get(supplier_id)
        with self._lock:
            self._suppliers[supplier_id] = (self.clock.now().timestamp(), supplier)
        return supplier.model_copy(deep=True) if supplier else None

    def list(self, active_only: bool = False) -> List[Supplier]:
        if self.ttl_seconds <= 0:
            return self.inner.list(active_only=active_only)

        with self._lock:
            entry = self._listings.get(active_only)
        if entry is not None and self._fresh(entry[0]):
            return [s.model_copy(deep=True) for s in entry[1]]

        suppliers = self.inner.list(active_only=active_only)
        with self._lock:
            self._listings[active_only] = (self.clock.now().timestamp(), suppliers)
        return [s.model_copy(deep=True) for s in suppliers]

    def save(self, supplier: Supplier) -> Supplier:
        saved = self.inner.save(supplier)
        self.invalidate()
        return saved

    def invalidate(self) -> None:
        with self._lock:
            self._suppliers.clear()
            self._listings.clear()
        logger.debug("Supplier cache invalidated")
