import logging
from typing import List, Optional

from ..core.clock import Clock, IdGenerator, SystemClock, UuidGenerator
from ..core.errors import DomainValidationError, NotFoundError
from ..integrations.csv_excel import load_supplier_catalog
from ..models.orders import ProductType
from ..models.suppliers import (
    CreateSupplierRequest,
    Supplier,
    SupplierCapability,
    SupplierPerformanceMetrics,
)
from .events import ProcurementEvents
from .ports import SupplierRepository


logger = logging.getLogger(__name__)

MIN_ELIGIBLE_ON_TIME_RATE = 0.7
MIN_ELIGIBLE_QUALITY_SCORE = 2.5


class SupplierService:
    def __init__(
        self,
        suppliers: SupplierRepository,
        clock: Optional[Clock] = None,
        ids: Optional[IdGenerator] = None,
        events: Optional[ProcurementEvents] = None,
    ) -> None:
        self.suppliers = suppliers
        self.clock = clock or SystemClock()
        self.ids = ids or UuidGenerator()
        self.events = events or ProcurementEvents(clock=self.clock)

    def create_supplier(self, payload: CreateSupplierRequest) -> Supplier:
        now = self.clock.now()
        supplier = Supplier(
            id=self.ids.new_id(),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self.suppliers.save(supplier)
        logger.info("Created supplier %s (%s)", supplier.id, supplier.name)
        self.events.audit("create", "supplier", supplier.id, name=supplier.name)
        return supplier

    def import_catalog(self, path: str) -> List[Supplier]:
        return [self.create_supplier(payload) for payload in load_supplier_catalog(path)]

    def get_supplier(self, supplier_id: str) -> Supplier:
        supplier = self.suppliers.get(supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    def list_suppliers(
        self,
        active_only: bool = False,
        product_type: Optional[ProductType] = None,
    ) -> List[Supplier]:
        suppliers = self.suppliers.list(active_only=active_only)
        if product_type is not None:
            suppliers = [s for s in suppliers if s.can_handle_product_type(product_type)]
        return suppliers

    def update_supplier_capacity(
        self,
        supplier_id: str,
        product_type: ProductType,
        max_monthly_capacity: int,
        current_commitments: int = 0,
    ) -> Supplier:
        if max_monthly_capacity <= 0:
            raise DomainValidationError("Maximum monthly capacity must be greater than 0")
        if current_commitments < 0:
            raise DomainValidationError("Current commitments cannot be negative")

        supplier = self.get_supplier(supplier_id)
        capability = supplier.get_capability(product_type)
        if capability is None:
            supplier.capabilities.append(
                SupplierCapability(
                    product_type=product_type,
                    max_monthly_capacity=max_monthly_capacity,
                    current_commitments=current_commitments,
                )
            )
        else:
            capability.max_monthly_capacity = max_monthly_capacity
            capability.current_commitments = current_commitments

        supplier.updated_at = self.clock.now()
        self.suppliers.save(supplier)
        logger.info(
            "Updated %s capacity for supplier %s: max=%d commitments=%d",
            product_type.value,
            supplier_id,
            max_monthly_capacity,
            current_commitments,
        )
        return supplier

    def update_supplier_performance(
        self,
        supplier_id: str,
        was_on_time: bool,
        quality_score: float,
        delivery_days: int,
    ) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        now = self.clock.now()
        if supplier.performance is None:
            supplier.performance = SupplierPerformanceMetrics(last_updated=now)

        supplier.performance.record_delivery(was_on_time, quality_score, delivery_days, now)
        supplier.updated_at = now
        self.suppliers.save(supplier)
        logger.info(
            "Recorded delivery for supplier %s (on_time=%s, quality=%.2f)",
            supplier_id,
            was_on_time,
            quality_score,
        )
        return supplier

    def activate_supplier(self, supplier_id: str) -> Supplier:
        return self._set_active(supplier_id, True)

    def deactivate_supplier(self, supplier_id: str) -> Supplier:
        return self._set_active(supplier_id, False)

    def _set_active(self, supplier_id: str, is_active: bool) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        supplier.is_active = is_active
        supplier.updated_at = self.clock.now()
        self.suppliers.save(supplier)
        action = "activate" if is_active else "deactivate"
        self.events.audit(action, "supplier", supplier_id)
        return supplier

    def get_total_available_capacity(self, product_type: ProductType) -> int:
        total = 0
        for supplier in self.suppliers.list(active_only=True):
            capability = supplier.get_capability(product_type, active_only=True)
            if capability is not None:
                total += capability.available_capacity
        return total

    def validate_supplier_eligibility(
        self,
        supplier_id: str,
        product_type: ProductType,
        required_quantity: int,
    ) -> bool:
        supplier = self.suppliers.get(supplier_id)
        if supplier is None:
            logger.warning("Supplier %s not found", supplier_id)
            return False
        if not supplier.is_active:
            logger.warning("Supplier %s is not active", supplier_id)
            return False

        capability = supplier.get_capability(product_type, active_only=True)
        if capability is None:
            logger.warning("Supplier %s cannot handle product type %s", supplier_id, product_type.value)
            return False
        if not supplier.has_capacity_for(product_type, required_quantity):
            logger.warning(
                "Supplier %s does not have capacity for %d units of %s",
                supplier_id,
                required_quantity,
                product_type.value,
            )
            return False

        # Thresholds only apply once metrics exist.
        performance = supplier.performance
        if performance is not None:
            if performance.on_time_delivery_rate < MIN_ELIGIBLE_ON_TIME_RATE:
                logger.warning(
                    "Supplier %s has low on-time delivery rate: %.2f",
                    supplier_id,
                    performance.on_time_delivery_rate,
                )
                return False
            if performance.quality_score < MIN_ELIGIBLE_QUALITY_SCORE:
                logger.warning(
                    "Supplier %s has low quality score: %.2f", supplier_id, performance.quality_score
                )
                return False
        return True
