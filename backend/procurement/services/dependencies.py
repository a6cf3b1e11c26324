import logging
from functools import lru_cache

from ..core.config import get_settings
from ..engine.allocation import AllocationConfig
from ..integrations.queue import KafkaEventBus
from ..models.distribution import DistributionStrategy
from .caching import CachedSupplierRepository
from .distribution_service import DistributionService
from .events import ProcurementEvents
from .order_service import OrderService
from .procurement_service import ProcurementService
from .store import store
from .supplier_service import SupplierService


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_events() -> ProcurementEvents:
    settings = get_settings()
    bus = None
    if settings.kafka_bootstrap_servers:
        bus = KafkaEventBus(bootstrap_servers=settings.kafka_bootstrap_servers)
    return ProcurementEvents(
        bus=bus,
        audit_topic=settings.audit_topic,
        notification_topic=settings.notification_topic,
    )


@lru_cache(maxsize=1)
def get_supplier_repository() -> CachedSupplierRepository:
    settings = get_settings()
    return CachedSupplierRepository(store.suppliers, ttl_seconds=settings.supplier_cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_supplier_service() -> SupplierService:
    settings = get_settings()
    service = SupplierService(get_supplier_repository(), events=get_events())

    if settings.supplier_catalog_path and not service.list_suppliers():
        imported = service.import_catalog(settings.supplier_catalog_path)
        logger.info("Seeded %d suppliers from %s", len(imported), settings.supplier_catalog_path)
    return service


@lru_cache(maxsize=1)
def get_order_service() -> OrderService:
    return OrderService(store.customer_orders, events=get_events())


@lru_cache(maxsize=1)
def get_distribution_service() -> DistributionService:
    settings = get_settings()
    config = AllocationConfig(
        min_allocation_quantity=settings.min_allocation_quantity,
        preferred_supplier_bonus=settings.preferred_supplier_bonus,
        reliable_supplier_bonus=settings.reliable_supplier_bonus,
        performance_weight=settings.composite_performance_weight,
        capacity_weight=settings.composite_capacity_weight,
    )
    return DistributionService(
        get_supplier_repository(),
        store.customer_orders,
        config=config,
        min_performance_threshold=settings.min_performance_threshold,
        capacity_warning_ratio=settings.capacity_warning_ratio,
    )


@lru_cache(maxsize=1)
def get_procurement_service() -> ProcurementService:
    settings = get_settings()
    return ProcurementService(
        store.customer_orders,
        store.purchase_orders,
        get_supplier_repository(),
        get_distribution_service(),
        events=get_events(),
        default_strategy=DistributionStrategy(settings.default_strategy),
    )
