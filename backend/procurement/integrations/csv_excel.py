import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..core.errors import DomainValidationError
from ..models.orders import ProductType
from ..models.suppliers import (
    CreateSupplierRequest,
    SupplierCapability,
    SupplierPerformanceMetrics,
)


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("name", "product_type", "max_monthly_capacity")

CONTACT_COLUMNS = ("contact_email", "contact_phone", "address", "contact_person_name", "notes")

PERFORMANCE_COLUMNS = (
    "on_time_delivery_rate",
    "quality_score",
    "total_orders_completed",
    "total_orders_on_time",
    "total_orders_late",
    "total_orders_cancelled",
    "customer_satisfaction_rate",
    "average_delivery_days",
)

COUNT_COLUMNS = {
    "total_orders_completed",
    "total_orders_on_time",
    "total_orders_late",
    "total_orders_cancelled",
}


def load_csv_or_excel(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    if p.suffix.lower() in {".xlsx", ".xls"}:
        return pd.read_excel(p)
    return pd.read_csv(p)


def _value(row: pd.Series, column: str) -> Optional[Any]:
    if column not in row.index:
        return None
    value = row[column]
    if pd.isna(value):
        return None
    return value


def _flag(row: pd.Series, column: str, default: bool = True) -> bool:
    value = _value(row, column)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


def _capability(row: pd.Series) -> SupplierCapability:
    raw_type = str(row["product_type"]).strip().upper()
    try:
        product_type = ProductType(raw_type)
    except ValueError as exc:
        raise DomainValidationError(f"Unknown product type '{raw_type}' for {row['name']}") from exc

    commitments = _value(row, "current_commitments")
    quality = _value(row, "quality_rating")
    return SupplierCapability(
        product_type=product_type,
        max_monthly_capacity=int(row["max_monthly_capacity"]),
        current_commitments=int(commitments) if commitments is not None else 0,
        quality_rating=float(quality) if quality is not None else 3.0,
        is_active=_flag(row, "capability_active"),
    )


def _performance(row: pd.Series) -> Optional[SupplierPerformanceMetrics]:
    values: Dict[str, Any] = {}
    for column in PERFORMANCE_COLUMNS:
        value = _value(row, column)
        if value is not None:
            values[column] = int(value) if column in COUNT_COLUMNS else float(value)
    if "on_time_delivery_rate" not in values and "quality_score" not in values:
        return None
    return SupplierPerformanceMetrics(**values)


def load_supplier_catalog(path: str | Path) -> List[CreateSupplierRequest]:
    """Read suppliers from a CSV/Excel sheet with one row per capability.

    Contact data, the active flag and performance metrics are taken from the
    first row of each supplier.
    """
    df = load_csv_or_excel(path)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DomainValidationError(f"Supplier catalog is missing columns: {', '.join(missing)}")

    df = df.dropna(subset=["name"])
    suppliers: List[CreateSupplierRequest] = []

    for name, rows in df.groupby("name", sort=False):
        first = rows.iloc[0]
        contact = {
            column: str(_value(first, column))
            for column in CONTACT_COLUMNS
            if _value(first, column) is not None
        }
        suppliers.append(
            CreateSupplierRequest(
                name=str(name).strip(),
                is_active=_flag(first, "is_active"),
                capabilities=[_capability(row) for _, row in rows.iterrows()],
                performance=_performance(first),
                **contact,
            )
        )

    logger.info("Loaded %d suppliers from %s", len(suppliers), path)
    return suppliers
