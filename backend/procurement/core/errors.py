"""Domain exceptions raised by the procurement services.

The HTTP layer maps each class to a status code in ``main.py``; in-process
callers catch them directly.
"""

from __future__ import annotations

from typing import Any, List, Optional


class ProcurementError(Exception):
    """Base class for every error the procurement core raises on purpose."""


class NotFoundError(ProcurementError):
    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStateError(ProcurementError):
    def __init__(
        self,
        entity: str,
        entity_id: Any,
        current: Any,
        requested: Any,
        message: Optional[str] = None,
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.requested = requested
        super().__init__(
            message
            or f"Cannot transition {entity} {entity_id} from {_label(current)} to {_label(requested)}"
        )


class PlanValidationError(ProcurementError):
    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None) -> None:
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        super().__init__("Distribution plan validation failed: " + ", ".join(self.errors))


class DomainValidationError(ProcurementError, ValueError):
    """A field or business rule on a single record was violated."""


def _label(value: Any) -> str:
    return getattr(value, "value", value)
