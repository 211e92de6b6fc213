"""Catalog and result data models."""

from basequantity_checker.models.catalog import Catalog, QuantitySpec, load_catalog
from basequantity_checker.models.results import (
    ABSENT,
    CheckOutcome,
    CheckResult,
    QuantityOutcome,
    QuantityStatus,
    ResolvedQuantity,
)

__all__ = [
    "Catalog",
    "QuantitySpec",
    "load_catalog",
    "ABSENT",
    "CheckOutcome",
    "CheckResult",
    "QuantityOutcome",
    "QuantityStatus",
    "ResolvedQuantity",
]
