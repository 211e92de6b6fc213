"""Model hosts the checker runs against.

- base: the async ModelHost contract and value coercion
- memory: JSON-backed property bags, recording every call
- ifc: IFC files through ifcopenshell, selection sets as IfcGroups
"""

from basequantity_checker.hosts.base import ModelHost, coerce_value, is_number
from basequantity_checker.hosts.memory import (
    InMemoryModelHost,
    MemoryModel,
    ModelElement,
    SelectionSet,
)

__all__ = [
    "ModelHost",
    "coerce_value",
    "is_number",
    "InMemoryModelHost",
    "MemoryModel",
    "ModelElement",
    "SelectionSet",
]
