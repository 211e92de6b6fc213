"""Host model API contract.

The checker never builds or mutates elements itself. Everything it needs
from the model (enumeration, property reads, visibility, selection sets)
goes through a ModelHost injected at construction time.
"""

from __future__ import annotations

import math
from typing import Any, Protocol, runtime_checkable

from basequantity_checker.config import DOUBLE_TYPE, STRING_TYPE


@runtime_checkable
class ModelHost(Protocol):
    """Asynchronous model-inspection API the checker depends on.

    Element handles and selection-set handles are opaque to the checker.
    """

    async def get_all_elements(self, scope: str) -> list[Any]:
        """All elements in a domain scope (e.g. "geometry"), in host order."""
        ...

    async def get_property_value(self, element: Any, key: str, datatype: str) -> Any:
        """A typed property value, or None when the element has no such value."""
        ...

    async def show_elements_only(self, elements: list[Any]) -> None:
        """Restrict the visible elements to exactly ``elements``."""
        ...

    async def id_list_to_str(self, element: Any) -> str:
        """Stable identifier string for an element."""
        ...

    async def create_selection_set(self, name: str) -> Any:
        """Create a named selection set and return its handle."""
        ...

    async def add_to_selection_set_geometry(self, selection_set: Any, ids: str) -> None:
        """Bulk-add a ``;``-joined identifier list to a selection set."""
        ...


def coerce_value(value: Any, datatype: str) -> Any:
    """Convert a raw stored value to the requested host datatype.

    Doubles: ints, floats and numeric strings become float; anything else
    (booleans, text, lists) is treated as absent. NaN is kept so the checker
    can classify it.
    """
    if value is None:
        return None
    if datatype == STRING_TYPE:
        return str(value)
    if datatype == DOUBLE_TYPE:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None
    raise ValueError(f"Unsupported datatype: {datatype}")


def is_number(value: Any) -> bool:
    """True for real numbers other than NaN and booleans."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)
