"""In-memory model host.

Holds elements as plain property bags. Used as a lightweight JSON model
format for the CLI and as the recording test double for the checker:
every host call is appended to ``calls`` in issue order.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from basequantity_checker.config import ID_SEPARATOR
from basequantity_checker.errors import HostError
from basequantity_checker.hosts.base import coerce_value

logger = logging.getLogger(__name__)

SCOPES = ("geometry", "all")


class ModelElement(BaseModel):
    """A model element: identifier plus named property values.

    Matching properties (``ifcType``, ``ifcTypeObject``) live in the same bag
    as quantities, e.g. ``{"ifcType": "IfcWall",
    "Qto_WallBaseQuantities.NetVolume": 2.4}``.
    """

    id: str
    properties: dict[str, Any] = Field(default_factory=dict)


class SelectionSet(BaseModel):
    """A named group of element ids created by a check."""

    name: str
    ids: list[str] = Field(default_factory=list)


class MemoryModel(BaseModel):
    """JSON model file: elements plus any selection sets already created."""

    name: str = ""
    elements: list[ModelElement] = Field(default_factory=list)
    selection_sets: list[SelectionSet] = Field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path) -> MemoryModel:
        """Load a model from a JSON file."""
        path = Path(path)
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, path: str | Path) -> Path:
        """Save the model to a JSON file. Creates parent dirs if needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path


class InMemoryModelHost:
    """ModelHost over a list of ModelElement, recording every call."""

    def __init__(self, elements: list[ModelElement] | None = None, name: str = ""):
        self.model = MemoryModel(name=name, elements=list(elements or []))
        self.calls: list[tuple] = []
        self.visible: list[str] | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> InMemoryModelHost:
        """Open a JSON model file. Raises HostError if it can't be read."""
        try:
            model = MemoryModel.load(path)
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            raise HostError(f"Could not open JSON model {path}: {e}") from e
        host = cls(model.elements, name=model.name)
        host.model.selection_sets = list(model.selection_sets)
        return host

    @property
    def elements(self) -> list[ModelElement]:
        return self.model.elements

    @property
    def selection_sets(self) -> list[SelectionSet]:
        return self.model.selection_sets

    def save(self, path: str | Path) -> Path:
        return self.model.save(path)

    def count(self, method: str, *args: Any) -> int:
        """Number of recorded calls to ``method`` whose leading args match."""
        return sum(
            1 for call in self.calls
            if call[0] == method and call[1:1 + len(args)] == args
        )

    # ── ModelHost API ─────────────────────────────────────────────────

    async def get_all_elements(self, scope: str) -> list[ModelElement]:
        self.calls.append(("get_all_elements", scope))
        if scope not in SCOPES:
            raise HostError(f"Unknown element scope: {scope}")
        return list(self.model.elements)

    async def get_property_value(
        self, element: ModelElement, key: str, datatype: str
    ) -> Any:
        self.calls.append(("get_property_value", element.id, key, datatype))
        return coerce_value(element.properties.get(key), datatype)

    async def show_elements_only(self, elements: list[ModelElement]) -> None:
        self.calls.append(("show_elements_only", [e.id for e in elements]))
        self.visible = [e.id for e in elements]
        logger.info("Showing %d element(s) only", len(elements))

    async def id_list_to_str(self, element: ModelElement) -> str:
        self.calls.append(("id_list_to_str", element.id))
        return element.id

    async def create_selection_set(self, name: str) -> SelectionSet:
        self.calls.append(("create_selection_set", name))
        selection_set = SelectionSet(name=name)
        self.model.selection_sets.append(selection_set)
        logger.info("Created selection set '%s'", name)
        return selection_set

    async def add_to_selection_set_geometry(
        self, selection_set: SelectionSet, ids: str
    ) -> None:
        self.calls.append(("add_to_selection_set_geometry", selection_set.name, ids))
        known = {e.id for e in self.model.elements}
        new_ids = [i for i in ids.split(ID_SEPARATOR) if i]
        missing = [i for i in new_ids if i not in known]
        if missing:
            raise HostError(
                f"Unknown element id(s) for selection set '{selection_set.name}': "
                f"{', '.join(missing)}"
            )
        selection_set.ids.extend(new_ids)
