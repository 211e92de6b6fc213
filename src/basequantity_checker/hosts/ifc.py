"""IFC model host via ifcopenshell.

Serves the checker from an IFC file:
- "geometry" scope: every IfcElement that carries a representation
- ifcType: the entity class, e.g. "IfcWallStandardCase"
- ifcTypeObject: name of the related type object (class name when unnamed)
- quantity keys: "Qto_WallBaseQuantities.NetVolume" reads one property or
  quantity set entry; a bare "NetVolume" takes the first set that has it
- selection sets: IfcGroup + IfcRelAssignsToGroup, written out by save().
  IFC2X3 files get an IfcOwnerHistory on both (an existing one is reused)
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path
from typing import Any

import ifcopenshell
import ifcopenshell.guid
import ifcopenshell.util.element

from basequantity_checker import __version__
from basequantity_checker.config import (
    APPLICATION_FULL_NAME,
    APPLICATION_NAME,
    ID_SEPARATOR,
    IFC_TYPE_KEY,
    IFC_TYPE_OBJECT_KEY,
)
from basequantity_checker.errors import HostError
from basequantity_checker.hosts.base import coerce_value

logger = logging.getLogger(__name__)


def _new_guid() -> str:
    """Generate a new IFC GlobalId (22 characters) for groups and relationships."""
    return ifcopenshell.guid.compress(uuid.uuid4().hex)


def lookup_property(element: ifcopenshell.entity_instance, key: str) -> Any:
    """Raw property/quantity value for ``key`` or None.

    Type-level sets are inherited by occurrences (ifcopenshell default).
    """
    psets = ifcopenshell.util.element.get_psets(element)
    if "." in key:
        set_name, prop = key.split(".", 1)
        props = psets.get(set_name)
        if props and prop != "id":
            return props.get(prop)
        return None
    for props in psets.values():
        if key != "id" and key in props:
            return props[key]
    return None


class IfcModelHost:
    """ModelHost backed by an open ifcopenshell file."""

    def __init__(self, file: ifcopenshell.file, name: str = ""):
        self.file = file
        self.name = name
        self.visible: list[str] | None = None
        self.groups: list[ifcopenshell.entity_instance] = []
        self._assignments: dict[int, ifcopenshell.entity_instance] = {}
        self._history: ifcopenshell.entity_instance | None = None

    @classmethod
    def open(cls, path: str | Path) -> IfcModelHost:
        """Open an IFC file. Raises HostError if it can't be read."""
        path = Path(path)
        if not path.exists():
            raise HostError(f"Model not found: {path}", details={"path": str(path)})
        try:
            file = ifcopenshell.open(str(path))
        except Exception as e:
            raise HostError(f"Could not open IFC model {path}: {e}") from e
        logger.info("Opened %s (%s)", path.name, file.schema)
        return cls(file, name=path.stem)

    def save(self, path: str | Path) -> Path:
        """Write the model, including created selection-set groups."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.file.write(str(path))
        return path

    def selection_sets(self) -> dict[str, list[str]]:
        """Created groups as name → member GlobalIds, in creation order."""
        result: dict[str, list[str]] = {}
        for group in self.groups:
            rel = self._assignments.get(group.id())
            members = [o.GlobalId for o in rel.RelatedObjects] if rel else []
            result.setdefault(group.Name, []).extend(members)
        return result

    def owner_history(self) -> ifcopenshell.entity_instance | None:
        """OwnerHistory for new rooted entities, or None where it is optional.

        IFC2X3 makes OwnerHistory mandatory on IfcRoot; IFC4 does not.
        """
        if self.file.schema != "IFC2X3":
            return None
        if self._history is None:
            existing = self.file.by_type("IfcOwnerHistory")
            if existing:
                self._history = existing[0]
                logger.debug("Reusing IfcOwnerHistory #%d", self._history.id())
            else:
                self._history = self._create_owner_history()
        return self._history

    def _create_owner_history(self) -> ifcopenshell.entity_instance:
        organisation = self.file.createIfcOrganization(Name=APPLICATION_NAME)
        person = self.file.createIfcPerson(FamilyName=APPLICATION_NAME)
        user = self.file.createIfcPersonAndOrganization(
            ThePerson=person, TheOrganization=organisation
        )
        application = self.file.createIfcApplication(
            ApplicationDeveloper=organisation,
            Version=__version__,
            ApplicationFullName=APPLICATION_FULL_NAME,
            ApplicationIdentifier=APPLICATION_NAME,
        )
        history = self.file.createIfcOwnerHistory(
            OwningUser=user,
            OwningApplication=application,
            ChangeAction="ADDED",
            CreationDate=int(time.time()),
        )
        logger.debug("Created IfcOwnerHistory #%d", history.id())
        return history

    # ── ModelHost API ─────────────────────────────────────────────────

    async def get_all_elements(self, scope: str) -> list[ifcopenshell.entity_instance]:
        elements = self.file.by_type("IfcElement")
        if scope == "geometry":
            return [e for e in elements if e.Representation is not None]
        if scope == "all":
            return list(elements)
        raise HostError(f"Unknown element scope: {scope}")

    async def get_property_value(
        self, element: ifcopenshell.entity_instance, key: str, datatype: str
    ) -> Any:
        if key == IFC_TYPE_KEY:
            raw = element.is_a()
        elif key == IFC_TYPE_OBJECT_KEY:
            element_type = ifcopenshell.util.element.get_type(element)
            raw = (element_type.Name or element_type.is_a()) if element_type else None
        else:
            raw = lookup_property(element, key)
        return coerce_value(raw, datatype)

    async def show_elements_only(self, elements: list[ifcopenshell.entity_instance]) -> None:
        self.visible = [e.GlobalId for e in elements]
        logger.info("Showing %d element(s) only", len(elements))

    async def id_list_to_str(self, element: ifcopenshell.entity_instance) -> str:
        return element.GlobalId

    async def create_selection_set(self, name: str) -> ifcopenshell.entity_instance:
        group = self.file.createIfcGroup(
            GlobalId=_new_guid(), OwnerHistory=self.owner_history(), Name=name
        )
        self.groups.append(group)
        logger.info("Created selection set '%s'", name)
        return group

    async def add_to_selection_set_geometry(
        self, selection_set: ifcopenshell.entity_instance, ids: str
    ) -> None:
        products = []
        for global_id in (i for i in ids.split(ID_SEPARATOR) if i):
            try:
                products.append(self.file.by_guid(global_id))
            except RuntimeError as e:
                raise HostError(
                    f"Unknown element id '{global_id}' for selection set "
                    f"'{selection_set.Name}'"
                ) from e

        rel = self._assignments.get(selection_set.id())
        if rel is None:
            self._assignments[selection_set.id()] = self.file.createIfcRelAssignsToGroup(
                GlobalId=_new_guid(),
                OwnerHistory=self.owner_history(),
                RelatedObjects=products,
                RelatingGroup=selection_set,
            )
        else:
            rel.RelatedObjects = list(rel.RelatedObjects) + products
