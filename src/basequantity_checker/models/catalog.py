"""Expected base quantities per building-element category.

The catalog source is a JSON object mapping a category name to an ordered
list of quantity specifications::

    {"Wall": [{"keys": ["Qto_WallBaseQuantities.NetVolume", "Volume"],
               "displayName": "Volume"}]}

Category names are matched case-insensitively as substrings of element
type identifiers, so "Wall" also covers "IfcWallStandardCase".

Categories are validated one by one. A malformed entry stays listed but
fails when its specs are looked up, so it never hides the other checks.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from basequantity_checker.errors import CatalogError

logger = logging.getLogger(__name__)


class QuantitySpec(BaseModel):
    """One expected numeric quantity, probed through alternative keys in order."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    keys: list[str] = Field(description="Property keys tried in order until one is defined")
    display_name: str = Field(
        alias="displayName", min_length=1, description="Label used verbatim in group names"
    )

    @field_validator("keys")
    @classmethod
    def at_least_one_key(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("QuantitySpec needs at least one key")
        if any(not k for k in v):
            raise ValueError("QuantitySpec keys must be non-empty strings")
        return v


_SPEC_LIST = TypeAdapter(list[QuantitySpec])


class Catalog(BaseModel):
    """Read-only mapping of category name → ordered quantity specs."""

    names: list[str] = Field(default_factory=list, description="Category names in source order")
    categories: dict[str, list[QuantitySpec]] = Field(default_factory=dict)
    malformed: dict[str, str] = Field(
        default_factory=dict, description="Category name → validation error"
    )

    @classmethod
    def from_mapping(cls, data: object) -> Catalog:
        """Build a catalog from the decoded JSON source."""
        if not isinstance(data, dict):
            raise CatalogError(
                f"Catalog must be a JSON object, got {type(data).__name__}"
            )
        catalog = cls()
        for name, specs in data.items():
            catalog.names.append(name)
            try:
                catalog.categories[name] = _SPEC_LIST.validate_python(specs)
            except ValidationError as e:
                logger.warning("Malformed catalog category '%s': %s", name, e)
                catalog.malformed[name] = f"Malformed catalog category '{name}': {e}"
        return catalog

    @classmethod
    def load(cls, path: str | Path) -> Catalog:
        """Load a catalog from a JSON file. Raises CatalogError if it can't be parsed."""
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CatalogError(
                f"Could not read catalog {path}", details={"path": str(path)}
            ) from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CatalogError(
                f"Invalid JSON in catalog {path}: {e}", details={"path": str(path)}
            ) from e
        return cls.from_mapping(data)

    # ── Lookups ───────────────────────────────────────────────────────

    def category_names(self) -> list[str]:
        """Category names in source order (one check per category)."""
        return list(self.names)

    def specs_for(self, name: str) -> list[QuantitySpec]:
        """Quantity specs for a category.

        Raises KeyError for unknown names and CatalogError for malformed ones.
        """
        if name in self.malformed:
            raise CatalogError(self.malformed[name], details={"category": name})
        return list(self.categories[name])

    def find_category(self, name: str) -> str | None:
        """Resolve a category name case-insensitively."""
        if name in self.names:
            return name
        return next(
            (c for c in self.names if c.lower() == name.lower()), None
        )

    @property
    def is_empty(self) -> bool:
        return not self.names


def load_catalog(path: str | Path) -> Catalog:
    """Load a catalog, degrading to an empty one when the source is unusable.

    With an empty catalog no checks are offered; the failure is only logged.
    """
    try:
        return Catalog.load(path)
    except CatalogError as e:
        logger.error("Error loading base quantities: %s", e.message)
        return Catalog()
