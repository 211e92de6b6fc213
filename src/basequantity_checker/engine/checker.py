"""Base quantity check engine.

One check, for one category:
1. discovery: keep elements whose ifcType or ifcTypeObject contains the
   category name (case-insensitive substring)
2. visibility: show only the matched elements
3. evaluation: probe each quantity's keys in order, classify the first
   defined value, collect offending element ids per named group
4. summarization: one selection set per non-empty group

Host calls are awaited one at a time, in program order. Host failures are
not caught here; selection sets created before a failure stay in place.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Sequence
from typing import Any, TypeVar

from basequantity_checker.config import (
    DEFAULT_SCOPE,
    DOUBLE_TYPE,
    ID_SEPARATOR,
    IFC_TYPE_KEY,
    IFC_TYPE_OBJECT_KEY,
    STRING_TYPE,
)
from basequantity_checker.errors import CheckTimeoutError
from basequantity_checker.hosts.base import ModelHost, is_number
from basequantity_checker.models.catalog import Catalog, QuantitySpec
from basequantity_checker.models.results import (
    ABSENT,
    CheckOutcome,
    CheckResult,
    QuantityOutcome,
    QuantityStatus,
    ResolvedQuantity,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def classify_value(resolved: ResolvedQuantity) -> QuantityStatus:
    """Classify a resolved quantity.

    A literal 0 is ZERO, never UNDEFINED. NaN and other non-numeric values
    that a host reports as present count as UNDEFINED.
    """
    if not resolved.is_defined:
        return QuantityStatus.UNDEFINED
    value = resolved.value
    if not is_number(value):
        return QuantityStatus.UNDEFINED
    if value == 0:
        return QuantityStatus.ZERO
    if value < 0:
        return QuantityStatus.NEGATIVE
    return QuantityStatus.OK


def group_name(category: str, status: QuantityStatus, display_name: str) -> str:
    """Selection-set name, e.g. "Wall with negative Volume"."""
    return f"{category} with {status.value} {display_name}"


class BaseQuantityChecker:
    """Runs category checks against an injected ModelHost.

    Holds no state between checks apart from the lock that serializes them.
    ``call_timeout`` (seconds) bounds every single host call when set.
    """

    def __init__(
        self,
        host: ModelHost,
        scope: str = DEFAULT_SCOPE,
        call_timeout: float | None = None,
    ):
        self.host = host
        self.scope = scope
        self.call_timeout = call_timeout
        self._lock = asyncio.Lock()

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        if self.call_timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.call_timeout)
        except asyncio.TimeoutError as e:
            raise CheckTimeoutError(
                f"Host call {what} exceeded {self.call_timeout}s",
                details={"call": what},
            ) from e

    # ── Steps ─────────────────────────────────────────────────────────

    async def discover_elements(self, category: str) -> list[Any]:
        """Elements whose ifcType or ifcTypeObject contains ``category``."""
        needle = category.lower()
        elements = await self._call(
            self.host.get_all_elements(self.scope), "get_all_elements"
        )
        matched = []
        for element in elements:
            ifc_type = await self._call(
                self.host.get_property_value(element, IFC_TYPE_KEY, STRING_TYPE),
                "get_property_value",
            )
            ifc_type_object = await self._call(
                self.host.get_property_value(element, IFC_TYPE_OBJECT_KEY, STRING_TYPE),
                "get_property_value",
            )
            type_lower = ifc_type.lower() if ifc_type else ""
            type_object_lower = ifc_type_object.lower() if ifc_type_object else ""
            if needle in type_lower or needle in type_object_lower:
                matched.append(element)
        logger.info(
            "%s: %d of %d element(s) matched", category, len(matched), len(elements)
        )
        return matched

    async def resolve_quantity(self, element: Any, spec: QuantitySpec) -> ResolvedQuantity:
        """First defined value among ``spec.keys``; later keys are not queried."""
        for key in spec.keys:
            value = await self._call(
                self.host.get_property_value(element, key, DOUBLE_TYPE),
                "get_property_value",
            )
            if value is not None:
                return ResolvedQuantity(key=key, value=value)
        return ABSENT

    async def evaluate(
        self, category: str, elements: Iterable[Any], specs: Sequence[QuantitySpec]
    ) -> dict[str, list[str]]:
        """Group offending element ids by selection-set name, in discovery order."""
        groups: dict[str, list[str]] = {}
        for element in elements:
            element_id = await self._call(
                self.host.id_list_to_str(element), "id_list_to_str"
            )
            for spec in specs:
                resolved = await self.resolve_quantity(element, spec)
                outcome = QuantityOutcome(
                    element_id=element_id,
                    display_name=spec.display_name,
                    resolved=resolved,
                    status=classify_value(resolved),
                )
                logger.debug(
                    "%s %s: %s via %s = %r",
                    outcome.element_id, outcome.display_name, outcome.status.value,
                    outcome.resolved.key, outcome.resolved.value,
                )
                if outcome.status == QuantityStatus.OK:
                    continue
                name = group_name(category, outcome.status, outcome.display_name)
                groups.setdefault(name, []).append(outcome.element_id)
        return groups

    async def publish_groups(self, groups: dict[str, list[str]]) -> None:
        """Create one selection set per non-empty group and bulk-add its ids."""
        for name, ids in groups.items():
            if not ids:
                continue
            selection_set = await self._call(
                self.host.create_selection_set(name), "create_selection_set"
            )
            await self._call(
                self.host.add_to_selection_set_geometry(
                    selection_set, ID_SEPARATOR.join(ids)
                ),
                "add_to_selection_set_geometry",
            )

    # ── Entry points ──────────────────────────────────────────────────

    async def run_check_detailed(
        self, category: str, specs: Sequence[QuantitySpec]
    ) -> CheckResult:
        """Run one category check and return the outcome with its groups."""
        async with self._lock:
            elements = await self.discover_elements(category)
            if not elements:
                return CheckResult(category=category, outcome=CheckOutcome.NO_ELEMENTS)

            await self._call(
                self.host.show_elements_only(elements), "show_elements_only"
            )

            groups = await self.evaluate(category, elements, specs)
            if not groups:
                logger.info("%s: all %d element(s) OK", category, len(elements))
                return CheckResult(
                    category=category, outcome=CheckOutcome.ALL_OK, matched=len(elements)
                )

            await self.publish_groups(groups)
            logger.info(
                "%s: %d selection set(s) created: %s",
                category, len(groups), ", ".join(groups),
            )
            return CheckResult(
                category=category,
                outcome=CheckOutcome.ISSUES_FOUND,
                matched=len(elements),
                groups=groups,
            )

    async def run_check(
        self, category: str, specs: Sequence[QuantitySpec]
    ) -> CheckOutcome:
        """Run one category check. Returns noElements, allOk or issuesFound."""
        result = await self.run_check_detailed(category, specs)
        return result.outcome

    async def check_catalog(
        self, catalog: Catalog, categories: Iterable[str] | None = None
    ) -> list[CheckResult]:
        """Check several categories in order (all catalog categories by default)."""
        names = list(categories) if categories is not None else catalog.category_names()
        results = []
        for name in names:
            results.append(await self.run_check_detailed(name, catalog.specs_for(name)))
        return results
