"""Per-run check results: quantity statuses, resolved values, outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class QuantityStatus(str, Enum):
    """Classification of one resolved quantity value.

    OK values are never grouped; the other three name result groups.
    """

    OK = "ok"
    ZERO = "zero"
    NEGATIVE = "negative"
    UNDEFINED = "undefined"


class CheckOutcome(str, Enum):
    """Overall result of one category check."""

    NO_ELEMENTS = "noElements"
    ALL_OK = "allOk"
    ISSUES_FOUND = "issuesFound"


@dataclass(frozen=True)
class ResolvedQuantity:
    """Result of probing a quantity's keys on one element.

    ``key`` is the key that yielded a defined value, ``None`` when no key did.
    """

    key: str | None = None
    value: float | None = None

    @property
    def is_defined(self) -> bool:
        return self.key is not None


ABSENT = ResolvedQuantity()


@dataclass(frozen=True)
class QuantityOutcome:
    """Resolved value and its classification for one (element, quantity) pair."""

    element_id: str
    display_name: str
    resolved: ResolvedQuantity
    status: QuantityStatus


@dataclass
class CheckResult:
    """Outcome of one check plus the groups handed to the selection sink."""

    category: str
    outcome: CheckOutcome
    matched: int = 0
    groups: dict[str, list[str]] = field(default_factory=dict)

    @property
    def has_issues(self) -> bool:
        return self.outcome == CheckOutcome.ISSUES_FOUND

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "outcome": self.outcome.value,
            "elements": self.matched,
            "groups": {name: list(ids) for name, ids in self.groups.items()},
        }
