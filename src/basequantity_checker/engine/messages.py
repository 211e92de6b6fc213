"""User-facing messages for check outcomes."""

from __future__ import annotations

from basequantity_checker.models.results import CheckOutcome


def outcome_message(category: str, outcome: CheckOutcome) -> str:
    """Message shown to the user after checking ``category``."""
    if outcome == CheckOutcome.NO_ELEMENTS:
        return f"{category} not present in the model."
    if outcome == CheckOutcome.ALL_OK:
        return f"All {category} elements are OK."
    if outcome == CheckOutcome.ISSUES_FOUND:
        return (
            f"{category} elements with zero, negative, or undefined values "
            f"added to their respective selection sets."
        )
    raise ValueError(f"Unknown outcome: {outcome!r}")
