"""Base quantity check engine.

- checker: discovery, key-fallback evaluation, classification, grouping
- messages: user-facing text per outcome
"""

from basequantity_checker.engine.checker import (
    BaseQuantityChecker,
    classify_value,
    group_name,
)
from basequantity_checker.engine.messages import outcome_message

__all__ = [
    "BaseQuantityChecker",
    "classify_value",
    "group_name",
    "outcome_message",
]
