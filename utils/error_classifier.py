"""
Maps raw errors from the cart workflow to a small closed set of categories.

The platform does not expose typed errors for the two conflicts the cart
core can resolve locally, so conflicts are recognized by message
inspection. Each recognizer is a ConflictRule; adding a new recoverable
conflict means adding a rule, not editing the orchestrator's control flow.

Usage:
    classifier = default_error_classifier()
    classified = classifier.classify(exc)
    if classified.category == ErrorCategory.TRANSIENT_CONFLICT:
        ...
"""

import re
from typing import Callable

from pydantic import BaseModel, ConfigDict

from enums.error_category import ErrorCategory, ConflictKind
from exceptions.platform import PlatformException
from exceptions.pricing import InvalidSelectionException

VARIANT_ID_PATTERN = re.compile(r"variant_[A-Za-z0-9]+")


class ConflictRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ConflictKind
    predicate: Callable[[Exception], bool]


class ClassifiedError(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    category: ErrorCategory
    error: Exception
    conflict_kind: ConflictKind | None = None


def _message(exc: Exception) -> str:
    return str(getattr(exc, "message", None) or exc)


def is_guest_email_conflict(exc: Exception) -> bool:
    """Platform refused to create a second guest customer for an email."""
    if not isinstance(exc, PlatformException) or exc.type != PlatformException.INVALID_DATA:
        return False
    message = _message(exc).lower()
    return "customer with email" in message and "has_account: false" in message


def is_missing_variant_price(exc: Exception) -> bool:
    """Some variant linked to the cart has no price in the new region currency."""
    return "do not have a price" in _message(exc).lower()


def extract_variant_ids(message: str) -> list[str]:
    """
    Parse variant ids out of an error message, first occurrence order.

    Example:
        "Variants with IDs variant_01H, variant_02K do not have a price"
        -> ["variant_01H", "variant_02K"]
    """
    seen: list[str] = []
    for variant_id in VARIANT_ID_PATTERN.findall(message or ""):
        if variant_id not in seen:
            seen.append(variant_id)
    return seen


class ErrorClassifier:
    def __init__(self, rules: list[ConflictRule]):
        self.rules = list(rules)

    def classify(self, exc: Exception) -> ClassifiedError:
        if isinstance(exc, InvalidSelectionException):
            return ClassifiedError(category=ErrorCategory.INVALID_SELECTION, error=exc)
        for rule in self.rules:
            if rule.predicate(exc):
                return ClassifiedError(
                    category=ErrorCategory.TRANSIENT_CONFLICT,
                    error=exc,
                    conflict_kind=rule.kind
                )
        return ClassifiedError(category=ErrorCategory.UNRECOVERABLE, error=exc)


DEFAULT_CONFLICT_RULES: tuple[ConflictRule, ...] = (
    ConflictRule(kind=ConflictKind.GUEST_EMAIL_CONFLICT, predicate=is_guest_email_conflict),
    ConflictRule(kind=ConflictKind.MISSING_VARIANT_PRICE, predicate=is_missing_variant_price),
)


def default_error_classifier() -> ErrorClassifier:
    return ErrorClassifier(list(DEFAULT_CONFLICT_RULES))
