from enum import Enum


class ErrorCategory(str, Enum):
    INVALID_SELECTION = "invalid_selection"     # User-correctable, never retried
    TRANSIENT_CONFLICT = "transient_conflict"   # Resolved locally, then retried
    UNRECOVERABLE = "unrecoverable"             # Rollback and propagate


class ConflictKind(str, Enum):
    GUEST_EMAIL_CONFLICT = "guest_email_conflict"
    MISSING_VARIANT_PRICE = "missing_variant_price"
