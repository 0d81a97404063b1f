"""Structured error results for ledger operations.

Transfer and bulk-move operations report problems as values rather than
raising, so a caller can show every problem at once and tell a stale-data
conflict apart from bad input.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "validation"  # Client-fixable input problem
    CONFLICT = "conflict"  # Stock changed between validation and commit
    NOT_FOUND = "not_found"  # Referenced warehouse or product does not exist


@dataclass(frozen=True)
class LedgerError:
    kind: ErrorKind
    message: str
    field: str | None = None
    product_id: str | None = None

    @classmethod
    def validation(cls, field, message, product_id=None):
        return cls(kind=ErrorKind.VALIDATION, message=message, field=field, product_id=product_id)

    @classmethod
    def conflict(cls, message, field="quantity", product_id=None):
        return cls(kind=ErrorKind.CONFLICT, message=message, field=field, product_id=product_id)

    @classmethod
    def not_found(cls, field, message, product_id=None):
        return cls(kind=ErrorKind.NOT_FOUND, message=message, field=field, product_id=product_id)

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "field": self.field,
            "message": self.message,
            "product_id": self.product_id,
        }


def errors_from_messages(messages, kind=ErrorKind.VALIDATION, product_id=None):
    """Flatten a Protean ``ValidationError.messages`` dict into LedgerErrors."""
    return [
        LedgerError(kind=kind, message=message, field=field, product_id=product_id)
        for field, field_messages in (messages or {}).items()
        for message in (field_messages if isinstance(field_messages, list | tuple) else [field_messages])
    ]


def dominant_kind(errors):
    """The kind a caller should react to first: not found, then conflict, then validation."""
    kinds = {error.kind for error in errors}
    for kind in (ErrorKind.NOT_FOUND, ErrorKind.CONFLICT, ErrorKind.VALIDATION):
        if kind in kinds:
            return kind
    return None
