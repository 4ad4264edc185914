"""
Error types shared across the training engine.

- NotFoundError: unknown module/section/exercise id, always surfaces
- PersistenceError: a ledger write failed, callers may proceed optimistically
- MalformedRecordError: a stored submission has an unusable field
"""

from typing import Any


class WellcoachError(Exception):
    """Base class for all wellcoach errors."""


class NotFoundError(WellcoachError, LookupError):
    """A module, section or exercise id is unknown to the catalog."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class PersistenceError(WellcoachError):
    """A write to the submission ledger could not be committed."""


class IncompleteModuleError(WellcoachError):
    """An operation requires a completed module."""

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Module not completed: {module_id}")


class MalformedRecordError(WellcoachError, ValueError):
    """A submission field is missing or out of range."""

    def __init__(self, record_id: str, field: str, value: Any):
        self.record_id = record_id
        self.field = field
        self.value = value
        super().__init__(f"Malformed {field} on submission {record_id}: {value!r}")
