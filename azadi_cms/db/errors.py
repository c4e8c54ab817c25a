"""Error taxonomy for the persistence gateway."""

from typing import Optional, Sequence


class StoreError(Exception):
    """Base class for document store failures."""


class StoreTransportError(StoreError):
    """The store could not be reached or answered with a non-success status.

    The state of the addressed node is unknown; callers must not read this as
    "empty".
    """

    def __init__(self, path: str, detail: str, status_code: Optional[int] = None):
        self.path = path
        self.detail = detail
        self.status_code = status_code
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Document store request for '{path}' failed{suffix}: {detail}")


class StoreShapeError(StoreError):
    """A stored value is neither null, a map nor a sequence."""

    def __init__(self, path: str, value_type: str):
        self.path = path
        self.value_type = value_type
        super().__init__(f"Unexpected value of type {value_type} at '{path}'")


class RecordNotFoundError(StoreError):
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No record '{record_id}' in {collection}")


class InvalidStatusTransition(StoreError):
    def __init__(self, record_id: str, current: str, requested: str):
        self.record_id = record_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Donation {record_id} cannot move from '{current}' to '{requested}'"
        )


class InvalidRecordIdError(StoreError, ValueError):
    """A record id that cannot be used as a single store key."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record id {record_id!r} cannot be stored in {collection}")


class InvalidStoredSettingsError(StoreError):
    """Stored settings fields failed validation and were replaced by defaults."""

    def __init__(self, path: str, fields: Sequence[str]):
        self.path = path
        self.fields = list(fields)
        super().__init__(f"Stored value(s) at '{path}' failed validation: {', '.join(self.fields)}")
