"""Exception hierarchy for the dictionary importer."""


class YomidbError(Exception):
    """Base exception for all importer errors."""


class UsageError(YomidbError):
    """Missing or invalid command-line arguments."""


class NotFoundError(YomidbError):
    """Archive file or its index.json is missing."""


class DecodeError(YomidbError):
    """Corrupt archive, malformed JSON or a bank record of the wrong shape."""


class DatabaseError(YomidbError):
    """Schema version mismatch or connection setup failure."""


class StorageError(YomidbError):
    """Failure reported by a storage backend."""


class TransientStorageError(StorageError):
    """Network or service failure that may succeed when retried."""


class RetryExhaustedError(TransientStorageError):
    """A transient failure persisted through every retry attempt."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class ConstraintViolation(StorageError):
    """Integrity constraint violated outside the expected dedup paths."""

    def __init__(self, table: str, value, message: str = ""):
        detail = f"Constraint violation in {table} for {value!r}"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(detail)
        self.table = table
        self.value = value
