"""Core exceptions for Vantage fact access and evaluation."""

from vantage.utils.exceptions import VantageError


class ContextNotSetError(VantageError):
    """Raised when attempting to access request context that is not set.

    This error indicates a programming error - operations requiring context
    are being called outside of a request_context() context manager.
    """

    def __init__(self, message: str = "Request context is not set"):
        super().__init__(message)


class DataUnavailableError(VantageError):
    """Raised when a fact query fails or times out.

    Engines never let this propagate to their callers: the affected
    evaluation degrades to its defined default instead.

    Attributes:
        query: Name of the fact query that failed (e.g., "get_identity_facts")
        subject_id: Identifier the query was made for
    """

    def __init__(self, message: str, query: str, subject_id: str | None = None):
        super().__init__(message)
        self.query = query
        self.subject_id = subject_id

    def __str__(self) -> str:
        return f"DataUnavailableError({self.query}, {self.subject_id}): {self.args[0]}"


class IdentifierValidationError(VantageError):
    """Raised when a user, request, anomaly or organization id is malformed.

    Attributes:
        kind: What the identifier names (e.g., "user_id")
        value: The rejected value
    """

    def __init__(self, kind: str, value: object):
        super().__init__(f"Invalid {kind}: {value!r}")
        self.kind = kind
        self.value = value

    def __str__(self) -> str:
        return f"IdentifierValidationError: {self.args[0]}"


class PersistenceError(VantageError):
    """Raised when an anomaly insert or review update fails.

    Logged by the caller and never retried. It does not affect a result that
    has already been computed.

    Attributes:
        operation: The write that failed (e.g., "insert_anomalies")
        record_count: Number of records the write carried
    """

    def __init__(self, message: str, operation: str, record_count: int = 0):
        super().__init__(message)
        self.operation = operation
        self.record_count = record_count

    def __str__(self) -> str:
        return (
            f"PersistenceError: {self.args[0]} "
            f"(operation={self.operation}, records={self.record_count})"
        )


class RecordNotFoundError(VantageError):
    """Raised when a referenced record does not exist in the fact store.

    Attributes:
        kind: Record kind (e.g., "anomaly", "request")
        record_id: The identifier that was not found
    """

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind.capitalize()} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id

    def __str__(self) -> str:
        return f"RecordNotFoundError: {self.args[0]}"
