"""Unit tests for the exception hierarchy."""

from vantage.core.exceptions import (
    ContextNotSetError,
    DataUnavailableError,
    IdentifierValidationError,
    PersistenceError,
    RecordNotFoundError,
)
from vantage.utils.exceptions import ConfigurationError, VantageError


def test_hierarchy():
    for exc in (
        ContextNotSetError(),
        DataUnavailableError("down", query="get_peers"),
        IdentifierValidationError("user_id", ""),
        PersistenceError("down", operation="insert_anomalies"),
        RecordNotFoundError("anomaly", "a-1"),
        ConfigurationError("bad"),
    ):
        assert isinstance(exc, VantageError)


def test_data_unavailable_str():
    exc = DataUnavailableError("timed out", query="get_identity_facts", subject_id="u-1")

    assert str(exc) == "DataUnavailableError(get_identity_facts, u-1): timed out"


def test_persistence_error_str():
    exc = PersistenceError("refused", operation="insert_anomalies", record_count=3)

    assert "operation=insert_anomalies" in str(exc)
    assert "records=3" in str(exc)


def test_record_not_found_message():
    exc = RecordNotFoundError("anomaly", "a-1")

    assert str(exc) == "RecordNotFoundError: Anomaly not found: a-1"
    assert exc.record_id == "a-1"


def test_identifier_message():
    assert str(IdentifierValidationError("user_id", "bad id")) == (
        "IdentifierValidationError: Invalid user_id: 'bad id'"
    )
