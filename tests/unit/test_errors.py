"""
Unit tests for transport error mapping.
"""

from opensearchpy.exceptions import ConnectionTimeout, NotFoundError, TransportError

from search_sink import InvalidRecordError, RetryableError, TransportFailure
from search_sink.errors import map_transport_error


def test_connection_errors_are_retriable():
    err = map_transport_error(ConnectionTimeout("TIMEOUT", "read timed out", None), "t1")
    assert isinstance(err, RetryableError)
    assert err.retriable
    assert err.destination == "t1"
    assert "connection" in str(err)


def test_server_errors_are_retriable():
    cause = TransportError(503, "unavailable_shards_exception", {})
    err = map_transport_error(cause)
    assert isinstance(err, RetryableError)
    assert "503" in str(err)
    assert err.__cause__ is cause


def test_missing_collection_is_retriable():
    assert map_transport_error(NotFoundError(404, "index_not_found_exception", {})).retriable


def test_bulk_item_failures_and_unknown_errors_are_retriable():
    assert map_transport_error(TransportFailure("2 rejected")).retriable
    assert map_transport_error(OSError("reset by peer")).retriable
    assert map_transport_error(RuntimeError("??")).retriable


def test_invalid_record_passes_through():
    e = InvalidRecordError("bad")
    assert map_transport_error(e) is e
    assert not e.retriable
