"""
Custom exceptions for the search sink.

Every failure leaving a collaborator is mapped to one of two outward kinds:
retriable (redeliver the identical batch) or invalid input (do not retry).
"""

from __future__ import annotations

from typing import Optional


class SinkOperationalError(Exception):
    """Base operational error for the search sink."""

    retriable = False


class RetryableError(SinkOperationalError):
    """Transport or server-side failure; redelivering the same batch is safe."""

    retriable = True

    def __init__(self, message: str, destination: Optional[str] = None):
        super().__init__(message)
        self.destination = destination


class InvalidRecordError(SinkOperationalError):
    """Malformed upstream record (e.g. neither key nor value)."""

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(message)
        self.position = position


class TransportFailure(SinkOperationalError):
    """Raised by transports when the cluster rejects bulk items."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


def map_transport_error(e: Exception, destination: Optional[str] = None) -> SinkOperationalError:
    import opensearchpy.exceptions as E

    if isinstance(e, (InvalidRecordError, RetryableError)):
        return e
    if isinstance(e, (E.ConnectionError, E.ConnectionTimeout)):
        err = RetryableError(f"connection to cluster failed: {e}", destination)
    elif isinstance(e, E.TransportError):
        err = RetryableError(f"cluster rejected request ({e.status_code}): {e}", destination)
    elif isinstance(e, TransportFailure):
        err = RetryableError(str(e), destination)
    else:
        # Unknown collaborator failures cannot be told apart from transient ones here.
        err = RetryableError(f"{type(e).__name__}: {e}", destination)
    err.__cause__ = e
    return err
