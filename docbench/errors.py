"""Exception types raised by the benchmark pipeline."""


class BenchmarkError(Exception):
    """Base class for every failure the harness knows how to report."""


class ConfigError(BenchmarkError):
    """Missing or invalid settings. Raised before any I/O happens."""


class ConnectivityError(BenchmarkError):
    """An engine could not be reached."""


class SchemaError(BenchmarkError):
    """Table/index DDL or index mapping creation failed."""


class ProtocolError(BenchmarkError):
    """An engine answered with something we could not interpret."""


class LoadError(BenchmarkError):
    """Bulk loading failed."""


class AbortedStreamError(LoadError):
    """The binary COPY stream was abandoned after a write failure."""


class BulkRequestError(LoadError):
    """A bulk request was rejected at the HTTP level."""

    def __init__(self, status_code, body):
        super().__init__(f"Bulk insert failed with status {status_code} - Body: {body}")
        self.status_code = status_code
        self.body = body


class PartialBatchError(LoadError):
    """Some items of an otherwise accepted bulk batch failed to index.

    Never raised by the loader; it is logged and counted, and the load
    carries on with the next batch.
    """

    def __init__(self, batch_number, failed_items, first_reason=None):
        message = f"Batch {batch_number}: {failed_items} item(s) failed to index"
        if first_reason:
            message += f" (first error: {first_reason})"
        super().__init__(message)
        self.batch_number = batch_number
        self.failed_items = failed_items
        self.first_reason = first_reason


class QueryError(BenchmarkError):
    """A single benchmark query failed. The query is skipped."""


class TranslationError(BenchmarkError):
    """A query intent was given a value it cannot be translated with."""
