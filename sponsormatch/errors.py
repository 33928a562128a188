"""
Exceptions raised by the reconciliation engine.

Fatal errors stop a run before (or while) anything is written. Per-record
failures are ordinary exceptions that the job catches, counts and reports.
"""


class ReconciliationError(Exception):
    """Base class for errors surfaced to the caller of a run."""
    pass


class FatalRunError(ReconciliationError):
    """Raised when a run cannot proceed, e.g. an empty sponsor or target set."""
    pass


class DatastoreConnectionError(ReconciliationError):
    """Raised when a sponsor or target store cannot be reached."""
    pass