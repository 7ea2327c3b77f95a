"""Domain and store errors raised by the service layer.

Route handlers translate these to HTTP status codes; nothing here is
retried automatically.
"""


class ServiceError(Exception):
    """Base class for service-layer errors."""

    pass


class NotFoundError(ServiceError):
    """The requested account, holding or daily total does not exist."""

    pass


class DuplicateAccountError(ServiceError):
    """An account with the same name already exists."""

    pass


class DuplicateHoldingError(ServiceError):
    """The account already holds the symbol."""

    pass


class StoreReadError(ServiceError):
    """Reading from the holdings/totals store failed."""

    pass


class StoreWriteError(ServiceError):
    """Writing to the totals/valuation store failed.

    Snapshot and total writes are keyed upserts, so retrying is safe.
    """

    pass


class ReconcileTimeoutError(ServiceError):
    """The reconcile deadline passed before any rows were written."""

    pass
