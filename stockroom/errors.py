"""Error taxonomy shared by the services and the HTTP boundary.

Services raise these; ``stockroom.main`` renders them as
``{"message": ...}`` with the attached status code.
"""


class InventoryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(InventoryError):
    """Malformed or out-of-range input. Raised before the store is touched."""

    status_code = 422


class NotFound(InventoryError):
    status_code = 404


class InsufficientStock(InventoryError):
    """A sale or decrease asked for more units than are on hand."""

    status_code = 422


class LockTimeout(InventoryError):
    """The product row stayed locked longer than LOCK_TIMEOUT_MS."""

    status_code = 504


class StoreError(InventoryError):
    status_code = 500
