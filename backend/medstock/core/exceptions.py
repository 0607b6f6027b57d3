"""Domain exceptions raised by the inventory services.

Routes do not catch these; exception handlers registered in ``medstock.main``
turn them into HTTP responses using ``status_code``.
"""


class InventoryError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(InventoryError):
    """Malformed or constraint-violating input (duplicate itemId, bad threshold, ...)."""

    status_code = 422

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(InventoryError):
    """A referenced row does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: int | str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")


class InvalidOperationError(InventoryError):
    """A well-formed request that would break a domain invariant."""

    status_code = 409


class StorageError(InventoryError):
    """The database failed underneath an operation.

    The message is logged but never sent to the client.
    """

    status_code = 500
    public_message = "Internal server error"
