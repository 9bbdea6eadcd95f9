"""Exception classes for the budget package."""


class BudgetError(Exception):
    """Base class for everything raised by this package."""


class StoreError(BudgetError):
    """The remote store could not complete a read or write."""

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"Store operation '{operation}' failed"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class NotFoundError(StoreError):
    def __init__(self, resource: str = "Resource", record_id: str = ""):
        self.resource = resource
        self.record_id = record_id
        label = f"{resource} {record_id}" if record_id else resource
        super().__init__("get", f"{label} not found")


class ValidationError(BudgetError):
    """Raised when a rejected form payload has to become an exception."""

    def __init__(self, error: dict):
        self.error = error
        super().__init__(error.get("message", "Validation error"))


class ImportFormatError(BudgetError):
    """The uploaded CSV has no usable date/name/amount columns."""
