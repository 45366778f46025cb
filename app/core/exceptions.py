class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__


class NotFoundError(BaseServiceError):
    """Raised when a referenced order, product, picking item or delivery is absent."""
    status_code = 404


class ConflictError(BaseServiceError):
    """Raised when the unit of work is already taken or already in the requested state."""
    status_code = 409


class AlreadyClaimedError(ConflictError):
    """Raised when another actor claimed the unit of work first."""
    pass


class BadRequestError(BaseServiceError):
    """Raised when the request cannot be applied to the current state."""
    status_code = 400


class InsufficientStockError(BadRequestError):
    """Raised when a movement would take a product's stock below zero."""

    def __init__(self, message: str = "", product_id: str = None, available: int = None):
        super().__init__(message)
        self.product_id = product_id
        self.available = available


class InvalidTransitionError(BadRequestError):
    """Raised when a status change is not an allowed edge."""

    def __init__(self, current, target, message: str = ""):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(message or f'Cannot change status from "{current_value}" to "{target_value}"')
        self.current = current
        self.target = target


class ForbiddenError(BaseServiceError):
    """Raised when the actor does not own the order, picking order or delivery."""
    status_code = 403
