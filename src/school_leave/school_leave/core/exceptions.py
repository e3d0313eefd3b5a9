class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class InsufficientBalanceError(ValidationError):
    """Raised when a leave request asks for more days than remain."""

    def __init__(self, leave_type: str, remaining: int, requested: int):
        self.leave_type = leave_type
        self.remaining = remaining
        self.requested = requested
        super().__init__(
            f"Not enough {leave_type} leaves available. "
            f"You have {remaining} days remaining but requested {requested} days."
        )


class TransactionConflictError(DomainError):
    """Raised when the store keeps rejecting a transaction commit."""
