"""Service-layer exceptions for the verification and delivery core.

Each error carries a machine-readable ``kind`` that the HTTP layer maps to a
status code and echoes back in the response body.
"""


class VerificationServiceError(Exception):
    """Base exception for verification/notification service errors."""

    kind = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.kind)
        self.message = message or self.__class__.__doc__ or self.kind


class InvalidInputError(VerificationServiceError):
    """Input failed validation."""

    kind = "invalid_input"


class NoDocumentsError(InvalidInputError):
    """At least one supporting document is required."""

    kind = "no_documents"


class ActorRequiredError(InvalidInputError):
    """An acting admin id is required."""

    kind = "actor_required"


class NotFoundError(VerificationServiceError):
    """Requested entity not found."""

    kind = "not_found"


class AlreadyProcessedError(VerificationServiceError):
    """Entity is already in a terminal state."""

    kind = "already_processed"


class AlreadyPendingError(VerificationServiceError):
    """Organization already has a pending verification request."""

    kind = "already_pending"


class UnauthorizedError(VerificationServiceError):
    """Actor is not allowed to perform this action."""

    kind = "unauthorized"


class PersistenceError(VerificationServiceError):
    """Storage failure; no state was changed."""

    kind = "persistence_error"


class DeliveryFailure(VerificationServiceError):
    """Notification could not be delivered."""

    kind = "delivery_failure"
