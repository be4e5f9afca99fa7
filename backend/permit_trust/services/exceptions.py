"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the API layer and converted to appropriate HTTP responses.
"""


class ServiceError(Exception):
    """Base service exception."""

    pass


class NotFoundError(ServiceError):
    """Resource not found."""

    pass


class ValidationError(ServiceError):
    """Validation error."""

    pass


class ContentionError(ServiceError):
    """Operation could not complete in time because of concurrent writers. Retryable."""

    pass


class AuthenticationError(ServiceError):
    """Bearer credential missing, invalid, expired or belonging to an inactive user."""

    pass


class AuthorizationError(ServiceError):
    """Authenticated identity is not allowed to perform the operation."""

    pass
