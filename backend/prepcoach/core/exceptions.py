"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError


class PrepCoachException(Exception):
    """Base exception for prepcoach services."""

    pass


class ValidationError(PrepCoachException):
    """Exception raised when caller input is missing or malformed."""

    def __init__(self, message: Optional[str] = "Invalid input"):
        """Create a new ValidationError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class NotFoundException(PrepCoachException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class InvalidStateError(PrepCoachException):
    """Exception raised when an object is in an invalid state.

    Used when multiple services are involved and the state of one service is invalid,
    in relation to the other services.
    """

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class StorageUnavailableError(PrepCoachException):
    """Exception raised when the backing store cannot be reached."""

    def __init__(self, message: Optional[str] = "Storage unavailable"):
        """Create a new StorageUnavailableError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ExternalServiceError(PrepCoachException):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


class UpstreamRetryableError(ExternalServiceError):
    """A transient upstream failure (429 or 5xx) that may succeed on retry."""

    def __init__(
        self,
        service_name: str,
        status_code: Optional[int] = None,
        message: Optional[str] = "Upstream temporarily unavailable",
    ):
        """Create a new UpstreamRetryableError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            status_code (int, optional): HTTP status returned by the service, if any.
            message (str, optional): The error message. Has default message.

        """
        self.status_code = status_code
        super().__init__(service_name, message)


class UpstreamFatalError(ExternalServiceError):
    """A non-retryable upstream failure (4xx other than 429)."""

    def __init__(
        self,
        service_name: str,
        status_code: Optional[int] = None,
        message: Optional[str] = "Upstream rejected the request",
    ):
        """Create a new UpstreamFatalError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            status_code (int, optional): HTTP status returned by the service, if any.
            message (str, optional): The error message. Has default message.

        """
        self.status_code = status_code
        super().__init__(service_name, message)


class UpstreamUnavailableError(ExternalServiceError):
    """Raised once every retry against an upstream has been exhausted."""

    def __init__(
        self,
        service_name: str,
        attempts: int,
        message: Optional[str] = None,
    ):
        """Create a new UpstreamUnavailableError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            attempts (int): Total number of attempts made, including the first.
            message (str, optional): Custom error message.

        """
        self.attempts = attempts
        if message is None:
            message = f"Upstream still failing after {attempts} attempts"
        super().__init__(service_name, message)


class InvocationCancelledError(ExternalServiceError):
    """Raised when a caller's deadline or cancel signal stops further attempts."""

    def __init__(self, service_name: str, attempts: int, reason: str = "cancelled"):
        """Create a new InvocationCancelledError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            attempts (int): Attempts started before cancellation.
            reason (str): ``cancelled`` or ``deadline``.

        """
        self.attempts = attempts
        self.reason = reason
        super().__init__(service_name, f"Invocation {reason} after {attempts} attempts")


def unpack_validation_error(exc: PydanticValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
