"""Shared exceptions module."""

from typing import Any, Optional

from pydantic import ValidationError


class CrediBillException(Exception):
    """Base exception for CrediBill services."""

    pass


class NotFoundException(CrediBillException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class MissingConfigurationError(CrediBillException):
    """Exception raised when an app lacks configuration a billing operation depends on.

    The grace period sweep uses it to report apps without a grace period; the
    offending item is skipped and the rest of the batch continues.
    """

    def __init__(self, field_name: str, message: str = "Missing required configuration"):
        """Create a new MissingConfigurationError instance.

        Args:
        ----
            field_name (str): The name of the missing configuration field.
            message (str, optional): The error message. Has default message.

        """
        self.field_name = field_name
        self.message = message
        super().__init__(f"{message}: {field_name}")


class InvalidStateError(CrediBillException):
    """Exception raised when an object is in an invalid state for the requested operation."""

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class WebhookDeliveryError(CrediBillException):
    """Raised when an outgoing webhook request does not produce a 2xx response."""

    def __init__(
        self, message: str, http_status: Optional[int] = None, response: Optional[Any] = None
    ):
        """Create a new WebhookDeliveryError instance.

        Args:
        ----
            message (str): The error message.
            http_status (int, optional): The HTTP status code, if a response was received.
            response (Any, optional): The decoded response body, if any.

        """
        self.message = message
        self.http_status = http_status
        self.response = response
        super().__init__(self.message)


def unpack_validation_error(exc: ValidationError) -> dict:
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
        error_messages.append({field: error["msg"]})

    return {"errors": error_messages}
