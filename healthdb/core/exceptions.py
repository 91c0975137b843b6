"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str = "app_error"):
        """Initialize exception with message and error code."""
        self.message = message
        self.code = code
        super().__init__(self.message)


class IntegrityError(AppException):
    """Write rejected by a key or referential constraint."""

    def __init__(self, message: str = "Integrity constraint violated"):
        """Initialize with integrity_error code."""
        super().__init__(message, code="integrity_error")


class NotFoundError(AppException):
    """Primary-key lookup found no row."""

    def __init__(self, message: str = "Record not found"):
        """Initialize with not_found code."""
        super().__init__(message, code="not_found")


class InvalidParameterError(AppException):
    """Operation invoked with an out-of-range parameter."""

    def __init__(self, message: str = "Invalid parameter"):
        """Initialize with invalid_parameter code."""
        super().__init__(message, code="invalid_parameter")
