"""Application error types."""


class CalinoError(Exception):
    """Base class for application errors."""


class ValidationError(CalinoError):
    """A required field is missing or malformed."""


class NotFoundError(CalinoError):
    """The requested record does not exist."""


class InfrastructureError(CalinoError):
    """Storage or an external service failed or returned unusable data."""
