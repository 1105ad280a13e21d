"""Exceptions raised by bite."""


class BiteError(Exception):
    """Base exception for all bite errors."""

    pass


class ConfigurationError(BiteError):
    """Raised when the settings file is missing required values or malformed."""

    pass


class StorageError(BiteError):
    """Raised when the user config or the entry log cannot be read or written."""

    pass


class InsufficientDataError(BiteError):
    """Raised when there are too few weigh-ins to evaluate progress."""

    pass


class PhaseNotActiveError(BiteError):
    """Raised when an operation needs an active diet phase and there is none."""

    pass


class UnknownActivityLevelError(BiteError):
    """Raised for an activity level outside the supported set."""

    pass


class ValidationError(BiteError):
    """Raised when user input fails validation."""

    pass
