from __future__ import annotations

from typing import Any, List, Optional


class GoReleaseError(Exception):
    """Base exception for all gorelease errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            **kwargs: Additional error information
        """
        self.message = message
        self.details = dict(kwargs.pop("details", {}))
        self.details.update(kwargs)
        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.message}"


class EnvironmentCheckError(GoReleaseError):
    """Exception raised when the host environment cannot run a build."""

    pass


class MissingCommandError(EnvironmentCheckError):
    """Exception raised when a required external command is not on PATH."""

    def __init__(self, message: str, command: Optional[str] = None, **kwargs: Any) -> None:
        """Initialize a MissingCommandError.

        Args:
            message: A descriptive error message.
            command: The command that could not be found.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if command:
            details["command"] = command
        super().__init__(message, details=details, **kwargs)
        self.command = command


class RepositoryError(EnvironmentCheckError):
    """Exception raised when no source-control metadata is available."""

    pass


class UnsupportedArchitectureError(EnvironmentCheckError):
    """Exception raised when the host architecture has no canonical name."""

    def __init__(self, message: str, arch: Optional[str] = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if arch:
            details["arch"] = arch
        super().__init__(message, details=details, **kwargs)
        self.arch = arch


class ConfigurationError(GoReleaseError):
    """Exception raised for configuration-related errors.

    A single instance can carry every problem found while validating a
    configuration so they can be reported together.
    """

    def __init__(
            self,
            message: str,
            errors: Optional[List[str]] = None,
            config_key: Optional[str] = None,
            **kwargs: Any
    ) -> None:
        """Initialize a ConfigurationError.

        Args:
            message: A descriptive error message.
            errors: All validation errors that led to this exception.
            config_key: The configuration key that caused the error.
            **kwargs: Additional keyword arguments to pass to the parent Exception.
        """
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)
        self.errors: List[str] = list(errors or [])
        self.config_key = config_key


class EntryPointError(ConfigurationError):
    """Exception raised when the entry-point file is missing or ambiguous."""

    pass


class BuildError(GoReleaseError):
    """Exception raised when compiling a target fails."""

    def __init__(self, message: str, target: Optional[str] = None, **kwargs: Any) -> None:
        """Initialize a BuildError.

        Args:
            message: A descriptive error message.
            target: The ``os/arch`` target being built.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if target:
            details["target"] = target
        super().__init__(message, details=details, **kwargs)
        self.target = target

    def __str__(self) -> str:
        """String representation."""
        if self.target:
            return f"{self.message} (Target: {self.target})"
        return super().__str__()


class PackagingError(GoReleaseError):
    """Exception raised when a release archive cannot be produced."""

    def __init__(self, message: str, target: Optional[str] = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if target:
            details["target"] = target
        super().__init__(message, details=details, **kwargs)
        self.target = target
