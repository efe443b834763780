"""Error types for the publish workflow.

Primitives return result objects with a success field instead of raising
exceptions for expected HTTP failures. These errors are raised by the
services that sit on top of them:
- Content uploader: TransferError
- Context resolver: ContextError
- Identity registry client: RegistryReadError, RegistryWriteError
- Settings / model loading: ConfigurationError

Authorization gaps and a missing target project are not errors; the
orchestrator reports them as no-op outcomes.
"""

from typing import Optional


class PublishError(Exception):
    """Base exception for fatal publish failures.

    Attributes:
        message: Error description.
        cause: Optional underlying exception being wrapped.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        """Initialize PublishError.

        Args:
            message: Description of the error.
            cause: Optional exception that triggered this error.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause


class TransferError(PublishError):
    """Upload to content-addressed storage failed (auth, network, quota).

    Attributes:
        status_code: HTTP status returned by the backend, 0 when unreachable.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code


class ContextError(PublishError):
    """CI event payload is missing or does not have the expected shape."""


class RegistryError(PublishError):
    """Base for identity registry failures.

    Attributes:
        status_code: HTTP status returned by the node, 0 when unreachable.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, cause)
        self.status_code = status_code


class RegistryReadError(RegistryError):
    """Loading a stream, index or record from the registry failed."""


class RegistryWriteError(RegistryError):
    """Committing the updated collection failed.

    The content has already been uploaded when this is raised, so the
    stored file set is addressable but not referenced by the registry.
    """


class ConfigurationError(PublishError):
    """Configuration error (missing setting, bad key material, unknown alias).

    Attributes:
        message: Description of the error.
        field: Optional setting or alias that caused the error.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        """Initialize ConfigurationError.

        Args:
            message: Description of the error.
            field: Optional field that caused the error.
        """
        super().__init__(message)
        self.field = field
