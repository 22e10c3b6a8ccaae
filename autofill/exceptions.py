"""
Exceptions raised by the autofill engine.

Only the backend related errors ever reach the caller of a fill request.
Everything that goes wrong while reading the field tree or writing values
back into it is logged and absorbed.
"""


class AutofillError(Exception):
    """Base class for all autofill errors."""


class NoBackendAvailable(AutofillError):
    """Raised when no registered backend supports the requested service type."""

    def __init__(self, service_type):
        self.service_type = service_type
        super().__init__(f"No AI service available for type: {getattr(service_type, 'value', service_type)}")


class BackendCallError(AutofillError):
    """Raised by a backend when the provider answered, but not with a usable completion."""

    def __init__(self, provider: str, message: str, status_code: int = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider} call failed: {message}")
