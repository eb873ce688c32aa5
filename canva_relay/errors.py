"""
Exception types for the relay. Handlers turn these into HTTP responses locally;
ConfigError and CredentialStoreError are fatal at startup.
"""


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigError(RelayError):
    """Missing or invalid configuration (unknown profile, missing secret)."""


class CredentialStoreError(RelayError):
    """Credential file exists but cannot be read or parsed."""


class PKCEError(RelayError):
    """Verifier cookie missing, expired, tampered with, or state mismatch."""


class ProviderError(RelayError):
    """
    Canva returned a non-2xx response, or the request never got one.
    status_code is None for transport failures.
    """

    def __init__(self, status_code: int | None, message: str, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


class UploadJobError(RelayError):
    """Asset upload job reached the failed state."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class UploadTimeoutError(RelayError):
    """Asset upload job did not reach a terminal state within the poll budget."""
