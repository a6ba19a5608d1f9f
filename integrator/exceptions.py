class IntegrationError(Exception):
    """Base class for every failure raised by the integrator."""


class SourceError(IntegrationError):
    """Catalog fetch failed or returned a malformed envelope."""


class StorefrontError(IntegrationError):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class AuthError(IntegrationError):
    """Vendor rejected the credentials or the token could not be renewed."""


class NetworkError(IntegrationError):
    """Vendor unreachable after the bounded retries were exhausted."""


class VendorError(IntegrationError):
    def __init__(self, code, message):
        super().__init__(f"Vendor rejected request ({code}): {message}")
        self.code = code
        self.message = message


class LedgerError(IntegrationError):
    """Requested ledger transition is not allowed from the record's state."""
