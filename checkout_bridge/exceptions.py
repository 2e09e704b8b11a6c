"""
exceptions.py — Error taxonomy of the Checkout Bridge

Every per-request failure is a BridgeError carrying a human-readable message
and the HTTP status the API answers with. The FastAPI exception handler in
main.py turns them into `{"error": message}` responses.
"""


class BridgeError(Exception):
    """Base class for all bridge errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidCartError(BridgeError):
    """Raised when the client payload cannot be turned into a cart (no lines, bad line)."""

    def __init__(self, message: str = "lines manquantes"):
        super().__init__(message, status_code=400)


class NoShopAvailableError(BridgeError):
    """Raised when no configured shop answered the liveness probe."""

    def __init__(self, message: str = "Aucun shop disponible"):
        super().__init__(message, status_code=503)


class CheckoutError(BridgeError):
    """Raised when the shop could not create a checkout (user errors, missing URL, transport)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class MappingError(BridgeError):
    """Raised when the SKU mapping source is missing or malformed."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class UnauthorizedError(BridgeError):
    def __init__(self, message: str = "Non autorisé"):
        super().__init__(message, status_code=401)


class PayloadTooLargeError(BridgeError):
    def __init__(self, message: str = "Payload trop volumineux"):
        super().__init__(message, status_code=413)
