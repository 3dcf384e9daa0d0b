"""Domain errors raised by the payment service.

Each error carries the HTTP status code the transport layer answers with, so
the mapping lives in exactly one place.
"""


class PaymentError(Exception):
    """Base class for every error the service surfaces to callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PaymentValidationError(PaymentError):
    """Create input breaks one of the validation rules."""

    status_code = 400


class PaymentNotFoundError(PaymentError):
    """No payment exists for the given uid."""

    status_code = 404

    def __init__(self, uid: str) -> None:
        super().__init__(f"payment {uid} not found")
        self.uid = uid


class PaymentAlreadyProcessedError(PaymentError):
    """The payment is processed and can no longer be changed or deleted."""

    status_code = 409

    def __init__(self, uid: str) -> None:
        super().__init__("Payment already processed")
        self.uid = uid


class StorageError(PaymentError):
    """The underlying store failed to read or write."""

    status_code = 500


class IdentityGenerationError(PaymentError):
    """A fresh payment uid could not be generated."""

    status_code = 500
