from __future__ import annotations


class PaymentDomainError(ValueError):
    pass


class InvalidTransitionError(PaymentDomainError):
    pass


class PaymentConfirmationError(PaymentDomainError):
    def __init__(self, message: str, *, cause: str):
        super().__init__(message)
        self.cause = cause


class MissingCredentialsError(PaymentConfirmationError):
    def __init__(self, message: str = "Payment credentials are missing.", *, cause: str = "missing_credentials"):
        super().__init__(message, cause=cause)


class VerificationError(PaymentConfirmationError):
    pass


class CaptureFailedError(PaymentConfirmationError):
    pass


class CheckoutError(PaymentDomainError):
    def __init__(self, message: str, *, cause: str, field: str | None = None):
        super().__init__(message)
        self.cause = cause
        self.field = field


class OrderServiceNotConfigured(Exception):
    pass
