"""
Custom exception classes
Provides a consistent error taxonomy across the storefront core
"""

from typing import Optional


class StorefrontException(Exception):
    """Base exception class for the storefront core"""

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code

    def __str__(self) -> str:
        return self.detail


# Validation errors never reach the network layer
class ValidationException(StorefrontException):
    """Input rejected before any write"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(detail=detail, error_code=error_code)


class NoPaymentMethodException(ValidationException):
    """No payment instrument selected"""

    def __init__(self, detail: str = "Please select a payment method"):
        super().__init__(detail=detail, error_code="NO_PAYMENT_METHOD")


class InsufficientBalanceException(ValidationException):
    """Stored-value balance below the order total"""

    def __init__(self, balance=None, required=None):
        detail = "Insufficient balance"
        if balance is not None and required is not None:
            detail = f"Insufficient balance: {balance} available, {required} required"
        super().__init__(detail=detail, error_code="INSUFFICIENT_BALANCE")
        self.balance = balance
        self.required = required


class InvalidQuantityException(ValidationException):
    """Quantity below one or below the product minimum order"""

    def __init__(self, detail: str = "Quantity is below the minimum order"):
        super().__init__(detail=detail, error_code="INVALID_QUANTITY")


class InvalidCardException(ValidationException):
    """Card details failed validation"""

    def __init__(self, errors: dict):
        super().__init__(
            detail="; ".join(f"{field}: {msg}" for field, msg in errors.items()),
            error_code="INVALID_CARD",
        )
        self.errors = errors


class InvalidAmountException(ValidationException):
    """Monetary amount must be positive"""

    def __init__(self, detail: str = "Please enter a valid amount"):
        super().__init__(detail=detail, error_code="INVALID_AMOUNT")


class SyncException(StorefrontException):
    """Cart load or persist did not complete"""

    def __init__(self, detail: str = "Cart synchronization failed", error_code: str = "SYNC_FAILED"):
        super().__init__(detail=detail, error_code=error_code)


class CommitException(StorefrontException):
    """Atomic checkout commit failed; no side effect was applied"""

    def __init__(self, detail: str = "Payment failed, please retry", error_code: str = "COMMIT_FAILED"):
        super().__init__(detail=detail, error_code=error_code)


class NotFoundException(StorefrontException):
    """Requested record does not exist"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(detail=detail, error_code=error_code)


class InvalidStatusTransitionException(StorefrontException):
    """Order status change not allowed by the state machine"""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            detail=f"Cannot move order from {current_status} to {new_status}",
            error_code="INVALID_STATUS_TRANSITION",
        )


# Document store errors
class DocumentStoreException(StorefrontException):
    """Remote document store call failed"""

    def __init__(self, detail: str = "Document store error", error_code: str = "STORE_ERROR"):
        super().__init__(detail=detail, error_code=error_code)


class StoreTimeoutException(DocumentStoreException):
    """Remote document store call exceeded its time bound"""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            detail=f"Document store {operation} timed out after {timeout}s",
            error_code="STORE_TIMEOUT",
        )


class PreconditionFailedException(DocumentStoreException):
    """Compare-and-swap precondition did not hold at commit time"""

    def __init__(self, path: str, field: str):
        super().__init__(
            detail=f"Precondition on {path}.{field} no longer holds",
            error_code="PRECONDITION_FAILED",
        )
        self.path = path
        self.field = field


class DocumentNotFoundException(DocumentStoreException):
    """Update targeted a document that does not exist"""

    def __init__(self, path: str):
        super().__init__(detail=f"Document {path} does not exist", error_code="DOCUMENT_NOT_FOUND")
        self.path = path


class DataIntegrityWarning(UserWarning):
    """Referenced record missing; value treated as zero"""
