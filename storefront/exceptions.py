"""
Custom exceptions for the storefront consolidation core.
"""
from typing import Optional


class StorefrontException(Exception):
    """Base exception for storefront operations"""
    pass


class MoneyError(StorefrontException):
    """Base exception for money arithmetic"""
    pass


class CurrencyMismatchError(MoneyError):
    """Raised when combining or comparing money in different currencies"""
    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(f"Mismatching currency codes: {left!r} vs {right!r}")


class MoneyOverflowError(MoneyError):
    """Raised when a result does not fit the units range"""
    def __init__(self, value):
        self.value = value
        super().__init__(f"Money value out of range: {value}")


class InvalidMoneyError(MoneyError):
    """Raised when a money value breaks the nanos range or sign rule"""
    def __init__(self, units: int, nanos: int):
        self.units = units
        self.nanos = nanos
        super().__init__(f"Invalid money value: units={units} nanos={nanos}")


class UpstreamUnavailableError(StorefrontException):
    """Raised when a required backend call fails"""
    def __init__(self, service: str, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.service = service
        self.status_code = status_code
        self.body = body
        detail = f"{service}: {message}"
        if status_code is not None:
            detail = f"{detail}: status {status_code}"
        if body:
            detail = f"{detail}: {body}"
        super().__init__(detail)


class ValidationError(StorefrontException):
    """Raised when a form payload fails validation"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthenticationRequiredError(StorefrontException):
    """Raised when an operation needs a logged-in user"""
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Login required to {operation}")


class AuthRejectedError(StorefrontException):
    """Raised when the auth backend answers with a user-displayable error"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
