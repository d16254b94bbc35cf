from typing import Optional


class BillingError(Exception):
    """Base class for failures surfaced by the billing client."""


class AuthError(BillingError):
    """Credentials could not be acquired, refreshed or were rejected."""


class TransportError(BillingError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(BillingError):
    """The dataset is empty or holds no billing export table."""
