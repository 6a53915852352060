"""
Domain exceptions for the clinic backend.

Each error carries the HTTP status it maps to, so the API layer can render
every one of them through a single exception handler.
"""

from fastapi import status


class ClinicError(Exception):
    """
    Base class for all domain errors raised by the services.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed."
    default_code = "clinic_error"

    def __init__(self, detail: str | None = None, code: str | None = None):
        self.detail = detail or self.default_detail
        self.code = code or self.default_code
        super().__init__(self.detail)


class ValidationError(ClinicError):
    """
    Bad input: non-positive quantity or amount, empty treatment,
    payment against a settled treatment.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "validation_error"


class NotFoundError(ClinicError):
    """
    Referenced patient, treatment or inventory item does not exist.
    """

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found."
    default_code = "not_found"


class InsufficientStockError(ClinicError):
    """
    A deduction would drive an item's stock below zero.
    """

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Insufficient stock for this transaction."
    default_code = "insufficient_stock"

    def __init__(
        self,
        detail: str | None = None,
        *,
        available: int | None = None,
        requested: int | None = None,
    ):
        self.available = available
        self.requested = requested
        super().__init__(detail)


class BackendError(ClinicError):
    """
    Writing through to the database failed; the session was rolled back.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The data store rejected the write. Please try again."
    default_code = "backend_error"
