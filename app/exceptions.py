"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors without importing HTTP
concepts. The handlers registered here translate them into consistent JSON
responses of the form {"detail": ..., "error_type": ...}.

Exception hierarchy:
    PaymentsAPIError (base)
    ├── ValidationError         : missing or malformed field (422)
    ├── NotFoundError           : target record doesn't exist (404)
    │   ├── PaymentNotFoundError
    │   └── UserNotFoundError
    ├── UnauthorizedAccessError : policy check failed (403)
    ├── DecryptionError         : stored ciphertext can't be recovered (500)
    ├── DuplicateEmailError     : signup with a registered email (409)
    └── InvalidCredentialsError : bad login (401)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class PaymentsAPIError(Exception):
    """Base exception for all Payments API domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(PaymentsAPIError):
    """
    Raised when a submitted field is missing or malformed.

    Attributes:
        field: Name of the offending field, reported back to the form.
    """

    def __init__(self, field: str, detail: str):
        self.field = field
        super().__init__(detail)


class NotFoundError(PaymentsAPIError):
    """Raised when an operation targets a record that does not exist."""


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: int):
        self.payment_id = payment_id
        super().__init__(f"Payment {payment_id} not found")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class UnauthorizedAccessError(PaymentsAPIError):
    """Raised when the acting user fails a policy check."""

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


class DecryptionError(PaymentsAPIError):
    """
    Raised when a stored card value cannot be decrypted.

    Usually means the key that wrote it was rotated out of the key ring
    without re-encrypting the row first.
    """

    def __init__(self, detail: str = "Stored card data could not be decrypted"):
        super().__init__(detail)


class DuplicateEmailError(PaymentsAPIError):
    """Raised when attempting to register with an email that's already in use."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(PaymentsAPIError):
    """Raised when login credentials are incorrect."""

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": exc.detail,
                "error_type": "validation_error",
                "field": exc.field,
            },
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(
        request: Request, exc: NotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "not_found"},
        )

    @app.exception_handler(UnauthorizedAccessError)
    async def unauthorized_access_handler(
        request: Request, exc: UnauthorizedAccessError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=403,
            content={"detail": exc.detail, "error_type": "unauthorized_access"},
        )

    @app.exception_handler(DecryptionError)
    async def decryption_error_handler(
        request: Request, exc: DecryptionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={"detail": exc.detail, "error_type": "decryption_failed"},
        )

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(
        request: Request, exc: DuplicateEmailError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": exc.detail, "error_type": "duplicate_email"},
        )

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(
        request: Request, exc: InvalidCredentialsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail, "error_type": "invalid_credentials"},
        )
