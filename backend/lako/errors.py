# Overview: Domain error taxonomy shared by services and routes.

"""
Every error a service raises on purpose derives from LakoError and carries
the HTTP status it maps to plus a message that is safe to show a client.

- ValidationError: malformed or missing input, raised before storage access
- AuthenticationError: bad credentials or token; never says which part was wrong
- NotFoundError: missing OR owned by someone else (same outward signal)
- ConflictError: uniqueness or reference conflicts
- InternalError: storage or transport failure, details stay in the logs
"""


class LakoError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(LakoError, ValueError):
    """400-level input problem."""
    status_code = 400
    default_message = "Invalid request payload"


class AuthenticationError(LakoError):
    status_code = 400
    default_message = "invalid username or password"


class NotFoundError(LakoError):
    status_code = 404
    default_message = "That resource is not found"


class ConflictError(LakoError):
    """409-level uniqueness or reference conflict."""
    status_code = 409
    default_message = "Conflict"


class DuplicateInvoiceNumberError(ConflictError):
    default_message = "Invoice number already exists for this client"

    def __init__(self, invoice_number: str):
        super().__init__(f"Invoice number {invoice_number} already exists for this client")
        self.invoice_number = invoice_number


class InternalError(LakoError):
    status_code = 500


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""
