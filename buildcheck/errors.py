class AppError(Exception):
    """Base error rendered to the client as ``{"error": message}``."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class BadRequest(AppError):
    status_code = 400
    message = "Bad request"


class DuplicateEmail(AppError):
    status_code = 400
    message = "Email already exists"


class InvalidCredentials(AppError):
    status_code = 400
    message = "Invalid credentials"


class Unauthorized(AppError):
    status_code = 401
    message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    message = "Forbidden"


class QuotaExceeded(AppError):
    status_code = 403
    message = "Free limit reached. Upgrade to Pro for unlimited validations."


class NotFound(AppError):
    status_code = 404
    message = "Not found"


class AnalysisError(AppError):
    status_code = 500
    message = "AI Analysis failed"


class BillingUnconfigured(AppError):
    status_code = 500
    message = "Stripe not configured"
