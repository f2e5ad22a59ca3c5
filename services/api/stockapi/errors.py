from typing import Optional


class StockApiError(Exception):
    """Base for errors rendered to clients as ``{error, message}``."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(StockApiError):
    status_code = 400


class NotFoundError(StockApiError):
    status_code = 404


class AuthError(StockApiError):
    """Missing credentials (500) or upstream rejection (upstream status)."""


class UpstreamError(StockApiError):
    """Non-2xx, malformed or unreachable evaluation service."""


class InternalError(StockApiError):
    status_code = 500
