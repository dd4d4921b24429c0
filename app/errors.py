"""
Domain exceptions mapped to HTTP responses at the application boundary
"""


class AppError(Exception):
    """Base error carrying the HTTP status the boundary should answer with"""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    """Referenced user or quiz does not exist"""

    status_code = 404
