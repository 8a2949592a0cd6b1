# backend/errors.py
"""Error taxonomy shared by services and routes.

Services raise these; main.py turns them into ``{"error": message}`` responses
with the matching status code.
"""


class BlogError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BlogError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(BlogError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(BlogError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(BlogError):
    status_code = 404
    default_message = "Not found"


class ConflictError(BlogError):
    status_code = 409
    default_message = "Conflict"


class RateLimitError(BlogError):
    status_code = 429
    default_message = "Too many requests"


class InternalError(BlogError):
    status_code = 500
