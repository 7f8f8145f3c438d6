"""Error taxonomy shared by the services and the HTTP layer."""


class FinanceError(Exception):
    status_code = 500
    kind = "Internal Server Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FinanceError, ValueError):
    status_code = 400
    kind = "Validation Error"


class NotFoundError(FinanceError, ValueError):
    status_code = 404
    kind = "Not Found"


class AuthenticationError(FinanceError):
    status_code = 401
    kind = "Unauthorized"


class ConflictError(FinanceError):
    status_code = 409
    kind = "Conflict"
