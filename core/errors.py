from starlette import status


class MatrimonyError(Exception):
    """Базовая ошибка домена. main.py превращает её в JSON-ответ со status_code."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Operation declined"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ProfileValidationError(MatrimonyError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "Invalid profile data"

    def __init__(self, detail: str | None = None, errors: list | None = None):
        super().__init__(detail)
        self.errors = errors or []


class ProfileNotFound(MatrimonyError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Profile not found"


class NotProfileOwner(MatrimonyError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "You do not own this profile"


class PaymentInvalid(MatrimonyError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid payment signature"


class AlreadyPaid(MatrimonyError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Profile already paid"


class InvalidTransition(MatrimonyError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Operation is not allowed in the current profile state"


class ExternalUnavailable(MatrimonyError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "External service unavailable"
