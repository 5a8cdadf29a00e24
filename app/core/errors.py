from fastapi import HTTPException


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    status_code = 400


class CheckoutValidationError(ValidationError):
    pass


class NotFoundError(StoreError):
    status_code = 404


class ConflictError(StoreError):
    status_code = 409


def to_http(exc: StoreError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
