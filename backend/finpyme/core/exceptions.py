"""Custom exception classes and handlers for the application."""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class NotFoundError(HTTPException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class AlreadyExistsError(HTTPException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{resource} already exists",
        )


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Token de acceso requerido"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "No autorizado"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


def _field_errors(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors into a {field, message} list."""
    errors = []
    for err in exc.errors():
        # Drop the "body"/"query"/"path" prefix pydantic puts in front
        loc = [str(part) for part in err.get("loc", ())[1:]]
        errors.append({
            "field": ".".join(loc) or None,
            "message": err.get("msg", "Invalid value"),
        })
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Datos inválidos", "errors": _field_errors(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the API-wide exception handlers."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
