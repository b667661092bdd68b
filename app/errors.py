from typing import Callable
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from fastapi import FastAPI, status
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)


class ChatAppException(Exception):
    """Base class for all group chat platform exceptions."""

    def __init__(self, message: str = "An error occurred", error_code: str = "error"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


# Domain errors raised by the conversation and message engines

class ValidationError(ChatAppException):
    """Input is malformed or semantically inconsistent (too few members, admin outside membership...)."""
    def __init__(self, message: str = "Validation failed"):
        super().__init__(message=message, error_code="validation_error")


class NotFoundError(ChatAppException):
    """Referenced resource does not exist or the actor cannot see it."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message=message, error_code="not_found")


class UnauthorizedError(ChatAppException):
    """Actor lacks the admin/sender/self relationship the action requires."""
    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message=message, error_code="unauthorized")


class ConflictError(ChatAppException):
    """Action is redundant or collides with the current state."""
    def __init__(self, message: str = "Conflict with the current state"):
        super().__init__(message=message, error_code="conflict")


# Authentication errors

class UnAuthenticated(ChatAppException):
    """User is not authenticated."""
    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message=message, error_code="unauthenticated")


class InvalidToken(ChatAppException):
    """User has provided an invalid or expired token."""
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message, error_code="invalid_token")


class InvalidCredentials(ChatAppException):
    """User has provided incorrect login details."""
    def __init__(self, message: str = "The password is incorrect."):
        super().__init__(message=message, error_code="invalid_credentials")


def create_exception_handler(
    status_code: int,
    initial_detail: dict,
) -> Callable[[Request, ChatAppException], JSONResponse]:

    async def exception_handler(request: Request, exc: ChatAppException):
        return JSONResponse(
            status_code=status_code,
            content={
                "message": exc.message or initial_detail["message"],
                "error_code": exc.error_code or initial_detail["error_code"],
                "resolution": initial_detail.get("resolution") or "Please try again later",
            }
        )

    return exception_handler


def register_all_errors(app: FastAPI):
    """Registers all exception handlers in the FastAPI app."""

    app.add_exception_handler(
        ValidationError,
        create_exception_handler(
            status_code=status.HTTP_400_BAD_REQUEST,
            initial_detail={
                "message": "Validation failed",
                "resolution": "Please check the data you provided",
                "error_code": "validation_error",
            },
        ),
    )

    app.add_exception_handler(
        NotFoundError,
        create_exception_handler(
            status_code=status.HTTP_404_NOT_FOUND,
            initial_detail={
                "message": "Resource not found",
                "resolution": "Please check the identifiers you provided",
                "error_code": "not_found",
            },
        ),
    )

    app.add_exception_handler(
        UnauthorizedError,
        create_exception_handler(
            status_code=status.HTTP_403_FORBIDDEN,
            initial_detail={
                "message": "Unauthorized access",
                "resolution": "You do not have permission to perform this action",
                "error_code": "unauthorized",
            },
        ),
    )

    app.add_exception_handler(
        ConflictError,
        create_exception_handler(
            status_code=status.HTTP_409_CONFLICT,
            initial_detail={
                "message": "Conflict with the current state",
                "resolution": "Please refresh the resource and try again",
                "error_code": "conflict",
            },
        ),
    )

    app.add_exception_handler(
        UnAuthenticated,
        create_exception_handler(
            status_code=status.HTTP_401_UNAUTHORIZED,
            initial_detail={
                "message": "User not authenticated.",
                "resolution": "Please request a new token or signin.",
                "error_code": "unauthenticated",
            },
        ),
    )

    app.add_exception_handler(
        InvalidToken,
        create_exception_handler(
            status_code=status.HTTP_401_UNAUTHORIZED,
            initial_detail={
                "message": "Token is invalid or expired",
                "resolution": "Please request a new token",
                "error_code": "invalid_token",
            },
        ),
    )

    app.add_exception_handler(
        InvalidCredentials,
        create_exception_handler(
            status_code=status.HTTP_401_UNAUTHORIZED,
            initial_detail={
                "message": "Invalid email or password",
                "resolution": "Please check your credentials and try again",
                "error_code": "invalid_credentials",
            },
        ),
    )

    @app.exception_handler(SQLAlchemyError)
    async def database_error(request, exc):
        logger.error(f"Database error at {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            content={
                "message": "Database error occurred",
                "resolution": "Please try again later",
                "error_code": "database_error",
            },
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
