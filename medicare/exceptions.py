import logging
from typing import Optional
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIException(HTTPException):
    status_code_default = 500
    code = "server_error"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.status_code_default, detail=detail)


class InvalidInput(APIException):
    status_code_default = 400
    code = "invalid_input"


class AuthError(APIException):
    status_code_default = 401
    code = "auth_error"


class Forbidden(APIException):
    status_code_default = 403
    code = "forbidden"


class NotFound(APIException):
    status_code_default = 404
    code = "not_found"


class Conflict(APIException):
    status_code_default = 409
    code = "conflict"


class StorageError(APIException):
    """Persistence failure. The detail never leaves the server."""
    status_code_default = 500
    code = "storage_error"

    def __init__(self, detail: str = "Storage failure"):
        super().__init__(detail)

    @property
    def public_message(self) -> str:
        return "Server error"


def public_message(exc: APIException) -> str:
    if isinstance(exc, StorageError):
        return exc.public_message
    return str(exc.detail)


def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


def create_success_response(data) -> dict:
    """Create a standardized success response"""
    return {
        "success": True,
        "data": data,
        "error": None
    }


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc.detail}")
    message = public_message(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(message, exc.status_code)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", 401)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=create_error_response(message, 400))
