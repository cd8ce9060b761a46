from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class CareBookError(Exception):
    """Base class for errors raised by the appointment core."""
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(CareBookError):
    status_code = 400


class PermissionDeniedError(CareBookError):
    status_code = 403


class NotFoundError(CareBookError):
    status_code = 404


class ConflictError(CareBookError):
    status_code = 409


class TransportError(CareBookError):
    """The document store failed, or handed back a document that cannot be decoded."""
    status_code = 502

    def __init__(self, detail: str, upstream_status: int = None):
        super().__init__(detail)
        self.upstream_status = upstream_status


def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


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


async def carebook_exception_handler(request: Request, exc: CareBookError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )
