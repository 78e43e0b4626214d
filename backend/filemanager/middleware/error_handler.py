"""
Exception handlers rendering every failure as {"error": ...}.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from filemanager.errors import FileManagerError, InvalidRequest

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FileManagerError)
    async def handle_file_manager_error(request: Request, exc: FileManagerError) -> JSONResponse:
        cause = exc.__cause__
        logger.info(
            f"Request failed: {exc.message} (status: {exc.status_code})",
            extra={
                "path": request.url.path,
                "method": request.method,
                "cause": str(cause) if cause else None,
            },
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    # Malformed or non-object JSON bodies are client errors like a missing field
    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = InvalidRequest("Invalid request body")
        logger.info(
            f"Invalid request body on {request.method} {request.url.path}",
            extra={"path": request.url.path, "method": request.method, "errors": str(exc.errors())},
        )
        return JSONResponse(status_code=error.status_code, content={"error": error.message})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"}
        )
