"""
Error handler for the AgroConnect API.

Translates lifecycle failures into JSON responses and logs them with request
context.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import InvalidArgumentError, LifecycleError


logger = logging.getLogger(__name__)


class ErrorHandler:
    """
    Maps LifecycleError subclasses onto HTTP responses.

    Attributes:
        include_details: Whether error details are echoed back to the client
    """

    def __init__(self, include_details: bool = False):
        """
        Initialize error handler.

        Args:
            include_details: Echo error details in responses (development only)
        """
        self.include_details = include_details

    def install(self, app: FastAPI) -> None:
        """Register the exception handlers on a FastAPI application."""
        app.add_exception_handler(LifecycleError, self.handle_lifecycle_error)
        app.add_exception_handler(RequestValidationError, self.handle_validation_error)
        app.add_exception_handler(Exception, self.handle_unexpected_error)

    async def handle_lifecycle_error(
        self,
        request: Request,
        error: LifecycleError
    ) -> JSONResponse:
        """
        Build the response for an expected failure.

        Args:
            request: Incoming request
            error: The raised lifecycle error

        Returns:
            JSON response with the error's status code
        """
        self._log_error(request, error, level=logging.WARNING)
        return JSONResponse(
            status_code=error.status_code,
            content=self.build_body(error),
        )

    async def handle_validation_error(
        self,
        request: Request,
        error: RequestValidationError
    ) -> JSONResponse:
        """
        Report malformed request bodies and query parameters as InvalidArgument.

        The message names the first failing field; the full list of
        validation errors goes into the details.
        """
        errors = jsonable_encoder(error.errors())
        invalid = InvalidArgumentError(
            self._describe_validation_errors(errors),
            {"errors": errors},
        )
        return await self.handle_lifecycle_error(request, invalid)

    @staticmethod
    def _describe_validation_errors(errors: list) -> str:
        if not errors:
            return "Invalid request"
        first = errors[0]
        location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "request"
        return f"Invalid {field}: {first.get('msg', 'invalid value')}"

    async def handle_unexpected_error(
        self,
        request: Request,
        error: Exception
    ) -> JSONResponse:
        """Catch-all for failures that are not part of the taxonomy."""
        self._log_error(request, error, level=logging.ERROR)
        body = {"status": "error", "error": "Internal server error"}
        if self.include_details:
            body["details"] = {"type": type(error).__name__, "message": str(error)}
        return JSONResponse(status_code=500, content=body)

    def build_body(self, error: LifecycleError) -> Dict[str, Any]:
        """Serialize a lifecycle error into the API's error envelope."""
        body = {
            "status": "error",
            "error": error.message,
            "kind": error.kind,
        }
        if self.include_details and error.details:
            body["details"] = error.details
        return body

    def _log_error(
        self,
        request: Request,
        error: Exception,
        level: int
    ) -> None:
        """
        Log error with timestamp, request context, and diagnostic data.

        Args:
            request: Request being served when the error occurred
            error: The exception that occurred
            level: Logging level to use
        """
        context = {
            'timestamp': datetime.now().isoformat(),
            'method': request.method,
            'path': request.url.path,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'query': dict(request.query_params),
        }

        logger.log(
            level,
            f"Request failed: {request.method} {request.url.path} | "
            f"Error: {type(error).__name__}: {str(error)}"
        )
        logger.debug(f"Full error context: {context}")
