"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and the
exception handlers that map CrediBill exceptions to HTTP responses.
"""

import time
import traceback
import uuid
from typing import Union

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from credibill.core.config import settings
from credibill.core.exceptions import (
    CrediBillException,
    InvalidStateError,
    NotFoundException,
    unpack_validation_error,
)
from credibill.core.logging import logger


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(request_id=getattr(request.state, "request_id", "")).info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        response_content = {
            "detail": f"Internal Server Error: {exc.__class__.__name__}: {str(exc)}"
        }

        # Stack traces only leave the process in development
        if settings.LOCAL_DEVELOPMENT or settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


# Exception handlers
async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Exception handler for validation errors that occur during request processing.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (Union[RequestValidationError, ValidationError]): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 422 Unprocessable Entity status response. Each error message is a
            dictionary where the key is the location of the validation error in the request,
            and the value is the associated error message.

    Example of JSON output:
        {
            "errors": [
                {"query.now": "Input should be greater than or equal to 0"}
            ]
        }

    """
    error_messages = unpack_validation_error(exc)
    logger.error(f"Validation error: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (NotFoundException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 404 Not Found status response that details the error message.

    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Exception handler for InvalidStateError.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (InvalidStateError): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 409 Conflict status response that details the error message.

    """
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def credibill_exception_handler(request: Request, exc: CrediBillException) -> JSONResponse:
    """Generic exception handler for the remaining CrediBillException types.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (CrediBillException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 400 Bad Request status response that details the error message.
    """
    logger.warning(f"{exc.__class__.__name__} while handling {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})
