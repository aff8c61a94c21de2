"""Exception handlers translating failures into the error envelope."""

from http import HTTPStatus

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.api.schemas import ErrorBody, SubError
from ordering.errors import ErrorCategory, OrderingError, OrderPartiallyFailed

logger = structlog.get_logger(__name__)


def error_response(
    status_code: int,
    category: ErrorCategory,
    message: str,
    sub_errors: list[SubError] | None = None,
    order_id: str | None = None,
) -> JSONResponse:
    body = ErrorBody(
        http_status=HTTPStatus(status_code).name,
        header=category.value,
        message=message,
        sub_errors=sub_errors or None,
        order_id=order_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


async def handle_ordering_error(request: Request, exc: OrderingError) -> JSONResponse:
    order_id = exc.order_id if isinstance(exc, OrderPartiallyFailed) else None
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, header=exc.category.value, **exc.context)
    return error_response(exc.status_code, exc.category, exc.message, order_id=order_id)


async def handle_domain_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    messages = exc.messages if isinstance(exc.messages, dict) else {"_entity": [str(exc.messages)]}
    sub_errors = [
        SubError(field=str(field), message=str(message))
        for field, field_messages in messages.items()
        for message in (field_messages if isinstance(field_messages, list) else [field_messages])
    ]
    return error_response(400, ErrorCategory.VALIDATION, "Validation failed", sub_errors)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    sub_errors = [
        SubError(
            field=".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            message=error.get("msg", ""),
            value=error.get("input"),
            type=error.get("type"),
        )
        for error in exc.errors()
    ]
    return error_response(400, ErrorCategory.VALIDATION, "Validation failed", sub_errors)


async def handle_object_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return error_response(404, ErrorCategory.NOT_FOUND, str(exc))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path)
    return error_response(500, ErrorCategory.API, "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderingError, handle_ordering_error)
    app.add_exception_handler(ValidationError, handle_domain_validation_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(ObjectNotFoundError, handle_object_not_found)
    app.add_exception_handler(Exception, handle_unexpected_error)
