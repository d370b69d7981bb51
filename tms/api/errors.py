"""
Error responses.

Maps the core's error kinds to HTTP status codes.
"""

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tms.domain import BrokerError, ErrorKind

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 400,
    ErrorKind.INSUFFICIENT_CAPACITY: 400,
    ErrorKind.CONFLICT: 409,
}


async def broker_error_handler(request: Request, exc: BrokerError) -> JSONResponse:
    body = exc.to_dict()
    body["path"] = request.url.path
    body["timestamp"] = datetime.now(timezone.utc).isoformat()
    return JSONResponse(status_code=STATUS_BY_KIND[exc.kind], content=body)


def register_error_handlers(application: FastAPI) -> None:
    application.add_exception_handler(BrokerError, broker_error_handler)
