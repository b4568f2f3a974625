import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from quizstore.db.database import SessionLocal
from quizstore.utils.errors import (
    QuizStoreError,
    NotFoundError,
    ConstraintViolationError,
    QueryValidationError,
    TransportError,
)
from quizstore.v1.repositories import Client

logger = logging.getLogger(__name__)

_client = None

STATUS_CODES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConstraintViolationError, status.HTTP_409_CONFLICT),
    # literal: the 422 constant's name differs across Starlette releases
    (QueryValidationError, 422),
    (TransportError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def get_client() -> Client:
    """FastAPI dependency returning the process-wide client."""
    global _client
    if _client is None:
        _client = Client(SessionLocal)
    return _client


def status_for(error: QuizStoreError) -> int:
    for error_cls, code in STATUS_CODES:
        if isinstance(error, error_cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def quizstore_error_handler(request: Request, exc: QuizStoreError):
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    body = {"detail": exc.message, "error": type(exc).__name__}
    if exc.model:
        body["model"] = exc.model
    if isinstance(exc, QueryValidationError) and exc.errors:
        body["errors"] = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors
        ]
    return JSONResponse(status_code=code, content=body)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(QuizStoreError, quizstore_error_handler)
