import logging
from contextlib import contextmanager
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)


class QuizStoreError(Exception):
    """Base class for every error raised by the data-access client."""

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.model = model


class NotFoundError(QuizStoreError):
    pass


class ConstraintViolationError(QuizStoreError):
    pass


class UniqueConstraintError(ConstraintViolationError):
    pass


class ForeignKeyConstraintError(ConstraintViolationError):
    pass


class QueryValidationError(QuizStoreError):
    """Malformed arguments, rejected before any SQL is sent."""

    def __init__(self, message: str, model: Optional[str] = None, errors: Optional[list] = None):
        super().__init__(message, model)
        self.errors = errors or []


class TransportError(QuizStoreError):
    pass


class TransactionTimeoutError(TransportError):
    pass


class InternalError(QuizStoreError):
    pass


def _integrity_error(exc: sa_exc.IntegrityError, model: Optional[str]) -> ConstraintViolationError:
    text = str(exc.orig).lower()
    if "foreign key" in text or "violates foreign key" in text:
        return ForeignKeyConstraintError(f"Foreign key constraint failed: {exc.orig}", model)
    if "unique" in text or "duplicate" in text:
        return UniqueConstraintError(f"Unique constraint failed: {exc.orig}", model)
    return ConstraintViolationError(f"Constraint failed: {exc.orig}", model)


def translate(exc: Exception, model: Optional[str] = None) -> QuizStoreError:
    """Map a SQLAlchemy or pydantic exception onto the client's error categories."""
    if isinstance(exc, QuizStoreError):
        return exc
    if isinstance(exc, PydanticValidationError):
        return QueryValidationError(
            f"Invalid data for {model}: {exc.error_count()} error(s)", model, exc.errors()
        )
    if isinstance(exc, sa_exc.IntegrityError):
        return _integrity_error(exc, model)
    if isinstance(exc, sa_exc.TimeoutError):
        return TransactionTimeoutError(f"Timed out waiting for a connection: {exc}", model)
    if isinstance(exc, (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.DisconnectionError)):
        return TransportError(f"Database unreachable: {exc}", model)
    return InternalError(f"Unexpected database error: {exc}", model)


@contextmanager
def translated_errors(model: Optional[str] = None):
    try:
        yield
    except QuizStoreError:
        raise
    except (sa_exc.SQLAlchemyError, PydanticValidationError) as e:
        err = translate(e, model)
        if isinstance(err, (TransportError, InternalError)):
            logger.error("%s store failure: %s", model or "client", e)
        raise err from e
