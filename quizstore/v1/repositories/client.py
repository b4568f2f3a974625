import json
import logging
import time
from contextlib import contextmanager
from typing import Optional

from quizstore.db.database import SessionLocal
from quizstore.utils.errors import TransactionTimeoutError, translated_errors
from quizstore.v1 import models
from quizstore.v1.repositories.base import Repository, TransactionHandle
from quizstore.v1.schemas import auth, mail, quiz, user

logger = logging.getLogger(__name__)


class EmailHistoryRepository(Repository):
    def _prepare(self, payload):
        # recipient list and error list are stored as JSON text
        for key in ("recipient_emails", "errors"):
            if isinstance(payload.get(key), list):
                payload[key] = json.dumps(payload[key])
        return payload


# (attribute, repository class, model, create schema, update schema)
DELEGATES = [
    ("user", Repository, models.User, user.UserCreate, user.UserUpdate),
    (
        "email_verification",
        Repository,
        models.EmailVerification,
        auth.EmailVerificationCreate,
        auth.EmailVerificationUpdate,
    ),
    (
        "password_reset",
        Repository,
        models.PasswordReset,
        auth.PasswordResetCreate,
        auth.PasswordResetUpdate,
    ),
    ("theme", Repository, models.Theme, quiz.ThemeCreate, quiz.ThemeUpdate),
    ("quiz", Repository, models.Quiz, quiz.QuizCreate, quiz.QuizUpdate),
    ("question", Repository, models.Question, quiz.QuestionCreate, quiz.QuestionUpdate),
    ("option", Repository, models.Option, quiz.OptionCreate, quiz.OptionUpdate),
    (
        "quiz_attempt",
        Repository,
        models.QuizAttempt,
        quiz.QuizAttemptCreate,
        quiz.QuizAttemptUpdate,
    ),
    (
        "quiz_extra_attempt",
        Repository,
        models.QuizExtraAttempt,
        quiz.QuizExtraAttemptCreate,
        quiz.QuizExtraAttemptUpdate,
    ),
    (
        "email_history",
        EmailHistoryRepository,
        models.EmailHistory,
        mail.EmailHistoryCreate,
        mail.EmailHistoryUpdate,
    ),
]


class Client:
    """
    Entry point holding one delegate per entity.

    Build it once at startup and hand it (or single delegates) to the code
    that needs them::

        client = Client(SessionLocal)
        client.user.find_unique(where={"email": "a@quiz.io"})

        with client.transaction() as tx:
            tx.user.update(where={"id": user_id}, data={"stars": {"decrement": 5}})
            tx.quiz_extra_attempt.create(data={...})
    """

    def __init__(self, session_factory=SessionLocal, transaction: Optional[TransactionHandle] = None):
        self._session_factory = session_factory
        self._transaction = transaction
        for attr, repository_cls, model, create_schema, update_schema in DELEGATES:
            setattr(
                self,
                attr,
                repository_cls(model, create_schema, update_schema, session_factory, transaction),
            )

    @property
    def in_transaction(self):
        return self._transaction is not None

    @contextmanager
    def transaction(
        self,
        isolation_level: Optional[str] = None,
        max_wait: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        """
        Run several delegate calls atomically.

        Yields a Client whose delegates share one session. The block commits
        when it exits normally and rolls back on any exception. ``max_wait``
        bounds the time spent acquiring a connection, ``timeout`` the time the
        block may run; both are in seconds. A transaction opened from a
        transaction-bound client joins the outer one.
        """
        if self._transaction is not None:
            yield self
            return

        session = self._session_factory()
        try:
            requested = time.monotonic()
            with translated_errors("transaction"):
                options = {"isolation_level": isolation_level} if isolation_level else {}
                session.connection(execution_options=options)
            waited = time.monotonic() - requested
            if max_wait is not None and waited > max_wait:
                raise TransactionTimeoutError(
                    f"Waited {waited:.3f}s for a connection, max_wait is {max_wait}s"
                )

            handle = TransactionHandle(session, timeout=timeout)
            yield Client(self._session_factory, transaction=handle)

            handle.check()
            with translated_errors("transaction"):
                session.commit()
            logger.info("Transaction committed after %.3fs", time.monotonic() - handle.started)
        except Exception:
            session.rollback()
            logger.info("Transaction rolled back")
            raise
        finally:
            session.close()

    def run_in_transaction(self, fn, **options):
        """Call ``fn(tx)`` inside :meth:`transaction` and return its result."""
        with self.transaction(**options) as tx:
            return fn(tx)
