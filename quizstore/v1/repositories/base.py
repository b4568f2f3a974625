import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, List, NamedTuple, Optional

from sqlalchemy import delete as sa_delete, update as sa_update, select as sa_select, func, inspect
from sqlalchemy.exc import IntegrityError

from quizstore.utils.errors import (
    NotFoundError,
    QueryValidationError,
    TransactionTimeoutError,
    UniqueConstraintError,
    translate,
    translated_errors,
)
from quizstore.v1.repositories import aggregates
from quizstore.v1.repositories.filters import build_where, ensure_unique_where
from quizstore.v1.repositories.reads import select_rows, primary_key, window_subquery
from quizstore.v1.repositories.shaping import shape, check_shape_args

logger = logging.getLogger(__name__)

NUMBER_OPERATIONS = {"set", "increment", "decrement", "multiply", "divide"}


class Found(NamedTuple):
    record: Dict[str, Any]


class _NotFound:
    def __bool__(self):
        return False

    def __repr__(self):
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


class TransactionHandle:
    """A session shared by every delegate call made inside one transaction."""

    def __init__(self, session, timeout: Optional[float] = None):
        self.session = session
        self.started = time.monotonic()
        self.deadline = self.started + timeout if timeout is not None else None

    def check(self):
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise TransactionTimeoutError("Transaction exceeded its timeout")


class Repository:
    """
    Query delegate for one entity.

    Every method runs in its own session and commits on success, unless the
    delegate was built for a transaction handle; then the handle's session is
    used and committing is left to the transaction.
    """

    def __init__(self, model, create_schema, update_schema, session_factory, transaction=None):
        self.model = model
        self.create_schema = create_schema
        self.update_schema = update_schema
        self._session_factory = session_factory
        self._transaction = transaction

    @property
    def name(self):
        return self.model.__name__

    @contextmanager
    def _session(self):
        if self._transaction is not None:
            self._transaction.check()
            with translated_errors(self.name):
                yield self._transaction.session
            return

        session = self._session_factory()
        try:
            with translated_errors(self.name):
                yield session
                session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -- data preparation -------------------------------------------------

    def _prepare(self, payload: dict) -> dict:
        """Hook for entity-specific encoding of validated data."""
        return payload

    def _create_payload(self, data):
        if not isinstance(data, dict):
            raise QueryValidationError("data must be a dict", self.name)
        with translated_errors(self.name):
            validated = self.create_schema.model_validate(data)
        # unset None fields are left out so column defaults apply
        payload = {
            key: value
            for key, value in validated.model_dump().items()
            if value is not None or key in validated.model_fields_set
        }
        return self._prepare(payload)

    def _update_values(self, data):
        if not isinstance(data, dict):
            raise QueryValidationError("data must be a dict", self.name)
        with translated_errors(self.name):
            validated = self.update_schema.model_validate(data)
        payload = self._prepare(validated.model_dump(exclude_unset=True))

        columns = inspect(self.model).columns
        values = {}
        for key, value in payload.items():
            if value is None and not columns[key].nullable:
                raise QueryValidationError(f"'{key}' cannot be set to null", self.name)
            if isinstance(value, dict):
                values[key] = self._number_operation(key, value)
            else:
                values[key] = value
        return values

    def _number_operation(self, key, operation):
        ops = [op for op, v in operation.items() if v is not None]
        if len(ops) != 1 or ops[0] not in NUMBER_OPERATIONS:
            raise QueryValidationError(
                f"Update of '{key}' needs exactly one of {sorted(NUMBER_OPERATIONS)}", self.name
            )
        op, operand = ops[0], operation[ops[0]]
        column = getattr(self.model, key)
        if op == "set":
            return operand
        if op == "increment":
            return column + operand
        if op == "decrement":
            return column - operand
        if op == "multiply":
            return column * operand
        if operand == 0:
            raise QueryValidationError(f"Cannot divide '{key}' by zero", self.name)
        # integer columns keep integer semantics
        return column // operand

    # -- reads ------------------------------------------------------------

    def _get_unique(self, session, where):
        ensure_unique_where(self.model, where)
        return session.execute(
            sa_select(self.model).where(build_where(self.model, where))
        ).scalar_one_or_none()

    def find_unique(self, where, select=None, include=None, omit=None):
        check_shape_args(self.model, select, include, omit)
        logger.debug("%s.find_unique where=%s", self.name, where)
        with self._session() as session:
            row = self._get_unique(session, where)
            if row is None:
                return None
            return shape(session, self.model, row, select, include, omit)

    def find_unique_or_throw(self, where, select=None, include=None, omit=None):
        record = self.find_unique(where, select=select, include=include, omit=omit)
        if record is None:
            raise NotFoundError(f"No {self.name} found", self.name)
        return record

    def lookup(self, where, select=None, include=None, omit=None):
        """Unique lookup returning ``Found(record)`` or ``NOT_FOUND``."""
        record = self.find_unique(where, select=select, include=include, omit=omit)
        return NOT_FOUND if record is None else Found(record)

    def find_many(
        self,
        where=None,
        order_by=None,
        cursor=None,
        take=None,
        skip=None,
        distinct=None,
        select=None,
        include=None,
        omit=None,
    ) -> List[dict]:
        check_shape_args(self.model, select, include, omit)
        logger.debug("%s.find_many where=%s order_by=%s take=%s skip=%s", self.name, where, order_by, take, skip)
        with self._session() as session:
            rows = select_rows(
                session,
                self.model,
                where=where,
                order_by=order_by,
                cursor=cursor,
                take=take,
                skip=skip,
                distinct=distinct,
            )
            return [shape(session, self.model, row, select, include, omit) for row in rows]

    def find_first(
        self,
        where=None,
        order_by=None,
        cursor=None,
        take=None,
        skip=None,
        distinct=None,
        select=None,
        include=None,
        omit=None,
    ):
        if take is None:
            take = 1
        rows = self.find_many(
            where=where,
            order_by=order_by,
            cursor=cursor,
            take=-1 if take < 0 else 1,
            skip=skip,
            distinct=distinct,
            select=select,
            include=include,
            omit=omit,
        )
        return rows[0] if rows else None

    def find_first_or_throw(self, where=None, **kwargs):
        record = self.find_first(where=where, **kwargs)
        if record is None:
            raise NotFoundError(f"No {self.name} found", self.name)
        return record

    # -- writes -----------------------------------------------------------

    def create(self, data, select=None, include=None, omit=None):
        check_shape_args(self.model, select, include, omit)
        payload = self._create_payload(data)
        logger.debug("%s.create", self.name)
        with self._session() as session:
            row = self.model(**payload)
            session.add(row)
            session.flush()
            session.refresh(row)
            return shape(session, self.model, row, select, include, omit)

    def _insert_many(self, session, data, skip_duplicates):
        if not isinstance(data, (list, tuple)):
            raise QueryValidationError("data must be a list of dicts", self.name)
        payloads = [self._create_payload(item) for item in data]
        rows = []
        if not skip_duplicates:
            rows = [self.model(**payload) for payload in payloads]
            session.add_all(rows)
            session.flush()
            return rows

        for payload in payloads:
            row = self.model(**payload)
            try:
                with session.begin_nested():
                    session.add(row)
            except IntegrityError as e:
                error = translate(e, self.name)
                if not isinstance(error, UniqueConstraintError):
                    raise error from e
                logger.warning("%s.create_many skipped a duplicate row: %s", self.name, e.orig)
                continue
            rows.append(row)
        return rows

    def create_many(self, data, skip_duplicates: bool = False):
        logger.debug("%s.create_many skip_duplicates=%s", self.name, skip_duplicates)
        with self._session() as session:
            rows = self._insert_many(session, data, skip_duplicates)
            return {"count": len(rows)}

    def create_many_and_return(self, data, skip_duplicates: bool = False, select=None, include=None, omit=None):
        check_shape_args(self.model, select, include, omit)
        with self._session() as session:
            rows = self._insert_many(session, data, skip_duplicates)
            for row in rows:
                session.refresh(row)
            return [shape(session, self.model, row, select, include, omit) for row in rows]

    def update(self, where, data, select=None, include=None, omit=None):
        check_shape_args(self.model, select, include, omit)
        values = self._update_values(data)
        logger.debug("%s.update where=%s fields=%s", self.name, where, sorted(values))
        with self._session() as session:
            row = self._get_unique(session, where)
            if row is None:
                raise NotFoundError(f"No {self.name} found to update", self.name)
            for key, value in values.items():
                setattr(row, key, value)
            session.flush()
            session.refresh(row)
            return shape(session, self.model, row, select, include, omit)

    def _matching_ids(self, where):
        pk = getattr(self.model, primary_key(self.model))
        return sa_select(pk).where(build_where(self.model, where))

    def update_many(self, where=None, data=None):
        values = self._update_values(data)
        logger.debug("%s.update_many where=%s fields=%s", self.name, where, sorted(values))
        with self._session() as session:
            if not values:
                count = session.execute(
                    sa_select(func.count()).select_from(self.model).where(build_where(self.model, where))
                ).scalar_one()
                return {"count": count}
            pk = getattr(self.model, primary_key(self.model))
            # materialize ids so the UPDATE never reads the table it writes
            ids = session.execute(self._matching_ids(where)).scalars().all()
            if not ids:
                return {"count": 0}
            result = session.execute(
                sa_update(self.model)
                .where(pk.in_(ids))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            session.expire_all()
            return {"count": result.rowcount}

    def update_many_and_return(self, where=None, data=None, select=None, include=None, omit=None):
        check_shape_args(self.model, select, include, omit)
        values = self._update_values(data)
        with self._session() as session:
            pk = getattr(self.model, primary_key(self.model))
            ids = session.execute(self._matching_ids(where)).scalars().all()
            if not ids:
                return []
            if values:
                session.execute(
                    sa_update(self.model)
                    .where(pk.in_(ids))
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
            rows = session.execute(
                sa_select(self.model).where(pk.in_(ids)).order_by(pk).execution_options(populate_existing=True)
            ).scalars().all()
            return [shape(session, self.model, row, select, include, omit) for row in rows]

    def upsert(self, where, create, update, select=None, include=None, omit=None):
        check_shape_args(self.model, select, include, omit)
        create_payload = self._create_payload(create)
        values = self._update_values(update)
        logger.debug("%s.upsert where=%s", self.name, where)
        with self._session() as session:
            row = self._get_unique(session, where)
            if row is None:
                row = self.model(**create_payload)
                session.add(row)
            else:
                for key, value in values.items():
                    setattr(row, key, value)
            session.flush()
            session.refresh(row)
            return shape(session, self.model, row, select, include, omit)

    def delete(self, where, select=None, include=None, omit=None):
        check_shape_args(self.model, select, include, omit)
        logger.debug("%s.delete where=%s", self.name, where)
        with self._session() as session:
            row = self._get_unique(session, where)
            if row is None:
                raise NotFoundError(f"No {self.name} found to delete", self.name)
            record = shape(session, self.model, row, select, include, omit)
            pk_name = primary_key(self.model)
            session.execute(
                sa_delete(self.model)
                .where(getattr(self.model, pk_name) == getattr(row, pk_name))
                .execution_options(synchronize_session=False)
            )
            session.expunge(row)
            session.expire_all()
            return record

    def delete_many(self, where=None):
        logger.debug("%s.delete_many where=%s", self.name, where)
        with self._session() as session:
            pk = getattr(self.model, primary_key(self.model))
            ids = session.execute(self._matching_ids(where)).scalars().all()
            if not ids:
                return {"count": 0}
            result = session.execute(
                sa_delete(self.model).where(pk.in_(ids)).execution_options(synchronize_session=False)
            )
            # rows removed by ON DELETE CASCADE may still sit in the identity map
            session.expire_all()
            return {"count": result.rowcount}

    # -- aggregation ------------------------------------------------------

    def count(self, where=None, order_by=None, cursor=None, take=None, skip=None, select=None):
        with self._session() as session:
            if select is None:
                source = window_subquery(
                    session, self.model, where=where, order_by=order_by, cursor=cursor, take=take, skip=skip
                )
                if source is None:
                    return 0
                return session.execute(select_count(source)).scalar_one()
            spec = {key: flag for key, flag in select.items()}
            result = aggregates.aggregate(
                session,
                self.model,
                where=where,
                order_by=order_by,
                cursor=cursor,
                take=take,
                skip=skip,
                _count=spec,
            )
            return result.get("_count", {})

    def aggregate(self, where=None, order_by=None, cursor=None, take=None, skip=None, **specs):
        logger.debug("%s.aggregate where=%s %s", self.name, where, sorted(specs))
        with self._session() as session:
            return aggregates.aggregate(
                session,
                self.model,
                where=where,
                order_by=order_by,
                cursor=cursor,
                take=take,
                skip=skip,
                **specs,
            )

    def group_by(self, by, where=None, having=None, order_by=None, take=None, skip=None, **specs):
        logger.debug("%s.group_by by=%s where=%s", self.name, by, where)
        with self._session() as session:
            return aggregates.group_by(
                session,
                self.model,
                by,
                where=where,
                having=having,
                order_by=order_by,
                take=take,
                skip=skip,
                **specs,
            )


def select_count(source):
    return sa_select(func.count()).select_from(source)
