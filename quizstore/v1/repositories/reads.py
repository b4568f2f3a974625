from sqlalchemy import select, func, and_, or_, inspect

from quizstore.utils.errors import QueryValidationError
from quizstore.v1.repositories.filters import (
    build_where,
    parse_order_by,
    ensure_unique_where,
)


def primary_key(model):
    return inspect(model).primary_key[0].key


def _check_window(model, take, skip):
    if take is not None and (isinstance(take, bool) or not isinstance(take, int)):
        raise QueryValidationError("take must be an integer", model.__name__)
    if skip is not None and (isinstance(skip, bool) or not isinstance(skip, int) or skip < 0):
        raise QueryValidationError("skip must be a non-negative integer", model.__name__)


def _after_cursor(model, order, anchor):
    """Rows at or after ``anchor`` in the given (field, descending) order."""
    branches = []
    for i, (key, desc) in enumerate(order):
        column = getattr(model, key)
        value = getattr(anchor, key)
        equal_prefix = [getattr(model, k) == getattr(anchor, k) for k, _ in order[:i]]
        step = column < value if desc else column > value
        branches.append(and_(*equal_prefix, step))
    # the anchor itself is included
    branches.append(and_(*[getattr(model, k) == getattr(anchor, k) for k, _ in order]))
    return or_(*branches)


def build_statement(
    session,
    model,
    where=None,
    order_by=None,
    cursor=None,
    take=None,
    skip=None,
    criteria=(),
    paginate=True,
):
    """
    Build the SELECT for a list read.

    Returns ``(statement, backwards)``; ``statement`` is None when the cursor
    row does not exist. ``backwards`` is set for a negative ``take``, in which
    case rows come back in reverse and the caller flips them.
    """
    _check_window(model, take, skip)
    stmt = select(model).where(build_where(model, where))
    for criterion in criteria:
        stmt = stmt.where(criterion)

    order = parse_order_by(model, order_by)
    backwards = take is not None and take < 0
    if cursor is not None or take is not None or skip is not None:
        pk = primary_key(model)
        if pk not in [key for key, _ in order]:
            order.append((pk, False))
    if backwards:
        order = [(key, not desc) for key, desc in order]

    if cursor is not None:
        ensure_unique_where(model, cursor)
        anchor = session.execute(
            select(model).where(build_where(model, cursor))
        ).scalar_one_or_none()
        if anchor is None:
            return None, backwards
        stmt = stmt.where(_after_cursor(model, order, anchor))

    stmt = stmt.order_by(
        *[getattr(model, key).desc() if desc else getattr(model, key).asc() for key, desc in order]
    )
    if paginate:
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(abs(take))
    return stmt, backwards


def select_rows(
    session,
    model,
    where=None,
    order_by=None,
    cursor=None,
    take=None,
    skip=None,
    distinct=None,
    criteria=(),
):
    if distinct:
        mapper = inspect(model)
        fields = [distinct] if isinstance(distinct, str) else list(distinct)
        for key in fields:
            if key not in mapper.columns:
                raise QueryValidationError(
                    f"Cannot apply distinct on '{key}'", model.__name__
                )

    stmt, backwards = build_statement(
        session,
        model,
        where=where,
        order_by=order_by,
        cursor=cursor,
        take=take,
        skip=skip,
        criteria=criteria,
        paginate=not distinct,
    )
    if stmt is None:
        return []
    rows = list(session.execute(stmt).scalars().all())

    if distinct:
        # first row per distinct key wins, then the window is applied
        seen = set()
        unique_rows = []
        for row in rows:
            marker = tuple(getattr(row, key) for key in fields)
            if marker in seen:
                continue
            seen.add(marker)
            unique_rows.append(row)
        start = skip or 0
        end = None if take is None else start + abs(take)
        rows = unique_rows[start:end]

    if backwards:
        rows.reverse()
    return rows


def window_subquery(session, model, where=None, order_by=None, cursor=None, take=None, skip=None):
    """The filtered, paginated row set as a subquery, for counts and aggregates."""
    stmt, _ = build_statement(
        session, model, where=where, order_by=order_by, cursor=cursor, take=take, skip=skip
    )
    if stmt is None:
        return None
    return stmt.subquery()


def count_rows(session, model, criteria=(), where=None):
    stmt = select(func.count()).select_from(model).where(build_where(model, where))
    for criterion in criteria:
        stmt = stmt.where(criterion)
    return session.execute(stmt).scalar_one()
