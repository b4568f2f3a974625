"""
Aggregate and group-by queries.

Aggregate specs follow the shape ``{"_sum": {"stars_cost": True}}``;
``_count`` also accepts ``True`` (row count) or ``{"_all": True, field: True}``.
"""
from decimal import Decimal

from sqlalchemy import select, func, and_, or_, not_, true, false, inspect
from sqlalchemy.types import Integer, Float, Numeric

from quizstore.utils.errors import QueryValidationError
from quizstore.v1.repositories.filters import build_where, compare, as_list
from quizstore.v1.repositories.reads import window_subquery

AGGREGATES = {
    "_count": func.count,
    "_avg": func.avg,
    "_sum": func.sum,
    "_min": func.min,
    "_max": func.max,
}
NUMERIC_ONLY = {"_avg", "_sum"}


def _is_numeric(column):
    return isinstance(column.type, (Integer, Float, Numeric))


def _normalize(name, value):
    if value is None:
        return None
    if name == "_avg":
        return float(value)
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def _aggregate_columns(model, source, specs):
    """Yield (aggregate name, field or None, labelled expression) triples."""
    mapper = inspect(model)
    name = model.__name__
    columns = []
    for agg, spec in specs.items():
        if spec is None or spec is False:
            continue
        if agg == "_count" and spec is True:
            columns.append((agg, None, func.count().label("_count")))
            continue
        if not isinstance(spec, dict):
            raise QueryValidationError(f"{agg} expects a dict of fields", name)
        for field, flag in spec.items():
            if not flag:
                continue
            if agg == "_count" and field == "_all":
                columns.append((agg, "_all", func.count().label("_count___all")))
                continue
            if field not in mapper.columns:
                raise QueryValidationError(f"Unknown field '{field}' in {agg}", name)
            if agg in NUMERIC_ONLY and not _is_numeric(mapper.columns[field]):
                raise QueryValidationError(f"{agg} needs a numeric field, '{field}' is not", name)
            expr = AGGREGATES[agg](source.c[field])
            columns.append((agg, field, expr.label(f"{agg}__{field}")))
    return columns


def _collect(columns, row):
    result = {}
    for agg, field, expr in columns:
        value = _normalize(agg, row._mapping[expr.name])
        if field is None:
            result[agg] = value
        else:
            result.setdefault(agg, {})[field] = value
    return result


def aggregate(session, model, where=None, order_by=None, cursor=None, take=None, skip=None, **specs):
    unknown = set(specs) - set(AGGREGATES)
    if unknown:
        raise QueryValidationError(f"Unknown aggregate(s) {sorted(unknown)}", model.__name__)

    source = window_subquery(
        session, model, where=where, order_by=order_by, cursor=cursor, take=take, skip=skip
    )
    if source is None:
        # missing cursor row: aggregate over nothing
        source = select(model).where(false()).subquery()

    columns = _aggregate_columns(model, source, specs)
    if not columns:
        return {}
    row = session.execute(select(*[expr for _, _, expr in columns]).select_from(source)).one()
    return _collect(columns, row)


def _having_clause(model, source, having, by):
    if having is None:
        return true()
    mapper = inspect(model)
    name = model.__name__
    clauses = []
    for key, value in having.items():
        if key == "AND":
            clauses.append(and_(true(), *[_having_clause(model, source, h, by) for h in as_list(value)]))
        elif key == "OR":
            parts = [_having_clause(model, source, h, by) for h in as_list(value)]
            clauses.append(or_(*parts) if parts else false())
        elif key == "NOT":
            parts = [_having_clause(model, source, h, by) for h in as_list(value)]
            clauses.append(not_(and_(true(), *parts)))
        elif key in mapper.columns:
            column = mapper.columns[key]
            if not isinstance(value, dict):
                value = {"equals": value}
            plain = {op: v for op, v in value.items() if op not in AGGREGATES}
            if plain:
                if key not in by:
                    raise QueryValidationError(
                        f"'{key}' must appear in by to be filtered in having", name
                    )
                clauses.append(compare(source.c[key], plain, column.type, name))
            for agg in set(value) & set(AGGREGATES):
                if agg in NUMERIC_ONLY and not _is_numeric(column):
                    raise QueryValidationError(f"{agg} needs a numeric field, '{key}' is not", name)
                clauses.append(compare(AGGREGATES[agg](source.c[key]), value[agg], None, name))
        else:
            raise QueryValidationError(f"Unknown field '{key}' in having", name)
    return and_(*clauses) if clauses else true()


def _group_order(model, source, order_by, by):
    name = model.__name__
    clauses = []
    for item in as_list(order_by or []):
        if not isinstance(item, dict):
            raise QueryValidationError("order_by entries must be dicts", name)
        for key, direction in item.items():
            if key in AGGREGATES:
                if not isinstance(direction, dict):
                    raise QueryValidationError(f"order_by {key} expects a dict", name)
                for field, agg_direction in direction.items():
                    if field not in source.c:
                        raise QueryValidationError(f"Unknown field '{field}' in order_by", name)
                    expr = AGGREGATES[key](source.c[field])
                    clauses.append(_direction(expr, agg_direction, name))
            elif key in by:
                clauses.append(_direction(source.c[key], direction, name))
            else:
                raise QueryValidationError(
                    f"'{key}' must appear in by to be used in order_by", name
                )
    return clauses


def _direction(expr, direction, name):
    if direction not in ("asc", "desc"):
        raise QueryValidationError(f"Sort direction must be 'asc' or 'desc', got '{direction}'", name)
    return expr.desc() if direction == "desc" else expr.asc()


def group_by(
    session, model, by, where=None, having=None, order_by=None, take=None, skip=None, **specs
):
    name = model.__name__
    mapper = inspect(model)
    by = [by] if isinstance(by, str) else list(by or [])
    if not by:
        raise QueryValidationError("group_by needs at least one field in by", name)
    for key in by:
        if key not in mapper.columns:
            raise QueryValidationError(f"Cannot group {name} by '{key}'", name)
    unknown = set(specs) - set(AGGREGATES)
    if unknown:
        raise QueryValidationError(f"Unknown aggregate(s) {sorted(unknown)}", name)
    if (take is not None or skip is not None) and not order_by:
        raise QueryValidationError("take / skip in group_by require order_by", name)
    if take is not None and (isinstance(take, bool) or not isinstance(take, int) or take < 0):
        raise QueryValidationError("take must be a non-negative integer", name)
    if skip is not None and (isinstance(skip, bool) or not isinstance(skip, int) or skip < 0):
        raise QueryValidationError("skip must be a non-negative integer", name)

    source = select(model).where(build_where(model, where)).subquery()
    keys = [source.c[key] for key in by]
    columns = _aggregate_columns(model, source, specs)

    stmt = (
        select(*keys, *[expr for _, _, expr in columns])
        .select_from(source)
        .group_by(*keys)
    )
    if having:
        stmt = stmt.having(_having_clause(model, source, having, by))
    ordering = _group_order(model, source, order_by, by)
    if ordering:
        stmt = stmt.order_by(*ordering)
    if skip:
        stmt = stmt.offset(skip)
    if take is not None:
        stmt = stmt.limit(take)

    groups = []
    for row in session.execute(stmt):
        group = {key: row._mapping[key] for key in by}
        group.update(_collect(columns, row))
        groups.append(group)
    return groups
