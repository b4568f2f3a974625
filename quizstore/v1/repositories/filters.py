"""
Compile where / order_by dictionaries into SQLAlchemy expressions.

A where dict maps field names to either a plain value (equality) or an
operator dict::

    {"email": "a@quiz.io"}
    {"stars": {"gte": 10}, "role": {"in": ["ADMIN"]}}
    {"title": {"contains": "math", "mode": "insensitive"}}
    {"OR": [{"is_free": True}, {"required_stars": 0}]}
    {"questions": {"some": {"type": "QCU"}}}
    {"theme": {"is": {"is_active": True}}}
"""
import uuid

from sqlalchemy import and_, or_, not_, true, false, func, inspect
from sqlalchemy.types import Uuid

from quizstore.utils.errors import QueryValidationError

SCALAR_OPERATORS = {
    "equals",
    "in",
    "not_in",
    "lt",
    "lte",
    "gt",
    "gte",
    "contains",
    "starts_with",
    "ends_with",
    "not",
    "mode",
}
TO_MANY_OPERATORS = {"some", "every", "none"}
TO_ONE_OPERATORS = {"is", "is_not"}


def as_list(value):
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def coerce_value(column_type, value, model_name=None):
    # UUID columns bind .hex, so string ids from callers are parsed first
    if isinstance(column_type, Uuid) and isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError:
            raise QueryValidationError(f"'{value}' is not a valid UUID", model_name)
    return value


def unique_fields(model):
    """Primary key plus every column declared unique=True."""
    mapper = inspect(model)
    keys = []
    for key, column in mapper.columns.items():
        if column.primary_key or column.unique:
            keys.append(key)
    return keys


def ensure_unique_where(model, where):
    if not isinstance(where, dict) or not where:
        raise QueryValidationError(
            f"A unique filter is required for {model.__name__}", model.__name__
        )
    for key in unique_fields(model):
        if key not in where:
            continue
        value = where[key]
        # only an exact match on the key pins a single row
        if isinstance(value, dict):
            if set(value) != {"equals"}:
                continue
            value = value["equals"]
        if value is not None:
            return
    raise QueryValidationError(
        f"Filter on {model.__name__} must set one of {unique_fields(model)}",
        model.__name__,
    )


def compare(expr, value, column_type=None, model_name=None):
    """Build the predicate for one column-like expression."""
    if value is None:
        return expr.is_(None)
    if not isinstance(value, dict):
        return expr == coerce_value(column_type, value, model_name)

    unknown = set(value) - SCALAR_OPERATORS
    if unknown:
        raise QueryValidationError(
            f"Unknown filter operator(s) {sorted(unknown)}", model_name
        )
    mode = value.get("mode", "default")
    if mode not in ("default", "insensitive"):
        raise QueryValidationError(f"Unknown mode '{mode}'", model_name)
    insensitive = mode == "insensitive"

    def c(v):
        return coerce_value(column_type, v, model_name)

    clauses = []
    for op, operand in value.items():
        if op == "mode":
            continue
        if op == "equals":
            if operand is None:
                clauses.append(expr.is_(None))
            elif insensitive and isinstance(operand, str):
                clauses.append(func.lower(expr) == operand.lower())
            else:
                clauses.append(expr == c(operand))
        elif op in ("in", "not_in"):
            if not isinstance(operand, (list, tuple, set)):
                raise QueryValidationError(f"'{op}' expects a list", model_name)
            items = [c(v) for v in operand]
            if insensitive:
                lowered = [v.lower() if isinstance(v, str) else v for v in items]
                target = func.lower(expr)
                clauses.append(target.in_(lowered) if op == "in" else target.not_in(lowered))
            else:
                clauses.append(expr.in_(items) if op == "in" else expr.not_in(items))
        elif op == "lt":
            clauses.append(expr < c(operand))
        elif op == "lte":
            clauses.append(expr <= c(operand))
        elif op == "gt":
            clauses.append(expr > c(operand))
        elif op == "gte":
            clauses.append(expr >= c(operand))
        elif op in ("contains", "starts_with", "ends_with"):
            if not isinstance(operand, str):
                raise QueryValidationError(f"'{op}' expects a string", model_name)
            if op == "contains":
                method = expr.icontains if insensitive else expr.contains
            elif op == "starts_with":
                method = expr.istartswith if insensitive else expr.startswith
            else:
                method = expr.iendswith if insensitive else expr.endswith
            clauses.append(method(operand, autoescape=True))
        elif op == "not":
            if isinstance(operand, dict):
                nested = dict(operand)
                if insensitive:
                    nested.setdefault("mode", "insensitive")
                clauses.append(not_(compare(expr, nested, column_type, model_name)))
            elif operand is None:
                clauses.append(expr.is_not(None))
            else:
                clauses.append(expr != c(operand))

    return and_(*clauses) if clauses else true()


def _relation_filter(model, relationship, value):
    target = relationship.mapper.class_
    attr = getattr(model, relationship.key)

    if relationship.uselist:
        if not isinstance(value, dict) or not set(value) <= TO_MANY_OPERATORS:
            raise QueryValidationError(
                f"Filter on list relation '{relationship.key}' needs some/every/none",
                model.__name__,
            )
        clauses = []
        for op, nested in value.items():
            criterion = build_where(target, nested)
            if op == "some":
                clauses.append(attr.any(criterion))
            elif op == "every":
                clauses.append(not_(attr.any(not_(criterion))))
            else:
                clauses.append(not_(attr.any(criterion)))
        return and_(*clauses) if clauses else true()

    if value is None:
        return not_(attr.has())
    if not isinstance(value, dict):
        raise QueryValidationError(
            f"Filter on relation '{relationship.key}' must be a dict", model.__name__
        )
    if not (set(value) & TO_ONE_OPERATORS):
        return attr.has(build_where(target, value))

    clauses = []
    for op, nested in value.items():
        if op not in TO_ONE_OPERATORS:
            raise QueryValidationError(
                f"Cannot mix '{op}' with is/is_not on '{relationship.key}'", model.__name__
            )
        if op == "is":
            clauses.append(not_(attr.has()) if nested is None else attr.has(build_where(target, nested)))
        else:
            clauses.append(attr.has() if nested is None else not_(attr.has(build_where(target, nested))))
    return and_(*clauses)


def build_where(model, where):
    """Return a boolean clause for ``where``; an empty filter matches everything."""
    if where is None:
        return true()
    if not isinstance(where, dict):
        raise QueryValidationError("where must be a dict", model.__name__)

    mapper = inspect(model)
    clauses = []
    for key, value in where.items():
        if key == "AND":
            clauses.append(and_(true(), *[build_where(model, w) for w in as_list(value)]))
        elif key == "OR":
            parts = [build_where(model, w) for w in as_list(value)]
            clauses.append(or_(*parts) if parts else false())
        elif key == "NOT":
            parts = [build_where(model, w) for w in as_list(value)]
            clauses.append(not_(and_(true(), *parts)))
        elif key in mapper.relationships:
            clauses.append(_relation_filter(model, mapper.relationships[key], value))
        elif key in mapper.columns:
            column = mapper.columns[key]
            clauses.append(compare(getattr(model, key), value, column.type, model.__name__))
        else:
            raise QueryValidationError(
                f"Unknown field '{key}' on {model.__name__}", model.__name__
            )
    return and_(*clauses) if clauses else true()


def parse_order_by(model, order_by, allowed=None):
    """Normalize order_by into a list of (field, descending) pairs."""
    if not order_by:
        return []
    mapper = inspect(model)
    pairs = []
    for item in as_list(order_by):
        if not isinstance(item, dict):
            raise QueryValidationError("order_by entries must be dicts", model.__name__)
        for key, direction in item.items():
            if key not in mapper.columns:
                raise QueryValidationError(
                    f"Cannot order {model.__name__} by '{key}'", model.__name__
                )
            if allowed is not None and key not in allowed:
                raise QueryValidationError(
                    f"'{key}' must appear in by to be used in order_by", model.__name__
                )
            if direction not in ("asc", "desc"):
                raise QueryValidationError(
                    f"Sort direction must be 'asc' or 'desc', got '{direction}'",
                    model.__name__,
                )
            pairs.append((key, direction == "desc"))
    return pairs
