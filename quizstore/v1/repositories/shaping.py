from sqlalchemy import inspect
from sqlalchemy.orm import with_parent

from quizstore.utils.errors import QueryValidationError
from quizstore.v1.repositories.reads import select_rows, count_rows

LIST_RELATION_ARGS = {
    "where",
    "order_by",
    "cursor",
    "take",
    "skip",
    "distinct",
    "select",
    "include",
    "omit",
}
SINGLE_RELATION_ARGS = {"select", "include", "omit"}


def check_shape_args(model, select=None, include=None, omit=None):
    name = model.__name__
    if select is not None and include is not None:
        raise QueryValidationError("Use either select or include, not both", name)
    if select is not None and omit is not None:
        raise QueryValidationError("Use either select or omit, not both", name)

    mapper = inspect(model)
    for label, spec, allowed in (
        ("select", select, set(mapper.columns.keys()) | set(mapper.relationships.keys()) | {"_count"}),
        ("include", include, set(mapper.relationships.keys()) | {"_count"}),
        ("omit", omit, set(mapper.columns.keys())),
    ):
        if spec is None:
            continue
        if not isinstance(spec, dict):
            raise QueryValidationError(f"{label} must be a dict", name)
        unknown = set(spec) - allowed
        if unknown:
            raise QueryValidationError(
                f"Unknown field(s) {sorted(unknown)} in {label} for {name}", name
            )


def _relation_counts(session, model, obj, spec):
    mapper = inspect(model)
    list_relations = [rel for rel in mapper.relationships if rel.uselist]

    if spec is True:
        wanted = {rel.key: True for rel in list_relations}
    elif isinstance(spec, dict) and set(spec) == {"select"} and isinstance(spec["select"], dict):
        wanted = spec["select"]
    else:
        raise QueryValidationError("_count expects True or {'select': {...}}", model.__name__)

    counts = {}
    for key, rel_spec in wanted.items():
        if not rel_spec:
            continue
        rel = mapper.relationships.get(key)
        if rel is None or not rel.uselist:
            raise QueryValidationError(f"Cannot count '{key}' on {model.__name__}", model.__name__)
        where = rel_spec.get("where") if isinstance(rel_spec, dict) else None
        counts[key] = count_rows(
            session,
            rel.mapper.class_,
            criteria=[with_parent(obj, getattr(model, key))],
            where=where,
        )
    return counts


def _load_relation(session, model, obj, rel, spec):
    target = rel.mapper.class_
    args = {} if spec is True else spec
    if not isinstance(args, dict):
        raise QueryValidationError(f"Invalid arguments for relation '{rel.key}'", model.__name__)
    allowed = LIST_RELATION_ARGS if rel.uselist else SINGLE_RELATION_ARGS
    unknown = set(args) - allowed
    if unknown:
        raise QueryValidationError(
            f"Unsupported argument(s) {sorted(unknown)} for relation '{rel.key}'", model.__name__
        )

    select, include, omit = args.get("select"), args.get("include"), args.get("omit")
    if rel.uselist:
        rows = select_rows(
            session,
            target,
            where=args.get("where"),
            order_by=args.get("order_by"),
            cursor=args.get("cursor"),
            take=args.get("take"),
            skip=args.get("skip"),
            distinct=args.get("distinct"),
            criteria=[with_parent(obj, getattr(model, rel.key))],
        )
        return [shape(session, target, row, select, include, omit) for row in rows]

    related = getattr(obj, rel.key)
    if related is None:
        return None
    return shape(session, target, related, select, include, omit)


def _expand(session, model, obj, key, spec, out):
    if key == "_count":
        out["_count"] = _relation_counts(session, model, obj, spec)
    else:
        rel = inspect(model).relationships[key]
        out[key] = _load_relation(session, model, obj, rel, spec)


def shape(session, model, obj, select=None, include=None, omit=None):
    """Turn a mapped row into a plain dict following select / include / omit."""
    check_shape_args(model, select, include, omit)
    mapper = inspect(model)

    if select is not None:
        out = {}
        for key, spec in select.items():
            if not spec:
                continue
            if key in mapper.columns:
                out[key] = getattr(obj, key)
            else:
                _expand(session, model, obj, key, spec, out)
        return out

    omitted = {key for key, flag in (omit or {}).items() if flag}
    out = {key: getattr(obj, key) for key in mapper.columns.keys() if key not in omitted}
    for key, spec in (include or {}).items():
        if spec:
            _expand(session, model, obj, key, spec, out)
    return out
