"""
Query construction for the ``cars`` table.

Every builder returns ``(query, params)`` where ``query`` uses psycopg's
``%s`` positional placeholders and ``params`` holds the values in placeholder
order. Values are never interpolated into the query text; the only literals
rendered are LIMIT and OFFSET, after they have been checked to be
non-negative integers.
"""

from typing import Sequence

from carstore.car.models import Car, CarFilter, CarPatch
from carstore.errors import InvalidArgument, QueryBuildError

TABLE = "cars"
COLUMNS = ("car_id", "reg_num", "mark", "model", "year")

# (filter attribute, column, accepted value type), in the order constraints are applied
FILTER_PREDICATES = (
    ("ids", "car_id", str),
    ("reg_nums", "reg_num", str),
    ("marks", "mark", str),
    ("models", "model", str),
    ("years", "year", int),
)


def _placeholders(count: int) -> str:
    return ", ".join(["%s"] * count)


def _check_value(value, expected: type, column: str):
    # bool is an int subclass but never a valid year
    if not isinstance(value, expected) or isinstance(value, bool):
        raise QueryBuildError(
            f"cannot bind {type(value).__name__} value to column {column}",
            operation="build_fetch",
        )
    return value


def _check_bound(name: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidArgument(f"{name} must be a non-negative integer", operation="build_fetch")
    return value


def build_fetch(car_filter: CarFilter) -> tuple[str, tuple]:
    """
    Build a SELECT for the cars matching a filter.

    Each non-empty predicate adds ``<column> IN (...)``, joined with AND, in
    the fixed order id, reg_num, mark, model, year, so equal filters always
    yield identical text and parameter order.
    """
    offset = _check_bound("offset", car_filter.offset)
    limit = _check_bound("limit", car_filter.limit)

    conditions = []
    params = []
    for attribute, column, expected in FILTER_PREDICATES:
        values = getattr(car_filter, attribute) or []
        if not values:
            continue
        conditions.append(f"{column} IN ({_placeholders(len(values))})")
        params.extend(_check_value(v, expected, column) for v in values)

    query = f"SELECT {', '.join(COLUMNS)} FROM {TABLE}"
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += f" LIMIT {limit} OFFSET {offset}"

    return query, tuple(params)


def build_insert_many(cars: Sequence[Car]) -> tuple[str, tuple]:
    """
    Build a multi-row INSERT. The id column is left to the database.

    Returns the generated ids via ``RETURNING car_id``.
    """
    if not cars:
        raise InvalidArgument("no cars to insert", operation="build_insert_many")

    rows = []
    params = []
    for car in cars:
        rows.append("(%s, %s, %s, %s)")
        params.extend((car.reg_num, car.mark, car.model, car.year or None))

    query = (
        f"INSERT INTO {TABLE} (reg_num, mark, model, year) VALUES "
        + ", ".join(rows)
        + " RETURNING car_id"
    )
    return query, tuple(params)


def build_partial_update(patch: CarPatch) -> tuple[str, tuple]:
    """Build an UPDATE that sets only the supplied fields of ``patch``."""
    if not patch.id:
        raise InvalidArgument("car id is required", operation="build_partial_update")

    fields = patch.supplied()
    if not fields:
        raise InvalidArgument("nothing to update", operation="build_partial_update")
    if "year" in fields:
        # 0 and None both store "unknown"
        fields["year"] = fields["year"] or None

    assignments = [f"{column} = %s" for column in fields]
    params = list(fields.values())
    params.append(patch.id)

    query = f"UPDATE {TABLE} SET {', '.join(assignments)} WHERE car_id = %s"
    return query, tuple(params)


def build_delete(car_id: str) -> tuple[str, tuple]:
    """Build a DELETE for a single car."""
    if not car_id:
        raise InvalidArgument("car id is required", operation="build_delete")
    return f"DELETE FROM {TABLE} WHERE car_id = %s", (car_id,)
