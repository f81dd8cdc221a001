"""Filter compilation.

maps each filter operator onto a predicate Expr. values always end up in
Params, the only thing we decide here is whether a value is a number or a
string - numeric-looking strings like "42" become numbers unless the
filter's data_type says otherwise.
"""

import math
import re
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pilotreports.compiler.ast import BoolGroup, Expr, Param, sql
from pilotreports.errors import QueryBuildError
from pilotreports.models.catalog import FieldType
from pilotreports.models.report import Filter, FilterOperator, ReportConfig

NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

NUMBER_TYPES = frozenset({FieldType.NUMERIC, FieldType.INTEGER})
STRING_TYPES = frozenset({FieldType.TEXT, FieldType.ENUM, FieldType.UUID})

COMPARISON_OPS = {
    FilterOperator.EQUALS: "=",
    FilterOperator.NOT_EQUALS: "!=",
    FilterOperator.GREATER_THAN: ">",
    FilterOperator.LESS_THAN: "<",
    FilterOperator.GREATER_THAN_OR_EQUAL: ">=",
    FilterOperator.LESS_THAN_OR_EQUAL: "<=",
}

# operator -> (sql keyword, pattern template)
LIKE_OPS = {
    FilterOperator.CONTAINS: ("ILIKE", "%{}%"),
    FilterOperator.NOT_CONTAINS: ("NOT ILIKE", "%{}%"),
    FilterOperator.STARTS_WITH: ("ILIKE", "{}%"),
    FilterOperator.ENDS_WITH: ("ILIKE", "%{}"),
}


def _to_number(text: str) -> int | float | None:
    if not NUMERIC_RE.match(text):
        return None
    if any(c in text for c in ".eE"):
        number = float(text)
        return number if math.isfinite(number) else None
    return int(text)


def coerce_value(value: Any, data_type: FieldType | None = None) -> Any:
    """Decide how a filter value is bound.

    numbers stay numbers, numeric-looking strings become numbers, anything
    else is a string. an explicit data_type wins over the guess.
    """
    if value is None or isinstance(value, (bool, date, datetime)):
        return value

    if isinstance(value, (int, float, Decimal)):
        if data_type in STRING_TYPES:
            return str(value)
        if isinstance(value, float) and not math.isfinite(value):
            raise QueryBuildError(f"Filter value is not a finite number: {value}")
        return value

    text = str(value)
    if data_type in STRING_TYPES:
        return text

    number = _to_number(text.strip())
    if number is not None:
        return number
    if data_type in NUMBER_TYPES:
        raise QueryBuildError(f"Expected a number, got {value!r}")
    return text


def _split_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set)):
        items = list(value)
    elif isinstance(value, str):
        items = [v.strip() for v in value.split(",")]
    elif value is None:
        items = []
    else:
        items = [value]
    return [v for v in items if v is not None and v != ""]


def _split_pair(value: Any, operator: FilterOperator) -> tuple[Any, Any]:
    """Accepts "a,b" or [a, b]."""
    if isinstance(value, str) and "," in value:
        low, high = value.split(",", 1)
        return low.strip(), high.strip()
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    raise QueryBuildError(
        f"'{operator.value}' needs two values as 'low,high' or a 2-item list, got {value!r}"
    )


def compile_filter(filt: Filter, column: str | None = None) -> Expr:
    """Compile one filter into a predicate.

    `column` is the already qualified column text (alias.field); defaults
    to the bare field name.
    """
    col = column or filt.field
    op = filt.operator
    dtype = filt.data_type

    if op in COMPARISON_OPS:
        if filt.value is None and op in (FilterOperator.EQUALS, FilterOperator.NOT_EQUALS):
            return sql(col, " IS NULL" if op == FilterOperator.EQUALS else " IS NOT NULL")
        return sql(f"{col} {COMPARISON_OPS[op]} ", Param(coerce_value(filt.value, dtype)))

    if op in LIKE_OPS:
        keyword, pattern = LIKE_OPS[op]
        if filt.value is None or isinstance(filt.value, (list, tuple, set, dict)):
            raise QueryBuildError(
                f"'{op.value}' filter on {filt.field} needs a single value, got {filt.value!r}"
            )
        return sql(f"{col} {keyword} ", Param(pattern.format(filt.value)))

    if op in (FilterOperator.IN, FilterOperator.NOT_IN):
        values = [coerce_value(v, dtype) for v in _split_list(filt.value)]
        if not values:
            raise QueryBuildError(f"'{op.value}' filter on {filt.field} has no values")
        keyword = "IN" if op == FilterOperator.IN else "NOT IN"
        placeholders = Expr.join([sql(Param(v)) for v in values], ", ")
        return sql(f"{col} {keyword} (", placeholders, ")")

    if op == FilterOperator.IS_NULL:
        return Expr.raw(f"{col} IS NULL")
    if op == FilterOperator.IS_NOT_NULL:
        return Expr.raw(f"{col} IS NOT NULL")
    if op == FilterOperator.IS_EMPTY:
        return Expr.raw(f"({col} IS NULL OR {col} = '')")
    if op == FilterOperator.IS_NOT_EMPTY:
        return Expr.raw(f"({col} IS NOT NULL AND {col} != '')")

    if op in (FilterOperator.BETWEEN, FilterOperator.RANGE):
        low, high = _split_pair(filt.value, op)
        low, high = coerce_value(low, dtype), coerce_value(high, dtype)
        if op == FilterOperator.BETWEEN:
            return sql(f"{col} BETWEEN ", Param(low), " AND ", Param(high))
        return sql(f"({col} >= ", Param(low), f" AND {col} <= ", Param(high), ")")

    # only reachable if someone adds an operator without handling it here
    raise QueryBuildError(f"Unsupported filter operator: {op}")


def compile_where(
    config: ReportConfig, column_for: Callable[[Filter], str] | None = None
) -> BoolGroup | None:
    """Filter groups first, then ungrouped filters, all AND-ed together."""
    resolve = column_for or (lambda f: f.field)
    items: list[Expr | BoolGroup] = []

    for group in config.filter_groups:
        if not group.filters:
            continue
        op = "OR" if group.logic == "or" else "AND"
        items.append(BoolGroup(op, [compile_filter(f, resolve(f)) for f in group.filters]))

    for filt in config.ungrouped_filters():
        items.append(compile_filter(filt, resolve(filt)))

    return BoolGroup("AND", items) if items else None
