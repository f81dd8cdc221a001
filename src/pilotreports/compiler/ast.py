"""A small typed query tree for report SQL.

the old approach was f-strings all the way down, with user filter values
pasted straight into the text. now every user supplied value is a Param
and only gets turned into sql at render time - as a placeholder for
execution, or as an escaped literal when we just want to show the query.

identifiers never come from Params. the compiler validates them against
IDENTIFIER_RE before they get anywhere near an Expr.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Union

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ParamStyle(str, Enum):
    """How Params are rendered.

    qmark is what duckdb wants, numeric ($1, $2) is postgres, inline is for
    humans only - never execute inline sql built from user input.
    """

    QMARK = "qmark"
    NUMERIC = "numeric"
    INLINE = "inline"


@dataclass(frozen=True)
class Param:
    value: Any


@dataclass
class Expr:
    """A sql fragment: trusted text interleaved with Params."""

    parts: list[Union[str, Param]] = field(default_factory=list)

    @classmethod
    def raw(cls, sql: str) -> "Expr":
        return cls([sql])

    @classmethod
    def join(cls, exprs: list["Expr"], sep: str) -> "Expr":
        parts: list[Union[str, Param]] = []
        for i, e in enumerate(exprs):
            if i:
                parts.append(sep)
            parts.extend(e.parts)
        return cls(parts)

    def params(self) -> list[Any]:
        return [p.value for p in self.parts if isinstance(p, Param)]


def sql(*parts: Union[str, Param, Expr]) -> Expr:
    """Glue strings, Params and Exprs into one Expr."""
    out: list[Union[str, Param]] = []
    for part in parts:
        if isinstance(part, Expr):
            out.extend(part.parts)
        else:
            out.append(part)
    return Expr(out)


@dataclass
class SelectItem:
    expr: Expr
    alias: str
    aggregate: bool = False


@dataclass
class Join:
    table: str
    alias: str
    on: Expr
    kind: Literal["INNER", "LEFT"] = "LEFT"


@dataclass
class BoolGroup:
    """AND/OR over predicates (Exprs) and nested groups."""

    op: Literal["AND", "OR"]
    items: list[Union[Expr, "BoolGroup"]] = field(default_factory=list)


@dataclass
class SelectQuery:
    items: list[SelectItem]
    from_table: str
    from_alias: str
    joins: list[Join] = field(default_factory=list)
    where: BoolGroup | None = None
    group_by: list[int] = field(default_factory=list)  # 1-based select positions
    order_by: list[int] = field(default_factory=lambda: [1])
    limit: int | None = None


def literal(value: Any) -> str:
    """Render a python value as a sql literal.

    strings get their single quotes doubled which is the standard escape
    for both postgres and duckdb.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot render non-finite number: {value}")
        return repr(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return f"'{value.isoformat()}'"
    text = str(value).replace("'", "''")
    return f"'{text}'"


class Renderer:
    """Turns a tree into (sql, params) for one param style."""

    def __init__(self, style: ParamStyle = ParamStyle.QMARK) -> None:
        self.style = ParamStyle(style)
        self.params: list[Any] = []

    def expr(self, e: Expr) -> str:
        out = []
        for part in e.parts:
            if isinstance(part, Param):
                out.append(self._param(part))
            else:
                out.append(part)
        return "".join(out)

    def _param(self, p: Param) -> str:
        if self.style == ParamStyle.INLINE:
            return literal(p.value)
        self.params.append(p.value)
        if self.style == ParamStyle.NUMERIC:
            return f"${len(self.params)}"
        return "?"

    def condition(self, node: Union[Expr, BoolGroup], nested: bool = False) -> str:
        if isinstance(node, Expr):
            return self.expr(node)
        rendered = [self.condition(item, nested=True) for item in node.items]
        text = f" {node.op} ".join(rendered)
        # nested groups keep their own parens so OR can't leak into the AND
        if nested and len(node.items) > 0:
            return f"({text})"
        return text

    def query(self, q: SelectQuery) -> str:
        select_list = ", ".join(f"{self.expr(item.expr)} AS {item.alias}" for item in q.items)
        parts = [f"SELECT {select_list}", f"FROM {q.from_table} AS {q.from_alias}"]

        for join in q.joins:
            parts.append(f"{join.kind} JOIN {join.table} AS {join.alias} ON {self.expr(join.on)}")

        if q.where is not None and q.where.items:
            parts.append(f"WHERE {self.condition(q.where)}")

        if q.group_by:
            parts.append(f"GROUP BY {', '.join(str(i) for i in q.group_by)}")

        if q.order_by:
            parts.append(f"ORDER BY {', '.join(str(i) for i in q.order_by)}")

        if q.limit:
            parts.append(f"LIMIT {int(q.limit)}")

        return " ".join(parts)


def render(q: SelectQuery, style: ParamStyle = ParamStyle.QMARK) -> tuple[str, list[Any]]:
    renderer = Renderer(style)
    text = renderer.query(q)
    return text, renderer.params


def render_condition(
    node: Union[Expr, BoolGroup], style: ParamStyle = ParamStyle.INLINE
) -> tuple[str, list[Any]]:
    renderer = Renderer(style)
    text = renderer.condition(node)
    return text, renderer.params
