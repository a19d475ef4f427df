"""
PostgREST filter builder.

Business code describes filters as small objects (eq, ilike, in_, and_,
or_) and this module renders them into query parameters. Quoting of
reserved characters happens here; URL encoding is left to requests.
"""

from typing import Any, Iterable, List, Sequence, Tuple

QueryParams = List[Tuple[str, str]]


def quote_value(value: Any) -> str:
    """Double-quote a value for use inside a list or a logic tree."""
    text = str(value)
    text = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


class Filter:
    """Base class for a renderable PostgREST filter."""

    def render_nested(self) -> str:
        raise NotImplementedError

    def as_param(self) -> Tuple[str, str]:
        raise NotImplementedError


class Condition(Filter):
    """column <operator> value"""

    def __init__(self, column: str, operator: str, value: Any):
        self.column = column
        self.operator = operator
        self.value = value

    def render_nested(self) -> str:
        return f"{self.column}.{self.operator}.{quote_value(self.value)}"

    def as_param(self) -> Tuple[str, str]:
        """
        Render as its own query parameter.

        PostgREST reads a top-level value literally up to the end of the
        parameter, so commas and parentheses need no quoting here and
        quotes would become part of the value. Use this for single-column
        filters only; grouped conditions go through render_nested.
        """
        return self.column, f"{self.operator}.{self.value}"

    def __repr__(self):
        return f"Condition({self.column!r}, {self.operator!r}, {self.value!r})"


class InList(Filter):
    """column in (v1, v2, ...)"""

    def __init__(self, column: str, values: Iterable[Any]):
        self.column = column
        self.values = list(values)

    def _rendered_values(self) -> str:
        return ",".join(quote_value(v) for v in self.values)

    def render_nested(self) -> str:
        return f"{self.column}.in.({self._rendered_values()})"

    def as_param(self) -> Tuple[str, str]:
        return self.column, f"in.({self._rendered_values()})"

    def __repr__(self):
        return f"InList({self.column!r}, {self.values!r})"


class LogicalGroup(Filter):
    """and(...) / or(...) over other filters."""

    def __init__(self, operator: str, filters: Sequence[Filter]):
        if operator not in ("and", "or"):
            raise ValueError(f"Invalid logical operator '{operator}'")
        if not filters:
            raise ValueError(f"Empty '{operator}' group")
        self.operator = operator
        self.filters = list(filters)

    def _rendered_members(self) -> str:
        return ",".join(f.render_nested() for f in self.filters)

    def render_nested(self) -> str:
        return f"{self.operator}({self._rendered_members()})"

    def as_param(self) -> Tuple[str, str]:
        return self.operator, f"({self._rendered_members()})"

    def __repr__(self):
        return f"LogicalGroup({self.operator!r}, {self.filters!r})"


def eq(column: str, value: Any) -> Condition:
    return Condition(column, "eq", value)


def ilike(column: str, value: Any) -> Condition:
    return Condition(column, "ilike", value)


def in_(column: str, values: Iterable[Any]) -> InList:
    return InList(column, values)


def and_(*filters: Filter) -> LogicalGroup:
    return LogicalGroup("and", filters)


def or_(*filters: Filter) -> LogicalGroup:
    return LogicalGroup("or", filters)


class SelectQuery:
    """A read against one table: selected columns plus AND-ed filters."""

    def __init__(self, table: str, columns: Sequence[str], filters: Sequence[Filter] = ()):
        self.table = table
        self.columns = list(columns)
        self.filters = list(filters)

    def params(self) -> QueryParams:
        params: QueryParams = [("select", ",".join(self.columns))]
        params.extend(f.as_param() for f in self.filters)
        return params

    def __repr__(self):
        return f"SelectQuery({self.table!r}, {self.columns!r}, {self.filters!r})"


def prefer_header(resolution: str, returning: str = "minimal", count: str = None) -> str:
    """
    Build the Prefer header for a conflict-tolerant write.

    Args:
        resolution: "merge-duplicates" or "ignore-duplicates"
        returning: "minimal" or "representation"
        count: optional count strategy, e.g. "exact"
    """
    parts = [f"resolution={resolution}", f"return={returning}"]
    if count:
        parts.append(f"count={count}")
    return ",".join(parts)
