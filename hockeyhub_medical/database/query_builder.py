"""
Database Module for HockeyHub Medical - Query Builder
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Builds parameterized PostgreSQL statements from statically declared tables.

Every statement is scoped: the table's scope column is always part of the
WHERE clause and a missing scope value is rejected before anything is built.
Placeholders are positional (``$1, $2, ...``) and numbered in the order they
appear in the statement.

:copyright: (c) 2024-present HockeyHub
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..errors import InvalidInputError

DEFAULT_LIMIT = 20

Statement = Tuple[str, List[Any]]


class Filter:
    """An optional predicate on one column, applied when the caller supplies a value for ``name``."""

    OPERATORS = ('=', 'ILIKE', '>=', '<=')

    def __init__(self, name: str, column: str, operator: str = '='):
        if operator not in self.OPERATORS:
            raise ValueError(f"Unsupported filter operator: {operator}")
        self.name = name
        self.column = column
        self.operator = operator

    def clause(self, position: int) -> str:
        return f"{self.column} {self.operator} ${position}"

    def param(self, value: Any) -> Any:
        # Free-text filters match anywhere in the column
        if self.operator == 'ILIKE':
            return f"%{value}%"
        return value

    def __repr__(self):
        return f"Filter({self.name!r}, {self.column!r}, {self.operator!r})"


def equals(name: str, column: Optional[str] = None) -> Filter:
    return Filter(name, column or name, '=')


def contains(name: str, column: Optional[str] = None) -> Filter:
    return Filter(name, column or name, 'ILIKE')


def date_range(column: str, prefix: str = 'date') -> Tuple[Filter, Filter]:
    """``<prefix>_from``/``<prefix>_to`` bounds on ``column``, both inclusive."""
    return Filter(f'{prefix}_from', column, '>='), Filter(f'{prefix}_to', column, '<=')


class Table:
    """
    Static description of one entity table.

    Args:
        name: Table name
        scope: Column every statement is scoped by (organization, owning injury, ...)
        fields: Explicit map of caller-facing field names to columns, in column order
        read_only: Field names that may be set on insert but never updated
        required: Field names that must be present on insert
        filters: Optional filters in the order their clauses are emitted
        order_by: Default ORDER BY for listings
        key: Primary key column
    """

    def __init__(
        self,
        name: str,
        scope: str,
        fields: Mapping[str, str],
        read_only: Iterable[str] = (),
        required: Iterable[str] = (),
        filters: Sequence[Filter] = (),
        order_by: str = 'created_at DESC',
        key: str = 'id',
    ):
        self.name = name
        self.scope = scope
        self.fields = dict(fields)
        self.read_only = frozenset(read_only)
        self.required = tuple(required)
        self.filters = tuple(filters)
        self.order_by = order_by
        self.key = key

        unknown = (self.read_only | set(self.required)) - set(self.fields)
        if unknown:
            raise ValueError(f"{name}: undeclared fields {sorted(unknown)}")

    @property
    def updatable(self) -> Dict[str, str]:
        """Field-to-column map of everything an UPDATE may touch."""
        return {name: column for name, column in self.fields.items() if name not in self.read_only}

    def __repr__(self):
        return f"Table({self.name!r}, scope={self.scope!r})"


def _require_scope(table: Table, scope_value: Any) -> None:
    if scope_value is None:
        raise InvalidInputError(f"{table.scope} is required to query {table.name}")


def _check_page(limit: int, offset: int) -> None:
    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        raise InvalidInputError(f"limit must be a positive integer, got {limit!r}")
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise InvalidInputError(f"offset must be a non-negative integer, got {offset!r}")


def build_where(table: Table, scope_value: Any, criteria: Optional[Mapping[str, Any]] = None) -> Statement:
    """
    Build the WHERE clause for a scoped listing.

    The scope predicate is always ``$1``. Filters follow in the table's
    declared order; criteria that are ``None`` are skipped.

    Returns:
        Tuple of (``WHERE ...`` text, params)
    """
    _require_scope(table, scope_value)
    criteria = criteria or {}

    declared = {f.name for f in table.filters}
    unknown = set(criteria) - declared
    if unknown:
        raise InvalidInputError(f"Unknown filters for {table.name}: {sorted(unknown)}")

    clauses = [f"{table.scope} = $1"]
    params = [scope_value]
    for flt in table.filters:
        value = criteria.get(flt.name)
        if value is None:
            continue
        params.append(flt.param(value))
        clauses.append(flt.clause(len(params)))

    return "WHERE " + " AND ".join(clauses), params


def build_select(
    table: Table,
    scope_value: Any,
    criteria: Optional[Mapping[str, Any]] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
    order_by: Optional[str] = None,
) -> Statement:
    """Build a paginated, filtered SELECT. Pagination params are always last."""
    _check_page(limit, offset)
    where, params = build_where(table, scope_value, criteria)
    params.extend([limit, offset])
    sql = (
        f"SELECT * FROM {table.name} {where} "
        f"ORDER BY {order_by or table.order_by} "
        f"LIMIT ${len(params) - 1} OFFSET ${len(params)}"
    )
    return sql, params


def build_count(table: Table, scope_value: Any, criteria: Optional[Mapping[str, Any]] = None) -> Statement:
    """Build the COUNT matching :func:`build_select` without pagination."""
    where, params = build_where(table, scope_value, criteria)
    return f"SELECT COUNT(*) AS total FROM {table.name} {where}", params


def build_get(table: Table, record_id: Any, scope_value: Any) -> Statement:
    _require_scope(table, scope_value)
    sql = f"SELECT * FROM {table.name} WHERE {table.key} = $1 AND {table.scope} = $2"
    return sql, [record_id, scope_value]


def build_insert(
    table: Table,
    scope_value: Any,
    data: Mapping[str, Any],
    expressions: Optional[Mapping[str, str]] = None,
) -> Statement:
    """
    Build an INSERT ... RETURNING * from caller data.

    The scope column is always ``$1``. Only declared fields are written, in
    declared order; anything else in ``data`` is ignored. Columns left out
    take their database defaults unless ``expressions`` supplies raw SQL for
    them (which may reference ``$1``).
    """
    _require_scope(table, scope_value)

    missing = [name for name in table.required if data.get(name) is None]
    if missing:
        raise InvalidInputError(f"Missing required fields for {table.name}: {missing}")

    columns = [table.scope]
    values = ["$1"]
    params = [scope_value]
    for name, column in table.fields.items():
        if name not in data:
            continue
        params.append(data[name])
        columns.append(column)
        values.append(f"${len(params)}")

    for column, expression in (expressions or {}).items():
        if column not in columns:
            columns.append(column)
            values.append(expression)

    sql = (
        f"INSERT INTO {table.name} ({', '.join(columns)}) "
        f"VALUES ({', '.join(values)}) RETURNING *"
    )
    return sql, params


def build_update(table: Table, record_id: Any, scope_value: Any, changes: Mapping[str, Any]) -> Statement:
    """
    Build a partial UPDATE from the fields the caller actually supplied.

    Read-only and undeclared fields are dropped. ``None`` sets the column to
    NULL; an absent key leaves it alone. ``updated_at`` is always refreshed.

    Raises:
        InvalidInputError: if no updatable field is left
    """
    _require_scope(table, scope_value)

    assignments = []
    params = []
    for name, column in table.updatable.items():
        if name not in changes:
            continue
        params.append(changes[name])
        assignments.append(f"{column} = ${len(params)}")

    if not assignments:
        raise InvalidInputError("No valid fields provided for update")

    assignments.append("updated_at = NOW()")
    params.extend([record_id, scope_value])
    sql = (
        f"UPDATE {table.name} SET {', '.join(assignments)} "
        f"WHERE {table.key} = ${len(params) - 1} AND {table.scope} = ${len(params)} "
        f"RETURNING *"
    )
    return sql, params


def build_delete(table: Table, record_id: Any, scope_value: Any) -> Statement:
    _require_scope(table, scope_value)
    sql = f"DELETE FROM {table.name} WHERE {table.key} = $1 AND {table.scope} = $2 RETURNING {table.key}"
    return sql, [record_id, scope_value]
