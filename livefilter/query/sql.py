"""SQLAlchemy implementation of the collection protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Sequence

from sqlalchemy import and_, false, func, not_, or_, select, true
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm.attributes import QueryableAttribute
from sqlalchemy.sql.expression import ColumnElement, FromClause

from livefilter.exceptions import QueryError, UnknownFieldError, UnsupportedOperatorError
from livefilter.filters.operators import Direction, FieldType, Operator
from livefilter.query.compiler import AllOf, AnyOf, Clause, Predicate

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from sqlalchemy.sql import Select

_COMPARISONS = {
    Operator.EQUALS: lambda col, v: col == v,
    Operator.NOT_EQUALS: lambda col, v: col != v,
    Operator.GREATER_THAN: lambda col, v: col > v,
    Operator.GREATER_THAN_OR_EQUAL: lambda col, v: col >= v,
    Operator.LESS_THAN: lambda col, v: col < v,
    Operator.LESS_THAN_OR_EQUAL: lambda col, v: col <= v,
    Operator.BEFORE: lambda col, v: col < v,
    Operator.AFTER: lambda col, v: col > v,
}


class SqlCollection:
    """Collects filter clauses, ordering and paging for one model or table.

    Args:
        model: Declarative ORM class or a ``Table``/other ``FromClause``.
        session: Session used by ``all``, ``count`` and ``count_by``.
            Not needed for ``statement``.
        columns: Optional map from field name to column name, for fields
            whose column is named differently.
    """

    def __init__(
        self,
        model: Any,
        session: Session | None = None,
        columns: Mapping[str, str] | None = None,
    ) -> None:
        self.model = model
        self.session = session
        self._columns = dict(columns or {})
        self._conditions: list[ColumnElement] = []
        self._order_by: list[ColumnElement] = []
        self._limit: int | None = None
        self._offset: int | None = None

    # ------------------------------------------------------------------
    # Collection protocol
    # ------------------------------------------------------------------

    def add_predicate(
        self,
        field: str,
        operator: Operator,
        value: Any,
        field_type: FieldType = FieldType.STRING,
    ) -> None:
        self._conditions.append(self.clause_for(Predicate(field, operator, value, field_type)))

    def add_or_group(self, clauses: Sequence[Clause]) -> None:
        self._conditions.append(or_(*(self.clause_for(clause) for clause in clauses)))

    def add_sort(self, field: str, direction: Direction) -> None:
        col = self._get_column(field)
        self._order_by.append(col.desc() if direction is Direction.DESC else col.asc())

    def limit(self, count: int) -> None:
        self._limit = count

    def offset(self, count: int) -> None:
        self._offset = count

    # ------------------------------------------------------------------
    # Clause building
    # ------------------------------------------------------------------

    def _is_table(self) -> bool:
        return isinstance(self.model, FromClause)

    def _get_column(self, field: str):
        """Get the column for a field name."""
        name = self._columns.get(field, field)
        if self._is_table():
            col = self.model.c.get(name)
        else:
            col = getattr(self.model, name, None)
            if not isinstance(col, (QueryableAttribute, ColumnElement)):
                col = None
        if col is None:
            raise UnknownFieldError(field)
        return col

    def clause_for(self, clause: Clause) -> ColumnElement:
        """Translate a compiled clause tree into a SQL expression."""
        if isinstance(clause, Predicate):
            return self._predicate_clause(clause)
        parts = [self.clause_for(member) for member in clause.clauses]
        if isinstance(clause, AnyOf):
            return or_(*parts)
        if isinstance(clause, AllOf):
            return and_(*parts)
        raise TypeError(f"not a clause: {clause!r}")

    def _predicate_clause(self, p: Predicate) -> ColumnElement:
        col = self._get_column(p.field)
        op = p.operator
        value = p.value

        if p.type is FieldType.ARRAY:
            return self._array_clause(p, col)

        if op in _COMPARISONS:
            return _COMPARISONS[op](col, value)

        if op is Operator.CONTAINS:
            return col.icontains(value, autoescape=True)
        if op is Operator.NOT_CONTAINS:
            return not_(col.icontains(value, autoescape=True))
        if op is Operator.STARTS_WITH:
            return col.istartswith(value, autoescape=True)
        if op is Operator.ENDS_WITH:
            return col.iendswith(value, autoescape=True)

        if op is Operator.IS_EMPTY:
            if p.type is FieldType.STRING:
                return or_(col.is_(None), col == "")
            return col.is_(None)
        if op is Operator.IS_NOT_EMPTY:
            if p.type is FieldType.STRING:
                return and_(col.is_not(None), col != "")
            return col.is_not(None)

        if op is Operator.IS_TRUE:
            return col.is_(True)
        if op is Operator.IS_FALSE:
            return col.is_(False)

        if op is Operator.BETWEEN:
            start, end = value
            return col.between(start, end)
        if op is Operator.NOT_BETWEEN:
            start, end = value
            return not_(col.between(start, end))

        if op is Operator.IN:
            return col.in_(list(value))

        raise UnsupportedOperatorError(p.field, p.type.value, op.value)

    def _array_clause(self, p: Predicate, col) -> ColumnElement:
        """Array membership, on PostgreSQL ARRAY or JSON list columns."""
        op = p.operator
        values = list(p.value or ())

        if isinstance(col.type, ARRAY):
            if op is Operator.CONTAINS_ANY:
                return col.overlap(values)
            if op is Operator.CONTAINS_ALL:
                return col.contains(values)
            if op is Operator.CONTAINS_NONE:
                return not_(col.overlap(values))
            if op is Operator.IS_EMPTY:
                return or_(col.is_(None), func.cardinality(col) == 0)
            if op is Operator.IS_NOT_EMPTY:
                return func.cardinality(col) > 0
            raise UnsupportedOperatorError(p.field, p.type.value, op.value)

        # JSON list stored in a text/JSON column (SQLite json1)
        if op is Operator.CONTAINS_ANY:
            return _json_has_any(col, values)
        if op is Operator.CONTAINS_ALL:
            if not values:
                return true()
            return and_(*(_json_has_any(col, [value]) for value in values))
        if op is Operator.CONTAINS_NONE:
            return not_(_json_has_any(col, values))
        if op is Operator.IS_EMPTY:
            return or_(col.is_(None), func.json_array_length(col) == 0)
        if op is Operator.IS_NOT_EMPTY:
            return func.json_array_length(col) > 0
        raise UnsupportedOperatorError(p.field, p.type.value, op.value)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _base_statement(self) -> Select:
        stmt = select(self.model)
        if self._conditions:
            stmt = stmt.where(*self._conditions)
        return stmt

    def statement(self) -> Select:
        """The SELECT with filters, ordering, limit and offset applied."""
        stmt = self._base_statement()
        if self._order_by:
            stmt = stmt.order_by(*self._order_by)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        if self._offset:
            stmt = stmt.offset(self._offset)
        return stmt

    def _require_session(self) -> Session:
        if self.session is None:
            raise QueryError("SqlCollection needs a session to execute queries")
        return self.session

    def all(self) -> list[Any]:
        """Matching rows: ORM instances for a model, row mappings for a table."""
        session = self._require_session()
        if self._is_table():
            return list(session.execute(self.statement()).mappings().all())
        return list(session.scalars(self.statement()).all())

    def count(self) -> int:
        """Number of matching rows, ignoring limit and offset."""
        session = self._require_session()
        stmt = select(func.count()).select_from(self._base_statement().subquery())
        return session.execute(stmt).scalar_one()

    def count_by(self, field: str) -> dict[Any, int]:
        """Matching rows counted per distinct value of ``field``."""
        session = self._require_session()
        col = self._get_column(field)
        stmt = select(col, func.count()).group_by(col)
        if self._is_table():
            stmt = stmt.select_from(self.model)
        if self._conditions:
            stmt = stmt.where(*self._conditions)
        return {key: total for key, total in session.execute(stmt).all()}


def _json_has_any(col, values: list[Any]) -> ColumnElement:
    if not values:
        return false()
    members = func.json_each(col).table_valued("value")
    return select(members.c.value).where(members.c.value.in_(values)).exists()
