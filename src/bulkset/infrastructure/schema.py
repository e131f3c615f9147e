"""Field-name resolution against SQLAlchemy table and mapper metadata.

Two kinds of entity are understood:

- a Core :class:`~sqlalchemy.Table` (fields are column keys), and
- an ORM mapped class (fields are mapped column attribute keys, which
  may differ from the underlying column names).

Matching is exact and case-sensitive, the same as ``table.c[key]`` and
``getattr(Model, key)``.
"""

from __future__ import annotations

from typing import Any, Protocol

from sqlalchemy import Column, inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.sql import ColumnElement, Select, TableClause

from bulkset.domain.types import FieldSpec
from bulkset.errors import FieldNotFound, InvalidQuery, UnsupportedFieldType

# Column types that map to containers rather than flat scalars.
_CONTAINER_TYPES: tuple[type, ...] = (dict, list, tuple, set, frozenset)


class SchemaResolver(Protocol):
    """Anything that can turn ``(entity, field name)`` into a FieldSpec."""

    def resolve(self, entity: Any, field_name: str) -> FieldSpec: ...


class SqlAlchemySchema:
    """Resolve fields from SQLAlchemy metadata. Stateless."""

    def resolve(self, entity: Any, field_name: str) -> FieldSpec:
        """Return the :class:`FieldSpec` for *field_name* on *entity*.

        Raises:
            FieldNotFound: No assignable column with that exact key.
            UnsupportedFieldType: The column is not a flat scalar.
            TypeError: *entity* is neither a table nor a mapped class.
        """
        if isinstance(entity, TableClause):
            column = entity.c.get(field_name)
            if column is None:
                raise FieldNotFound(field_name, entity)
            accessor: Any = column
        else:
            mapper = _mapper_of(entity)
            if field_name not in mapper.column_attrs:
                raise FieldNotFound(field_name, entity)
            column = mapper.column_attrs[field_name].columns[0]
            # column_property() expressions are read-only
            if not isinstance(column, Column):
                raise FieldNotFound(field_name, entity)
            accessor = getattr(entity, field_name)

        return FieldSpec(
            name=field_name,
            python_type=_python_type(field_name, column),
            nullable=bool(column.nullable),
            accessor=accessor,
            sql_type=column.type,
        )


def _mapper_of(entity: Any) -> Mapper[Any]:
    mapper = inspect(entity, raiseerr=False)
    if not isinstance(mapper, Mapper):
        msg = f"Expected a Table or mapped class, got {entity!r}"
        raise TypeError(msg)
    return mapper


def _python_type(field_name: str, column: Any) -> type:
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        raise UnsupportedFieldType(field_name, column.type) from None
    if issubclass(python_type, _CONTAINER_TYPES):
        raise UnsupportedFieldType(field_name, python_type)
    return python_type


def selection_target(query: Select[Any]) -> tuple[Any, ColumnElement[bool] | None]:
    """Split a ``SELECT`` into ``(entity, where clause)``.

    ``select(Model)`` yields the mapped class; ``select(table)`` yields the
    table. Anything spanning several entities is rejected since a single
    UPDATE can only target one. A query without WHERE selects every row.

    The FROM list must hold that entity's table and nothing else; joins
    and extra tables are rejected.

    Raises:
        InvalidQuery: The query does not target exactly one entity.
    """
    if not isinstance(query, Select):
        msg = f"Expected a SELECT statement, got {type(query).__name__}"
        raise InvalidQuery(msg)

    mapped = []
    for desc in query.column_descriptions:
        candidate = desc.get("entity")
        if candidate is not None and isinstance(inspect(candidate, raiseerr=False), Mapper):
            if candidate not in mapped:
                mapped.append(candidate)
    if len(mapped) > 1:
        names = ", ".join(e.__name__ for e in mapped)
        msg = f"Query selects several entities ({names}); expected exactly one"
        raise InvalidQuery(msg)

    froms = query.get_final_froms()
    if len(froms) != 1 or not isinstance(froms[0], TableClause):
        msg = f"Query must select from exactly one table, found {len(froms)} FROM element(s)"
        raise InvalidQuery(msg)
    if not mapped:
        return froms[0], query.whereclause

    entity = mapped[0]
    if froms[0] is not inspect(entity).local_table:
        msg = (
            f"Query selects {entity.__name__} but reads from {froms[0].name}; "
            "expected only its mapped table"
        )
        raise InvalidQuery(msg)
    return entity, query.whereclause
