"""Tests for field resolution against SQLAlchemy metadata."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import Table, select

from bulkset.errors import FieldNotFound, InvalidQuery, UnsupportedFieldType
from bulkset.infrastructure.schema import SqlAlchemySchema, selection_target


class TestResolveTable:
    @pytest.mark.parametrize(
        ("name", "python_type", "nullable"),
        [
            ("name", str, False),
            ("birth_date", datetime, True),
            ("email", str, False),
            ("credits", int, False),
            ("gpa", float, True),
            ("balance", Decimal, True),
            ("enrolled_on", date, True),
            ("active", bool, False),
            ("id", int, False),
        ],
    )
    def test_static_type_and_nullability(
        self, students: Table, name: str, python_type: type, nullable: bool
    ) -> None:
        spec = SqlAlchemySchema().resolve(students, name)
        assert spec.name == name
        assert spec.python_type is python_type
        assert spec.nullable is nullable
        assert spec.accessor is students.c[name]
        assert spec.sql_type is students.c[name].type

    def test_enum_column_resolves_to_enum_class(self, students: Table) -> None:
        spec = SqlAlchemySchema().resolve(students, "level")
        assert spec.python_type.__name__ == "Level"

    def test_missing_field(self, students: Table) -> None:
        with pytest.raises(FieldNotFound) as exc_info:
            SqlAlchemySchema().resolve(students, "note")
        assert exc_info.value.field_name == "note"
        assert "students" in str(exc_info.value)

    def test_match_is_case_sensitive(self, students: Table) -> None:
        with pytest.raises(FieldNotFound):
            SqlAlchemySchema().resolve(students, "Name")

    def test_json_column_unsupported(self, students: Table) -> None:
        with pytest.raises(UnsupportedFieldType) as exc_info:
            SqlAlchemySchema().resolve(students, "profile")
        assert exc_info.value.field_name == "profile"


class TestResolveMapped:
    def test_uses_attribute_key(self, course_model: Any) -> None:
        spec = SqlAlchemySchema().resolve(course_model, "title")
        assert spec.python_type is str
        assert spec.accessor is course_model.title

    def test_column_name_is_not_a_field(self, course_model: Any) -> None:
        with pytest.raises(FieldNotFound):
            SqlAlchemySchema().resolve(course_model, "course_title")

    def test_optional_annotation_is_nullable(self, course_model: Any) -> None:
        spec = SqlAlchemySchema().resolve(course_model, "starts_on")
        assert spec.nullable is True
        assert spec.python_type is date

    def test_column_property_is_read_only(self, course_model: Any) -> None:
        with pytest.raises(FieldNotFound):
            SqlAlchemySchema().resolve(course_model, "double_seats")

    def test_not_an_entity(self) -> None:
        with pytest.raises(TypeError, match="Table or mapped class"):
            SqlAlchemySchema().resolve(object(), "x")


class TestSelectionTarget:
    def test_core_select(self, students: Table) -> None:
        query = select(students).where(students.c.id == 1)
        entity, where = selection_target(query)
        assert entity is students
        assert where is not None

    def test_orm_select(self, course_model: Any) -> None:
        entity, where = selection_target(select(course_model).where(course_model.seats > 10))
        assert entity is course_model
        assert where is not None

    def test_no_where_selects_everything(self, students: Table) -> None:
        _, where = selection_target(select(students))
        assert where is None

    def test_several_tables_rejected(self, students: Table, course_model: Any) -> None:
        query = select(students.c.id, course_model.__table__.c.id)
        with pytest.raises(InvalidQuery, match="exactly one table"):
            selection_target(query)

    def test_orm_column_select(self, course_model: Any) -> None:
        entity, _ = selection_target(select(course_model.id, course_model.title))
        assert entity is course_model

    def test_orm_join_rejected(self, students: Table, course_model: Any) -> None:
        query = select(course_model).join(students, students.c.credits == course_model.seats)
        with pytest.raises(InvalidQuery):
            selection_target(query)

    def test_orm_entity_beside_core_table_rejected(
        self, students: Table, course_model: Any
    ) -> None:
        with pytest.raises(InvalidQuery, match="exactly one table"):
            selection_target(select(course_model.id, students.c.id))

    def test_orm_entity_reading_other_table_rejected(
        self, students: Table, course_model: Any
    ) -> None:
        query = select(course_model.id).select_from(students)
        with pytest.raises(InvalidQuery):
            selection_target(query)

    def test_not_a_select(self, students: Table) -> None:
        with pytest.raises(InvalidQuery, match="SELECT"):
            selection_target(students)  # type: ignore[arg-type]
