"""Unit tests for SortField and SortSpec."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from pagination_engine.core.pagination.sorting import SortField, SortSpec, read_field


class TestSortField:
    """Tests for SortField validation."""

    def test_defaults_to_ascending(self):
        field = SortField("title")

        assert field.direction == "asc"
        assert field.descending is False
        assert field.unique is False

    def test_rejects_empty_name(self):
        with pytest.raises(ValueError, match="must not be empty"):
            SortField("")

    def test_rejects_unknown_direction(self):
        with pytest.raises(ValueError, match="Invalid sort direction"):
            SortField("title", "up")  # type: ignore[arg-type]


class TestSortSpecBuild:
    """Tests for tiebreaker injection."""

    def test_appends_tiebreaker(self):
        """A non-unique ordering gets the tiebreaker appended."""
        spec = SortSpec.build([("created_at", "desc")])

        assert spec.field_names == ("created_at", "id")
        assert spec.tiebreaker == SortField("id", "asc", unique=True)

    def test_empty_fields_sort_by_tiebreaker_only(self):
        spec = SortSpec.build([])

        assert spec.field_names == ("id",)
        assert len(spec) == 1

    def test_custom_tiebreaker_and_direction(self):
        spec = SortSpec.build([("title", "asc")], tiebreaker="uuid", tiebreaker_direction="desc")

        assert spec.field_names == ("title", "uuid")
        assert spec.tiebreaker.descending is True

    def test_existing_tiebreaker_keeps_its_direction(self):
        """An explicit tiebreaker is marked unique instead of being appended twice."""
        spec = SortSpec.build([("title", "asc"), ("id", "desc")])

        assert spec.field_names == ("title", "id")
        assert spec.tiebreaker.descending is True
        assert spec.tiebreaker.unique is True

    def test_fields_after_tiebreaker_are_dropped(self):
        spec = SortSpec.build([("id", "asc"), ("title", "asc")])

        assert spec.field_names == ("id",)

    def test_unique_field_terminates_order(self):
        spec = SortSpec.build([SortField("email", "asc", unique=True), SortField("title")])

        assert spec.field_names == ("email",)

    def test_constructor_requires_unique_last_field(self):
        with pytest.raises(ValueError, match="must be unique"):
            SortSpec((SortField("title"),))

    def test_constructor_rejects_duplicates(self):
        with pytest.raises(ValueError, match="Duplicate sort fields"):
            SortSpec.build([("title", "asc"), ("title", "desc")])

    def test_constructor_rejects_empty(self):
        with pytest.raises(ValueError, match="at least one field"):
            SortSpec(())


class TestSortSpecParse:
    """Tests for sort expression parsing."""

    def test_parses_directions(self):
        spec = SortSpec.parse("-created_at, +title,category")

        assert [(f.name, f.direction) for f in spec.fields] == [
            ("created_at", "desc"),
            ("title", "asc"),
            ("category", "asc"),
            ("id", "asc"),
        ]

    @pytest.mark.parametrize("expression", [None, "", " , "])
    def test_blank_expression_sorts_by_tiebreaker(self, expression):
        assert SortSpec.parse(expression).field_names == ("id",)

    def test_to_expression_round_trips(self):
        spec = SortSpec.parse("-created_at,title")

        assert spec.to_expression() == "-created_at,title,id"
        assert SortSpec.parse(spec.to_expression()) == spec


class TestSortSpecSignature:
    """Tests for the ordering signature."""

    def test_signature_is_stable_and_sixteen_bytes(self):
        assert SortSpec.parse("-created_at").signature == SortSpec.parse("-created_at").signature
        assert len(SortSpec.parse("-created_at").signature) == 16

    def test_signature_depends_on_direction(self):
        assert SortSpec.parse("created_at").signature != SortSpec.parse("-created_at").signature

    def test_signature_depends_on_field_order(self):
        assert SortSpec.parse("a,b").signature != SortSpec.parse("b,a").signature


class TestSortSpecCompare:
    """Tests for value extraction and ordering."""

    def test_values_of_mapping_and_object(self):
        spec = SortSpec.parse("-created_at")

        assert spec.values_of({"created_at": 5, "id": 1}) == (5, 1)
        assert spec.values_of(SimpleNamespace(created_at=5, id=1)) == (5, 1)

    def test_values_of_rejects_null_tiebreaker(self):
        with pytest.raises(ValueError, match="must not be None"):
            SortSpec.parse("title").values_of({"title": "a", "id": None})

    def test_missing_field_reads_as_none(self):
        assert read_field({"id": 1}, "title") is None
        assert read_field(SimpleNamespace(id=1), "title") is None

    def test_descending_field_reverses_order(self):
        spec = SortSpec.parse("-score")

        assert spec.compare((10, 1), (5, 2)) < 0
        assert spec.compare((5, 1), (5, 2)) < 0
        assert spec.compare((5, 2), (5, 2)) == 0

    def test_nulls_last_ascending_first_descending(self):
        asc = SortSpec.parse("title")
        desc = SortSpec.parse("-title")

        assert asc.compare((None, 1), ("a", 2)) > 0
        assert desc.compare((None, 1), ("a", 2)) < 0

    def test_is_after_is_strict(self):
        spec = SortSpec.parse("title")

        assert spec.is_after(("b", 1), ("a", 9))
        assert not spec.is_after(("a", 1), ("a", 1))

    def test_sort_key_orders_rows(self):
        spec = SortSpec.parse("-score")
        rows = [{"id": 1, "score": 1}, {"id": 2, "score": 3}, {"id": 3, "score": 3}]

        ordered = sorted(rows, key=spec.sort_key())

        assert [r["id"] for r in ordered] == [2, 3, 1]
