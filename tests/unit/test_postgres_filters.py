"""
Name: PostgreSQL Filter Translation Tests

Responsibilities:
  - Validate MetadataFilter -> SQL translation without a database
  - Validate id column mapping and error translation
"""

import psycopg
import pytest
from psycopg.types.json import Json

from ragcore.domain.filters import MetadataFilter
from ragcore.exceptions import RetrievalError
from ragcore.infrastructure.index.postgres import (
    _id_columns,
    _id_from_row,
    _translate_errors,
    filter_to_sql,
)


@pytest.mark.unit
class TestFilterToSql:
    def test_empty_filter_is_true(self):
        assert filter_to_sql(MetadataFilter.parse(None)) == ("TRUE", {})

    def test_equality_uses_jsonb_comparison(self):
        sql, params = filter_to_sql(MetadataFilter.parse({"lang": "en"}))

        assert sql == "COALESCE((payload->'metadata'->%(f0)s::text) = %(f1)s::jsonb, false)"
        assert params["f0"] == "lang"
        assert isinstance(params["f1"], Json)

    def test_not_equal_is_negated(self):
        sql, _ = filter_to_sql(MetadataFilter.parse({"lang": {"$ne": "en"}}))

        assert sql.startswith("NOT COALESCE(")

    def test_in_expands_to_or_chain(self):
        sql, params = filter_to_sql(MetadataFilter.parse({"lang": {"$in": ["en", "es"]}}))

        assert sql.count(" OR ") == 1
        assert len(params) == 3

    def test_range_checks_number_type(self):
        sql, params = filter_to_sql(MetadataFilter.parse({"year": {"$gte": 2020}}))

        assert "jsonb_typeof" in sql
        assert ">=" in sql
        assert 2020 in params.values()

    def test_clauses_are_anded_with_unique_params(self):
        sql, params = filter_to_sql(MetadataFilter.parse({"a": 1, "b": {"$lt": 5}}))

        assert " AND " in sql
        assert sorted(params) == ["f0", "f1", "f2", "f3"]


@pytest.mark.unit
class TestIdColumns:
    def test_int_and_str_ids_map_to_distinct_keys(self):
        assert _id_columns(1) == ("i:1", 1, None)
        assert _id_columns("1") == ("s:1", None, "1")

    def test_round_trip_from_row(self):
        assert _id_from_row(7, None) == 7
        assert _id_from_row(None, "doc") == "doc"


@pytest.mark.unit
class TestTranslateErrors:
    def test_operational_error_is_transient(self):
        with pytest.raises(RetrievalError) as exc_info:
            with _translate_errors("search", "docs"):
                raise psycopg.OperationalError("connection refused")

        assert exc_info.value.transient is True

    def test_other_driver_errors_are_permanent(self):
        with pytest.raises(RetrievalError) as exc_info:
            with _translate_errors("search", "docs"):
                raise psycopg.ProgrammingError("syntax error")

        assert exc_info.value.transient is False
