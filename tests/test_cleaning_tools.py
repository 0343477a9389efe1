"""Unit and property tests for cleaning tools."""

import pandas as pd
import pytest
from hypothesis import given, settings

from tests.strategies import object_frames
from data_clinic.models import CleaningLogEntry, ColumnNotFoundError, ColumnType
from data_clinic.tools.cleaning import (
    backward_fill,
    coerce_numeric_columns,
    compute_median,
    compute_mode,
    drop_column,
    drop_duplicates,
    fill_nulls,
    forward_fill,
    frame_from_rows,
    impute_column,
    impute_missing,
    remove_empty_rows,
    remove_invalid_rows,
    remove_null_rows,
    rename_column,
    upper_median,
)
from data_clinic.tools.inspection import is_missing, missing_mask


def _frame(data: dict) -> pd.DataFrame:
    return pd.DataFrame(data, dtype=object)


# ---------------------------------------------------------------------------
# Row construction and filtering
# ---------------------------------------------------------------------------


class TestRemoveInvalidRows:
    def test_keeps_non_empty_mappings(self):
        rows, discarded = remove_invalid_rows([{"a": 1}, None, 5, "x", {}, {"a": 2}])
        assert rows == [{"a": 1}, {"a": 2}]
        assert discarded == 4

    def test_none_input(self):
        assert remove_invalid_rows(None) == ([], 0)


class TestFrameFromRows:
    def test_union_of_keys_in_first_seen_order(self):
        df = frame_from_rows([{"a": 1}, {"b": 2, "a": 3}])
        assert list(df.columns) == ["a", "b"]
        assert is_missing(df.loc[0, "b"])

    def test_keeps_raw_values(self):
        df = frame_from_rows([{"a": "1"}, {"a": 2}])
        assert df["a"].tolist() == ["1", 2]

    def test_empty(self):
        assert frame_from_rows([]).empty


class TestRemoveEmptyRows:
    def test_removes_all_missing_rows(self):
        df = _frame({"a": [1, None, ""], "b": ["x", "", None]})
        cleaned, log = remove_empty_rows(df)
        assert len(cleaned) == 1
        assert log.description == "Removed 2 empty rows"
        assert log.rows_removed == 2

    def test_partial_rows_kept(self):
        df = _frame({"a": [1, None], "b": [None, "y"]})
        cleaned, log = remove_empty_rows(df)
        assert len(cleaned) == 2
        assert log.rows_removed == 0


# ---------------------------------------------------------------------------
# Imputation
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_textbook_median(self):
        assert compute_median([4, 1, 3, 2]) == 2.5
        assert compute_median([3, 1, 2]) == 2
        assert compute_median([]) == 0.0

    def test_upper_median(self):
        assert upper_median([1, 2, 3, 4]) == 3
        assert upper_median([]) == 0.0

    def test_mode_first_seen_wins_ties(self):
        assert compute_mode(["b", "a", "a", "b"]) == "b"

    def test_mode_stringifies(self):
        assert compute_mode([1, 1, 2]) == "1"

    def test_mode_empty(self):
        assert compute_mode([]) == "Unknown"

    def test_forward_then_backward_fill(self):
        values = [None, "2024-01-01", "", None, "2024-01-05"]
        filled = backward_fill(forward_fill(values))
        assert filled == ["2024-01-01", "2024-01-01", "2024-01-01", "2024-01-01", "2024-01-05"]


class TestImputeColumn:
    def test_numeric_median_rounded(self):
        df = _frame({"a": [1, 2, None, 2.333]})
        cleaned, log = impute_column(df, "a", ColumnType.NUMERIC)
        assert cleaned["a"].iloc[2] == 2.0
        assert "Replaced 1 null values in 'a' (numeric) with median (2.00)" == log.description

    def test_numeric_without_values_uses_zero(self):
        df = _frame({"a": [None, ""]})
        cleaned, log = impute_column(df, "a", ColumnType.NUMERIC)
        assert cleaned["a"].tolist() == [0, 0]
        assert log.description.endswith("with default 0")

    def test_categorical_mode(self):
        df = _frame({"c": ["x", "y", "x", None]})
        cleaned, log = impute_column(df, "c", ColumnType.CATEGORICAL)
        assert cleaned["c"].tolist() == ["x", "y", "x", "x"]
        assert log.description == "Replaced 1 null values in 'c' (categorical) with mode (x)"

    def test_categorical_without_values(self):
        df = _frame({"c": [None, None]})
        cleaned, _ = impute_column(df, "c", ColumnType.CATEGORICAL)
        assert cleaned["c"].tolist() == ["Unknown", "Unknown"]

    def test_datetime_forward_backward_fill(self):
        df = _frame({"d": [None, "2024-01-01", None, "2024-01-03"]})
        cleaned, log = impute_column(df, "d", ColumnType.DATETIME)
        assert cleaned["d"].tolist() == ["2024-01-01", "2024-01-01", "2024-01-01", "2024-01-03"]
        assert log.description == "Applied forward/backward fill to 2 null values in 'd' (datetime)"

    def test_no_missing_returns_none(self):
        df = _frame({"a": [1, 2]})
        cleaned, log = impute_column(df, "a")
        assert log is None
        assert cleaned is df

    def test_unknown_column_raises(self):
        with pytest.raises(ColumnNotFoundError):
            impute_column(_frame({"a": [1]}), "b")

    def test_input_not_mutated(self):
        df = _frame({"a": [1, None, 3]})
        impute_column(df, "a", ColumnType.NUMERIC)
        assert df["a"].iloc[1] is None


class TestImputeMissing:
    def test_one_entry_per_column_in_order(self):
        df = _frame({"b": ["x", None] * 5, "a": [1, None] * 5})
        cleaned, entries = impute_missing(df)
        assert [e.columns_affected for e in entries] == [["b"], ["a"]]
        assert not missing_mask(cleaned["a"]).any()
        assert not missing_mask(cleaned["b"]).any()

    def test_never_reduces_rows(self):
        df = _frame({"a": [None, None, 1]})
        cleaned, _ = impute_missing(df)
        assert len(cleaned) == 3

    @given(df=object_frames())
    @settings(max_examples=50, deadline=None)
    def test_no_missing_cells_remain_where_values_existed(self, df):
        cleaned, _ = impute_missing(df)
        assert len(cleaned) == len(df)
        for col in df.columns:
            if (~missing_mask(df[col])).any():
                assert not missing_mask(cleaned[col]).any()


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------


class TestDropDuplicates:
    def test_removes_duplicates_keeping_first(self):
        df = _frame({"a": [1, 2, 1, 3], "b": ["x", "y", "x", "z"]})
        cleaned, log = drop_duplicates(df)
        assert cleaned["a"].tolist() == [1, 2, 3]
        assert log.description == "Removed 1 duplicate rows"

    def test_number_and_string_are_distinct(self):
        df = _frame({"a": [1, "1"]})
        cleaned, _ = drop_duplicates(df)
        assert len(cleaned) == 2

    def test_log_entry(self):
        df = _frame({"a": [1, 1, 2]})
        _, log = drop_duplicates(df)
        assert isinstance(log, CleaningLogEntry)
        assert log.operation == "drop_duplicates"
        assert log.rows_before == 3
        assert log.rows_after == 2
        assert log.timestamp

    def test_empty_df(self):
        cleaned, log = drop_duplicates(pd.DataFrame())
        assert len(cleaned) == 0
        assert log.rows_removed == 0

    @given(df=object_frames())
    @settings(max_examples=50, deadline=None)
    def test_idempotent(self, df):
        once, _ = drop_duplicates(df)
        twice, log = drop_duplicates(once)
        assert log.rows_removed == 0
        assert once.equals(twice)


# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------


class TestCoerceNumericColumns:
    def test_converts_numeric_strings(self):
        df = _frame({"a": ["1", "2", "3"], "b": ["x", "y", "z"]})
        cleaned, entries = coerce_numeric_columns(df)
        assert cleaned["a"].tolist() == [1.0, 2.0, 3.0]
        assert cleaned["a"].dtype == float
        assert [e.description for e in entries] == ["Converted 'a' to numeric type"]
        assert cleaned["b"].tolist() == ["x", "y", "z"]

    def test_residual_values_untouched(self):
        df = _frame({"a": ["1", "2", "3", "4", "5", "6", "7", "8", "9", "oops"]})
        cleaned, _ = coerce_numeric_columns(df)
        assert cleaned["a"].iloc[0] == 1.0
        assert cleaned["a"].iloc[9] == "oops"

    def test_idempotent(self):
        df = _frame({"a": ["1", "2", "3"]})
        once, _ = coerce_numeric_columns(df)
        twice, entries = coerce_numeric_columns(once)
        assert entries == []
        assert once["a"].tolist() == twice["a"].tolist()


# ---------------------------------------------------------------------------
# Command mutations
# ---------------------------------------------------------------------------


class TestFillNulls:
    def test_mean(self):
        df = _frame({"a": [1, None, 2, 6]})
        cleaned, log = fill_nulls(df, "a", "mean")
        assert cleaned["a"].iloc[1] == pytest.approx(3.0)
        assert log.parameters["strategy"] == "mean"

    def test_median_is_upper_middle(self):
        df = _frame({"a": [1, 2, 3, 4, None]})
        cleaned, log = fill_nulls(df, "a", "median")
        assert cleaned["a"].iloc[4] == 3
        assert log.description == "Filled nulls in 'a' with 3.0"

    def test_mode(self):
        df = _frame({"c": ["x", "y", "y", ""]})
        cleaned, _ = fill_nulls(df, "c", "mode")
        assert cleaned["c"].iloc[3] == "y"

    def test_literal_value(self):
        df = _frame({"c": ["x", None]})
        cleaned, log = fill_nulls(df, "c", "Unknown")
        assert cleaned["c"].tolist() == ["x", "Unknown"]
        assert log.parameters["strategy"] == "value"

    def test_mean_without_numbers_is_zero(self):
        df = _frame({"a": ["x", None]})
        cleaned, _ = fill_nulls(df, "a", "mean")
        assert cleaned["a"].iloc[1] == 0

    def test_unknown_column(self):
        with pytest.raises(ColumnNotFoundError):
            fill_nulls(_frame({"a": [1]}), "b", "mean")


class TestRemoveNullRows:
    def test_removes_only_rows_missing_in_column(self):
        df = _frame({"a": [1, None, 3, ""], "b": [None, 2, 3, 4]})
        cleaned, log = remove_null_rows(df, "a")
        assert cleaned["a"].tolist() == [1, 3]
        assert log.description == "Removed 2 rows where 'a' was null"


class TestDropColumn:
    def test_drops(self):
        cleaned, log = drop_column(_frame({"a": [1], "b": [2]}), "a")
        assert list(cleaned.columns) == ["b"]
        assert log.description == "Dropped column 'a'"

    def test_unknown_column(self):
        with pytest.raises(ColumnNotFoundError):
            drop_column(_frame({"a": [1]}), "z")


class TestRenameColumn:
    def test_keeps_position(self):
        cleaned, log = rename_column(_frame({"a": [1], "b": [2], "c": [3]}), "b", "beta")
        assert list(cleaned.columns) == ["a", "beta", "c"]
        assert log.description == "Renamed column 'b' to 'beta'"

    def test_existing_target_rejected(self):
        with pytest.raises(ValueError, match="already exists"):
            rename_column(_frame({"a": [1], "b": [2]}), "a", "b")
