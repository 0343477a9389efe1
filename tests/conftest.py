"""Shared fixtures: a small cleaned table and a messy CSV on disk."""

from __future__ import annotations

import pandas as pd
import pytest

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sales_df() -> pd.DataFrame:
    """A small cleaned table with three numeric and one categorical column."""
    return pd.DataFrame(
        {
            "Year": [2019.0, 2020.0, 2021.0, 2022.0, 2023.0, 2024.0],
            "Sales": [100.0, 150.0, 130.0, 180.0, 210.0, 190.0],
            "Units": [10.0, 14.0, 13.0, 17.0, 20.0, 18.0],
            "Region": ["north", "south", "north", "east", "south", "east"],
        }
    )


@pytest.fixture
def csv_file(tmp_path):
    """Write a small CSV with a missing cell and a duplicate row."""
    path = tmp_path / "data.csv"
    path.write_text(
        "Name,Age,City\n"
        "alice,30,paris\n"
        "bob,,london\n"
        "alice,30,paris\n"
        "carol,41,\n",
        encoding="utf-8",
    )
    return str(path)
